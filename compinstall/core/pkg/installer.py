"""安装引擎

单个包的状态机:

  Init -> CheckLocal -> (Exists | Fetching) -> Resolving + Transferring -> Persisting -> Done
                                    \\______________ Failed ______________/

- Init:         包名必须是 owner/name 形式，否则在任何 IO 之前抛出 InvalidNameError
- CheckLocal:   本地已有 component.json 且未指定 force 时直接返回 exists
- Fetching:     按顺序遍历镜像，拉取清单
- Resolving / Transferring: 依赖安装与文件下载并发进行，共享一个并发令牌池
- Persisting:   全部成功后写入 component.json（作为 "已安装" 标记）
- Failed:       最后一个镜像上的错误（或文件系统错误）为致命错误，
                删除整个包目录后再抛出

用法:
    from compinstall.core.pkg import Package, InFlightRegistry

    registry = InFlightRegistry()
    pkg = Package("component/tip", "0.3.0", dest="components", registry=registry)
    result = pkg.install()
"""

from __future__ import annotations

import logging
import shutil
import threading
from pathlib import Path

from compinstall.core.exceptions import (
    CleanupError,
    FetchError,
    InstallError,
    NoRemoteError,
    ValidationError,
)
from compinstall.core.pkg.events import (
    EVENT_ERROR,
    EVENT_EXISTS,
    EVENT_INSTALLED,
    InstallEvents,
)
from compinstall.core.pkg.fetcher import ManifestFetcher, ResolvedMirror, iter_mirrors
from compinstall.core.pkg.models import (
    DEFAULT_DEST,
    DEFAULT_REMOTE,
    MANIFEST_FILE,
    STATUS_EXISTS,
    STATUS_IN_FLIGHT,
    STATUS_INSTALLED,
    InstallResult,
    Manifest,
)
from compinstall.core.pkg.paths import (
    dirname_for,
    join_path,
    normalize_version,
    slug_for,
    strip_mirror,
    url_for,
    validate_name,
)
from compinstall.core.pkg.registry import (
    STATE_FAILED,
    InFlightRegistry,
    default_registry,
)
from compinstall.core.pkg.resolver import DependencyResolver
from compinstall.core.pkg.transfer import FileTransfer, TransferBatch
from compinstall.utils.credentials import (
    CredentialLookup,
    Credentials,
    auth_headers,
    netrc_lookup,
)
from compinstall.utils.fileio import atomic_write, load_json
from compinstall.utils.net import (
    DEFAULT_TIMEOUT,
    HttpClient,
    UrlLibClient,
    env_proxy,
    hostname_of,
)

logger = logging.getLogger(__name__)


class Package:
    """单个 name@version 的安装任务

    参数:
        name: 包名，形如 owner/name
        version: 版本号；"*" 会被替换为默认分支 master
        dest: 安装根目录（默认 components）
        remotes: 镜像地址列表，按顺序尝试（默认 https://raw.github.com）
        auth: 显式凭据，优先于 netrc
        netrc: netrc 文件路径（默认 ~/.netrc），按主机名查找凭据
        force: 本地已安装时仍然重新安装
        proxy: HTTP 代理地址（默认取 https_proxy 环境变量）
        concurrency: 文件下载 + 依赖安装的并发上限，None 表示不限制
        registry: 本次运行共享的 InFlightRegistry
        events: 进度事件通道，子包共享
        http: HttpClient 实现，默认基于 urllib
    """

    def __init__(
        self,
        name: str,
        version: str,
        *,
        dest: str | Path = DEFAULT_DEST,
        remotes: list[str] | None = None,
        auth: Credentials | None = None,
        netrc: str | None = None,
        force: bool = False,
        proxy: str | None = None,
        concurrency: int | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        registry: InFlightRegistry | None = None,
        events: InstallEvents | None = None,
        http: HttpClient | None = None,
        credentials: CredentialLookup | None = None,
    ) -> None:
        if not name:
            raise ValidationError("pkg required")
        if not version:
            raise ValidationError("version required")
        self.name = name
        self.version = normalize_version(version)
        self.slug = slug_for(name, self.version)
        self.dest = dest or DEFAULT_DEST
        self.remotes = [strip_mirror(r) for r in ([DEFAULT_REMOTE] if remotes is None else remotes)]
        self.auth = auth
        self.netrc = netrc
        self.force = force
        self.proxy = env_proxy() if proxy is None else proxy
        self.concurrency = concurrency
        self.timeout = timeout
        self.registry = registry if registry is not None else default_registry()
        self.events = events if events is not None else InstallEvents()
        self.http = http if http is not None else UrlLibClient(self.proxy, timeout)
        self._credentials = credentials
        self._credentials_lock = threading.Lock()
        logger.debug("installing %s (dest=%s, remotes=%s)", self.slug, self.dest, self.remotes)

    def __repr__(self) -> str:
        return f"Package({self.slug!r})"

    # ------------------------------------------------------------------
    # 路径 / URL
    # ------------------------------------------------------------------

    def dirname(self) -> Path:
        """包目录，例如 component/dialog -> <dest>/component-dialog"""
        return dirname_for(self.name, self.dest)

    def join(self, relative: str) -> Path:
        return join_path(self.name, self.dest, relative)

    def url(self, file: str, mirror: str | None = None) -> str:
        return url_for(mirror or self.remotes[0], self.name, self.version, file)

    # ------------------------------------------------------------------
    # 凭据
    # ------------------------------------------------------------------

    def credential_lookup(self) -> CredentialLookup:
        """首次使用时才读取 netrc，构造期间不做文件 IO"""
        with self._credentials_lock:
            if self._credentials is None:
                self._credentials = netrc_lookup(self.netrc)
            return self._credentials

    def headers_for(self, url: str) -> dict[str, str]:
        if self.auth is not None:
            return auth_headers(hostname_of(url), self.auth)
        return auth_headers(hostname_of(url), lookup=self.credential_lookup())

    # ------------------------------------------------------------------
    # 本地状态
    # ------------------------------------------------------------------

    def local_manifest(self) -> Manifest | None:
        """读取已安装的 component.json，未安装时返回 None"""
        path = self.join(MANIFEST_FILE)
        if not path.exists():
            return None
        return Manifest.from_document(load_json(path))

    def destroy(self) -> None:
        """删除整个包目录（失败清理）"""
        path = self.dirname()
        if not path.exists():
            return
        logger.info("清理包目录: %s", path)
        try:
            shutil.rmtree(path)
        except OSError as e:
            raise CleanupError(f"failed to remove {path}: {e}") from e

    def child(self, name: str, version: str) -> Package:
        """构造依赖子包，继承目录、镜像、并发策略、凭据与共享的注册表/事件通道"""
        return Package(
            name, version,
            dest=self.dest,
            remotes=list(self.remotes),
            auth=self.auth,
            netrc=self.netrc,
            force=self.force,
            proxy=self.proxy,
            concurrency=self.concurrency,
            timeout=self.timeout,
            registry=self.registry,
            events=self.events,
            http=self.http,
            credentials=self._credentials,
        )

    # ------------------------------------------------------------------
    # 安装
    # ------------------------------------------------------------------

    def install(self) -> InstallResult:
        """安装本包及其依赖，返回 InstallResult；致命错误时清理目录后抛出"""
        validate_name(self.name)

        if not self.registry.claim(self.slug):
            if self.registry.state(self.slug) == STATE_FAILED:
                raise self.registry.error(self.slug)
            logger.info("已在本次运行中安装: %s", self.slug)
            return InstallResult(slug=self.slug, status=STATUS_IN_FLIGHT, path=str(self.dirname()))

        try:
            result = self._install()
        except Exception as e:
            self.registry.fail(self.slug, e)
            raise
        self.registry.finish(self.slug)
        return result

    def _install(self) -> InstallResult:
        if not self.force and self.join(MANIFEST_FILE).exists():
            logger.info("本地已安装，跳过: %s -> %s", self.slug, self.dirname())
            self.events.emit(EVENT_EXISTS, self)
            return InstallResult(slug=self.slug, status=STATUS_EXISTS, path=str(self.dirname()))

        fetcher = ManifestFetcher(self.http, self.headers_for)
        for mirror in iter_mirrors(self.remotes):
            manifest = None
            try:
                logger.info(
                    "安装 %s (镜像 %d/%d: %s)", self.slug, mirror.index, mirror.total, mirror.url,
                )
                manifest = fetcher.fetch(self.name, self.version, mirror)
                return self._transfer(manifest, mirror)
            except (FetchError, InstallError) as err:
                if mirror.last or err.fatal:
                    raise self._fail(err)
                logger.warning(
                    "镜像 %d/%d 安装失败，尝试下一个: %s (%s)",
                    mirror.index, mirror.total, self.slug, err,
                )
                if manifest is not None:
                    self._discard_attempt()
        # 只有镜像列表为空时才会走到这里
        raise self._fail(NoRemoteError(self.name))

    def _transfer(self, manifest: Manifest, mirror: ResolvedMirror) -> InstallResult:
        """Resolving + Transferring + Persisting"""
        transfer = FileTransfer(self, mirror.url)
        transfer.ensure_dir(self.dirname())

        files = manifest.files()
        deps = manifest.dependencies
        logger.info("  %s: %d 个文件, %d 个依赖", self.slug, len(files), len(deps))

        batch = TransferBatch(self.concurrency, label=self.slug)
        resolver = DependencyResolver(self)
        try:
            resolver.submit_all(deps, batch)
            for file in files:
                if batch.failed:
                    break
                batch.submit(transfer.fetch_file, file)
        finally:
            # 无论提交阶段是否出错，都等待已启动的单元跑完
            error = batch.wait()
        if isinstance(error, (FetchError, InstallError)):
            raise error
        if error is not None:
            # 未归类的异常同样走失败清理
            raise InstallError(f"{self.slug}: {error!r}", str(self.dirname())) from error

        self._persist(manifest)
        self.events.emit(EVENT_INSTALLED, self)
        logger.info("已安装: %s -> %s", self.slug, self.dirname())
        return InstallResult(
            slug=self.slug,
            status=STATUS_INSTALLED,
            path=str(self.dirname()),
            remote=mirror.url,
            manifest=manifest,
            dependencies=resolver.results(),
        )

    def _persist(self, manifest: Manifest) -> None:
        path = self.join(MANIFEST_FILE)
        logger.debug("write %s", path)
        try:
            atomic_write(path, manifest.to_json())
        except OSError as e:
            raise InstallError(f"failed to write {path}: {e}", str(path)) from e

    def _discard_attempt(self) -> None:
        """非最后镜像失败后丢弃已写入的内容，下一个镜像从空目录开始"""
        try:
            self.destroy()
        except CleanupError as e:
            logger.warning("清理失败（继续尝试下一个镜像）: %s", e)

    def _fail(self, err: FetchError | InstallError) -> FetchError | InstallError:
        """标记致命、删除包目录、通知调用方，返回原始错误供调用方抛出"""
        err.fatal = True
        try:
            self.destroy()
        except CleanupError as cleanup:
            err.cleanup_error = cleanup
            logger.error("清理半安装目录失败: %s", cleanup)
        logger.error("安装失败: %s: %s", self.slug, err)
        self.events.emit(EVENT_ERROR, self, err)
        return err
