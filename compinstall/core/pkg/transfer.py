"""并发受限的文件传输

- TransferChannel: drain/push 协议的并发令牌池
- TransferBatch:   一次镜像尝试内的工作单元（文件 + 依赖）共享同一个令牌池
- FileTransfer:    下载单个包的文件到包目录

任一单元失败后不再提交新单元，但已启动的单元允许跑完；
wait() 返回前所有单元都已结束，调用方之后才可以安全地删除目录。
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

from compinstall.core.exceptions import FetchError, InstallError
from compinstall.core.pkg.events import EVENT_FILE
from compinstall.core.pkg.fetcher import http_error, transport_error
from compinstall.core.pkg.paths import join_path, url_for
from compinstall.utils.net import TRANSPORT_ERRORS, is_success

if TYPE_CHECKING:
    from compinstall.core.pkg.installer import Package

logger = logging.getLogger(__name__)

# 未设置并发上限时线程池的大小
UNBOUNDED_WORKERS = 32


class TransferChannel:
    """并发令牌池：drain() 在满载时阻塞，push() 释放一个槽位

    concurrency 为 None 或 0 时不限制。
    """

    def __init__(self, concurrency: int | None = None) -> None:
        self.concurrency = concurrency or 0
        self._cond = threading.Condition()
        self._active = 0

    def drain(self) -> None:
        with self._cond:
            while self.concurrency and self._active >= self.concurrency:
                self._cond.wait()
            self._active += 1

    def push(self) -> None:
        with self._cond:
            self._active = max(0, self._active - 1)
            self._cond.notify()

    @property
    def active(self) -> int:
        with self._cond:
            return self._active


class TransferBatch:
    """一次镜像尝试内的全部工作单元，记录第一个失败"""

    def __init__(self, concurrency: int | None = None, *, label: str = "") -> None:
        self.channel = TransferChannel(concurrency)
        self.label = label
        self._executor = ThreadPoolExecutor(
            max_workers=concurrency or UNBOUNDED_WORKERS,
            thread_name_prefix=f"transfer-{label}" if label else "transfer",
        )
        self._lock = threading.Lock()
        self._error: BaseException | None = None

    @property
    def failed(self) -> bool:
        with self._lock:
            return self._error is not None

    @property
    def error(self) -> BaseException | None:
        with self._lock:
            return self._error

    def submit(self, fn: Callable[..., Any], *args: Any) -> Future:
        """申请槽位后提交单元；满载时阻塞调用方"""
        self.channel.drain()
        try:
            future = self._executor.submit(fn, *args)
        except BaseException:
            self.channel.push()
            raise
        future.add_done_callback(self._on_done)
        return future

    def _on_done(self, future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            with self._lock:
                if self._error is None:
                    self._error = exc
                else:
                    logger.debug("[%s] 后续失败: %s", self.label, exc)
        self.channel.push()

    def wait(self) -> BaseException | None:
        """等待全部已提交单元结束，返回第一个失败（无失败返回 None）"""
        self._executor.shutdown(wait=True)
        return self.error


class FileTransfer:
    """把一个包的文件从选定镜像下载到包目录"""

    def __init__(self, package: Package, mirror: str) -> None:
        self.package = package
        self.mirror = mirror
        self._dirs: set[Path] = set()
        self._dirs_lock = threading.Lock()

    def ensure_dir(self, directory: Path) -> None:
        """每个目录在本实例内只创建一次"""
        with self._dirs_lock:
            if directory in self._dirs:
                return
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise InstallError(f"failed to create {directory}: {e}", str(directory)) from e
            self._dirs.add(directory)

    def fetch_file(self, file: str) -> Path:
        pkg = self.package
        url = url_for(self.mirror, pkg.name, pkg.version, file)
        logger.debug("fetching %s", url)
        pkg.events.emit(EVENT_FILE, pkg, file, url)

        dst = join_path(pkg.name, pkg.dest, file)
        self.ensure_dir(dst.parent)

        try:
            resp = pkg.http.download(url, dst, pkg.headers_for(url))
        except TRANSPORT_ERRORS as e:
            raise self._fatal(transport_error(e, url)) from e
        except OSError as e:
            raise InstallError(f"failed to write {dst}: {e}", str(dst)) from e

        if not is_success(resp.status):
            raise self._fatal(http_error(url, resp.status))
        return dst

    @staticmethod
    def _fatal(err: FetchError) -> FetchError:
        # 已选定镜像后，单个文件没有独立的镜像回退
        err.fatal = True
        return err
