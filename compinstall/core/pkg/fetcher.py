"""镜像清单拉取器

职责:
- 按顺序遍历镜像列表，生成每次尝试的 ResolvedMirror（不可变）
- 从单个镜像拉取并解析 component.json
- 把 HTTP 状态错误 / 网络层错误统一为 FetchError

同一个镜像不会重试；是否继续下一个镜像由安装引擎根据 FetchError.last 决定。
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Callable, Iterator

from compinstall.core.exceptions import FetchError, ValidationError
from compinstall.core.pkg.models import MANIFEST_FILE, Manifest
from compinstall.core.pkg.paths import strip_mirror, url_for
from compinstall.utils.net import (
    TRANSPORT_ERRORS,
    HttpClient,
    describe_transport_error,
    is_success,
    status_reason,
)

logger = logging.getLogger(__name__)

HeaderFactory = Callable[[str], "dict[str, str]"]


@dataclass(frozen=True)
class ResolvedMirror:
    """一次镜像尝试：地址 + 序号（从 1 开始）+ 是否为最后一个"""

    url: str
    index: int
    total: int

    @property
    def last(self) -> bool:
        return self.index == self.total


def iter_mirrors(remotes: list[str]) -> Iterator[ResolvedMirror]:
    total = len(remotes)
    for i, remote in enumerate(remotes, start=1):
        yield ResolvedMirror(url=strip_mirror(remote), index=i, total=total)


def http_error(url: str, status: int, *, last: bool = False) -> FetchError:
    """非 2xx 响应对应的 FetchError"""
    return FetchError(
        f'failed to fetch {url}, got {status} "{status_reason(status)}"',
        url=url, status=status, last=last,
    )


def transport_error(exc: BaseException, url: str, *, last: bool = False) -> FetchError:
    """网络层异常对应的 FetchError（DNS 失败改写为 "dns lookup failed"）"""
    return FetchError(describe_transport_error(exc, url), url=url, last=last)


class ManifestFetcher:
    """从单个镜像拉取 component.json"""

    def __init__(self, http: HttpClient, headers_for: HeaderFactory) -> None:
        self.http = http
        self.headers_for = headers_for

    def manifest_url(self, mirror: ResolvedMirror, name: str, version: str) -> str:
        return url_for(mirror.url, name, version, MANIFEST_FILE)

    def fetch(self, name: str, version: str, mirror: ResolvedMirror) -> Manifest:
        url = self.manifest_url(mirror, name, version)
        logger.debug("fetching %s", url)

        try:
            resp = self.http.get(url, self.headers_for(url))
        except ValidationError as e:
            raise FetchError(str(e), url=url, last=mirror.last) from e
        except TRANSPORT_ERRORS as e:
            raise transport_error(e, url, last=mirror.last) from e

        if not is_success(resp.status):
            raise http_error(url, resp.status, last=mirror.last)

        try:
            manifest = Manifest.from_document(json.loads(resp.body))
        except ValueError as e:
            # JSONDecodeError / UnicodeDecodeError 都是 ValueError
            raise FetchError(f"{e} in {url}", url=url, last=mirror.last) from e

        return manifest.with_default_repo(mirror.url, name)
