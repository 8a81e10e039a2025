"""网络工具 — URL 安全校验 + HTTP 客户端

HttpClient 是安装引擎依赖的抽象：get() 读取整个响应体，download() 流式写盘。
非 2xx 状态以响应返回而不是抛出，由调用方决定如何处理；
网络层错误（DNS、连接拒绝、超时）照常抛出。
"""

from __future__ import annotations

import http.client
import logging
import os
import shutil
import socket
import urllib.error
import urllib.request
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol
from urllib.parse import urlparse

from compinstall.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

_ALLOWED_SCHEMES = frozenset(("http", "https"))

DEFAULT_TIMEOUT = 30.0
CHUNK_SIZE = 64 * 1024

# 网络层异常：DNS、连接拒绝、超时、响应体截断（IncompleteRead 等）
TRANSPORT_ERRORS = (
    urllib.error.URLError,
    http.client.HTTPException,
    ConnectionError,
    TimeoutError,
)


def env_proxy() -> str:
    """默认代理：https_proxy / HTTPS_PROXY 环境变量"""
    return os.getenv("https_proxy") or os.getenv("HTTPS_PROXY") or ""


def validate_url_scheme(url: str, *, context: str = "") -> None:
    """校验 URL 仅使用 http/https，防止 file:// 等非预期协议访问

    Raises:
        ValidationError: URL scheme 不在白名单内
    """
    parsed = urlparse(url)
    if parsed.scheme not in _ALLOWED_SCHEMES:
        label = f" ({context})" if context else ""
        raise ValidationError(
            f"unsupported URL scheme '{parsed.scheme}'{label}, "
            f"only http/https allowed: {url}"
        )


def hostname_of(url: str) -> str:
    return urlparse(url).hostname or ""


def status_reason(status: int) -> str:
    try:
        return http.HTTPStatus(status).phrase
    except ValueError:
        return "Unknown"


def is_success(status: int) -> bool:
    return 200 <= status < 300


def is_dns_failure(exc: BaseException) -> bool:
    """判断是否为域名解析失败（getaddrinfo）"""
    if isinstance(exc, socket.gaierror):
        return True
    reason = getattr(exc, "reason", None)
    return isinstance(reason, socket.gaierror)


def describe_transport_error(exc: BaseException, url: str) -> str:
    """把网络层异常改写为用户可读的消息"""
    if is_dns_failure(exc):
        return "dns lookup failed"
    reason = getattr(exc, "reason", None) or exc
    return f"{reason} in {url}"


@dataclass
class HttpResponse:
    status: int
    body: bytes = b""
    reason: str = ""


class HttpClient(Protocol):
    """HTTP 客户端协议，测试中可替换为内存实现"""

    def get(self, url: str, headers: dict[str, str] | None = None) -> HttpResponse:
        ...

    def download(
        self, url: str, destination: Path, headers: dict[str, str] | None = None,
    ) -> HttpResponse:
        ...


class UrlLibClient:
    """基于 urllib.request 的默认实现，支持代理与超时"""

    def __init__(self, proxy: str = "", timeout: float = DEFAULT_TIMEOUT) -> None:
        handlers: list[urllib.request.BaseHandler] = []
        if proxy:
            validate_url_scheme(proxy, context="proxy")
            handlers.append(urllib.request.ProxyHandler({"http": proxy, "https": proxy}))
        self.proxy = proxy
        self.timeout = timeout
        self._opener = urllib.request.build_opener(*handlers)

    def _open(self, url: str, headers: dict[str, str] | None):
        validate_url_scheme(url)
        req = urllib.request.Request(url, headers=dict(headers or {}))
        return self._opener.open(req, timeout=self.timeout)  # nosec B310

    def get(self, url: str, headers: dict[str, str] | None = None) -> HttpResponse:
        try:
            with self._open(url, headers) as resp:
                return HttpResponse(status=resp.status, body=resp.read(), reason=resp.reason)
        except urllib.error.HTTPError as e:
            e.close()
            return HttpResponse(status=e.code, reason=str(e.reason))

    def download(
        self, url: str, destination: Path, headers: dict[str, str] | None = None,
    ) -> HttpResponse:
        try:
            with self._open(url, headers) as resp:
                if is_success(resp.status):
                    with open(destination, "wb") as f:
                        shutil.copyfileobj(resp, f, CHUNK_SIZE)
                return HttpResponse(status=resp.status, reason=resp.reason)
        except urllib.error.HTTPError as e:
            e.close()
            return HttpResponse(status=e.code, reason=str(e.reason))
