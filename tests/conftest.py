"""测试共享 fixture — 内存 HTTP 客户端，无需真实网络

FakeHttp 以 URL 为键返回预设响应:
  - bytes / str / dict: 200 + 内容（dict 序列化为 JSON）
  - int:                该状态码、空内容
  - BaseException:      请求时抛出（模拟 DNS 失败等网络层错误）
未登记的 URL 返回 404。
"""

from __future__ import annotations

import json
import threading
import time
from pathlib import Path
from typing import Any

import pytest

from compinstall.core.pkg import InFlightRegistry, InstallEvents
from compinstall.core.pkg.registry import reset_default_registry
from compinstall.utils.net import HttpResponse, is_success


class FakeHttp:
    def __init__(self, routes: dict[str, Any] | None = None, delay: float = 0.0) -> None:
        self.routes: dict[str, Any] = dict(routes or {})
        self.delay = delay
        self.requests: list[str] = []
        self.headers: dict[str, dict[str, str]] = {}
        self._lock = threading.Lock()
        self.active = 0
        self.max_active = 0

    def _respond(self, url: str, headers: dict[str, str] | None) -> tuple[int, bytes]:
        with self._lock:
            self.requests.append(url)
            self.headers[url] = dict(headers or {})
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            value = self.routes.get(url, 404)
            if isinstance(value, BaseException):
                raise value
            if isinstance(value, int):
                return value, b""
            if isinstance(value, dict):
                return 200, json.dumps(value).encode()
            if isinstance(value, str):
                return 200, value.encode()
            return 200, value
        finally:
            with self._lock:
                self.active -= 1

    def get(self, url: str, headers: dict[str, str] | None = None) -> HttpResponse:
        status, body = self._respond(url, headers)
        return HttpResponse(status=status, body=body)

    def download(
        self, url: str, destination: Path, headers: dict[str, str] | None = None,
    ) -> HttpResponse:
        status, body = self._respond(url, headers)
        if is_success(status):
            destination.write_bytes(body)
        return HttpResponse(status=status)

    def count(self, url: str) -> int:
        with self._lock:
            return self.requests.count(url)


@pytest.fixture()
def fake_http() -> FakeHttp:
    return FakeHttp()


@pytest.fixture()
def registry() -> InFlightRegistry:
    return InFlightRegistry()


@pytest.fixture()
def recorder() -> tuple[InstallEvents, list[tuple]]:
    """记录全部事件的 InstallEvents"""
    events = InstallEvents()
    seen: list[tuple] = []
    lock = threading.Lock()

    def make(name: str):
        def record(*args: Any) -> None:
            with lock:
                seen.append((name, *args))
        return record

    for name in ("file", "dependency", "exists", "installed", "error"):
        events.on(name, make(name))
    return events, seen


@pytest.fixture(autouse=True)
def _isolate(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """不读取真实 ~/.netrc 与代理环境变量，每个测试使用独立的进程级注册表"""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.delenv("https_proxy", raising=False)
    monkeypatch.delenv("HTTPS_PROXY", raising=False)
    reset_default_registry()
