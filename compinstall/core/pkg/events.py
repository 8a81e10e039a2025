"""安装进度通知

与控制流解耦的窄通道：安装结果通过返回值传递，
进度事件（file / dependency / exists / installed / error）通过回调通知调用方。
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

logger = logging.getLogger(__name__)

EVENT_FILE = "file"
EVENT_DEPENDENCY = "dependency"
EVENT_EXISTS = "exists"
EVENT_INSTALLED = "installed"
EVENT_ERROR = "error"

EVENTS = frozenset((
    EVENT_FILE, EVENT_DEPENDENCY, EVENT_EXISTS, EVENT_INSTALLED, EVENT_ERROR,
))

Listener = Callable[..., Any]


class InstallEvents:
    """事件回调注册表，父包与子包共享同一个实例"""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: dict[str, list[Listener]] = {}

    def on(self, event: str, callback: Listener) -> InstallEvents:
        if event not in EVENTS:
            raise ValueError(f"未知事件: {event}，可用: {sorted(EVENTS)}")
        with self._lock:
            self._listeners.setdefault(event, []).append(callback)
        return self

    def emit(self, event: str, *args: Any) -> None:
        with self._lock:
            listeners = list(self._listeners.get(event, ()))
        for callback in listeners:
            try:
                callback(*args)
            except Exception:
                # 回调失败不影响安装流程
                logger.exception("事件回调失败: %s", event)
