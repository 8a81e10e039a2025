"""安装中（in-flight）注册表

记录本次运行中已经发起过安装的 slug 及其状态，防止菱形依赖重复安装同一个包。
登记后不会撤销：同一进程内对同一 slug 的再次安装直接视为完成；
若首次安装失败，则记录失败原因，后续请求拿到同一个错误而不是假装成功。
"""

from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)

STATE_RUNNING = "running"
STATE_DONE = "done"
STATE_FAILED = "failed"


class InFlightRegistry:
    """线程安全的 slug -> 状态表，claim() 是原子的 check-and-set"""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._states: dict[str, str] = {}
        self._errors: dict[str, BaseException] = {}

    def claim(self, slug: str) -> bool:
        """登记 slug，返回是否为首次登记（False 表示已有安装在进行或已结束）"""
        with self._lock:
            if slug in self._states:
                logger.debug("已在安装中: %s (%s)", slug, self._states[slug])
                return False
            self._states[slug] = STATE_RUNNING
            return True

    def finish(self, slug: str) -> None:
        with self._lock:
            self._states[slug] = STATE_DONE

    def fail(self, slug: str, error: BaseException) -> None:
        with self._lock:
            self._states[slug] = STATE_FAILED
            self._errors[slug] = error

    def state(self, slug: str) -> str | None:
        with self._lock:
            return self._states.get(slug)

    def error(self, slug: str) -> BaseException | None:
        with self._lock:
            return self._errors.get(slug)

    def slugs(self) -> list[str]:
        with self._lock:
            return sorted(self._states)

    def __contains__(self, slug: object) -> bool:
        with self._lock:
            return slug in self._states

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)


# 调用方未显式传入时使用的进程级注册表
_default: InFlightRegistry | None = None
_default_lock = threading.Lock()


def default_registry() -> InFlightRegistry:
    global _default  # noqa: PLW0603
    with _default_lock:
        if _default is None:
            _default = InFlightRegistry()
        return _default


def reset_default_registry() -> None:
    """丢弃进程级注册表，主要用于测试隔离"""
    global _default  # noqa: PLW0603
    with _default_lock:
        _default = None
