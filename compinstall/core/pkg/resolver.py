"""依赖解析器

为清单中的每个依赖构造子 Package，与父包的文件下载共享同一个 TransferBatch。
已在注册表中的 slug 直接视为完成，菱形依赖只安装一次。
"""

from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import TYPE_CHECKING

from compinstall.core.exceptions import CompInstallError, DependencyError
from compinstall.core.pkg.events import EVENT_DEPENDENCY
from compinstall.core.pkg.models import STATUS_IN_FLIGHT, InstallResult
from compinstall.core.pkg.paths import slug_for
from compinstall.core.pkg.registry import STATE_FAILED
from compinstall.core.pkg.transfer import TransferBatch

if TYPE_CHECKING:
    from compinstall.core.pkg.installer import Package

logger = logging.getLogger(__name__)


class DependencyResolver:
    """安装一个包的直接依赖（子包再递归安装各自的依赖）"""

    def __init__(self, parent: Package) -> None:
        self.parent = parent
        self._skipped: list[InstallResult] = []
        self._futures: list[Future] = []

    def submit_all(self, deps: dict[str, str], batch: TransferBatch) -> None:
        for name, version in deps.items():
            if batch.failed:
                logger.debug("[%s] 已有失败，停止提交依赖", self.parent.slug)
                return
            logger.debug("dep %s@%s", name, version)
            child = self._spawn(name, version)
            self.parent.events.emit(EVENT_DEPENDENCY, self.parent, child)

            registry = self.parent.registry
            if registry.state(child.slug) == STATE_FAILED:
                raise DependencyError(child.slug, registry.error(child.slug))
            if child.slug in registry:
                logger.info("  依赖已在安装中，跳过: %s", child.slug)
                self._skipped.append(InstallResult(
                    slug=child.slug, status=STATUS_IN_FLIGHT, path=str(child.dirname()),
                ))
                continue
            self._futures.append(batch.submit(self._install_child, child))

    def results(self) -> list[InstallResult]:
        """全部依赖完成后调用，返回子包结果"""
        return self._skipped + [f.result() for f in self._futures]

    def _spawn(self, name: str, version: str) -> Package:
        try:
            return self.parent.child(name, version)
        except CompInstallError as e:
            raise DependencyError(slug_for(name, version), e) from e

    @staticmethod
    def _install_child(child: Package) -> InstallResult:
        try:
            return child.install()
        except Exception as e:
            raise DependencyError(child.slug, e) from e
