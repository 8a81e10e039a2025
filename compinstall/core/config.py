"""集中配置管理

安装参数的默认值与 YAML 配置文件加载，支持编程式覆盖。
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

from compinstall.core.exceptions import ConfigError
from compinstall.core.pkg.models import DEFAULT_DEST, DEFAULT_REMOTE
from compinstall.utils.fileio import load_yaml
from compinstall.utils.net import DEFAULT_TIMEOUT, env_proxy

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = ".compinstall.yml"


@dataclass
class Config:
    """安装器全局配置"""

    dest: str = DEFAULT_DEST
    remotes: list[str] = field(default_factory=lambda: [DEFAULT_REMOTE])
    concurrency: int | None = None
    force: bool = False
    proxy: str = field(default_factory=env_proxy)
    netrc: str = ""
    timeout: float = DEFAULT_TIMEOUT

    # 放不到字段里的配置项
    extra: dict = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.remotes, str):
            self.remotes = [self.remotes]
        if not isinstance(self.remotes, list) or not self.remotes or not all(
            isinstance(r, str) and r for r in self.remotes
        ):
            raise ConfigError(f"remotes 必须是非空字符串列表: {self.remotes!r}")
        if self.concurrency is not None and self.concurrency < 0:
            raise ConfigError(f"concurrency 不能为负数: {self.concurrency}")

    @classmethod
    def from_file(cls, path: str = DEFAULT_CONFIG_FILE) -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        data = load_yaml(path)
        if not data:
            return cls()
        known = {f.name for f in cls.__dataclass_fields__.values()}
        matched = {k: v for k, v in data.items() if k in known and k != "extra"}
        extra = {k: v for k, v in data.items() if k not in known}
        try:
            cfg = cls(**matched)
        except TypeError as e:
            raise ConfigError(f"配置文件内容无效: {path}: {e}") from e
        cfg.extra = extra
        return cfg

    def package_options(self) -> dict[str, Any]:
        """转换为 Package 构造参数"""
        return {
            "dest": self.dest,
            "remotes": list(self.remotes),
            "concurrency": self.concurrency,
            "force": self.force,
            "proxy": self.proxy,
            "netrc": self.netrc or None,
            "timeout": self.timeout,
        }

    def to_dict(self) -> dict:
        return asdict(self)


# 全局单例，首次 import 时不加载文件；由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = DEFAULT_CONFIG_FILE) -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    return _current
