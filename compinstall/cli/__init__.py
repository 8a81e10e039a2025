"""compinstall 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

import os

import click

from compinstall import __version__
from compinstall.utils.logger import setup_logging


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """compinstall - 组件包安装器"""
    setup_logging(
        level=os.getenv("COMPINSTALL_LOG_LEVEL", "WARNING"),
        json_output=os.getenv("COMPINSTALL_LOG_JSON", "") == "1",
    )


# 注册各领域子命令
from compinstall.cli.cmd_install import register as _reg_install  # noqa: E402

_reg_install(main)
