"""组件包安装模块

拆分说明:
- models.py:    清单与安装结果数据模型
- paths.py:     包身份、本地路径与远程 URL 计算
- registry.py:  本次运行的 in-flight 注册表
- events.py:    进度事件通道
- fetcher.py:   镜像清单拉取
- transfer.py:  并发受限的文件传输
- resolver.py:  依赖递归安装
- installer.py: 单包安装状态机
"""

from compinstall.core.pkg.events import InstallEvents
from compinstall.core.pkg.installer import Package
from compinstall.core.pkg.models import InstallResult, Manifest
from compinstall.core.pkg.registry import InFlightRegistry

__all__ = [
    "InstallEvents",
    "InFlightRegistry",
    "InstallResult",
    "Manifest",
    "Package",
]
