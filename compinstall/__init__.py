"""compinstall - 组件包安装器

从镜像主机拉取 component.json 清单，并发下载清单中的文件，递归安装依赖。
"""

__version__ = "0.4.0"
