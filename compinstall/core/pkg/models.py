"""组件包数据模型

数据类:
- Manifest: 远程 component.json 清单
- InstallResult: 单个包的安装结果
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

DEFAULT_DEST = "components"
DEFAULT_REMOTE = "https://raw.github.com"
MANIFEST_FILE = "component.json"

# 版本通配符 "*" 统一指向默认分支
WILDCARD_VERSION = "*"
DEFAULT_BRANCH = "master"

# 传输集合的拼接顺序
FILE_CATEGORIES = (
    "scripts", "styles", "templates", "files", "images", "fonts", "json",
)

# 安装结果状态
STATUS_INSTALLED = "installed"
STATUS_EXISTS = "exists"
STATUS_IN_FLIGHT = "in_flight"


@dataclass
class Manifest:
    """component.json 清单，保留原始文档中的全部字段"""

    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_document(cls, doc: Any) -> Manifest:
        """从解析后的 JSON 文档构建清单，文档必须是对象"""
        if not isinstance(doc, dict):
            raise ValueError(
                f"manifest must be a JSON object, got {type(doc).__name__}"
            )
        for category in FILE_CATEGORIES:
            value = doc.get(category)
            if value is not None and not isinstance(value, list):
                raise ValueError(f'manifest field "{category}" must be an array')
        deps = doc.get("dependencies")
        if deps is not None and not isinstance(deps, dict):
            raise ValueError('manifest field "dependencies" must be an object')
        return cls(data=dict(doc))

    def files(self) -> list[str]:
        """传输集合：按 FILE_CATEGORIES 顺序拼接所有文件列表"""
        result: list[str] = []
        for category in FILE_CATEGORIES:
            result.extend(self.data.get(category) or [])
        return result

    @property
    def dependencies(self) -> dict[str, str]:
        return dict(self.data.get("dependencies") or {})

    @property
    def repo(self) -> str:
        return self.data.get("repo", "")

    def with_default_repo(self, remote: str, name: str) -> Manifest:
        """缺少 repo 字段时用 <镜像>/<包名> 补齐，返回新对象"""
        if self.repo:
            return self
        data = dict(self.data)
        data["repo"] = f"{remote}/{name}"
        return Manifest(data=data)

    def to_json(self) -> str:
        return json.dumps(self.data, indent=2)


@dataclass
class InstallResult:
    """单个包的安装结果

    status:
      - installed: 本次从镜像完成安装
      - exists:    本地已有 component.json 且未指定 force，跳过
      - in_flight: 同一 slug 已在本次运行中被安装过（或正在安装）
    """

    slug: str
    status: str
    path: str = ""
    remote: str = ""
    manifest: Manifest | None = None
    dependencies: list[InstallResult] = field(default_factory=list)

    @property
    def installed(self) -> bool:
        return self.status == STATUS_INSTALLED

    def walk(self) -> list[InstallResult]:
        """深度优先展开整棵依赖树（含自身）"""
        result = [self]
        for child in self.dependencies:
            result.extend(child.walk())
        return result
