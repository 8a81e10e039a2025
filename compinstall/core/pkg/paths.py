"""包身份与路径计算

纯函数，不做任何 IO:
- slug_for: 去重键 name@version
- dirname_for: 本地包目录（owner/name -> <dest>/owner-name，统一小写）
- join_path: 包目录下的相对路径
- url_for: 远程文件地址 <mirror>/<name>/<version>/<file>
"""

from __future__ import annotations

import os
from pathlib import Path

from compinstall.core.exceptions import InstallError, InvalidNameError, ValidationError
from compinstall.core.pkg.models import DEFAULT_BRANCH, WILDCARD_VERSION

NAMESPACE_SEP = "/"


def normalize_version(version: str) -> str:
    """"*" 统一替换为默认分支"""
    if version == WILDCARD_VERSION:
        return DEFAULT_BRANCH
    return version


def validate_name(name: str) -> None:
    """包名必须恰好是 owner/name 两段，且两段均非空"""
    parts = name.split(NAMESPACE_SEP)
    if len(parts) != 2 or not all(parts):
        raise InvalidNameError(name)


def slug_for(name: str, version: str) -> str:
    return f"{name}@{version}"


def split_slug(spec: str) -> tuple[str, str]:
    """解析 "owner/name@version"，缺省版本按通配符处理"""
    if not spec:
        raise ValidationError("pkg required")
    name, sep, version = spec.partition("@")
    if not sep:
        version = WILDCARD_VERSION
    return name, normalize_version(version or WILDCARD_VERSION)


def dirname_for(name: str, dest: str | Path) -> Path:
    """包在本地的目录，例如 component/dialog -> <dest>/component-dialog"""
    return Path(dest).resolve() / name.lower().replace(NAMESPACE_SEP, "-")


def join_path(name: str, dest: str | Path, relative: str) -> Path:
    """包目录下的文件路径；清单中的 ../ 或绝对路径不得逃出包目录

    Raises:
        InstallError: 路径落在包目录之外
    """
    base = dirname_for(name, dest)
    path = Path(os.path.normpath(base / relative))
    if path == base or not path.is_relative_to(base):
        raise InstallError(f"path escapes package directory: {relative}", str(path))
    return path


def url_for(mirror: str, name: str, version: str, file: str) -> str:
    return f"{mirror}/{name}/{version}/{file}"


def strip_mirror(mirror: str) -> str:
    """去掉镜像地址末尾的 /"""
    return mirror.rstrip("/")
