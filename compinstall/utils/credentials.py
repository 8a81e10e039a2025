"""主机凭据查找

凭据来源有两种：调用方显式传入的 Credentials，或按主机名从 netrc 文件查找。
显式凭据优先。
"""

from __future__ import annotations

import base64
import logging
import netrc
import os
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credentials:
    user: str
    password: str = ""


CredentialLookup = Callable[[str], Optional[Credentials]]


def _no_credentials(hostname: str) -> Credentials | None:
    return None


def netrc_lookup(path: str | None = None) -> CredentialLookup:
    """构建 hostname -> Credentials 查找函数

    path 为空时使用 ~/.netrc；文件不存在时返回恒为 None 的查找函数。
    """
    file = path or os.path.join(os.path.expanduser("~"), ".netrc")
    if not os.path.exists(file):
        return _no_credentials

    try:
        parsed = netrc.netrc(file)
    except (netrc.NetrcParseError, OSError) as e:
        logger.warning("netrc 文件解析失败，忽略: %s (%s)", file, e)
        return _no_credentials

    def lookup(hostname: str) -> Credentials | None:
        entry = parsed.authenticators(hostname)
        if entry is None:
            return None
        login, _account, password = entry
        return Credentials(user=login or "", password=password or "")

    return lookup


def basic_auth_header(credentials: Credentials) -> str:
    raw = f"{credentials.user}:{credentials.password}".encode()
    return "Basic " + base64.b64encode(raw).decode("ascii")


def auth_headers(
    hostname: str,
    auth: Credentials | None = None,
    lookup: CredentialLookup | None = None,
) -> dict[str, str]:
    """生成 Authorization 头；无凭据时返回空字典"""
    creds = auth or (lookup(hostname) if lookup else None)
    if creds is None:
        return {}
    return {"Authorization": basic_auth_header(creds)}
