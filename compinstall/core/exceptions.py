"""统一异常体系

所有业务异常继承 CompInstallError，CLI 层可据此输出友好提示。
镜像相关的失败统一为 FetchError，携带 HTTP 状态码和是否致命的标记。
"""

from __future__ import annotations


class CompInstallError(Exception):
    """安装器基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(CompInstallError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(CompInstallError, ValueError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class InvalidNameError(ValidationError):
    """包名缺少命名空间分隔符（owner/name）"""

    code = "INVALID_NAME"

    def __init__(self, name: str) -> None:
        super().__init__(f'invalid component name "{name}"')
        self.name = name


class FetchError(CompInstallError):
    """清单或文件拉取失败

    属性:
        url: 出错的地址
        status: HTTP 状态码，网络层错误时为 None
        last: 是否发生在镜像列表的最后一个镜像上
        fatal: 是否终止安装（最后一个镜像上的错误、文件下载错误为致命）
    """

    code = "FETCH_ERROR"

    def __init__(
        self,
        message: str,
        *,
        url: str = "",
        status: int | None = None,
        last: bool = False,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status = status
        self.last = last
        self.fatal = False
        self.cleanup_error: CleanupError | None = None


class NoRemoteError(FetchError):
    """镜像列表为空"""

    code = "NO_REMOTE"

    def __init__(self, name: str) -> None:
        super().__init__(f"can't find remote for \"{name}\"")


class DependencyError(FetchError):
    """子依赖安装失败，向父包传播"""

    code = "DEPENDENCY_ERROR"

    def __init__(self, slug: str, cause: Exception) -> None:
        super().__init__(
            f"{slug}: {cause}",
            url=getattr(cause, "url", ""),
            status=getattr(cause, "status", None),
        )
        self.slug = slug
        self.cause = cause


class InstallError(CompInstallError):
    """本地文件系统写入失败（创建目录 / 写文件），总是致命"""

    code = "INSTALL_ERROR"

    def __init__(self, message: str, path: str = "") -> None:
        super().__init__(message)
        self.path = path
        self.fatal = True
        self.cleanup_error: CleanupError | None = None


class CleanupError(CompInstallError):
    """失败后清理半安装目录时出错，作为次要错误附加到主错误上"""

    code = "CLEANUP_ERROR"
