"""
统一异常基类
定义端点配置与凭证池解析的异常结构
"""

import traceback
from datetime import datetime
from typing import Any, Optional

from .error_codes import ErrorCode, get_error_message


class BaseResolverException(Exception):
    """解析器基础异常类"""

    def __init__(
        self,
        error_code: ErrorCode,
        message: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        context: Optional[dict[str, Any]] = None,
    ):
        self.error_code = error_code
        self.message = message or get_error_message(error_code)
        self.details = details or {}
        self.cause = cause
        self.context = context or {}
        self.timestamp = datetime.now()
        self.traceback_str = traceback.format_exc() if cause else None

        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """转换为字典格式"""
        return {
            "error_code": self.error_code.value,
            "message": self.message,
            "details": self.details,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None,
            "traceback": self.traceback_str,
        }

    def __str__(self) -> str:
        return f"[{self.error_code.value}] {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(error_code={self.error_code.value}, message='{self.message}')"


class ConfigurationException(BaseResolverException):
    """配置相关异常"""

    def __init__(
        self,
        error_code: ErrorCode,
        message: Optional[str] = None,
        config_path: Optional[str] = None,
        **kwargs: Any,
    ):
        details = kwargs.pop("details", None) or {}
        if config_path:
            details["config_path"] = config_path

        super().__init__(error_code, message, details, **kwargs)


class ChannelException(BaseResolverException):
    """渠道相关异常"""

    def __init__(
        self,
        error_code: ErrorCode,
        message: Optional[str] = None,
        channel_id: Optional[str] = None,
        **kwargs: Any,
    ):
        details = kwargs.pop("details", None) or {}
        if channel_id:
            details["channel_id"] = channel_id

        super().__init__(error_code, message, details, **kwargs)
        self.channel_id = channel_id


class EndpointParseError(ConfigurationException):
    """端点配置 JSON 无法解析

    解析器以返回值的形式交出该错误（fail-soft），调用方保留原始文本供修正。
    """

    def __init__(self, raw: str, reason: str):
        super().__init__(
            ErrorCode.CONFIG_PARSE_ERROR,
            message=f"端点配置不是合法的 JSON 对象: {reason}",
            details={"reason": reason, "raw_length": len(raw)},
        )
        self.raw = raw
        self.reason = reason


class EndpointValidationError(ConfigurationException):
    """没有配置可用的 default / openai 端点"""

    def __init__(self, message: Optional[str] = None, configured: Optional[list[str]] = None):
        super().__init__(
            ErrorCode.CONFIG_MISSING_REQUIRED,
            message=message or "至少需要配置 default 或 openai 端点",
            details={"configured": configured or []},
        )


class TemplateError(ConfigurationException):
    """端点 URL 模板展开或校验失败"""

    def __init__(self, message: str, url: Optional[str] = None, request_path: Optional[str] = None):
        details: dict[str, Any] = {}
        if url is not None:
            details["url"] = url
        if request_path is not None:
            details["request_path"] = request_path
        super().__init__(ErrorCode.ENDPOINT_TEMPLATE_INVALID, message=message, details=details)


class CredentialParseError(ChannelException):
    """批量密钥输入整体无法解析"""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(ErrorCode.CREDENTIAL_PARSE_ERROR, message=message, cause=cause)


class PartialParseError(ChannelException):
    """批量密钥部分条目无效

    非致命：``pool`` 保留所有有效条目，``failures`` 按标识列出无效条目。
    """

    def __init__(self, pool: tuple, failures: dict[str, str]):
        super().__init__(
            ErrorCode.CREDENTIAL_PARTIAL_PARSE,
            message=f"{len(failures)} 个密钥解析失败: {', '.join(failures)}",
            details={"failed": list(failures), "accepted": len(pool)},
        )
        self.pool = pool
        self.failures = failures


class EmptyPoolError(ChannelException):
    """在空密钥池上进行选择"""

    def __init__(self, channel_id: Optional[str] = None):
        super().__init__(
            ErrorCode.CREDENTIAL_POOL_EMPTY,
            message="channel has no usable credentials",
            channel_id=channel_id,
        )
