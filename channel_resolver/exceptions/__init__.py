"""
统一异常处理模块
"""

from .base_exceptions import (
    BaseResolverException,
    ChannelException,
    ConfigurationException,
    CredentialParseError,
    EmptyPoolError,
    EndpointParseError,
    EndpointValidationError,
    PartialParseError,
    TemplateError,
)
from .error_codes import ERROR_MESSAGES, ErrorCode, get_error_message

__all__ = [
    # 错误码
    "ErrorCode",
    "ERROR_MESSAGES",
    "get_error_message",
    # 异常类
    "BaseResolverException",
    "ConfigurationException",
    "ChannelException",
    "EndpointParseError",
    "EndpointValidationError",
    "TemplateError",
    "CredentialParseError",
    "PartialParseError",
    "EmptyPoolError",
]
