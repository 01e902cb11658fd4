"""
统一错误码体系
定义渠道端点与凭证配置解析的标准化错误码
"""

from enum import Enum


class ErrorCode(Enum):
    """系统错误码枚举"""

    # 通用错误 (1000-1099)
    UNKNOWN_ERROR = "E1000"
    INVALID_PARAMETER = "E1002"

    # 配置错误 (1100-1199)
    CONFIG_LOAD_FAILED = "E1100"
    CONFIG_INVALID = "E1101"
    CONFIG_MISSING_REQUIRED = "E1102"
    CONFIG_PARSE_ERROR = "E1103"

    # 渠道错误 (1300-1399)
    CHANNEL_CONFIG_INVALID = "E1301"
    CREDENTIAL_PARSE_ERROR = "E1303"
    CREDENTIAL_POOL_EMPTY = "E1306"
    CREDENTIAL_PARTIAL_PARSE = "E1307"
    ENDPOINT_TEMPLATE_INVALID = "E1308"


# 错误码到消息的映射
ERROR_MESSAGES = {
    ErrorCode.UNKNOWN_ERROR: "未知错误",
    ErrorCode.INVALID_PARAMETER: "无效的参数",
    ErrorCode.CONFIG_LOAD_FAILED: "配置加载失败",
    ErrorCode.CONFIG_INVALID: "配置无效",
    ErrorCode.CONFIG_MISSING_REQUIRED: "缺少必需的配置项",
    ErrorCode.CONFIG_PARSE_ERROR: "配置解析错误",
    ErrorCode.CHANNEL_CONFIG_INVALID: "渠道配置无效",
    ErrorCode.CREDENTIAL_PARSE_ERROR: "密钥解析失败",
    ErrorCode.CREDENTIAL_POOL_EMPTY: "渠道没有可用的密钥",
    ErrorCode.CREDENTIAL_PARTIAL_PARSE: "部分密钥解析失败",
    ErrorCode.ENDPOINT_TEMPLATE_INVALID: "端点URL模板无效",
}


def get_error_message(error_code: ErrorCode, default: str = "未知错误") -> str:
    """获取错误码对应的消息"""
    return ERROR_MESSAGES.get(error_code, default)
