"""
Pydantic models for configuration validation.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from .credentials.selection import SelectionPolicy
from .exceptions import ConfigurationException


def _policy_value(value: str) -> str:
    try:
        return SelectionPolicy.parse(value).value
    except ConfigurationException as e:
        raise ValueError(e.message) from e


class LoggingSettings(BaseModel):
    level: str = "INFO"
    format: Literal["text", "json"] = "text"
    log_file: Optional[str] = None
    max_file_size: int = 50 * 1024 * 1024
    backup_count: int = 5


class SelectionSettings(BaseModel):
    # random / round_robin（兼容旧值 polling）
    default_policy: str = "random"

    @field_validator("default_policy")
    @classmethod
    def _normalize_policy(cls, value: str) -> str:
        return _policy_value(value)


class EndpointSettings(BaseModel):
    # 未使用 {path} 的模板必须与请求路径后缀一致
    strict_path_match: bool = True


class CredentialSettings(BaseModel):
    default_update_mode: Literal["append", "replace"] = "append"


class ChannelRecord(BaseModel):
    """渠道记录中由本模块读写的字段"""

    model_config = {"protected_namespaces": ()}

    id: str
    name: str = ""
    base_url: str = ""
    key: str = ""
    is_multi_key: bool = False
    multi_key_mode: str = "random"

    @field_validator("multi_key_mode")
    @classmethod
    def _normalize_mode(cls, value: str) -> str:
        return _policy_value(value)


class ResolverConfig(BaseModel):
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    selection: SelectionSettings = Field(default_factory=SelectionSettings)
    endpoints: EndpointSettings = Field(default_factory=EndpointSettings)
    credentials: CredentialSettings = Field(default_factory=CredentialSettings)

    # Allow extra fields for sections owned by the surrounding console
    model_config = {"extra": "allow"}
