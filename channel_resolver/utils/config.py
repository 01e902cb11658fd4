"""配置管理模块"""

import os
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from ..config_models import ResolverConfig
from ..exceptions import ConfigurationException, ErrorCode
from .logger import get_logger

logger = get_logger(__name__)


def load_config(config_path: Optional[Union[str, Path]] = None) -> dict[str, Any]:
    """
    加载配置文件

    Args:
        config_path: 配置文件路径，默认为 config/config.yaml

    Returns:
        配置字典
    """
    # 加载环境变量
    load_dotenv()

    # 确定配置文件路径
    if config_path is None:
        project_root = Path(__file__).parent.parent.parent
        config_path = project_root / "config" / "config.yaml"

        # 如果 config.yaml 不存在，尝试 example.yaml
        if not config_path.exists():
            config_path = project_root / "config" / "example.yaml"
            logger.warning("config.yaml not found, using example config", path=str(config_path))

    try:
        with open(config_path, encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ConfigurationException(
            ErrorCode.CONFIG_LOAD_FAILED,
            message=f"配置文件未找到: {config_path}",
            config_path=str(config_path),
        ) from None
    except yaml.YAMLError as e:
        raise ConfigurationException(
            ErrorCode.CONFIG_PARSE_ERROR,
            message=f"配置文件格式错误: {e}",
            config_path=str(config_path),
            cause=e,
        ) from e

    if not isinstance(config, dict):
        raise ConfigurationException(
            ErrorCode.CONFIG_INVALID,
            message="配置文件顶层必须是映射",
            config_path=str(config_path),
        )

    # 环境变量替换
    return _replace_env_vars(config)  # type: ignore[no-any-return]


def load_resolver_config(
    config_path: Optional[Union[str, Path]] = None,
) -> ResolverConfig:
    """加载并校验解析器配置"""
    raw = load_config(config_path)
    try:
        return ResolverConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationException(
            ErrorCode.CONFIG_INVALID,
            message=f"配置校验失败: {e.error_count()} 个错误",
            config_path=str(config_path) if config_path else None,
            cause=e,
        ) from e


def _replace_env_vars(obj: Any) -> Any:
    """
    递归替换配置中的环境变量占位符

    Args:
        obj: 配置对象

    Returns:
        替换后的配置对象
    """
    if isinstance(obj, dict):
        return {key: _replace_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_replace_env_vars(item) for item in obj]
    elif isinstance(obj, str) and obj.startswith("${") and obj.endswith("}"):
        # 提取环境变量名 ${VAR_NAME} -> VAR_NAME
        env_var = obj[2:-1]
        default_value = None

        # 支持默认值 ${VAR_NAME:default_value}
        if ":" in env_var:
            env_var, default_value = env_var.split(":", 1)

        value = os.getenv(env_var, default_value)
        if value is None:
            logger.warning("environment variable not set, keeping placeholder", var=env_var)
            return obj
        return value
    else:
        return obj


def get_config_value(config: dict[str, Any], key_path: str, default: Any = None) -> Any:
    """
    获取嵌套配置值

    Args:
        config: 配置字典
        key_path: 配置路径，如 'endpoints.strict_path_match'
        default: 默认值

    Returns:
        配置值
    """
    keys = key_path.split(".")
    value = config

    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value
