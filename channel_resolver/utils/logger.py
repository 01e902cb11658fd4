"""日志系统模块 - 结构化格式、日志轮换"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Optional, Union

import structlog
from pythonjsonlogger.json import JsonFormatter

_DEFAULT_LOGGING_CONFIG: dict[str, Any] = {
    "level": "INFO",
    "format": "text",  # text or json
    "log_file": None,
    "max_file_size": 50 * 1024 * 1024,  # 50MB
    "backup_count": 5,
}

_configured = False


def _build_file_handler(
    log_file: Union[str, Path], config: dict[str, Any]
) -> logging.Handler:
    """创建轮换文件处理器"""
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=config["max_file_size"],
        backupCount=config["backup_count"],
        encoding="utf-8",
    )
    if config["format"] == "json":
        handler.setFormatter(
            JsonFormatter("%(asctime)s %(name)s %(levelname)s %(message)s")
        )
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
    return handler


def setup_logging(config: Optional[Any] = None) -> None:
    """
    设置全局日志系统

    Args:
        config: 日志配置，可以是字典或 LoggingSettings（pydantic 模型）
    """
    global _configured

    if config is not None and hasattr(config, "model_dump"):
        config = config.model_dump()
    merged = {**_DEFAULT_LOGGING_CONFIG, **(config or {})}

    log_level = str(merged["level"]).upper()
    log_format = merged["format"]

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if merged["log_file"]:
        handlers.append(_build_file_handler(merged["log_file"], merged))

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer(ensure_ascii=False))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    # 配置根日志记录器
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        handlers=handlers,
        force=True,  # 覆盖现有配置
    )
    _configured = True


def is_configured() -> bool:
    """日志系统是否已初始化"""
    return _configured


def get_logger(name: Optional[str] = None):
    """
    获取日志记录器

    Args:
        name: 日志记录器名称

    Returns:
        structlog 日志记录器
    """
    return structlog.get_logger(name or __name__)
