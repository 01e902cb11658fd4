"""工具函数模块"""

from .logger import get_logger, setup_logging
from .thread_safe import KeyedCounters, LazyInit

__all__ = ["setup_logging", "get_logger", "LazyInit", "KeyedCounters"]
