"""
线程安全的共享状态

- LazyInit: 模块级服务实例的延迟创建
- KeyedCounters: 按键保存的计数器，读取与推进在同一把锁内完成
"""

import threading
from typing import Callable, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


class LazyInit(Generic[T]):
    """首次 get() 时调用工厂创建实例，之后复用"""

    def __init__(self, factory: Callable[[], T]):
        self._factory = factory
        self._instance: Optional[T] = None
        self._lock = threading.Lock()

    def get(self) -> T:
        instance = self._instance
        if instance is None:
            with self._lock:
                if self._instance is None:
                    self._instance = self._factory()
                instance = self._instance
        return instance

    def clear(self) -> None:
        """丢弃已创建的实例，下次 get() 重新创建"""
        with self._lock:
            self._instance = None

    @property
    def is_initialized(self) -> bool:
        return self._instance is not None


class KeyedCounters:
    """键 -> 非负整数计数器

    所有操作持有同一把锁：并发的 advance() 各自拿到不同的值，
    与 discard()/clear() 交错执行时不会读到半删除的状态。
    """

    def __init__(self):
        self._counters: Dict[str, int] = {}
        self._lock = threading.Lock()

    def advance(self, key: str) -> int:
        """返回当前值并加一；不存在的键从 0 开始"""
        with self._lock:
            value = self._counters.get(key, 0)
            self._counters[key] = value + 1
            return value

    def peek(self, key: str) -> int:
        with self._lock:
            return self._counters.get(key, 0)

    def discard(self, key: str) -> bool:
        with self._lock:
            return self._counters.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._counters.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._counters)
