"""线程安全共享状态测试"""

import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

# 添加项目根目录到 Python 路径
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from channel_resolver.utils.thread_safe import KeyedCounters, LazyInit  # noqa: E402


class TestLazyInit:
    """延迟初始化测试"""

    def test_factory_called_once(self):
        """测试并发 get() 只创建一次实例"""
        calls = []
        lock = threading.Lock()

        def factory():
            with lock:
                calls.append(1)
            return object()

        lazy = LazyInit(factory)
        assert not lazy.is_initialized
        with ThreadPoolExecutor(max_workers=8) as executor:
            instances = list(executor.map(lambda _: lazy.get(), range(100)))
        assert len(calls) == 1
        assert all(instance is instances[0] for instance in instances)
        assert lazy.is_initialized

    def test_clear(self):
        """测试清除后重新创建"""
        lazy = LazyInit(object)
        first = lazy.get()
        lazy.clear()
        assert not lazy.is_initialized
        assert lazy.get() is not first


class TestKeyedCounters:
    """按键计数器测试"""

    def test_advance_and_peek(self):
        """测试先返回再加一，各键独立"""
        counters = KeyedCounters()
        assert counters.peek("a") == 0
        assert [counters.advance("a") for _ in range(3)] == [0, 1, 2]
        assert counters.advance("b") == 0
        assert counters.peek("a") == 3
        assert len(counters) == 2

    def test_discard_and_clear(self):
        """测试删除单个键与全部清除"""
        counters = KeyedCounters()
        counters.advance("a")
        counters.advance("b")
        assert counters.discard("a") is True
        assert counters.discard("a") is False
        assert counters.peek("a") == 0
        counters.clear()
        assert len(counters) == 0

    def test_concurrent_advance_is_unique(self):
        """测试并发推进得到互不相同的值"""
        counters = KeyedCounters()
        with ThreadPoolExecutor(max_workers=8) as executor:
            values = list(executor.map(lambda _: counters.advance("k"), range(500)))
        assert sorted(values) == list(range(500))


if __name__ == "__main__":
    pytest.main([__file__])
