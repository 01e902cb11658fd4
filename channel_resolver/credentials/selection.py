"""
多 Key 渠道的密钥选择策略

round_robin 游标是本模块唯一的共享可变状态：按渠道保存在注入的
CursorStore 中，每次选择在锁内读取并推进，并发请求各自拿到不同的序号。
"""

from __future__ import annotations

import random
import threading
from enum import Enum
from typing import Optional, Sequence, Union

from ..exceptions import ConfigurationException, EmptyPoolError, ErrorCode
from ..utils.logger import get_logger
from ..utils.thread_safe import KeyedCounters

logger = get_logger(__name__)


class SelectionPolicy(str, Enum):
    """密钥选择策略"""

    RANDOM = "random"
    ROUND_ROBIN = "round_robin"

    @classmethod
    def parse(cls, value: Union["SelectionPolicy", str, None]) -> "SelectionPolicy":
        """解析策略名；兼容旧值 polling"""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower().replace("-", "_")
        if text == "polling":
            return cls.ROUND_ROBIN
        try:
            return cls(text)
        except ValueError:
            raise ConfigurationException(
                ErrorCode.CONFIG_INVALID,
                message=f"不支持的密钥选择策略: {value!r}",
                details={"policy": str(value)},
            ) from None


def select(
    pool: Sequence[str],
    policy: Union[SelectionPolicy, str],
    cursor: int = 0,
    rng: Optional[random.Random] = None,
) -> tuple[str, int]:
    """
    从密钥池中选出一个密钥

    Args:
        pool: 密钥池
        policy: random 或 round_robin
        cursor: 当前游标（random 策略忽略）
        rng: 随机数生成器，便于测试注入

    Returns:
        (选中的密钥, 新游标)。round_robin 按当前池大小取模，
        池大小在两次调用之间变化也不会出错。

    Raises:
        EmptyPoolError: 密钥池为空
    """
    if not pool:
        raise EmptyPoolError()

    policy = SelectionPolicy.parse(policy)
    if policy == SelectionPolicy.RANDOM:
        return (rng or random).choice(pool), cursor
    return pool[cursor % len(pool)], cursor + 1


class RoundRobinCursor:
    """单个渠道的轮询游标"""

    __slots__ = ("_value", "_lock")

    def __init__(self, start: int = 0):
        self._value = start
        self._lock = threading.Lock()

    def advance(self) -> int:
        """原子地返回当前值并加一"""
        with self._lock:
            value = self._value
            self._value += 1
            return value

    @property
    def value(self) -> int:
        return self._value


class CursorStore:
    """渠道 ID -> 轮询游标"""

    def __init__(self):
        self._cursors = KeyedCounters()

    def next(self, channel_id: str) -> int:
        """原子地返回该渠道的当前游标并推进"""
        return self._cursors.advance(str(channel_id))

    def peek(self, channel_id: str) -> int:
        return self._cursors.peek(str(channel_id))

    def reset(self, channel_id: Optional[str] = None) -> None:
        """重置某个渠道（或全部渠道）的游标"""
        if channel_id is None:
            self._cursors.clear()
        else:
            self._cursors.discard(str(channel_id))


class KeySelector:
    """路由器使用的密钥选择器"""

    def __init__(
        self,
        cursor_store: Optional[CursorStore] = None,
        rng: Optional[random.Random] = None,
    ):
        self.cursor_store = cursor_store or CursorStore()
        self.rng = rng or random.Random()

    def select(
        self,
        channel_id: str,
        pool: Sequence[str],
        policy: Union[SelectionPolicy, str] = SelectionPolicy.RANDOM,
    ) -> str:
        """为一次出站调用选出一个密钥"""
        if not pool:
            logger.error("credential selection on empty pool", channel_id=channel_id)
            raise EmptyPoolError(channel_id=channel_id)

        policy = SelectionPolicy.parse(policy)
        if policy == SelectionPolicy.RANDOM:
            entry, _ = select(pool, policy, rng=self.rng)
            return entry

        entry, _ = select(pool, policy, self.cursor_store.next(channel_id))
        return entry


__all__ = [
    "SelectionPolicy",
    "select",
    "RoundRobinCursor",
    "CursorStore",
    "KeySelector",
]
