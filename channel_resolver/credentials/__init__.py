"""
渠道密钥池

密钥输入解析、编辑合并、出站调用时的密钥选择。
"""

from .pool import (
    CredentialPool,
    ParseMode,
    UpdateMode,
    coerce_mode,
    deserialize_pool,
    mask_credential,
    merge,
    parse_batch,
    parse_documents,
    parse_raw,
    pool_size,
    serialize_pool,
    to_pool_entries,
    to_pool_entry,
)
from .selection import CursorStore, KeySelector, RoundRobinCursor, SelectionPolicy, select

__all__ = [
    "CredentialPool",
    "ParseMode",
    "UpdateMode",
    "coerce_mode",
    "mask_credential",
    "parse_batch",
    "parse_raw",
    "parse_documents",
    "merge",
    "to_pool_entry",
    "to_pool_entries",
    "serialize_pool",
    "deserialize_pool",
    "pool_size",
    "SelectionPolicy",
    "select",
    "RoundRobinCursor",
    "CursorStore",
    "KeySelector",
]
