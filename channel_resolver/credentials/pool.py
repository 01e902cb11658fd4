"""
渠道密钥池解析与合并

持久化形式：多 Key 渠道的 ``key`` 字段以换行分隔各个密钥；
JSON 形式的密钥文档（如服务账号）被压缩为单行后存入。
密钥内容本身从不被解释或修改。
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Union

from ..exceptions import (
    ConfigurationException,
    CredentialParseError,
    ErrorCode,
    PartialParseError,
)
from ..utils.logger import get_logger

logger = get_logger(__name__)

CredentialPool = tuple[str, ...]

POOL_DELIMITER = "\n"


class ParseMode(str, Enum):
    """原始密钥输入模式"""

    SINGLE = "single"
    BATCH = "batch"


class UpdateMode(str, Enum):
    """编辑时新密钥与已存密钥池的合并方式"""

    APPEND = "append"
    REPLACE = "replace"


def coerce_mode(enum_cls, value: Union[Enum, str], label: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        raise ConfigurationException(
            ErrorCode.CONFIG_INVALID,
            message=f"不支持的{label}: {value!r}",
            details={label: str(value)},
        ) from None


def mask_credential(entry: str, visible: int = 8) -> str:
    """日志中只保留密钥前几位"""
    return entry[:visible] + "..." if len(entry) > visible else entry


def _compact_document(document: Any) -> str:
    return json.dumps(document, ensure_ascii=False, separators=(",", ":"))


def _parse_json_array(text: str) -> tuple[list[str], dict[str, str]]:
    try:
        items = json.loads(text)
    except json.JSONDecodeError as e:
        raise CredentialParseError(
            f"批量密钥必须是标准的 JSON 数组，例如 [{{key1}}, {{key2}}]: {e}", cause=e
        ) from e
    if not isinstance(items, list):
        raise CredentialParseError("批量密钥必须是标准的 JSON 数组")

    entries: list[str] = []
    failures: dict[str, str] = {}
    for index, item in enumerate(items, start=1):
        identifier = f"#{index}"
        if isinstance(item, str):
            entry = item.strip()
            if not entry:
                failures[identifier] = "empty credential"
                continue
            entries.append(entry)
        elif isinstance(item, (dict, list)):
            entries.append(_compact_document(item))
        else:
            failures[identifier] = f"unsupported credential type: {type(item).__name__}"
    return entries, failures


def _parse_lines(text: str) -> tuple[list[str], dict[str, str]]:
    entries: list[str] = []
    failures: dict[str, str] = {}
    for line_no, line in enumerate(text.splitlines(), start=1):
        entry = line.strip()
        if not entry:
            continue
        # 以 { 开头的行按单行 JSON 文档处理
        if entry.startswith("{"):
            try:
                document = json.loads(entry)
            except json.JSONDecodeError as e:
                failures[f"#{line_no}"] = f"invalid JSON document: {e.msg}"
                continue
            entry = _compact_document(document)
        entries.append(entry)
    return entries, failures


def parse_batch(raw: Optional[str]) -> tuple[CredentialPool, dict[str, str]]:
    """
    解析批量密钥输入

    接受 JSON 数组（以 ``[`` 开头）或换行分隔的密钥；
    无效条目不会中断整个批次，而是按标识（``#序号``）逐项列出。

    Returns:
        (有效密钥池, {标识: 失败原因})
    """
    text = (raw or "").strip()
    if not text:
        return (), {}
    if text.startswith("["):
        entries, failures = _parse_json_array(text)
    else:
        entries, failures = _parse_lines(text)
    if failures:
        logger.warning(
            "batch credential parse rejected entries",
            accepted=len(entries),
            rejected=list(failures),
        )
    return tuple(entries), failures


def parse_raw(raw: Optional[str], mode: Union[ParseMode, str] = ParseMode.SINGLE) -> CredentialPool:
    """
    解析原始密钥输入

    Args:
        raw: 管理员输入的密钥文本
        mode: single（整体作为一个密钥）或 batch

    Raises:
        PartialParseError: 批量模式下存在无效条目（异常中携带有效的密钥池）
        CredentialParseError: 批量 JSON 数组本身不合法
    """
    mode = coerce_mode(ParseMode, mode, "密钥输入模式")
    if mode == ParseMode.SINGLE:
        entry = (raw or "").strip()
        return (entry,) if entry else ()

    pool, failures = parse_batch(raw)
    if failures:
        raise PartialParseError(pool, failures)
    return pool


def parse_documents(
    documents: Mapping[str, str], mode: Union[ParseMode, str] = ParseMode.BATCH
) -> CredentialPool:
    """
    解析上传的 JSON 密钥文件 {文件名: 文本}

    单个模式下只保留最后一个有效文件；无效文件按文件名列出。
    """
    mode = coerce_mode(ParseMode, mode, "密钥输入模式")
    entries: list[str] = []
    failures: dict[str, str] = {}
    for name, text in documents.items():
        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            failures[name] = f"invalid JSON document: {e.msg}"
            continue
        if not isinstance(document, dict):
            failures[name] = "credential document must be a JSON object"
            continue
        entries.append(_compact_document(document))

    if mode == ParseMode.SINGLE and len(entries) > 1:
        entries = entries[-1:]
    pool = tuple(entries)
    if failures:
        raise PartialParseError(pool, failures)
    return pool


def merge(
    existing: Iterable[str],
    incoming: Iterable[str],
    mode: Union[UpdateMode, str] = UpdateMode.APPEND,
) -> CredentialPool:
    """
    合并新密钥到已存密钥池

    - replace: incoming 完全取代 existing
    - append:  existing ++ incoming，保持顺序，重复项不去重；
      incoming 为空时原样返回 existing
    """
    mode = coerce_mode(UpdateMode, mode, "密钥更新模式")
    existing = tuple(existing)
    incoming = tuple(incoming)
    if mode == UpdateMode.REPLACE:
        return incoming
    if not incoming:
        return existing
    return existing + incoming


def to_pool_entry(entry: str) -> str:
    """
    把单个密钥转换为可放入换行分隔密钥池的形式

    跨多行的 JSON 文档（如格式化过的服务账号）压缩为单行；
    其他跨行的密钥放入密钥池后会被拆散，因此拒绝。

    Raises:
        CredentialParseError: 多行密钥不是 JSON 文档
    """
    if POOL_DELIMITER not in entry and "\r" not in entry:
        return entry
    try:
        document = json.loads(entry)
    except json.JSONDecodeError as e:
        raise CredentialParseError(
            f"多行密钥只有 JSON 文档可以放入多 Key 密钥池: {mask_credential(entry)}", cause=e
        ) from e
    if not isinstance(document, (dict, list)):
        raise CredentialParseError(
            f"多行密钥只有 JSON 文档可以放入多 Key 密钥池: {mask_credential(entry)}"
        )
    return _compact_document(document)


def to_pool_entries(entries: Iterable[str]) -> CredentialPool:
    return tuple(to_pool_entry(entry) for entry in entries)


def serialize_pool(pool: Iterable[str]) -> str:
    """
    持久化为换行分隔的字符串

    Raises:
        CredentialParseError: 某个密钥包含分隔符，写入后无法原样读回
    """
    entries = tuple(pool)
    for index, entry in enumerate(entries, start=1):
        if POOL_DELIMITER in entry:
            raise CredentialParseError(f"密钥池第 {index} 个密钥包含换行，无法持久化")
    return POOL_DELIMITER.join(entries)


def deserialize_pool(text: Optional[str]) -> CredentialPool:
    """读取持久化的密钥池；忽略空行"""
    if not text:
        return ()
    return tuple(line.strip() for line in text.split(POOL_DELIMITER) if line.strip())


def pool_size(text: Optional[str]) -> int:
    return len(deserialize_pool(text))


__all__ = [
    "CredentialPool",
    "ParseMode",
    "UpdateMode",
    "POOL_DELIMITER",
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
]
