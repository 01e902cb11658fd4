"""
端点类别与别名

渠道的多端点配置以端点类别为键。管理员手写的键存在大量历史拼写
（``openai-response``、``images``、``anthropic`` ...），这里统一折叠为
封闭的 ``EndpointKey`` 集合。新增类别只需修改本模块中的静态表。
"""

from __future__ import annotations

import re
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional


class EndpointKey(str, Enum):
    """端点类别

    声明顺序即规范化序列化时的键顺序。
    """

    DEFAULT = "default"  # 未配置某端点时的兜底 URL
    OPENAI = "openai"  # /v1/chat/completions
    CLAUDE = "claude"  # /v1/messages
    GEMINI = "gemini"  # /v1beta/models/*
    OPENAI_RESPONSES = "openai_responses"  # /v1/responses
    EMBEDDING = "embedding"  # /v1/embeddings
    OPENAI_IMAGE = "openai_image"  # /v1/images/*, /v1/edits
    OPENAI_AUDIO = "openai_audio"  # /v1/audio/*
    OPENAI_REALTIME = "openai_realtime"  # /v1/realtime (WebSocket)
    RERANK = "rerank"  # /v1/rerank


CANONICAL_ORDER: tuple[EndpointKey, ...] = tuple(EndpointKey)

# 规范键 -> 历史拼写（均为 normalize_raw_key 之后的形式）
_ALIAS_SPELLINGS: dict[EndpointKey, tuple[str, ...]] = {
    EndpointKey.DEFAULT: ("default",),
    EndpointKey.OPENAI: ("openai",),
    EndpointKey.OPENAI_RESPONSES: ("openai_response", "openai_responses"),
    EndpointKey.EMBEDDING: ("embedding", "embeddings"),
    EndpointKey.CLAUDE: ("claude", "anthropic"),
    EndpointKey.GEMINI: ("gemini",),
    EndpointKey.OPENAI_IMAGE: (
        "image",
        "images",
        "openai_image",
        "openai_images",
        "openai_image_generation",
        "openai_image_edit",
        "image_generation",
        "image_generations",
        "image_edit",
        "image_edits",
    ),
    EndpointKey.OPENAI_AUDIO: ("audio", "openai_audio", "openai_audios"),
    EndpointKey.OPENAI_REALTIME: ("realtime", "openai_realtime"),
    EndpointKey.RERANK: ("rerank",),
}


def _build_alias_table() -> Mapping[str, EndpointKey]:
    table: dict[str, EndpointKey] = {}
    for key, spellings in _ALIAS_SPELLINGS.items():
        for spelling in spellings:
            table[spelling] = key
            # 去掉下划线的写法同样接受，如 "openairesponses"
            table[spelling.replace("_", "")] = key
    return MappingProxyType(table)


ALIAS_TABLE: Mapping[str, EndpointKey] = _build_alias_table()

_FOLD_RE = re.compile(r"[-\s]+")


def normalize_raw_key(raw_key: str) -> str:
    """大小写、首尾空白、``-``/空格 统一为小写下划线形式"""
    return _FOLD_RE.sub("_", str(raw_key).strip().lower())


def canonicalize(raw_key: Optional[str]) -> Optional[EndpointKey]:
    """
    将原始端点键规范化为 EndpointKey

    Args:
        raw_key: 管理员输入的键

    Returns:
        规范键；无法识别时返回 None，由调用方丢弃

    Examples:
        >>> canonicalize("OpenAI-Response")
        <EndpointKey.OPENAI_RESPONSES: 'openai_responses'>
        >>> canonicalize("image generation")
        <EndpointKey.OPENAI_IMAGE: 'openai_image'>
        >>> canonicalize("unknown") is None
        True
    """
    if raw_key is None:
        return None
    return ALIAS_TABLE.get(normalize_raw_key(raw_key))


# 可从基础 URL 自动补全的端点及其请求路径；路径为空表示使用 {path} 透传
ENDPOINT_PATHS: Mapping[EndpointKey, str] = MappingProxyType(
    {
        EndpointKey.OPENAI: "/v1/chat/completions",
        EndpointKey.GEMINI: "/v1beta/models",
        EndpointKey.OPENAI_RESPONSES: "/v1/responses",
        EndpointKey.EMBEDDING: "/v1/embeddings",
        EndpointKey.OPENAI_IMAGE: "",
        EndpointKey.OPENAI_AUDIO: "",
        EndpointKey.OPENAI_REALTIME: "/v1/realtime",
        EndpointKey.RERANK: "/v1/rerank",
    }
)

# 按顺序匹配的路径前缀规则
_PATH_RULES: tuple[tuple[str, EndpointKey], ...] = (
    ("/v1/messages", EndpointKey.CLAUDE),
    ("/v1/responses", EndpointKey.OPENAI_RESPONSES),
    ("/v1/embeddings", EndpointKey.EMBEDDING),
    ("/v1/images/", EndpointKey.OPENAI_IMAGE),
    ("/v1/edits", EndpointKey.OPENAI_IMAGE),
    ("/v1/audio/", EndpointKey.OPENAI_AUDIO),
    ("/v1/realtime", EndpointKey.OPENAI_REALTIME),
    ("/v1/rerank", EndpointKey.RERANK),
    ("/rerank", EndpointKey.RERANK),
    ("/v1beta/models", EndpointKey.GEMINI),
    ("/v1beta/openai/models", EndpointKey.GEMINI),
)

_ENGINE_EMBEDDINGS_RE = re.compile(r"^/v1/engines/[^/]+/embeddings")
_GEMINI_ACTION_RE = re.compile(r"^/v1/models/[^/]+:(generateContent|streamGenerateContent)")


def endpoint_key_for_path(request_path: str) -> EndpointKey:
    """
    根据请求路径确定应使用的端点类别

    查询串会被忽略；无法识别的路径归入 openai。
    """
    path = (request_path or "").split("?", 1)[0]
    for prefix, key in _PATH_RULES:
        if path.startswith(prefix):
            return key
    if _ENGINE_EMBEDDINGS_RE.match(path):
        return EndpointKey.EMBEDDING
    if _GEMINI_ACTION_RE.match(path):
        return EndpointKey.GEMINI
    return EndpointKey.OPENAI


__all__ = [
    "EndpointKey",
    "CANONICAL_ORDER",
    "ALIAS_TABLE",
    "ENDPOINT_PATHS",
    "normalize_raw_key",
    "canonicalize",
    "endpoint_key_for_path",
]
