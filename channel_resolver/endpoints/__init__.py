"""
多端点渠道配置

端点类别别名、配置解析/规范化序列化、URL 模板展开。
"""

from .aliases import (
    ALIAS_TABLE,
    CANONICAL_ORDER,
    ENDPOINT_PATHS,
    EndpointKey,
    canonicalize,
    endpoint_key_for_path,
)
from .canonicalizer import (
    EndpointConfig,
    EndpointEditSession,
    Invalid,
    JsonObject,
    Scalar,
    canonical_form,
    classify,
    fill_missing,
    is_activatable,
    parse,
    serialize,
    template_config,
    validate,
)
from .templates import (
    preview,
    resolve,
    resolve_request_url,
    scheme_for_realtime,
)

__all__ = [
    # Aliases
    "EndpointKey",
    "CANONICAL_ORDER",
    "ALIAS_TABLE",
    "ENDPOINT_PATHS",
    "canonicalize",
    "endpoint_key_for_path",
    # Canonicalizer
    "EndpointConfig",
    "EndpointEditSession",
    "Scalar",
    "JsonObject",
    "Invalid",
    "classify",
    "parse",
    "serialize",
    "canonical_form",
    "validate",
    "is_activatable",
    "fill_missing",
    "template_config",
    # Templates
    "resolve",
    "scheme_for_realtime",
    "resolve_request_url",
    "preview",
]
