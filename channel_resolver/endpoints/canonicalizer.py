"""
多端点配置的解析与规范化序列化

渠道的 ``base_url`` 字段可以是：
    - 一个裸 URL（简写，视为 openai 端点）
    - 一个 JSON 对象：端点键 -> 完整请求 URL 模板

无论输入形态如何，``serialize`` 的输出都是唯一确定的规范形式，
保证 ``serialize(parse(serialize(c))) == serialize(c)``。
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional, Union

from ..exceptions import EndpointParseError, EndpointValidationError
from ..utils.logger import get_logger
from .aliases import CANONICAL_ORDER, ENDPOINT_PATHS, EndpointKey, canonicalize

logger = get_logger(__name__)


class EndpointConfig(Mapping):
    """端点类别 -> URL 的不可变有序映射

    迭代顺序总是规范顺序；值总是去除首尾空白后的非空字符串。
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Optional[Mapping[Union[EndpointKey, str], Any]] = None):
        collected: dict[EndpointKey, str] = {}
        for key, value in (entries or {}).items():
            endpoint_key = EndpointKey(key)
            if not isinstance(value, str):
                continue
            url = value.strip()
            if url:
                collected[endpoint_key] = url
        self._entries = {k: collected[k] for k in CANONICAL_ORDER if k in collected}

    def __getitem__(self, key: Union[EndpointKey, str]) -> str:
        return self._entries[EndpointKey(key)]

    def __contains__(self, key: object) -> bool:
        try:
            return EndpointKey(key) in self._entries  # type: ignore[arg-type]
        except ValueError:
            return False

    def __iter__(self) -> Iterator[EndpointKey]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __hash__(self) -> int:
        return hash(tuple(self._entries.items()))

    def __repr__(self) -> str:
        inner = ", ".join(f"{k.value}={v!r}" for k, v in self._entries.items())
        return f"EndpointConfig({inner})"

    def with_entry(self, key: Union[EndpointKey, str], url: Optional[str]) -> "EndpointConfig":
        """返回设置（或在 url 为空时删除）某端点后的新配置"""
        entries: dict[Any, Any] = dict(self._entries)
        cleaned = (url or "").strip()
        if cleaned:
            entries[EndpointKey(key)] = cleaned
        else:
            entries.pop(EndpointKey(key), None)
        return EndpointConfig(entries)

    def to_dict(self) -> dict[str, str]:
        return {k.value: v for k, v in self._entries.items()}


# 原始输入在边界处的分类
@dataclass(frozen=True)
class Scalar:
    """裸 URL 简写"""

    text: str


@dataclass(frozen=True)
class JsonObject:
    """JSON 对象；保留重复键与输入顺序"""

    pairs: tuple[tuple[str, Any], ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Invalid:
    """以 ``{`` 开头但不是合法 JSON 对象"""

    text: str
    reason: str


RawEndpointInput = Union[Scalar, JsonObject, Invalid]


def classify(raw: Optional[str]) -> Optional[RawEndpointInput]:
    """
    将原始文本分类为 Scalar / JsonObject / Invalid

    Returns:
        空白输入返回 None
    """
    text = (raw or "").strip()
    if not text:
        return None
    if not text.startswith("{"):
        return Scalar(text)

    try:
        decoded = json.loads(text, object_pairs_hook=lambda pairs: pairs)
    except json.JSONDecodeError as e:
        return Invalid(text, str(e))
    if not isinstance(decoded, list):
        return Invalid(text, "JSON must be an object")
    return JsonObject(tuple(decoded))


def parse(raw: Optional[str]) -> tuple[EndpointConfig, Optional[EndpointParseError]]:
    """
    解析原始端点配置

    解析失败时不抛出异常：返回空配置和 EndpointParseError，
    由调用方保留用户的原始文本。
    """
    classified = classify(raw)
    if classified is None:
        return EndpointConfig(), None

    if isinstance(classified, Scalar):
        return EndpointConfig({EndpointKey.OPENAI: classified.text}), None

    if isinstance(classified, Invalid):
        logger.debug("endpoint config parse failed", reason=classified.reason)
        return EndpointConfig(), EndpointParseError(classified.text, classified.reason)

    entries: dict[EndpointKey, str] = {}
    for raw_key, value in classified.pairs:
        key = canonicalize(raw_key)
        if key is None:
            logger.debug("dropping unknown endpoint key", key=raw_key)
            continue
        if not isinstance(value, str) or not value.strip():
            continue
        url = value.strip()
        previous = entries.get(key)
        if previous is not None and previous != url:
            logger.warning(
                "endpoint key defined more than once, last value wins",
                endpoint=key.value,
                raw_key=raw_key,
            )
        entries[key] = url
    return EndpointConfig(entries), None


def serialize(config: Mapping[Any, str]) -> str:
    """
    规范化序列化

    - 空配置 -> ""
    - 仅有 openai -> 裸 URL
    - 其他 -> 规范键顺序、2 空格缩进的 JSON 对象
    """
    if not isinstance(config, EndpointConfig):
        config = EndpointConfig(config)
    if not config:
        return ""

    ordered = config.to_dict()
    if list(ordered) == [EndpointKey.OPENAI.value]:
        url = ordered[EndpointKey.OPENAI.value]
        # 以 { 开头的裸 URL 会被重新解析为 JSON，因此保持对象形式
        if not url.startswith("{"):
            return url
    return json.dumps(ordered, indent=2, ensure_ascii=False)


def canonical_form(raw: Optional[str]) -> str:
    """解析并重新序列化；无法解析时抛出 EndpointParseError"""
    config, error = parse(raw)
    if error is not None:
        raise error
    return serialize(config)


def validate(config: Mapping[Any, str]) -> None:
    """可激活的配置至少需要 default 或 openai 之一"""
    if not isinstance(config, EndpointConfig):
        config = EndpointConfig(config)
    if EndpointKey.DEFAULT in config or EndpointKey.OPENAI in config:
        return
    raise EndpointValidationError(configured=[k.value for k in config])


def is_activatable(config: Mapping[Any, str]) -> bool:
    try:
        validate(config)
    except EndpointValidationError:
        return False
    return True


def fill_missing(config: EndpointConfig, base_url: Optional[str]) -> EndpointConfig:
    """
    用基础 URL 补全未配置的端点

    default 与 claude 不参与补全；没有固定路径的端点（图片、音频）
    使用 ``{path}`` 透传请求路径。
    """
    base = (base_url or "").strip().rstrip("/")
    if not base:
        return config

    entries: dict[Any, str] = dict(config)
    for key, path in ENDPOINT_PATHS.items():
        if key in entries:
            continue
        entries[key] = f"{base}{path or '{path}'}"
    return EndpointConfig(entries)


def template_config() -> EndpointConfig:
    """“填充模板”使用的示例配置"""
    return EndpointConfig(
        {
            EndpointKey.OPENAI: "https://api.openai.com/v1/chat/completions",
            EndpointKey.OPENAI_RESPONSES: "https://api.openai.com/v1/responses",
        }
    )


class EndpointEditSession:
    """编辑中的端点配置

    管理员输入的原始文本与最近一次成功解析的规范配置分开保存：
    原始文本无法解析时，规范配置保持不变，错误留给界面展示。
    """

    def __init__(self, initial: Optional[str] = None):
        self.raw_text = initial or ""
        config, error = parse(self.raw_text)
        self.config = config
        self.error: Optional[EndpointParseError] = error

    @property
    def canonical(self) -> str:
        return serialize(self.config)

    @property
    def has_error(self) -> bool:
        return self.error is not None

    def update_raw(self, raw: str) -> Optional[EndpointParseError]:
        """更新原始文本；解析失败时保留上一次的规范配置"""
        self.raw_text = raw
        config, error = parse(raw)
        self.error = error
        if error is None:
            self.config = config
        return error

    def set_entry(self, key: Union[EndpointKey, str], url: Optional[str]) -> None:
        """可视化编辑单个端点；空值表示删除"""
        self.config = self.config.with_entry(key, url)
        self.raw_text = self.canonical
        self.error = None

    def fill_missing(self, base_url: Optional[str]) -> None:
        self.config = fill_missing(self.config, base_url)
        self.raw_text = self.canonical
        self.error = None


__all__ = [
    "EndpointConfig",
    "Scalar",
    "JsonObject",
    "Invalid",
    "RawEndpointInput",
    "classify",
    "parse",
    "serialize",
    "canonical_form",
    "validate",
    "is_activatable",
    "fill_missing",
    "template_config",
    "EndpointEditSession",
]
