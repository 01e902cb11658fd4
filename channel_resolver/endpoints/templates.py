"""
端点 URL 模板展开

支持的模板变量：
    - {model}: 上游模型名
    - {path}:  入站请求路径（不含查询串）
    - {query}: 入站查询串（含前导 ``?``，没有则为空）

多端点渠道要求显式配置：模板没有使用 {path} 时，URL 路径必须与请求路径一致；
请求带查询参数时，模板必须显式携带 {query} 或 ``?``。
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlsplit

from ..exceptions import TemplateError
from .aliases import EndpointKey, endpoint_key_for_path
from .canonicalizer import parse

MODEL_PLACEHOLDER = "{model}"
PATH_PLACEHOLDER = "{path}"
QUERY_PLACEHOLDER = "{query}"

_HTTP_SCHEMES = ("http", "https")
_WS_SCHEMES = ("ws", "wss")


def resolve(url_template: Optional[str], model: Optional[str]) -> str:
    """
    展开 {model} 占位符

    model 为空时原样返回模板。

    Examples:
        >>> resolve("https://api.example.com/{model}/v1", "gpt-4o")
        'https://api.example.com/gpt-4o/v1'
    """
    if not url_template:
        return ""
    if not model:
        return url_template
    return url_template.replace(MODEL_PLACEHOLDER, model)


def scheme_for_realtime(url: str) -> str:
    """
    实时端点使用 WebSocket：https:// -> wss://，http:// -> ws://

    Examples:
        >>> scheme_for_realtime("https://x/v1/realtime")
        'wss://x/v1/realtime'
    """
    if url.startswith("https://"):
        return "wss://" + url[len("https://"):]
    if url.startswith("http://"):
        return "ws://" + url[len("http://"):]
    return url


def split_path_and_query(request_url: str) -> tuple[str, str]:
    """拆分为 (path, query)，query 含前导 ``?``"""
    idx = request_url.find("?")
    if idx < 0:
        return request_url, ""
    return request_url[:idx], request_url[idx:]


def apply_template(template: str, model: str, path: str, query: str) -> str:
    """展开全部模板变量；残留的花括号视为不支持的变量"""
    out = template.strip()
    if not out:
        return ""
    out = out.replace(MODEL_PLACEHOLDER, model)
    out = out.replace(PATH_PLACEHOLDER, path)
    out = out.replace(QUERY_PLACEHOLDER, query)
    if "{" in out or "}" in out:
        raise TemplateError("URL 模板包含不支持的变量", url=template, request_path=path)
    return out


def select_template(raw_config: Optional[str], request_path: str) -> tuple[str, Optional[EndpointKey]]:
    """
    为请求路径挑选 URL 模板

    按路径对应的端点 -> default -> openai 依次回退。

    Returns:
        (模板, 选中的端点键)；未配置时模板为空字符串
    """
    config, error = parse(raw_config)
    if error is not None:
        raise error

    wanted = endpoint_key_for_path(request_path)
    for key in (wanted, EndpointKey.DEFAULT, EndpointKey.OPENAI):
        if key in config:
            return config[key], key
    return "", None


def validate_resolved_url(
    template: str,
    resolved: str,
    path: str,
    query: str,
    *,
    realtime: bool,
    strict_path_match: bool = True,
) -> str:
    url = resolved.strip()
    if not url:
        return ""

    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        raise TemplateError(f"invalid url: {url!r}", url=url, request_path=path)

    if realtime:
        if parts.scheme not in _WS_SCHEMES:
            raise TemplateError("realtime 端点需要 ws:// 或 wss:// URL", url=url, request_path=path)
    elif parts.scheme not in _HTTP_SCHEMES:
        raise TemplateError("端点需要 http:// 或 https:// URL", url=url, request_path=path)

    if strict_path_match:
        if PATH_PLACEHOLDER not in template and not parts.path.endswith(path):
            raise TemplateError(
                f"url path mismatch: want suffix {path!r}, got {parts.path!r} (use {{path}} to opt-in pass-through)",
                url=url,
                request_path=path,
            )
        if query and QUERY_PLACEHOLDER not in template and "?" not in template:
            raise TemplateError(
                "request has query params; template must include {query} or an explicit '?'",
                url=url,
                request_path=path,
            )
    return url


def resolve_request_url(
    raw_config: Optional[str],
    request_url: str,
    model: str,
    *,
    strict_path_match: bool = True,
) -> str:
    """
    解析一次出站调用的最终上游 URL

    Args:
        raw_config: 渠道 base_url 字段（裸 URL 或 JSON 对象）
        request_url: 入站请求路径，可带查询串
        model: 上游模型名
        strict_path_match: 是否强制路径/查询串显式匹配

    Returns:
        最终 URL；渠道未配置端点时返回空字符串
    """
    path, query = split_path_and_query(request_url)
    template, _ = select_template(raw_config, path)
    if not template:
        return ""

    # 按请求路径判定实时调用；模板来自 default / openai 回退时同样转换为 ws/wss
    realtime = endpoint_key_for_path(path) == EndpointKey.OPENAI_REALTIME
    resolved = apply_template(template, model or "", path, query)
    if realtime:
        resolved = scheme_for_realtime(resolved)
    return validate_resolved_url(
        template,
        resolved,
        path,
        query,
        realtime=realtime,
        strict_path_match=strict_path_match,
    )


def preview(url_template: Optional[str], model: Optional[str], key: EndpointKey | str) -> str:
    """编辑界面的预览：展开 {model}，实时端点同时转换协议"""
    expanded = resolve(url_template, model)
    if EndpointKey(key) == EndpointKey.OPENAI_REALTIME:
        return scheme_for_realtime(expanded)
    return expanded


__all__ = [
    "resolve",
    "scheme_for_realtime",
    "split_path_and_query",
    "apply_template",
    "select_template",
    "validate_resolved_url",
    "resolve_request_url",
    "preview",
]
