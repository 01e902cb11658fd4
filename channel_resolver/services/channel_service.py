"""
渠道配置服务

编辑侧：把管理员输入的端点文本与密钥文本规范化为可持久化的字符串。
路由侧：为一次出站调用解析最终 URL 并选出一个密钥。

持久化由外部设置服务完成；并发编辑同一渠道时以最后一次写入为准。
"""

from dataclasses import dataclass, field
from typing import Optional, Union

from ..config_models import ChannelRecord, ResolverConfig
from ..credentials import (
    KeySelector,
    ParseMode,
    SelectionPolicy,
    UpdateMode,
    coerce_mode,
    deserialize_pool,
    mask_credential,
    merge,
    parse_raw,
    serialize_pool,
    to_pool_entries,
)
from ..endpoints import EndpointConfig, endpoint_key_for_path, parse, resolve_request_url, serialize, validate
from ..exceptions import EmptyPoolError, PartialParseError
from ..utils.logger import get_logger
from ..utils.thread_safe import LazyInit

logger = get_logger(__name__)


@dataclass
class ChannelEditResult:
    """一次编辑的结果"""

    channel: ChannelRecord
    endpoint_config: EndpointConfig
    credential_failures: dict[str, str] = field(default_factory=dict)
    credentials_added: int = 0

    @property
    def has_failures(self) -> bool:
        return bool(self.credential_failures)


@dataclass(frozen=True)
class ResolvedCall:
    """一次出站调用使用的 URL 与密钥"""

    url: str
    key: str
    endpoint: str


class ChannelConfigService:
    """渠道端点与密钥配置服务"""

    def __init__(
        self,
        config: Optional[ResolverConfig] = None,
        selector: Optional[KeySelector] = None,
    ):
        self.config = config or ResolverConfig()
        self.selector = selector or KeySelector()

    def _stored_pool(self, channel: ChannelRecord) -> tuple[str, ...]:
        if channel.is_multi_key:
            return deserialize_pool(channel.key)
        key = channel.key.strip()
        return (key,) if key else ()

    def apply_edit(
        self,
        channel: ChannelRecord,
        *,
        raw_base_url: Optional[str] = None,
        raw_key: Optional[str] = None,
        parse_mode: Union[ParseMode, str] = ParseMode.SINGLE,
        update_mode: Union[UpdateMode, str, None] = None,
        multi_key_mode: Union[SelectionPolicy, str, None] = None,
    ) -> ChannelEditResult:
        """
        应用一次管理员编辑

        Args:
            channel: 当前持久化的渠道记录
            raw_base_url: 端点配置原始文本；None 表示未修改
            raw_key: 密钥原始文本；None 或空白表示不修改已存密钥
            parse_mode: single / batch
            update_mode: append / replace，默认取配置中的 default_update_mode
            multi_key_mode: 新的密钥选择策略

        Returns:
            ChannelEditResult，其中 channel 是更新后的副本

        Raises:
            EndpointParseError: 端点配置不是合法 JSON，阻止保存
            EndpointValidationError: 没有 default / openai 端点，阻止保存
            CredentialParseError: 多行且不是 JSON 文档的密钥无法放入多 Key 密钥池
        """
        updates: dict = {}
        endpoint_config, _ = parse(channel.base_url)

        if raw_base_url is not None:
            endpoint_config, error = parse(raw_base_url)
            if error is not None:
                raise error
            # 非空输入必须能得到可用配置，否则会清空已存端点
            if raw_base_url.strip():
                validate(endpoint_config)
            updates["base_url"] = serialize(endpoint_config)

        failures: dict[str, str] = {}
        added = 0
        if raw_key is not None and raw_key.strip():
            parse_mode = coerce_mode(ParseMode, parse_mode, "密钥输入模式")
            try:
                incoming = parse_raw(raw_key, parse_mode)
            except PartialParseError as e:
                incoming, failures = e.pool, e.failures

            if incoming:
                batch = parse_mode == ParseMode.BATCH
                if channel.is_multi_key or batch:
                    mode = coerce_mode(
                        UpdateMode,
                        update_mode or self.config.credentials.default_update_mode,
                        "密钥更新模式",
                    )
                    existing = self._stored_pool(channel) if mode == UpdateMode.APPEND else ()
                    # 换行分隔的密钥池中每个密钥必须是单行
                    pool = merge(to_pool_entries(existing), to_pool_entries(incoming), mode)
                    updates["key"] = serialize_pool(pool)
                    updates["is_multi_key"] = True
                else:
                    # 单 Key 渠道的 key 字段原样保存整个密钥，允许多行
                    updates["key"] = incoming[0]
                added = len(incoming)
            else:
                logger.warning(
                    "no valid credentials in edit, stored pool kept",
                    channel_id=channel.id,
                    rejected=list(failures),
                )

        if multi_key_mode:
            updates["multi_key_mode"] = SelectionPolicy.parse(multi_key_mode).value
        elif updates.get("is_multi_key") and not channel.is_multi_key:
            # 首次转为多 Key 渠道时使用配置的默认策略
            updates["multi_key_mode"] = self.config.selection.default_policy

        updated = channel.model_copy(update=updates)
        logger.info(
            "channel edit applied",
            channel_id=channel.id,
            endpoints=[k.value for k in endpoint_config],
            credentials_added=added,
            credentials_rejected=len(failures),
            is_multi_key=updated.is_multi_key,
        )
        return ChannelEditResult(
            channel=updated,
            endpoint_config=endpoint_config,
            credential_failures=failures,
            credentials_added=added,
        )

    def resolve_call(self, channel: ChannelRecord, request_path: str, model: str) -> ResolvedCall:
        """
        为一次出站调用解析 URL 并选择密钥

        Raises:
            EmptyPoolError: 渠道没有可用密钥
            TemplateError: URL 模板无效或与请求路径不匹配
        """
        url = resolve_request_url(
            channel.base_url,
            request_path,
            model,
            strict_path_match=self.config.endpoints.strict_path_match,
        )

        if channel.is_multi_key:
            key = self.selector.select(
                channel.id, deserialize_pool(channel.key), channel.multi_key_mode
            )
        else:
            key = channel.key.strip()
            if not key:
                raise EmptyPoolError(channel_id=channel.id)

        endpoint = endpoint_key_for_path(request_path).value
        logger.debug(
            "outbound call resolved",
            channel_id=channel.id,
            endpoint=endpoint,
            url=url,
            key=mask_credential(key),
        )
        return ResolvedCall(url=url, key=key, endpoint=endpoint)


_default_service: LazyInit[ChannelConfigService] = LazyInit(ChannelConfigService)


def get_channel_service() -> ChannelConfigService:
    """获取全局渠道配置服务实例"""
    return _default_service.get()
