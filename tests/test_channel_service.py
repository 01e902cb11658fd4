"""渠道配置服务测试"""

import json
import random
import sys
from pathlib import Path

import pytest

# 添加项目根目录到 Python 路径
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from channel_resolver.config_models import ChannelRecord, ResolverConfig  # noqa: E402
from channel_resolver.credentials import KeySelector, ParseMode, UpdateMode, deserialize_pool  # noqa: E402
from channel_resolver.exceptions import (  # noqa: E402
    CredentialParseError,
    EmptyPoolError,
    EndpointParseError,
    EndpointValidationError,
    TemplateError,
)
from channel_resolver.services import ChannelConfigService, get_channel_service  # noqa: E402

CHAT_URL = "https://api.example.com/v1/chat/completions"


@pytest.fixture
def service():
    return ChannelConfigService()


@pytest.fixture
def single_channel():
    return ChannelRecord(id="1", name="single", base_url=CHAT_URL, key="sk-old")


@pytest.fixture
def multi_channel():
    return ChannelRecord(
        id="2",
        name="multi",
        base_url=json.dumps({"default": "https://proxy.example.com{path}"}),
        key="sk-a\nsk-b",
        is_multi_key=True,
        multi_key_mode="round_robin",
    )


class TestApplyEditEndpoints:
    """端点配置编辑测试"""

    def test_stores_canonical_form(self, service, single_channel):
        """测试保存规范形式"""
        raw = '{"rerank": " https://r.example.com/v1/rerank ", "OpenAI": "%s"}' % CHAT_URL
        result = service.apply_edit(single_channel, raw_base_url=raw)
        assert json.loads(result.channel.base_url) == {
            "openai": CHAT_URL,
            "rerank": "https://r.example.com/v1/rerank",
        }
        assert list(json.loads(result.channel.base_url)) == ["openai", "rerank"]
        assert result.channel.key == "sk-old"

    def test_bare_url_stays_bare(self, service, single_channel):
        """测试裸 URL 保存为裸 URL"""
        result = service.apply_edit(single_channel, raw_base_url=f"  {CHAT_URL}  ")
        assert result.channel.base_url == CHAT_URL

    def test_invalid_json_blocks_save(self, service, single_channel):
        """测试非法 JSON 阻止保存"""
        with pytest.raises(EndpointParseError):
            service.apply_edit(single_channel, raw_base_url='{"openai": ')
        assert single_channel.base_url == CHAT_URL

    def test_missing_default_and_openai_blocks_save(self, service, single_channel):
        """测试缺少 default/openai 阻止保存"""
        with pytest.raises(EndpointValidationError):
            service.apply_edit(
                single_channel,
                raw_base_url='{"claude": "https://c.example.com/v1/messages"}',
            )

    def test_untouched_endpoint_field(self, service, single_channel):
        """测试未修改端点时保持原值"""
        result = service.apply_edit(single_channel, raw_key="sk-new")
        assert result.channel.base_url == CHAT_URL
        assert list(result.endpoint_config) == ["openai"]

    @pytest.mark.parametrize(
        "raw",
        [
            '{"opneai": "https://x.example.com/v1/chat/completions"}',
            '{"openai": 42, "default": null}',
            '{"openai": "   "}',
            "{}",
        ],
    )
    def test_non_blank_input_with_no_usable_endpoint_blocks_save(self, service, single_channel, raw):
        """测试非空输入解析后为空配置时阻止保存，不清空已存端点"""
        with pytest.raises(EndpointValidationError):
            service.apply_edit(single_channel, raw_base_url=raw)
        assert single_channel.base_url == CHAT_URL

    def test_blank_input_clears_endpoints(self, service, single_channel):
        """测试显式清空端点"""
        result = service.apply_edit(single_channel, raw_base_url="   ")
        assert result.channel.base_url == ""


class TestApplyEditCredentials:
    """密钥编辑测试"""

    def test_single_key_replaced(self, service, single_channel):
        """测试单 Key 渠道直接替换"""
        result = service.apply_edit(single_channel, raw_key="  sk-new  ")
        assert result.channel.key == "sk-new"
        assert result.channel.is_multi_key is False
        assert result.credentials_added == 1

    def test_blank_key_keeps_stored_pool(self, service, multi_channel):
        """测试空白密钥不清空已存密钥"""
        result = service.apply_edit(multi_channel, raw_key="   ", update_mode=UpdateMode.REPLACE)
        assert result.channel.key == "sk-a\nsk-b"
        assert result.credentials_added == 0

    def test_append_to_multi_key(self, service, multi_channel):
        """测试多 Key 渠道追加"""
        result = service.apply_edit(multi_channel, raw_key="sk-c\nsk-a", parse_mode=ParseMode.BATCH)
        assert result.channel.key == "sk-a\nsk-b\nsk-c\nsk-a"
        assert result.credentials_added == 2
        assert result.channel.multi_key_mode == "round_robin"

    def test_replace_multi_key(self, service, multi_channel):
        """测试多 Key 渠道替换"""
        result = service.apply_edit(
            multi_channel,
            raw_key='["sk-x", "sk-y"]',
            parse_mode="batch",
            update_mode="replace",
        )
        assert result.channel.key == "sk-x\nsk-y"

    def test_batch_converts_to_multi_key(self, service, single_channel):
        """测试批量输入把渠道转为多 Key 并使用默认策略"""
        config = ResolverConfig.model_validate(
            {"selection": {"default_policy": "polling"}, "credentials": {"default_update_mode": "replace"}}
        )
        result = ChannelConfigService(config=config).apply_edit(
            single_channel, raw_key="sk-1\nsk-2", parse_mode="batch"
        )
        assert result.channel.is_multi_key is True
        assert result.channel.key == "sk-1\nsk-2"
        assert result.channel.multi_key_mode == "round_robin"

    def test_partial_batch_reports_failures(self, service, multi_channel):
        """测试部分无效的批量输入"""
        result = service.apply_edit(
            multi_channel, raw_key='sk-c\n{"bad": \nsk-d', parse_mode="batch"
        )
        assert result.has_failures
        assert list(result.credential_failures) == ["#2"]
        assert result.channel.key == "sk-a\nsk-b\nsk-c\nsk-d"

    def test_all_invalid_batch_keeps_stored_pool(self, service, multi_channel):
        """测试全部无效时保留原密钥池"""
        result = service.apply_edit(
            multi_channel, raw_key='{"bad": \n{"worse"', parse_mode="batch", update_mode="replace"
        )
        assert result.has_failures
        assert result.channel.key == "sk-a\nsk-b"

    def test_multi_key_mode_update(self, service, multi_channel):
        """测试修改选择策略（兼容 polling）"""
        result = service.apply_edit(multi_channel, multi_key_mode="random")
        assert result.channel.multi_key_mode == "random"
        result = service.apply_edit(result.channel, multi_key_mode="polling")
        assert result.channel.multi_key_mode == "round_robin"

    def test_original_record_not_mutated(self, service, multi_channel):
        """测试返回新的渠道记录"""
        service.apply_edit(multi_channel, raw_key="sk-z")
        assert multi_channel.key == "sk-a\nsk-b"

    def test_multiline_json_appended_as_one_entry(self, service, multi_channel):
        """测试格式化的 JSON 密钥追加到多 Key 渠道后仍是一个密钥"""
        document = {"type": "service_account", "project_id": "p"}
        result = service.apply_edit(multi_channel, raw_key=json.dumps(document, indent=2))
        pool = deserialize_pool(result.channel.key)
        assert len(pool) == 3
        assert pool[:2] == ("sk-a", "sk-b")
        assert json.loads(pool[2]) == document

    def test_stored_multiline_json_compacted_on_conversion(self, service):
        """测试单 Key 渠道中的多行 JSON 在转为密钥池时被压缩"""
        document = {"type": "service_account", "private_key": "-----BEGIN-----\nabc\n-----END-----\n"}
        channel = ChannelRecord(id="3", base_url=CHAT_URL, key=json.dumps(document, indent=2))
        result = service.apply_edit(channel, raw_key="sk-new", parse_mode="batch", update_mode="append")
        pool = deserialize_pool(result.channel.key)
        assert len(pool) == 2
        assert json.loads(pool[0]) == document
        assert pool[1] == "sk-new"

    def test_multiline_plain_key_rejected_for_pool(self, service, multi_channel):
        """测试多行且不是 JSON 的密钥不能放入密钥池"""
        with pytest.raises(CredentialParseError):
            service.apply_edit(multi_channel, raw_key="line-one\nline-two")
        assert multi_channel.key == "sk-a\nsk-b"

    def test_single_key_channel_keeps_multiline_key_verbatim(self, service, single_channel):
        """测试单 Key 渠道原样保存多行密钥"""
        pretty = json.dumps({"type": "service_account"}, indent=2)
        result = service.apply_edit(single_channel, raw_key=pretty)
        assert result.channel.key == pretty
        assert result.channel.is_multi_key is False


class TestResolveCall:
    """出站调用解析测试"""

    def test_single_key_channel(self, service, single_channel):
        """测试单 Key 渠道返回整个密钥"""
        call = service.resolve_call(single_channel, "/v1/chat/completions", "gpt-4o")
        assert call.url == CHAT_URL
        assert call.key == "sk-old"
        assert call.endpoint == "openai"

    def test_multi_key_round_robin(self, service, multi_channel):
        """测试多 Key 渠道轮询"""
        keys = [service.resolve_call(multi_channel, "/v1/embeddings", "m").key for _ in range(3)]
        assert keys == ["sk-a", "sk-b", "sk-a"]
        call = service.resolve_call(multi_channel, "/v1/embeddings", "m")
        assert call.url == "https://proxy.example.com/v1/embeddings"
        assert call.endpoint == "embedding"

    def test_multi_key_random(self, multi_channel):
        """测试多 Key 渠道随机选择"""
        service = ChannelConfigService(selector=KeySelector(rng=random.Random(0)))
        channel = multi_channel.model_copy(update={"multi_key_mode": "random"})
        for _ in range(10):
            assert service.resolve_call(channel, "/v1/chat/completions", "m").key in ("sk-a", "sk-b")

    def test_empty_key(self, service, single_channel):
        """测试渠道没有密钥"""
        channel = single_channel.model_copy(update={"key": "  "})
        with pytest.raises(EmptyPoolError) as exc_info:
            service.resolve_call(channel, "/v1/chat/completions", "m")
        assert exc_info.value.channel_id == "1"

    def test_empty_multi_key_pool(self, service, multi_channel):
        """测试多 Key 渠道密钥池为空"""
        channel = multi_channel.model_copy(update={"key": "\n\n"})
        with pytest.raises(EmptyPoolError):
            service.resolve_call(channel, "/v1/chat/completions", "m")

    def test_strict_path_match_from_config(self, single_channel):
        """测试严格路径匹配开关来自配置"""
        with pytest.raises(TemplateError):
            ChannelConfigService().resolve_call(single_channel, "/v1/embeddings", "m")
        config = ResolverConfig.model_validate({"endpoints": {"strict_path_match": False}})
        call = ChannelConfigService(config=config).resolve_call(single_channel, "/v1/embeddings", "m")
        assert call.url == CHAT_URL


class TestModels:
    """渠道记录模型测试"""

    def test_channel_record_normalizes_policy(self):
        """测试旧策略名被规范化"""
        assert ChannelRecord(id="1", multi_key_mode="polling").multi_key_mode == "round_robin"

    def test_channel_record_rejects_unknown_policy(self):
        """测试不支持的策略名"""
        with pytest.raises(ValueError):
            ChannelRecord(id="1", multi_key_mode="weighted")

    def test_global_service_is_shared(self):
        """测试全局服务实例"""
        assert get_channel_service() is get_channel_service()


if __name__ == "__main__":
    pytest.main([__file__])
