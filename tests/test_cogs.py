"""Tests for the command cogs and their argument parsers."""

from unittest.mock import AsyncMock, MagicMock, Mock, patch

import pytest
from discord.ext import commands

from qwenbot.bot.cogs.admin import AdminCog
from qwenbot.bot.cogs.chat import THINKING_MESSAGE, ChatCog, parse_chat_options
from qwenbot.bot.cogs.context import ContextCog
from qwenbot.bot.cogs.persona import (
    CUSTOM_DISABLED,
    PersonaCog,
    build_custom_persona,
    parse_create_args,
)
from qwenbot.bot.container import build_services
from qwenbot.constants import Region
from qwenbot.exceptions import RateLimitException
from qwenbot.services.error_handler import FailureKind
from qwenbot.services.llm_service import LLMService, ModelRegistry
from qwenbot.utils import ERROR_EMPTY_MESSAGE, GENERIC_ERROR_MESSAGE


@pytest.fixture
def sent():
    """Patch the shared send helper and collect what the cogs reply."""
    with patch("qwenbot.bot.cogs.base.send_discord_message", new_callable=AsyncMock) as send:
        send.return_value = []
        yield send


def _replies(sent):
    return [call.args[1] for call in sent.call_args_list]


@pytest.fixture
def services(app_config, mock_llm_service):
    return build_services(app_config, llm_service=mock_llm_service)


@pytest.fixture
def guild_ctx(mock_ctx):
    mock_ctx.guild = Mock(id=777)
    mock_ctx.guild.name = "Test Guild"
    return mock_ctx


class TestParseChatOptions:
    """Tests for parse_chat_options."""

    def test_plain_message(self):
        assert parse_chat_options("你好") == ("你好", None, False)

    def test_leading_options(self):
        assert parse_chat_options("--persona 猫娘 -r 你好 世界") == ("你好 世界", "猫娘", True)

    def test_short_persona_flag(self):
        assert parse_chat_options("-p maid hi") == ("hi", "maid", False)

    def test_options_after_text_are_kept(self):
        assert parse_chat_options("hi --reset") == ("hi --reset", None, False)

    def test_reset_requires_word_boundary(self):
        assert parse_chat_options("--resetting") == ("--resetting", None, False)

    def test_options_only(self):
        assert parse_chat_options("--reset") == ("", None, True)


class TestParseCreateArgs:
    """Tests for parse_create_args and build_custom_persona."""

    def test_positionals_and_flags(self):
        positionals, options = parse_create_args(
            'pirate "一个海盗" --prompt 你是 海盗 --temperature 1.5 --traits 勇敢,豪爽'
        )
        assert positionals == ["pirate", "一个海盗"]
        assert options == {"prompt": "你是 海盗", "temperature": "1.5", "traits": "勇敢,豪爽"}

    def test_flag_without_value(self):
        with pytest.raises(ValueError):
            parse_create_args("pirate desc --prompt")

    def test_unbalanced_quotes(self):
        with pytest.raises(ValueError):
            parse_create_args('pirate "desc')

    def test_defaults(self):
        persona = build_custom_persona("pirate", "海盗", {})
        assert persona.system_prompt == "你是一个海盗，请根据这个角色进行对话。"
        assert persona.greeting == "你好，我是海盗！"
        assert persona.temperature == 0.7
        assert persona.max_tokens == 1000
        assert persona.personality_traits == ["自定义 / Custom"]

    def test_values_are_clamped(self):
        persona = build_custom_persona(
            "x", "d", {"temperature": "9", "max_tokens": "50", "traits": "a, b"}
        )
        assert persona.temperature == 2.0
        assert persona.max_tokens == 100
        assert persona.personality_traits == ["a", "b"]

    def test_bad_numbers_fall_back(self):
        persona = build_custom_persona("x", "d", {"temperature": "hot", "max_tokens": "many"})
        assert persona.temperature == 0.7
        assert persona.max_tokens == 1000


class TestChatCog:
    """Tests for the chat command."""

    @pytest.mark.asyncio
    async def test_chat_replies_with_model_text(self, services, mock_ctx, sent):
        cog = ChatCog(MagicMock(), services)
        await cog.chat.callback(cog, mock_ctx, message="你好")

        assert _replies(sent) == [THINKING_MESSAGE, "模型回复"]
        assert services.conversations.get_message_count("42") == 2

    @pytest.mark.asyncio
    async def test_empty_message(self, services, mock_ctx, sent):
        cog = ChatCog(MagicMock(), services)
        await cog.chat.callback(cog, mock_ctx, message="  ")
        assert _replies(sent) == [ERROR_EMPTY_MESSAGE]

    @pytest.mark.asyncio
    async def test_api_failure_is_described(self, services, mock_ctx, sent, mock_llm_service):
        mock_llm_service.complete.side_effect = RateLimitException(
            "slow", kind=FailureKind.RATE_LIMITED
        )
        cog = ChatCog(MagicMock(), services)
        await cog.chat.callback(cog, mock_ctx, message="hi")

        assert _replies(sent)[-1] == services.error_handler.user_message(FailureKind.RATE_LIMITED)
        assert services.conversations.get_message_count("42") == 0

    @pytest.mark.asyncio
    async def test_unexpected_failure_is_generic(self, services, mock_ctx, sent, mock_llm_service):
        mock_llm_service.complete.side_effect = RuntimeError("boom")
        cog = ChatCog(MagicMock(), services)
        await cog.chat.callback(cog, mock_ctx, message="hi")
        assert _replies(sent)[-1] == GENERIC_ERROR_MESSAGE

    @pytest.mark.asyncio
    async def test_unknown_persona_option(self, services, mock_ctx, sent, mock_llm_service):
        cog = ChatCog(MagicMock(), services)
        await cog.chat.callback(cog, mock_ctx, message="--persona ghost hi")
        assert "ghost" in _replies(sent)[-1]
        mock_llm_service.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_status_messages_are_deleted(self, services, mock_ctx, sent):
        status = Mock()
        status.delete = AsyncMock()
        sent.side_effect = [[status], []]
        cog = ChatCog(MagicMock(), services)
        await cog.chat.callback(cog, mock_ctx, message="hi")
        status.delete.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_guild_chat_uses_group_session(self, services, guild_ctx, sent):
        cog = ChatCog(MagicMock(), services)
        await cog.chat.callback(cog, guild_ctx, message="hi")

        assert services.groups.get_group_members("777") == ["42"]
        assert services.groups.get_group_stats("777").group_name == "Test Guild"
        assert services.conversations.get_message_count("42") == 0


class TestPersonaCog:
    """Tests for the persona command group."""

    @pytest.mark.asyncio
    async def test_switch_resets_history(self, services, mock_ctx, sent):
        services.conversations.add_message("42", "user", "old")
        cog = PersonaCog(MagicMock(), services)
        await cog.persona_switch.callback(cog, mock_ctx, name="猫娘")

        assert "catgirl" in _replies(sent)[-1]
        assert services.persona_manager.get_current_persona_name("42") == "catgirl"
        assert services.conversations.get_message_count("42") == 0

    @pytest.mark.asyncio
    async def test_switch_unknown(self, services, mock_ctx, sent):
        cog = PersonaCog(MagicMock(), services)
        await cog.persona_switch.callback(cog, mock_ctx, name="ghost")
        assert "不存在" in _replies(sent)[-1]

    @pytest.mark.asyncio
    async def test_list_shows_aliases(self, services, mock_ctx, sent):
        cog = PersonaCog(MagicMock(), services)
        await cog.persona_list.callback(cog, mock_ctx)
        listing = _replies(sent)[-1]
        assert "**catgirl**" in listing
        assert "猫娘" in listing

    @pytest.mark.asyncio
    async def test_group_without_subcommand_shows_current(self, services, mock_ctx, sent):
        cog = PersonaCog(MagicMock(), services)
        await cog.persona_group.callback(cog, mock_ctx)
        assert "(default)" in _replies(sent)[-1]

    @pytest.mark.asyncio
    async def test_create_and_remove_custom(self, services, mock_ctx, sent):
        cog = PersonaCog(MagicMock(), services)
        await cog.persona_create.callback(cog, mock_ctx, args="pirate 海盗 --temperature 3")

        pirate = services.persona_manager.get_persona("pirate")
        assert pirate.temperature == 2.0
        assert "Created" in _replies(sent)[-1]

        await cog.persona_remove.callback(cog, mock_ctx, name="pirate")
        assert services.persona_manager.get_persona("pirate") is None

    @pytest.mark.asyncio
    async def test_create_requires_description(self, services, mock_ctx, sent):
        cog = PersonaCog(MagicMock(), services)
        await cog.persona_create.callback(cog, mock_ctx, args="pirate")
        assert services.persona_manager.get_persona("pirate") is None

    @pytest.mark.asyncio
    async def test_create_disabled(self, services, mock_ctx, sent):
        services.config.enable_custom_personas = False
        cog = PersonaCog(MagicMock(), services)
        await cog.persona_create.callback(cog, mock_ctx, args="pirate 海盗")
        assert _replies(sent) == [CUSTOM_DISABLED]

    @pytest.mark.asyncio
    async def test_builtin_cannot_be_removed(self, services, mock_ctx, sent):
        cog = PersonaCog(MagicMock(), services)
        await cog.persona_remove.callback(cog, mock_ctx, name="assistant")
        assert "无法删除" in _replies(sent)[-1]

    @pytest.mark.asyncio
    async def test_missing_permissions_error(self, services, mock_ctx, sent):
        cog = PersonaCog(MagicMock(), services)
        await cog.cog_command_error(mock_ctx, commands.MissingPermissions(["manage_messages"]))
        assert "manage_messages" in _replies(sent)[-1]


class TestContextCog:
    """Tests for context and group commands."""

    @pytest.mark.asyncio
    async def test_context_clear(self, services, mock_ctx, sent):
        services.conversations.add_message("42", "user", "hi")
        cog = ContextCog(MagicMock(), services)
        await cog.context_clear.callback(cog, mock_ctx)
        assert services.conversations.get_message_count("42") == 0

    @pytest.mark.asyncio
    async def test_context_stats(self, services, mock_ctx, sent):
        services.conversations.add_message("42", "user", "hi")
        cog = ContextCog(MagicMock(), services)
        await cog.context_stats.callback(cog, mock_ctx)
        assert "Avg tokens: 2" in _replies(sent)[-1]

    @pytest.mark.asyncio
    async def test_group_share_toggle(self, services, guild_ctx, sent):
        cog = ContextCog(MagicMock(), services)
        await cog.group_share.callback(cog, guild_ctx, mode="off")
        assert not services.groups.is_group_shared_context_enabled("777")

        await cog.group_share.callback(cog, guild_ctx, mode="maybe")
        assert "Usage" in _replies(sent)[-1]

    @pytest.mark.asyncio
    async def test_group_share_without_mode_shows_state(self, services, guild_ctx, sent):
        cog = ContextCog(MagicMock(), services)
        await cog.group_share.callback(cog, guild_ctx, mode="")
        assert "Shared context: 开启 / on" in _replies(sent)[-1]

        services.groups.set_group_shared_context("777", False)
        await cog.group_share.callback(cog, guild_ctx, mode="")
        assert "Shared context: 关闭 / off" in _replies(sent)[-1]

    @pytest.mark.asyncio
    async def test_context_info_counts_groups(self, services, mock_ctx, sent):
        services.groups.add_member("777", "42")
        services.groups.add_member("888", "42")
        cog = ContextCog(MagicMock(), services)
        await cog.context_info.callback(cog, mock_ctx)
        assert "Groups: 2" in _replies(sent)[-1]

    @pytest.mark.asyncio
    async def test_group_info_shows_recent(self, services, guild_ctx, sent):
        services.groups.add_group_message("777", "user", "x" * 60, "42", "Alice")
        cog = ContextCog(MagicMock(), services)
        await cog.group_info.callback(cog, guild_ctx)
        assert f"• Alice: {'x' * 50}..." in _replies(sent)[-1]

    @pytest.mark.asyncio
    async def test_group_persona(self, services, guild_ctx, sent):
        cog = ContextCog(MagicMock(), services)
        await cog.group_persona.callback(cog, guild_ctx, name="女仆")
        assert services.groups.get_group_persona("777") == "maid"


class TestAdminCog:
    """Tests for cache, performance, model and region commands."""

    @pytest.fixture
    def admin_services(self, app_config, provider_config):
        models = ModelRegistry(app_config.available_models, "qwen-plus")
        llm = LLMService(provider_config, models, client_factory=MagicMock())
        return build_services(app_config, llm_service=llm)

    @pytest.mark.asyncio
    async def test_cache_clear_namespace(self, admin_services, mock_ctx, sent):
        admin_services.cache.set("persona", "a", 1)
        cog = AdminCog(MagicMock(), admin_services)
        await cog.cache_clear.callback(cog, mock_ctx, namespace="persona")
        assert admin_services.cache.size() == 0

    @pytest.mark.asyncio
    async def test_perf_report_includes_warnings(self, admin_services, mock_ctx, sent):
        admin_services.performance.record("chat.complete", 15000, True)
        cog = AdminCog(MagicMock(), admin_services)
        await cog.perf_report.callback(cog, mock_ctx)
        assert "max duration too high" in _replies(sent)[-1]

    @pytest.mark.asyncio
    async def test_model_switch_and_remove_current(self, admin_services, mock_ctx, sent):
        cog = AdminCog(MagicMock(), admin_services)
        await cog.model_switch.callback(cog, mock_ctx, name="qwen-max")
        assert admin_services.llm_service.models.current == "qwen-max"

        await cog.model_remove.callback(cog, mock_ctx, name="qwen-max")
        assert "无法删除" in _replies(sent)[-1]

    @pytest.mark.asyncio
    async def test_region_view_is_open(self, admin_services, mock_ctx, sent):
        cog = AdminCog(MagicMock(), admin_services)
        await cog.region.callback(cog, mock_ctx)
        assert "beijing" in _replies(sent)[-1]

    @pytest.mark.asyncio
    async def test_region_switch_requires_permission(self, admin_services, mock_ctx, sent):
        mock_ctx.author.guild_permissions.manage_messages = False
        cog = AdminCog(MagicMock(), admin_services)
        await cog.region.callback(cog, mock_ctx, name="intl")
        assert admin_services.llm_service.region == Region.BEIJING

        mock_ctx.author.guild_permissions.manage_messages = True
        await cog.region.callback(cog, mock_ctx, name="intl")
        assert admin_services.llm_service.region == Region.SINGAPORE
