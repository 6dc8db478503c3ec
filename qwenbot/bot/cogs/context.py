"""Conversation context and group session Cog for QwenBot."""

import logging

from discord.ext import commands

from qwenbot.bot.cogs.base import ServiceCog
from qwenbot.constants import GroupDefaults
from qwenbot.utils import format_timestamp

logger = logging.getLogger(__name__)

CONTEXT_DISABLED = "❌ 对话上下文功能未启用 / Context feature not enabled"


class ContextCog(ServiceCog):
    """对话上下文与群组会话命令"""

    # --- 1:1 context ---

    @commands.group(name="context", aliases=["上下文"], invoke_without_command=True)
    async def context_group(self, ctx: commands.Context) -> None:
        """对话上下文命令"""
        await self._show_info(ctx)

    @context_group.command(name="clear", aliases=["清除"])
    async def context_clear(self, ctx: commands.Context) -> None:
        """清除对话历史"""
        if not self.services.config.enable_context:
            await self.reply(ctx, CONTEXT_DISABLED)
            return

        await self.services.chat.reset_conversation(self.user_id(ctx))
        await self.reply(ctx, "✅ 对话历史已清除 / History cleared")

    @context_group.command(name="info", aliases=["信息"])
    async def context_info(self, ctx: commands.Context) -> None:
        """查看上下文信息"""
        await self._show_info(ctx)

    async def _show_info(self, ctx: commands.Context) -> None:
        if not self.services.config.enable_context:
            await self.reply(ctx, CONTEXT_DISABLED)
            return

        user_id = self.user_id(ctx)
        stats = self.services.conversations.get_stats(user_id)
        persona = self.services.persona_manager.get_current_persona(user_id)
        group_count = len(self.services.groups.get_user_groups(user_id))
        await self.reply(
            ctx,
            "📊 上下文信息 / Context Info:\n"
            f"🎭 当前人设 / Persona: **{persona.description}** ({persona.name})\n"
            f"💬 对话轮数 / Rounds: {stats.rounds}\n"
            f"📝 消息数 / Messages: {stats.message_count}\n"
            f"🔥 总 Token / Tokens: {stats.total_tokens}\n"
            f"👥 所在群组 / Groups: {group_count}\n"
            f"⏰ 创建时间 / Created: {format_timestamp(stats.created_at)}\n"
            f"🔄 最后更新 / Updated: {format_timestamp(stats.updated_at)}",
        )

    @context_group.command(name="stats", aliases=["统计"])
    async def context_stats(self, ctx: commands.Context) -> None:
        """查看对话统计"""
        if not self.services.config.enable_context:
            await self.reply(ctx, CONTEXT_DISABLED)
            return

        stats = self.services.conversations.get_stats(self.user_id(ctx))
        average = round(stats.total_tokens / stats.message_count) if stats.message_count else 0
        duration = int((stats.updated_at - stats.created_at).total_seconds())
        await self.reply(
            ctx,
            "📈 对话统计 / Conversation Stats:\n"
            f"💬 总对话轮数 / Rounds: {stats.rounds}\n"
            f"📝 总消息数 / Messages: {stats.message_count}\n"
            f"🔥 总 Token 数 / Tokens: {stats.total_tokens}\n"
            f"📊 平均 Token/消息 / Avg tokens: {average}\n"
            f"⏱️ 对话时长 / Duration: {duration}秒",
        )

    # --- Group sessions ---

    @commands.group(name="group", aliases=["群组"], invoke_without_command=True)
    @commands.guild_only()
    async def group_group(self, ctx: commands.Context) -> None:
        """群组会话命令"""
        await self._show_group_info(ctx)

    @group_group.command(name="info", aliases=["信息"])
    @commands.guild_only()
    async def group_info(self, ctx: commands.Context) -> None:
        """查看群组会话信息"""
        await self._show_group_info(ctx)

    async def _show_group_info(self, ctx: commands.Context) -> None:
        group_id = self.group_id(ctx)
        groups = self.services.groups
        groups.get_group_session(group_id, getattr(ctx.guild, "name", None))
        stats = groups.get_group_stats(group_id)
        shared = "开启 / on" if stats.enable_shared_context else "关闭 / off"

        lines = [
            f"👥 群组会话 / Group Session: **{stats.group_name}**",
            f"🎭 人设 / Persona: {stats.persona}",
            f"🔗 共享上下文 / Shared context: {shared}",
            f"🙋 成员数 / Members: {stats.member_count}",
            f"📝 消息数 / Messages: {stats.message_count}",
            f"🔥 总 Token / Tokens: {stats.total_tokens}",
            f"⏰ 创建时间 / Created: {format_timestamp(stats.created_at)}",
        ]

        recent = groups.get_recent_group_messages(group_id, GroupDefaults.RECENT_MESSAGES_LIMIT)
        if recent:
            lines += ["", "🕑 最近消息 / Recent:"]
            for message in recent:
                preview = message.content
                if len(preview) > 50:
                    preview = preview[:50] + "..."
                lines.append(f"• {message.sender_name}: {preview}")
        await self.reply(ctx, "\n".join(lines))

    @group_group.command(name="share", aliases=["共享"])
    @commands.guild_only()
    @commands.has_permissions(manage_messages=True)
    async def group_share(self, ctx: commands.Context, mode: str = "") -> None:
        """开关群组共享上下文: `!group share on|off`"""
        mode = mode.strip().lower()
        if not mode:
            enabled = self.services.groups.is_group_shared_context_enabled(self.group_id(ctx))
            state = "开启 / on" if enabled else "关闭 / off"
            await self.reply(ctx, f"🔗 群组共享上下文 / Shared context: {state}")
            return

        if mode not in ("on", "off", "开", "关"):
            await self.reply(ctx, "❌ 用法 / Usage: `!group share on|off`")
            return

        enabled = mode in ("on", "开")
        self.services.groups.set_group_shared_context(self.group_id(ctx), enabled)
        state = "开启 / enabled" if enabled else "关闭 / disabled"
        await self.reply(ctx, f"✅ 群组共享上下文已{state}")

    @group_group.command(name="persona", aliases=["人设"])
    @commands.guild_only()
    @commands.has_permissions(manage_messages=True)
    async def group_persona(self, ctx: commands.Context, *, name: str = "") -> None:
        """切换群组人设（同时清空群组历史）"""
        name = name.strip()
        if not name:
            await self.reply(ctx, "❌ 请指定人设名称 / Please specify persona name")
            return

        canonical = await self.services.chat.switch_group_persona(self.group_id(ctx), name)
        if canonical is None:
            await self.reply(ctx, f"❌ 人设 \"{name}\" 不存在 / Persona not found")
            return
        await self.reply(ctx, f"✅ 群组人设已切换为 / Group persona: **{canonical}**")

    @group_group.command(name="clear", aliases=["清除"])
    @commands.guild_only()
    @commands.has_permissions(manage_messages=True)
    async def group_clear(self, ctx: commands.Context) -> None:
        """清除群组对话历史"""
        await self.services.chat.reset_conversation(self.user_id(ctx), self.group_id(ctx))
        await self.reply(ctx, "✅ 群组对话历史已清除 / Group history cleared")
