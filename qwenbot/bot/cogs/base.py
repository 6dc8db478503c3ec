"""Shared base for QwenBot cogs."""

import logging
from typing import Optional

import discord
from discord.ext import commands

from qwenbot.bot.container import BotServices
from qwenbot.utils import GENERIC_ERROR_MESSAGE, send_discord_message

logger = logging.getLogger(__name__)


class ServiceCog(commands.Cog):
    """Cog holding a reference to the shared service container."""

    def __init__(self, bot: commands.Bot, services: BotServices) -> None:
        self.bot = bot
        self.services = services

    @staticmethod
    def user_id(ctx: commands.Context) -> str:
        return str(ctx.author.id)

    @staticmethod
    def group_id(ctx: commands.Context) -> Optional[str]:
        guild = getattr(ctx, "guild", None)
        return str(guild.id) if guild is not None else None

    async def reply(self, ctx: commands.Context, content: str) -> list[discord.Message]:
        return await send_discord_message(ctx, content, mention_author=False)

    async def cog_command_error(self, ctx: commands.Context, error: Exception) -> None:
        """Cog 命令错误处理"""
        if isinstance(error, commands.MissingPermissions):
            await self.reply(
                ctx,
                f"❌ 你没有执行此命令的权限。(需要权限: {', '.join(error.missing_permissions)})",
            )
        elif isinstance(error, (commands.BadArgument, commands.MissingRequiredArgument)):
            await self.reply(ctx, "❌ 参数错误，请检查命令用法。")
        elif isinstance(error, commands.NoPrivateMessage):
            await self.reply(ctx, "❌ 此命令只能在服务器中使用。")
        else:
            logger.error("Command error in %s: %s", ctx.command, error, exc_info=True)
            await self.reply(ctx, GENERIC_ERROR_MESSAGE)
