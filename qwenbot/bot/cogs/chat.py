"""Chat Cog for QwenBot."""

import logging
import re
from typing import Optional

import discord
from discord.ext import commands

from qwenbot.bot.cogs.base import ServiceCog
from qwenbot.exceptions import APIException, InvalidRequestException
from qwenbot.use_cases.chat_use_case import ChatRequest
from qwenbot.utils import ERROR_EMPTY_MESSAGE, GENERIC_ERROR_MESSAGE

logger = logging.getLogger(__name__)

THINKING_MESSAGE = "🤔 思考中... / Thinking..."

_OPTION_PATTERN = re.compile(r"^\s*(?:(--persona|-p)\s+(\S+)|(--reset|-r)(?=\s|$))")


def parse_chat_options(text: str) -> tuple[str, Optional[str], bool]:
    """Split leading ``--persona NAME`` / ``--reset`` options off a message.

    Returns ``(message, persona, reset)``. Options are only recognized
    before the first word of the message.
    """
    persona: Optional[str] = None
    reset = False
    rest = text or ""
    while True:
        match = _OPTION_PATTERN.match(rest)
        if match is None:
            break
        if match.group(1):
            persona = match.group(2)
        else:
            reset = True
        rest = rest[match.end():]
    return rest.strip(), persona, reset


class ChatCog(ServiceCog):
    """'chat' / 'ask' 命令"""

    async def _delete_status(self, messages: list[discord.Message]) -> None:
        for status in messages:
            try:
                await status.delete()
            except discord.HTTPException as e:
                logger.debug("Could not delete status message: %s", e)

    @commands.hybrid_command(name="chat", aliases=["ask"], description="与千问大模型对话")
    async def chat(self, ctx: commands.Context, *, message: str = "") -> None:
        """与千问大模型对话。

        用法:
        - `!chat 你好`
        - `!chat --persona 猫娘 你好`: 仅本次使用指定人设
        - `!chat --reset 你好`: 先清空对话历史
        """
        text, persona, reset = parse_chat_options(message)
        if not text:
            await self.reply(ctx, ERROR_EMPTY_MESSAGE)
            return

        guild = getattr(ctx, "guild", None)
        request = ChatRequest(
            user_id=self.user_id(ctx),
            message=text,
            group_id=self.group_id(ctx),
            persona_override=persona,
            sender_name=getattr(ctx.author, "display_name", None),
            group_name=getattr(guild, "name", None),
            reset=reset,
        )

        status = await self.reply(ctx, THINKING_MESSAGE)
        try:
            async with ctx.channel.typing():
                response = await self.services.chat.chat(request)
        except InvalidRequestException as e:
            reply_text = e.message
        except APIException as e:
            logger.error("Chat completion failed for %s: %s", request.user_id, e)
            reply_text = self.services.error_handler.describe(e)
        except Exception as e:
            logger.error("Unexpected chat failure: %s", e, exc_info=True)
            reply_text = GENERIC_ERROR_MESSAGE
        else:
            reply_text = response.text
        finally:
            await self._delete_status(status)

        await self.reply(ctx, reply_text)
