"""Utility functions for QwenBot."""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import discord

from qwenbot.constants import MessageLimits

GENERIC_ERROR_MESSAGE = "❌ 机器人内部出现意外错误，请联系管理员。"
ERROR_PERMISSION_DENIED = "❌ 你没有执行此命令的权限。"
ERROR_EMPTY_MESSAGE = "❌ 请输入要发送的内容。"

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Default clock used by every stateful service."""
    return datetime.now(timezone.utc)


def format_timestamp(value: Optional[datetime]) -> str:
    if value is None:
        return "-"
    return value.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def parse_timestamp(raw: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string written by ``datetime.isoformat``."""
    if isinstance(raw, datetime):
        return raw
    if not raw:
        return None
    try:
        value = datetime.fromisoformat(str(raw))
    except ValueError:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def smart_split(text: str, max_length: int = MessageLimits.MAX_SPLIT_LENGTH) -> list[str]:
    """
    Split text into chunks of at most max_length.
    Prefers splitting at double newlines, then single newlines, then spaces.
    """
    if len(text) <= max_length:
        return [text]

    def find_split_point(text_to_split: str, length: int) -> int:
        split_pos = text_to_split.rfind("\n\n", 0, length)
        if split_pos != -1:
            return split_pos + 2

        split_pos = text_to_split.rfind("\n", 0, length)
        if split_pos != -1:
            return split_pos + 1

        split_pos = text_to_split.rfind(" ", 0, length)
        if split_pos != -1:
            return split_pos + 1

        return length

    chunks = []
    while text:
        if len(text) <= max_length:
            chunks.append(text)
            break

        split_at = find_split_point(text, max_length)
        chunks.append(text[:split_at])
        text = text[split_at:].lstrip()

    return chunks


async def send_discord_message(target: Any, content: str, **kwargs: Any) -> list[discord.Message]:
    """
    Send a message with automatic splitting.

    Args:
        target: A commands.Context, discord.Message or any messageable.
        content: The message content to send.
        **kwargs: Additional arguments to pass to the send method.

    Returns:
        List of sent messages.
    """
    if not content:
        return []

    sent_messages = []
    for i, chunk in enumerate(smart_split(content)):
        try:
            if isinstance(target, discord.Message):
                msg = await (target.reply(chunk, **kwargs) if i == 0 else target.channel.send(chunk))
            elif hasattr(target, "send"):
                msg = await target.send(chunk, **kwargs)
            else:
                logger.error("Unsupported target type for send_discord_message: %s", type(target))
                break
            if msg:
                sent_messages.append(msg)
        except discord.HTTPException as e:
            logger.error("Error sending message chunk %d: %s", i, e)
            break

    return sent_messages
