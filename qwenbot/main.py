"""Main entry point for the QwenBot Discord bot."""

import asyncio
import logging
import sys

import discord
from discord.ext import commands

from qwenbot.bot.cogs.admin import AdminCog
from qwenbot.bot.cogs.chat import ChatCog
from qwenbot.bot.cogs.context import ContextCog
from qwenbot.bot.cogs.persona import PersonaCog
from qwenbot.bot.container import BotServices, build_services
from qwenbot.config import AppConfig, load_config

logger = logging.getLogger(__name__)


def setup_logging(log_level: int) -> None:
    """Setup logging configuration with suppressed discord.py spam."""

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    if not root_logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(log_level)

        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        console_handler.setFormatter(formatter)

        root_logger.addHandler(console_handler)
    else:
        for handler in root_logger.handlers:
            handler.setLevel(log_level)

    logging.getLogger("discord").setLevel(logging.WARNING)
    logging.getLogger("discord.http").setLevel(logging.WARNING)
    logging.getLogger("discord.client").setLevel(logging.WARNING)
    logging.getLogger("discord.gateway").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def register_cogs(bot: commands.Bot, services: BotServices) -> None:
    await bot.add_cog(ChatCog(bot, services))
    await bot.add_cog(PersonaCog(bot, services))
    await bot.add_cog(ContextCog(bot, services))
    await bot.add_cog(AdminCog(bot, services))


async def main(config: AppConfig) -> None:
    """Initializes and runs the bot."""
    intents = discord.Intents.default()
    intents.messages = True
    intents.guilds = True
    intents.message_content = True

    bot = commands.Bot(
        command_prefix=config.command_prefix,
        intents=intents,
        max_messages=100,
    )

    services = build_services(config)
    await register_cogs(bot, services)
    await services.start()

    tree_synced = False

    @bot.event
    async def on_ready() -> None:
        nonlocal tree_synced
        logger.info("Logged in as %s", bot.user)
        # on_ready can fire again on reconnect
        if not tree_synced:
            try:
                await bot.tree.sync()
                tree_synced = True
            except discord.HTTPException:
                logger.exception("Failed to sync command tree")

    try:
        await bot.start(config.discord_token)
    except discord.LoginFailure:
        logger.error("错误: 登录失败，请检查 Discord 机器人令牌。")
    except Exception as e:
        logger.error("机器人运行时发生错误: %s", e, exc_info=True)
    finally:
        await services.stop()
        if not bot.is_closed():
            await bot.close()


def run() -> None:
    config = load_config()
    setup_logging(config.log_level)
    asyncio.run(main(config))


if __name__ == "__main__":
    run()
