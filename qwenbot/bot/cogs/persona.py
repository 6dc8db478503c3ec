"""Persona management Cog for QwenBot."""

import logging
import shlex
from typing import Optional

from discord.ext import commands

from qwenbot.bot.cogs.base import ServiceCog
from qwenbot.constants import LLMDefaults, PersonaDefaults
from qwenbot.exceptions import PersonaValidationException
from qwenbot.services.persona_catalog import PersonaTemplate, validate_template
from qwenbot.utils import format_timestamp

logger = logging.getLogger(__name__)

PERSONAS_DISABLED = "❌ 人设功能未启用 / Persona feature not enabled"
CUSTOM_DISABLED = "❌ 自定义人设功能未启用 / Custom personas are disabled"

_CREATE_FLAGS = {
    "--prompt": "prompt",
    "-p": "prompt",
    "--temperature": "temperature",
    "-t": "temperature",
    "--max-tokens": "max_tokens",
    "-m": "max_tokens",
    "--greeting": "greeting",
    "-g": "greeting",
    "--traits": "traits",
    "-tr": "traits",
}


def parse_create_args(raw: str) -> tuple[list[str], dict[str, str]]:
    """Split ``persona create`` arguments into positionals and flag values.

    A flag value runs until the next flag, so ``--prompt`` may span words.
    Raises ``ValueError`` on unbalanced quotes or a flag without a value.
    """
    positionals: list[str] = []
    options: dict[str, str] = {}
    current: Optional[str] = None
    buffer: list[str] = []

    for token in shlex.split(raw or ""):
        if token in _CREATE_FLAGS:
            if current is not None:
                if not buffer:
                    raise ValueError(f"Missing value for {current}")
                options[current] = " ".join(buffer)
            current, buffer = _CREATE_FLAGS[token], []
        elif current is None:
            positionals.append(token)
        else:
            buffer.append(token)

    if current is not None:
        if not buffer:
            raise ValueError(f"Missing value for {current}")
        options[current] = " ".join(buffer)
    return positionals, options


def build_custom_persona(name: str, description: str, options: dict[str, str]) -> PersonaTemplate:
    """Build a custom persona from command options, clamping sampling values."""
    try:
        temperature = float(options.get("temperature", PersonaDefaults.CUSTOM_TEMPERATURE))
    except ValueError:
        temperature = PersonaDefaults.CUSTOM_TEMPERATURE
    temperature = max(LLMDefaults.TEMPERATURE_MIN, min(LLMDefaults.TEMPERATURE_MAX, temperature))

    try:
        max_tokens = int(options.get("max_tokens", PersonaDefaults.CUSTOM_MAX_TOKENS))
    except ValueError:
        max_tokens = PersonaDefaults.CUSTOM_MAX_TOKENS
    max_tokens = max(
        PersonaDefaults.CUSTOM_MAX_TOKENS_MIN,
        min(PersonaDefaults.CUSTOM_MAX_TOKENS_MAX, max_tokens),
    )

    traits_raw = options.get("traits")
    traits = (
        [t.strip() for t in traits_raw.split(",") if t.strip()]
        if traits_raw
        else ["自定义 / Custom"]
    )

    return PersonaTemplate(
        name=name,
        description=description,
        system_prompt=options.get("prompt") or f"你是一个{description}，请根据这个角色进行对话。",
        temperature=temperature,
        max_tokens=max_tokens,
        greeting=options.get("greeting") or f"你好，我是{description}！",
        personality_traits=traits,
    )


class PersonaCog(ServiceCog):
    """人设管理命令"""

    @property
    def personas(self):
        return self.services.persona_manager

    def _alias_text(self, name: str, skip_canonical: bool = False) -> str:
        aliases = self.personas.list_aliases(name)
        if len(aliases) <= 1:
            return ""
        shown = aliases[1:] if skip_canonical else aliases
        return ", ".join(shown)

    @commands.group(name="persona", aliases=["人设"], invoke_without_command=True)
    async def persona_group(self, ctx: commands.Context) -> None:
        """人设管理命令"""
        await self._show_current(ctx)

    @persona_group.command(name="list", aliases=["列表"])
    async def persona_list(self, ctx: commands.Context) -> None:
        """查看所有人设"""
        if not self.services.config.enable_personas:
            await self.reply(ctx, PERSONAS_DISABLED)
            return

        personas = self.personas.list_all()
        if not personas:
            await self.reply(ctx, "❌ 没有可用人设 / No personas available")
            return

        entries = []
        for p in personas:
            entry = f"• **{p.name}** - {p.description}"
            if p.personality_traits:
                entry += f"\n  性格 / Traits: {'、'.join(p.personality_traits)}"
            aliases = self._alias_text(p.name, skip_canonical=True)
            if aliases:
                entry += f"\n  别名 / Aliases: {aliases}"
            entries.append(entry)

        await self.reply(
            ctx,
            f"🎭 可用人设 / Available Personas (共 {len(personas)} 个):\n\n" + "\n\n".join(entries),
        )

    @persona_group.command(name="switch", aliases=["切换"])
    async def persona_switch(self, ctx: commands.Context, *, name: str = "") -> None:
        """切换人设（同时清空对话历史）"""
        if not self.services.config.enable_personas:
            await self.reply(ctx, PERSONAS_DISABLED)
            return

        name = name.strip()
        if not name:
            await self.reply(
                ctx, "❌ 请指定人设名称 / Please specify persona name\n💡 例如: `!persona switch catgirl`"
            )
            return

        canonical = await self.services.chat.switch_persona_and_reset(self.user_id(ctx), name)
        if canonical is None:
            await self.reply(
                ctx,
                f"❌ 人设 \"{name}\" 不存在 / Persona not found\n"
                "💡 使用 `!persona list` 查看所有可用人设及其别名",
            )
            return

        persona = self.personas.get_persona(canonical)
        aliases = self._alias_text(canonical)
        alias_info = f"\n💡 别名 / Aliases: {aliases}" if aliases else ""
        greeting = f"\n\n{persona.greeting}" if persona.greeting else ""
        await self.reply(
            ctx,
            f"✅ 已切换到 / Switched to: **{persona.description}** ({persona.name}){alias_info}{greeting}",
        )

    @persona_group.command(name="current", aliases=["当前"])
    async def persona_current(self, ctx: commands.Context) -> None:
        """查看当前人设"""
        await self._show_current(ctx)

    async def _show_current(self, ctx: commands.Context) -> None:
        if not self.services.config.enable_personas:
            await self.reply(ctx, PERSONAS_DISABLED)
            return

        user_id = self.user_id(ctx)
        persona = self.personas.get_current_persona(user_id)
        stats = self.services.conversations.get_stats(user_id)
        traits = "、".join(persona.personality_traits) or "-"
        await self.reply(
            ctx,
            f"🎭 当前人设 / Current Persona: **{persona.description}** ({persona.name})\n"
            f"🤖 性格特征 / Traits: {traits}\n"
            f"💬 对话轮数 / Rounds: {stats.rounds}\n"
            f"📊 消息数 / Messages: {stats.message_count}\n"
            f"🔥 总 Token / Total Tokens: {stats.total_tokens}\n"
            f"⏰ 创建时间 / Created: {format_timestamp(stats.created_at)}",
        )

    @persona_group.command(name="info", aliases=["详情"])
    async def persona_info(self, ctx: commands.Context, *, name: str = "") -> None:
        """查看人设详情"""
        name = name.strip()
        if not name:
            await self.reply(ctx, "❌ 请指定人设名称 / Please specify persona name")
            return

        persona = self.personas.get_persona(name)
        if persona is None:
            await self.reply(ctx, f"❌ 人设 \"{name}\" 不存在 / Persona not found")
            return

        aliases = self._alias_text(persona.name)
        lines = [f"📝 人设详情 / Persona Details: **{persona.description}** ({persona.name})"]
        if aliases:
            lines.append(f"🔤 别名 / Aliases: {aliases}")
        lines += [
            "",
            "🤖 系统提示 / System Prompt:",
            f"```\n{persona.system_prompt or '(无 / none)'}\n```",
            "⚙️ 配置参数 / Parameters:",
            f"• 创意度 / Temperature: {persona.temperature}",
            f"• 最大输出 / Max Tokens: {persona.max_tokens} tokens",
            f"• 性格特征 / Traits: {'、'.join(persona.personality_traits) or '-'}",
        ]
        if persona.greeting:
            lines += ["", "👋 问候语 / Greeting:", f"> {persona.greeting}"]
        if persona.avatar:
            lines += ["", f"🖼️ 头像 / Avatar: {persona.avatar}"]
        await self.reply(ctx, "\n".join(lines))

    @persona_group.command(name="create", aliases=["创建"])
    @commands.has_permissions(manage_messages=True)
    async def persona_create(self, ctx: commands.Context, *, args: str = "") -> None:
        """创建自定义人设

        用法: `!persona create <名称> <描述> [--prompt 文本] [--temperature 0.7]
        [--max-tokens 1000] [--greeting 文本] [--traits a,b]`
        """
        if not self.services.config.enable_custom_personas:
            await self.reply(ctx, CUSTOM_DISABLED)
            return

        try:
            positionals, options = parse_create_args(args)
        except ValueError as e:
            await self.reply(ctx, f"❌ 参数错误 / Invalid arguments: {e}")
            return

        if len(positionals) < 2:
            await self.reply(
                ctx, "❌ 请指定人设名称和描述 / Please specify persona name and description"
            )
            return

        name, description = positionals[0], " ".join(positionals[1:])
        template = build_custom_persona(name, description, options)
        try:
            validate_template(template)
        except PersonaValidationException as e:
            await self.reply(ctx, f"❌ 人设无效 / Invalid persona: {e}")
            return

        if not self.personas.add_custom_persona(template):
            await self.reply(ctx, f"❌ 人设 \"{name}\" 已存在 / Persona already exists")
            return

        self.services.chat.invalidate_persona(name)
        await self.services.chat.save_custom_personas()
        logger.info("User %s created custom persona %s", self.user_id(ctx), name)
        await self.reply(ctx, f"✅ 已创建自定义人设 / Created: **{description}** ({name})")

    @persona_group.command(name="remove", aliases=["删除"])
    @commands.has_permissions(manage_messages=True)
    async def persona_remove(self, ctx: commands.Context, *, name: str = "") -> None:
        """删除自定义人设"""
        if not self.services.config.enable_custom_personas:
            await self.reply(ctx, CUSTOM_DISABLED)
            return

        name = name.strip()
        if not name:
            await self.reply(
                ctx, "❌ 请指定要删除的人设名称 / Please specify persona name to remove"
            )
            return

        if not self.personas.remove_custom_persona(name):
            await self.reply(
                ctx,
                f"❌ 无法删除人设 \"{name}\" / Cannot remove persona "
                "(may not exist or is system persona)",
            )
            return

        self.services.chat.invalidate_persona(name)
        await self.services.chat.save_custom_personas()
        logger.info("User %s removed custom persona %s", self.user_id(ctx), name)
        await self.reply(ctx, f"✅ 已删除自定义人设 / Removed: {name}")

    @persona_group.command(name="custom", aliases=["自定义"])
    async def persona_custom(self, ctx: commands.Context) -> None:
        """查看自定义人设"""
        custom = self.personas.list_custom()
        if not custom:
            await self.reply(
                ctx,
                "❌ 没有自定义人设 / No custom personas\n\n"
                "💡 使用 `!persona create` 创建新人设",
            )
            return

        listing = "\n".join(f"• **{p.name}** - {p.description}" for p in custom)
        await self.reply(ctx, f"🎨 自定义人设 / Custom Personas ({len(custom)}):\n\n{listing}")
