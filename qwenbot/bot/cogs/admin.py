"""Admin Cog for QwenBot: cache, performance, model and region commands."""

import logging

from discord.ext import commands

from qwenbot.bot.cogs.base import ServiceCog
from qwenbot.constants import REGION_DISPLAY_NAMES, Region
from qwenbot.services.llm_service import ModelInfo

logger = logging.getLogger(__name__)


def _enabled(flag: bool) -> str:
    return "✅ 启用 / Enabled" if flag else "❌ 禁用 / Disabled"


class AdminCog(ServiceCog):
    """缓存、性能、模型与地域管理命令"""

    # --- Cache ---

    @commands.group(name="cache", aliases=["缓存"], invoke_without_command=True)
    async def cache_group(self, ctx: commands.Context) -> None:
        """缓存管理命令"""
        await self.reply(ctx, self.services.cache.get_report())

    @cache_group.command(name="report", aliases=["报告"])
    async def cache_report(self, ctx: commands.Context) -> None:
        """查看缓存报告"""
        await self.reply(ctx, self.services.cache.get_report())

    @cache_group.command(name="clear", aliases=["清除"])
    @commands.has_permissions(manage_messages=True)
    async def cache_clear(self, ctx: commands.Context, namespace: str = "") -> None:
        """清除缓存: `!cache clear [namespace]`"""
        cache = self.services.cache
        if namespace:
            removed = cache.clear_namespace(namespace)
            await self.reply(ctx, f"✅ 已清除命名空间 {namespace} 的 {removed} 项缓存")
            return

        cache.clear()
        await self.reply(ctx, "✅ 缓存已清空 / Cache cleared")

    # --- Performance ---

    @commands.group(name="perf", aliases=["性能"], invoke_without_command=True)
    async def perf_group(self, ctx: commands.Context) -> None:
        """性能监控命令"""
        await self._send_perf_report(ctx)

    @perf_group.command(name="report", aliases=["报告"])
    async def perf_report(self, ctx: commands.Context) -> None:
        """查看性能报告"""
        await self._send_perf_report(ctx)

    async def _send_perf_report(self, ctx: commands.Context) -> None:
        monitor = self.services.performance
        report = monitor.get_report()
        warnings = monitor.get_warnings()
        if warnings:
            report += "\n\n" + "\n".join(warnings)
        await self.reply(ctx, report)

    @perf_group.command(name="reset", aliases=["重置"])
    @commands.has_permissions(manage_messages=True)
    async def perf_reset(self, ctx: commands.Context) -> None:
        """重置性能统计"""
        self.services.performance.reset()
        await self.reply(ctx, "✅ 性能监控数据已重置 / Performance data reset")

    # --- Models ---

    @commands.group(name="model", aliases=["模型"], invoke_without_command=True)
    async def model_group(self, ctx: commands.Context) -> None:
        """模型管理命令"""
        await self._send_current_model(ctx)

    @model_group.command(name="list", aliases=["列表"])
    async def model_list(self, ctx: commands.Context) -> None:
        """列出所有模型"""
        await self.reply(
            ctx, f"📋 可用模型 / Available Models:\n{self.services.llm_service.models.format_list()}"
        )

    @model_group.command(name="current", aliases=["当前"])
    async def model_current(self, ctx: commands.Context) -> None:
        """查看当前模型"""
        await self._send_current_model(ctx)

    async def _send_current_model(self, ctx: commands.Context) -> None:
        models = self.services.llm_service.models
        info = models.get(models.current)
        description = info.description if info and info.description else models.current
        await self.reply(ctx, f"📦 当前模型 / Current Model: {models.current} - {description}")

    @model_group.command(name="switch", aliases=["切换"])
    @commands.has_permissions(manage_messages=True)
    async def model_switch(self, ctx: commands.Context, name: str = "") -> None:
        """切换模型"""
        if not name:
            await self.reply(ctx, "❌ 请指定模型名称 / Please specify model name")
            return

        if not self.services.llm_service.models.switch(name):
            await self.reply(ctx, f"❌ 模型 \"{name}\" 不存在 / Model not found")
            return
        await self.reply(ctx, f"✅ 已切换到模型 / Switched to: {name}")

    @model_group.command(name="add", aliases=["添加"])
    @commands.has_permissions(manage_messages=True)
    async def model_add(self, ctx: commands.Context, name: str = "", *, description: str = "") -> None:
        """添加模型"""
        if not name:
            await self.reply(ctx, "❌ 请提供模型名称 / Please provide model name")
            return

        if not self.services.llm_service.models.add(ModelInfo(name, description.strip())):
            await self.reply(ctx, f"❌ 模型 \"{name}\" 已存在 / Model already exists")
            return
        await self.reply(ctx, f"✅ 已添加模型 / Added: {name}")

    @model_group.command(name="remove", aliases=["删除"])
    @commands.has_permissions(manage_messages=True)
    async def model_remove(self, ctx: commands.Context, name: str = "") -> None:
        """删除模型（当前模型不可删除）"""
        if not name:
            await self.reply(ctx, "❌ 请指定模型名称 / Please specify model name")
            return

        if not self.services.llm_service.models.remove(name):
            await self.reply(
                ctx, f"❌ 无法删除模型 \"{name}\" / Cannot remove model (may be current or not exist)"
            )
            return
        await self.reply(ctx, f"✅ 已删除模型 / Removed: {name}")

    # --- Region ---

    @commands.command(name="region", aliases=["地域"])
    async def region(self, ctx: commands.Context, name: str = "") -> None:
        """查看或切换 API 地域: `!region [beijing|singapore|intl]`"""
        llm = self.services.llm_service
        supported = ", ".join(f"{r.value} ({REGION_DISPLAY_NAMES[r]})" for r in Region)

        if not name:
            await self.reply(
                ctx,
                f"📍 当前地域 / Current Region: {REGION_DISPLAY_NAMES[llm.region]} ({llm.region.value})\n"
                f"📍 支持的地域 / Supported regions: {supported}",
            )
            return

        permissions = getattr(ctx.author, "guild_permissions", None)
        if permissions is None or not permissions.manage_messages:
            await self.reply(ctx, "❌ 权限不足 / Permission denied")
            return

        region = llm.switch_region(name)
        if region is None:
            await self.reply(
                ctx,
                f"❌ 不支持的地域 / Unsupported region: {name}\n"
                f"📍 支持的地域 / Supported regions: {supported}",
            )
            return

        logger.info("User %s switched region to %s", self.user_id(ctx), region.value)
        await self.reply(
            ctx, f"✅ 已切换到地域 / Switched to: {REGION_DISPLAY_NAMES[region]} ({region.value})"
        )

    # --- Config ---

    @commands.command(name="qwen-config", aliases=["配置"])
    async def show_config(self, ctx: commands.Context) -> None:
        """查看插件配置"""
        config = self.services.config
        llm = self.services.llm_service
        await self.reply(
            ctx,
            "⚙️ 当前配置 / Configuration:\n"
            f"• 地域 / Region: {REGION_DISPLAY_NAMES[llm.region]}\n"
            f"• 模型 / Model: {llm.models.current}\n"
            f"• 人设 / Personas: {_enabled(config.enable_personas)} ({config.persona_variant.value})\n"
            f"• 自定义人设 / Custom personas: {_enabled(config.enable_custom_personas)}\n"
            f"• 上下文 / Context: {_enabled(config.enable_context)}\n"
            f"• 最大上下文 Token / Max context tokens: {config.max_context_tokens}\n"
            f"• 最大历史轮数 / Max history: {config.max_history_length}\n"
            f"• 上下文超时 / Context timeout: {int(config.context_timeout)}s\n"
            f"• 持久化 / Persistence: {_enabled(config.enable_persistence)}",
        )
