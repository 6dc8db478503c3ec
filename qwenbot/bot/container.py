"""Service container built once at startup and handed to every cog."""

import logging
from dataclasses import dataclass
from typing import Optional

from qwenbot.config import AppConfig
from qwenbot.services.cache_manager import CacheManager
from qwenbot.services.conversation_store import ConversationStore
from qwenbot.services.error_handler import ErrorHandler
from qwenbot.services.group_session import GroupSessionManager
from qwenbot.services.llm_service import CompletionParams, LLMService, ModelRegistry
from qwenbot.services.performance import PerformanceMonitor
from qwenbot.services.persistence import JsonFilePersistence, PersistenceStore
from qwenbot.services.persona_catalog import PersonaCatalog
from qwenbot.services.persona_manager import PersonaManager
from qwenbot.use_cases.chat_use_case import ChatUseCase

logger = logging.getLogger(__name__)


@dataclass
class BotServices:
    """Everything a command handler needs, owned by one long-lived instance."""

    config: AppConfig
    llm_service: LLMService
    persona_manager: PersonaManager
    conversations: ConversationStore
    groups: GroupSessionManager
    cache: CacheManager
    performance: PerformanceMonitor
    error_handler: ErrorHandler
    chat: ChatUseCase
    persistence: Optional[PersistenceStore] = None

    async def start(self) -> None:
        """Restore persisted state and start the background sweeps."""
        await self.chat.load_custom_personas()
        await self.chat.load_persona_states()
        self.cache.start_cleanup_task()
        self.conversations.start_periodic_cleanup()
        self.groups.start_periodic_cleanup()
        logger.info("Background cleanup tasks started")

    async def stop(self) -> None:
        """Stop the sweeps and flush persona selections."""
        await self.cache.stop_cleanup_task()
        await self.conversations.stop_periodic_cleanup()
        await self.groups.stop_periodic_cleanup()
        await self.chat.save_persona_states()
        logger.info("Background cleanup tasks stopped")


def build_services(config: AppConfig, llm_service: Optional[LLMService] = None) -> BotServices:
    """Wire the service graph from configuration."""
    context_config = config.get_context_config()

    persistence: Optional[PersistenceStore] = None
    if config.enable_persistence:
        persistence = JsonFilePersistence(config.data_dir)
        logger.info("Persistence enabled (data_dir=%s)", config.data_dir)

    if llm_service is None:
        provider = config.get_provider_config()
        llm_service = LLMService(
            provider, ModelRegistry(config.available_models, config.model_name)
        )

    persona_manager = PersonaManager(PersonaCatalog(config.persona_variant), config.default_persona)
    conversations = ConversationStore(context_config, config.default_persona, persistence)
    groups = GroupSessionManager(context_config, config.default_persona)
    cache = CacheManager(config.get_cache_config())
    performance = PerformanceMonitor()

    chat = ChatUseCase(
        llm_service=llm_service,
        persona_manager=persona_manager,
        conversations=conversations,
        groups=groups,
        cache=cache,
        performance=performance,
        persistence=persistence,
        enable_personas=config.enable_personas,
        default_params=CompletionParams(
            temperature=config.temperature, max_tokens=config.max_tokens
        ),
    )

    return BotServices(
        config=config,
        llm_service=llm_service,
        persona_manager=persona_manager,
        conversations=conversations,
        groups=groups,
        cache=cache,
        performance=performance,
        error_handler=ErrorHandler(),
        chat=chat,
        persistence=persistence,
    )
