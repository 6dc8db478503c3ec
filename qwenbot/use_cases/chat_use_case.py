"""Chat use case: one inbound message in, one model reply out.

This use case ties persona selection, conversation history, the group
session layer and the completion service together. Requests for the same
conversation key are serialized so two in-flight completions never
interleave their writes to one history.
"""

import asyncio
import logging
import weakref
from dataclasses import dataclass
from typing import Optional

from qwenbot.constants import CacheNamespace, PersistenceNamespace
from qwenbot.exceptions import InvalidRequestException, PersistenceException
from qwenbot.services.cache_manager import CacheManager, cached_call
from qwenbot.services.context_engine import MessageRole
from qwenbot.services.conversation_store import ConversationStore
from qwenbot.services.group_session import GroupSessionManager, group_key
from qwenbot.services.llm_service import CompletionParams, LLMService
from qwenbot.services.performance import PerformanceMonitor, timed
from qwenbot.services.persona_catalog import PersonaTemplate
from qwenbot.services.persona_manager import PersonaManager
from qwenbot.services.persistence import PersistenceStore
from qwenbot.utils import ERROR_EMPTY_MESSAGE

logger = logging.getLogger(__name__)

COMPLETION_METRIC = "chat.complete"


@dataclass
class ChatRequest:
    """Request for one chat turn."""

    user_id: str
    message: str
    group_id: Optional[str] = None
    persona_override: Optional[str] = None
    sender_name: Optional[str] = None
    group_name: Optional[str] = None
    reset: bool = False


@dataclass
class ChatResponse:
    """Reply text plus the persona and conversation it was produced for."""

    text: str
    persona: str
    conversation_key: str


class ChatUseCase:
    """Use case for handling chat turns and persona switches."""

    def __init__(
        self,
        llm_service: LLMService,
        persona_manager: PersonaManager,
        conversations: ConversationStore,
        groups: GroupSessionManager,
        cache: Optional[CacheManager] = None,
        performance: Optional[PerformanceMonitor] = None,
        persistence: Optional[PersistenceStore] = None,
        enable_personas: bool = True,
        default_params: Optional[CompletionParams] = None,
    ):
        """Initialize the chat use case.

        Args:
            llm_service: Completion service.
            persona_manager: Per-user persona selection.
            conversations: 1:1 conversation store.
            groups: Group session layer.
            cache: Optional cache for persona lookups.
            performance: Optional monitor wrapped around completions.
            persistence: Optional store for persona selections.
            enable_personas: When False every turn uses the default persona.
            default_params: Sampling used when personas are disabled.
        """
        self.llm_service = llm_service
        self.persona_manager = persona_manager
        self.conversations = conversations
        self.groups = groups
        self.cache = cache
        self.performance = performance
        self.persistence = persistence
        self.enable_personas = enable_personas
        self.default_params = default_params or CompletionParams()
        # Entries vanish once no coroutine holds or awaits the lock.
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    @staticmethod
    def conversation_key(user_id: str, group_id: Optional[str] = None) -> str:
        return group_key(str(group_id)) if group_id else str(user_id)

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    # --- Persona lookup ---

    async def resolve_persona(self, name: str) -> Optional[PersonaTemplate]:
        """Resolve a persona name or alias, memoized in the persona cache tier."""
        if self.cache is None:
            return self.persona_manager.get_persona(name)
        return await cached_call(
            self.cache,
            CacheNamespace.PERSONA,
            name,
            lambda: self.persona_manager.get_persona(name),
        )

    def invalidate_persona(self, name: str) -> None:
        """Drop cached lookups after a custom persona is removed or replaced."""
        if self.cache is not None:
            self.cache.clear_namespace(CacheNamespace.PERSONA)
            logger.debug("Persona cache invalidated for %s", name)

    async def _select_persona(self, request: ChatRequest) -> PersonaTemplate:
        if request.persona_override:
            persona = await self.resolve_persona(request.persona_override)
            if persona is None:
                raise InvalidRequestException(
                    f"❌ 人设 \"{request.persona_override}\" 不存在",
                    {"persona": request.persona_override},
                )
            return persona

        if not self.enable_personas:
            fallback = await self.resolve_persona(self.persona_manager.default_persona)
            return fallback or self.persona_manager.get_current_persona(request.user_id)

        if request.group_id:
            name = self.groups.get_group_persona(request.group_id)
            persona = await self.resolve_persona(name)
            if persona is not None:
                return persona
            return self.persona_manager.get_current_persona(request.user_id)

        return self.persona_manager.get_current_persona(request.user_id)

    # --- Chat ---

    async def chat(self, request: ChatRequest) -> ChatResponse:
        """Run one chat turn.

        Raises:
            InvalidRequestException: Empty message, unknown persona override
                or a full group. Nothing is stored.
            APIException: The completion failed. Nothing is stored.
        """
        message = (request.message or "").strip()
        if not message:
            raise InvalidRequestException(ERROR_EMPTY_MESSAGE)

        key = self.conversation_key(request.user_id, request.group_id)
        async with self._lock_for(key):
            if request.group_id:
                self.groups.get_group_session(str(request.group_id), request.group_name)
            persona = await self._select_persona(request)

            if request.group_id:
                return await self._group_turn(request, key, message, persona)
            return await self._direct_turn(request, key, message, persona)

    async def _complete(self, messages: list, persona: PersonaTemplate) -> str:
        if self.enable_personas:
            params = CompletionParams(temperature=persona.temperature, max_tokens=persona.max_tokens)
        else:
            params = self.default_params

        async def call() -> str:
            return await self.llm_service.complete(messages, params)

        if self.performance is None:
            return await call()
        return await timed(self.performance, COMPLETION_METRIC, call)

    async def _direct_turn(
        self, request: ChatRequest, key: str, message: str, persona: PersonaTemplate
    ) -> ChatResponse:
        if self.persistence is not None and self.conversations.peek(key) is None:
            await self.conversations.load(key)
        if request.reset:
            self.conversations.clear_history(key)

        messages = self.conversations.build_context_messages(key, persona.system_prompt, message)
        text = await self._complete(messages, persona)

        if not request.persona_override:
            self.conversations.set_persona(key, persona.name)
        self.conversations.add_message(key, MessageRole.USER, message)
        self.conversations.add_message(key, MessageRole.ASSISTANT, text)
        await self.conversations.save(key, request.user_id)

        return ChatResponse(text=text, persona=persona.name, conversation_key=key)

    async def _group_turn(
        self, request: ChatRequest, key: str, message: str, persona: PersonaTemplate
    ) -> ChatResponse:
        group_id = str(request.group_id)
        if not self.groups.can_add_member(group_id, request.user_id):
            raise InvalidRequestException(
                "❌ 群组成员已满 / Group is full", {"group_id": group_id}
            )

        if request.reset:
            self.groups.clear_group_history(group_id)

        messages = self.groups.build_group_context_messages(
            group_id, persona.system_prompt, message
        )
        text = await self._complete(messages, persona)

        self.groups.add_member(group_id, request.user_id)
        sender_name = request.sender_name or str(request.user_id)
        self.groups.add_group_message(
            group_id, MessageRole.USER, message, request.user_id, sender_name
        )
        self.groups.add_group_message(
            group_id, MessageRole.ASSISTANT, text, "assistant", persona.name
        )

        return ChatResponse(text=text, persona=persona.name, conversation_key=key)

    # --- Persona switching ---

    async def switch_persona_and_reset(self, user_id: str, name_or_alias: str) -> Optional[str]:
        """Switch the user's persona and clear their 1:1 history in one step.

        Returns the canonical persona name, or None when the name does not
        resolve (in which case nothing changes).
        """
        key = self.conversation_key(user_id)
        async with self._lock_for(key):
            if not self.persona_manager.switch_persona(user_id, name_or_alias):
                return None

            canonical = self.persona_manager.get_current_persona_name(user_id)
            self.conversations.clear_history(key)
            self.conversations.set_persona(key, canonical)
            await self.save_persona_states()
            return canonical

    async def switch_group_persona(self, group_id: str, name_or_alias: str) -> Optional[str]:
        """Switch a group's persona and clear the shared history."""
        key = self.conversation_key("", group_id)
        async with self._lock_for(key):
            persona = await self.resolve_persona(name_or_alias)
            if persona is None:
                return None
            self.groups.clear_group_history(group_id)
            self.groups.set_group_persona(group_id, persona.name)
            return persona.name

    async def reset_conversation(self, user_id: str, group_id: Optional[str] = None) -> None:
        key = self.conversation_key(user_id, group_id)
        async with self._lock_for(key):
            if group_id:
                self.groups.clear_group_history(group_id)
            else:
                self.conversations.clear_history(key)
                await self.conversations.save(key, user_id)

    # --- Persona state persistence ---

    async def save_persona_states(self) -> bool:
        if self.persistence is None:
            return False
        try:
            await self.persistence.save(
                PersistenceNamespace.USER_PREFERENCES,
                "personas",
                {"states": self.persona_manager.export_user_states()},
            )
        except PersistenceException:
            logger.error("Failed to save persona selections", exc_info=True)
            return False
        return True

    async def load_persona_states(self) -> int:
        if self.persistence is None:
            return 0
        try:
            record = await self.persistence.load(PersistenceNamespace.USER_PREFERENCES, "personas")
        except PersistenceException:
            logger.error("Failed to load persona selections", exc_info=True)
            return 0
        if not record or not isinstance(record.get("states"), dict):
            return 0

        restored = self.persona_manager.import_user_states(record["states"])
        logger.info("Restored %d persona selections", restored)
        return restored

    async def save_custom_personas(self) -> bool:
        if self.persistence is None:
            return False
        try:
            await self.persistence.save(
                PersistenceNamespace.CUSTOM_PERSONAS,
                "all",
                {"personas": [p.to_dict() for p in self.persona_manager.list_custom()]},
            )
        except PersistenceException:
            logger.error("Failed to save custom personas", exc_info=True)
            return False
        return True

    async def load_custom_personas(self) -> int:
        if self.persistence is None:
            return 0
        try:
            record = await self.persistence.load(PersistenceNamespace.CUSTOM_PERSONAS, "all")
        except PersistenceException:
            logger.error("Failed to load custom personas", exc_info=True)
            return 0
        if not record:
            return 0

        loaded = 0
        for data in record.get("personas", []):
            try:
                template = PersonaTemplate.from_dict(data)
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed custom persona: %s", data)
                continue
            if self.persona_manager.add_custom_persona(template):
                loaded += 1
        return loaded
