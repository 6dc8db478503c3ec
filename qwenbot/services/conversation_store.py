"""Per-user conversation store.

This module provides the 1:1 conversation layer on top of the shared
context engine: message history, persona per conversation, statistics,
periodic cleanup and optional persistence.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from qwenbot.config import ContextConfig
from qwenbot.constants import PersistenceNamespace, PersonaDefaults
from qwenbot.exceptions import PersistenceException
from qwenbot.services.context_engine import (
    ChatMessage,
    ContextEngine,
    ConversationContext,
    ConversationStats,
    MessageRole,
)
from qwenbot.services.persistence import PersistenceStore
from qwenbot.utils import parse_timestamp, utcnow

logger = logging.getLogger(__name__)


class ConversationStore:
    """Conversation contexts keyed by user id.

    Idle expiry is read-triggered: a context older than ``context_timeout``
    is replaced with an empty one on its next access. ``cleanup_expired``
    and ``cleanup_retained`` are explicit sweeps for keys that are never
    read again.
    """

    def __init__(
        self,
        config: ContextConfig,
        default_persona: str = PersonaDefaults.DEFAULT_NAME,
        persistence: Optional[PersistenceStore] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the conversation store.

        Args:
            config: Context bounds and switches.
            default_persona: Persona name assigned to new contexts.
            persistence: Optional store for save/load of contexts.
            clock: Returns the current aware datetime.
        """
        self.config = config
        self.default_persona = default_persona
        self.persistence = persistence
        self._clock = clock
        self._engine: ContextEngine[ConversationContext] = ContextEngine(
            factory=self._new_context,
            context_type=ConversationContext,
            timeout=config.context_timeout,
            max_context_tokens=config.max_context_tokens,
            clock=clock,
        )
        self._cleanup_task: Optional[asyncio.Task] = None

    def _new_context(self, key: str, now: datetime) -> ConversationContext:
        return ConversationContext(
            session_id=key,
            persona=self.default_persona,
            created_at=now,
            updated_at=now,
            max_history_length=self.config.max_history_length,
        )

    # --- Core operations ---

    def get_or_create(self, key: str) -> ConversationContext:
        return self._engine.get_or_create(str(key))

    def peek(self, key: str) -> Optional[ConversationContext]:
        return self._engine.peek(str(key))

    def add_message(self, key: str, role: MessageRole, content: str) -> ChatMessage:
        message = ChatMessage(role=role, content=content)
        self._engine.add_message(str(key), message)
        return message

    def clear_history(self, key: str) -> None:
        self._engine.clear_history(str(key))

    def set_persona(self, key: str, persona: str) -> None:
        self._engine.set_persona(str(key), persona)

    def get_persona(self, key: str) -> str:
        return self._engine.get_persona(str(key))

    def build_context_messages(
        self, key: str, system_prompt: str, user_message: str
    ) -> list[ChatMessage]:
        """Assemble the prompt for ``key``; history only when context is enabled."""
        return self._engine.build_context_messages(
            str(key),
            system_prompt,
            user_message,
            include_history=self.config.enable_context,
        )

    # --- Statistics ---

    def get_stats(self, key: str) -> ConversationStats:
        return self._engine.stats(str(key))

    def get_conversation_tokens(self, key: str) -> int:
        return self._engine.total_tokens(str(key))

    def get_message_count(self, key: str) -> int:
        return len(self.get_or_create(key).messages)

    def get_conversation_rounds(self, key: str) -> int:
        """Number of user-role messages, not paired against replies."""
        return self.get_or_create(key).rounds

    # --- Removal ---

    def delete_conversation(self, key: str) -> bool:
        return self._engine.delete(str(key))

    def clear_all(self) -> None:
        self._engine.clear_all()

    def count(self) -> int:
        return self._engine.count()

    def cleanup_expired(self) -> int:
        """Remove every context idle longer than the context timeout."""
        return self._engine.cleanup_expired()

    async def cleanup_retained(self) -> int:
        """Remove contexts (in memory and persisted) older than the retention window."""
        removed = self._engine.cleanup_expired(self.config.session_retention)

        if self.persistence is not None:
            cutoff = self._clock() - timedelta(seconds=self.config.session_retention)
            try:
                removed += await self.persistence.sweep_older_than(
                    PersistenceNamespace.CONVERSATIONS, cutoff
                )
            except PersistenceException:
                logger.error("Failed to sweep persisted conversations", exc_info=True)

        return removed

    # --- Persistence ---

    def _to_record(self, context: ConversationContext, user_id: str) -> dict[str, Any]:
        return {
            "session_id": context.session_id,
            "user_id": str(user_id),
            "persona": context.persona,
            "messages": [message.to_dict() for message in context.messages],
            "total_tokens": context.total_tokens,
            "message_count": len(context.messages),
            "created_at": context.created_at.isoformat(),
            "updated_at": context.updated_at.isoformat(),
        }

    def _from_record(self, key: str, record: dict[str, Any]) -> ConversationContext:
        now = self._clock()
        context = ConversationContext(
            session_id=key,
            persona=record.get("persona") or self.default_persona,
            created_at=parse_timestamp(record.get("created_at")) or now,
            updated_at=parse_timestamp(record.get("updated_at")) or now,
            max_history_length=self.config.max_history_length,
            messages=[ChatMessage.from_dict(m) for m in record.get("messages", [])],
        )
        context.trim_history()
        return context

    async def save(self, key: str, user_id: Optional[str] = None) -> bool:
        """Persist the context for ``key``. Returns False when disabled or on failure."""
        if self.persistence is None:
            return False

        context = self.peek(key)
        if context is None:
            return False

        try:
            await self.persistence.save(
                PersistenceNamespace.CONVERSATIONS,
                str(key),
                self._to_record(context, user_id if user_id is not None else key),
            )
        except PersistenceException:
            logger.error("Failed to save conversation %s", key, exc_info=True)
            return False
        return True

    async def load(self, key: str) -> bool:
        """Restore a persisted context into memory. Returns True when one was loaded."""
        if self.persistence is None:
            return False

        try:
            record = await self.persistence.load(PersistenceNamespace.CONVERSATIONS, str(key))
        except PersistenceException:
            logger.error("Failed to load conversation %s", key, exc_info=True)
            return False

        if not record:
            return False

        try:
            context = self._from_record(str(key), record)
        except (KeyError, ValueError, TypeError):
            logger.warning("Ignoring malformed persisted conversation %s", key, exc_info=True)
            return False

        self._engine.put(str(key), context)
        return True

    async def remove(self, key: str) -> bool:
        if self.persistence is None:
            return False

        try:
            return await self.persistence.remove(PersistenceNamespace.CONVERSATIONS, str(key))
        except PersistenceException:
            logger.error("Failed to remove persisted conversation %s", key, exc_info=True)
            return False

    # --- Periodic cleanup ---

    def start_periodic_cleanup(self, interval: Optional[float] = None) -> None:
        """Start the background sweep task (idle and retention)."""
        if self._cleanup_task is not None and not self._cleanup_task.done():
            logger.warning("Conversation cleanup task already running")
            return

        interval = interval if interval is not None else self.config.cleanup_interval
        self._cleanup_task = asyncio.create_task(self._periodic_cleanup(interval))

    async def _periodic_cleanup(self, interval: float) -> None:
        while True:
            try:
                await asyncio.sleep(interval)
                removed = self.cleanup_expired()
                removed += await self.cleanup_retained()
                if removed > 0:
                    logger.info("Periodic cleanup: removed %d conversations", removed)
            except asyncio.CancelledError:
                logger.info("Conversation cleanup task cancelled")
                break
            except Exception as e:
                logger.error("Error in conversation cleanup: %s", e, exc_info=True)

    async def stop_periodic_cleanup(self) -> None:
        if self._cleanup_task is not None and not self._cleanup_task.done():
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
        self._cleanup_task = None
