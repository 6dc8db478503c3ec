"""Group conversation sessions with shared context and membership tracking."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from qwenbot.config import ContextConfig
from qwenbot.constants import ConversationKey, GroupDefaults, PersonaDefaults
from qwenbot.services.context_engine import (
    ChatMessage,
    ContextEngine,
    ConversationContext,
    GroupMessage,
    MessageRole,
)
from qwenbot.utils import utcnow

logger = logging.getLogger(__name__)


def group_key(group_id: str) -> str:
    return ConversationKey.GROUP.format(group_id=group_id)


@dataclass
class GroupConversationContext(ConversationContext):
    """Conversation context shared by every member of a group.

    ``messages`` feeds prompt assembly; ``group_messages`` keeps the same
    entries with sender information for display. Both are trimmed together.
    """

    group_id: str = ""
    group_name: str = ""
    members: set[str] = field(default_factory=set)
    group_messages: list[GroupMessage] = field(default_factory=list)
    enable_shared_context: bool = True
    max_members: int = GroupDefaults.MAX_MEMBERS

    def trim_history(self) -> int:
        dropped = super().trim_history()
        limit = max(self.max_history_length, 0) * 2
        overflow = len(self.group_messages) - limit
        if overflow > 0:
            del self.group_messages[:overflow]
        return dropped


@dataclass(frozen=True)
class GroupStats:
    """Read-only summary of a group session."""

    group_id: str
    group_name: str
    message_count: int
    member_count: int
    total_tokens: int
    created_at: datetime
    updated_at: datetime
    persona: str
    enable_shared_context: bool


class GroupSessionManager:
    """Group sessions keyed by ``group_<id>`` plus a user -> groups index.

    The reverse index is updated on every membership change and whenever a
    group context is discarded, including read-triggered recreation after
    the idle timeout.
    """

    def __init__(
        self,
        config: ContextConfig,
        default_persona: str = PersonaDefaults.DEFAULT_NAME,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.config = config
        self.default_persona = default_persona
        self._clock = clock
        self._user_groups: dict[str, set[str]] = {}
        self._pending_names: dict[str, str] = {}
        self._engine: ContextEngine[GroupConversationContext] = ContextEngine(
            factory=self._new_context,
            context_type=GroupConversationContext,
            timeout=config.context_timeout,
            max_context_tokens=config.max_context_tokens,
            clock=clock,
            on_discard=self._forget_members,
        )
        self._cleanup_task: Optional[asyncio.Task] = None

    def _new_context(self, key: str, now: datetime) -> GroupConversationContext:
        group_id = key[len(group_key("")):]
        name = self._pending_names.pop(group_id, None) or GroupDefaults.NAME.format(
            group_id=group_id
        )
        logger.info("Created group session %s", group_id)
        return GroupConversationContext(
            session_id=key,
            persona=self.default_persona,
            created_at=now,
            updated_at=now,
            max_history_length=self.config.max_history_length,
            group_id=group_id,
            group_name=name,
            max_members=self.config.group_max_members,
        )

    def _forget_members(self, context: GroupConversationContext) -> None:
        for user_id in context.members:
            groups = self._user_groups.get(user_id)
            if groups is None:
                continue
            groups.discard(context.group_id)
            if not groups:
                del self._user_groups[user_id]

    def _peek(self, group_id: str) -> Optional[GroupConversationContext]:
        return self._engine.peek(group_key(str(group_id)))

    # --- Sessions ---

    def get_group_session(
        self, group_id: str, group_name: Optional[str] = None
    ) -> GroupConversationContext:
        """Return the group's context, creating or recreating it as needed."""
        group_id = str(group_id)
        if group_name:
            self._pending_names[group_id] = group_name
        context = self._engine.get_or_create(group_key(group_id))
        self._pending_names.pop(group_id, None)
        return context

    def delete_group_session(self, group_id: str) -> bool:
        return self._engine.delete(group_key(str(group_id)))

    def clear_all_group_sessions(self) -> None:
        self._engine.clear_all()
        self._user_groups.clear()

    def cleanup_expired_group_sessions(self) -> int:
        return self._engine.cleanup_expired()

    def start_periodic_cleanup(self, interval: Optional[float] = None) -> None:
        """Start the background sweep of idle group sessions."""
        if self._cleanup_task is not None and not self._cleanup_task.done():
            logger.warning("Group cleanup task already running")
            return

        interval = interval if interval is not None else self.config.cleanup_interval
        self._cleanup_task = asyncio.create_task(self._periodic_cleanup(interval))

    async def _periodic_cleanup(self, interval: float) -> None:
        while True:
            try:
                await asyncio.sleep(interval)
                removed = self.cleanup_expired_group_sessions()
                if removed > 0:
                    logger.info("Periodic cleanup: removed %d group sessions", removed)
            except asyncio.CancelledError:
                logger.info("Group cleanup task cancelled")
                break
            except Exception as e:
                logger.error("Error in group cleanup: %s", e, exc_info=True)

    async def stop_periodic_cleanup(self) -> None:
        if self._cleanup_task is not None and not self._cleanup_task.done():
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
        self._cleanup_task = None

    def get_group_count(self) -> int:
        return self._engine.count()

    # --- Membership ---

    def can_add_member(self, group_id: str, user_id: str) -> bool:
        """True when ``user_id`` is already a member or the group has room."""
        context = self.get_group_session(str(group_id))
        return str(user_id) in context.members or len(context.members) < context.max_members

    def add_member(self, group_id: str, user_id: str) -> bool:
        """Add a member. Returns False when the group is full."""
        group_id, user_id = str(group_id), str(user_id)
        context = self.get_group_session(group_id)

        if not self.can_add_member(group_id, user_id):
            logger.warning(
                "Group %s reached max members (%d); rejecting %s",
                group_id,
                context.max_members,
                user_id,
            )
            return False

        context.members.add(user_id)
        context.updated_at = self._clock()
        self._user_groups.setdefault(user_id, set()).add(group_id)
        logger.debug("User %s joined group %s", user_id, group_id)
        return True

    def remove_member(self, group_id: str, user_id: str) -> bool:
        group_id, user_id = str(group_id), str(user_id)
        context = self._peek(group_id)
        if context is None or user_id not in context.members:
            return False

        context.members.discard(user_id)
        context.updated_at = self._clock()

        groups = self._user_groups.get(user_id)
        if groups is not None:
            groups.discard(group_id)
            if not groups:
                del self._user_groups[user_id]

        logger.debug("User %s left group %s", user_id, group_id)
        return True

    def get_user_groups(self, user_id: str) -> set[str]:
        return set(self._user_groups.get(str(user_id), set()))

    def get_group_members(self, group_id: str) -> list[str]:
        context = self._peek(group_id)
        return sorted(context.members) if context else []

    def get_group_member_count(self, group_id: str) -> int:
        context = self._peek(group_id)
        return len(context.members) if context else 0

    # --- Messages ---

    def add_group_message(
        self,
        group_id: str,
        role: MessageRole,
        content: str,
        sender_id: str,
        sender_name: Optional[str] = None,
    ) -> GroupMessage:
        """Append a message to both the shared and the group-specific list."""
        message = GroupMessage(
            role=role,
            content=content,
            sender_id=str(sender_id),
            sender_name=sender_name or str(sender_id),
        )
        context = self._engine.add_message(group_key(str(group_id)), message)
        context.group_messages.append(message)
        context.trim_history()
        return message

    def clear_group_history(self, group_id: str) -> bool:
        context = self._peek(group_id)
        if context is None:
            return False

        context.messages.clear()
        context.group_messages.clear()
        context.updated_at = self._clock()
        logger.info("Cleared history of group %s", group_id)
        return True

    def get_recent_group_messages(
        self, group_id: str, limit: int = GroupDefaults.RECENT_MESSAGES_LIMIT
    ) -> list[GroupMessage]:
        context = self._peek(group_id)
        if context is None or limit <= 0:
            return []
        return list(context.group_messages[-limit:])

    # --- Persona & shared context ---

    def set_group_persona(self, group_id: str, persona: str) -> None:
        self._engine.set_persona(group_key(str(group_id)), persona)
        logger.info("Group %s persona set to %s", group_id, persona)

    def get_group_persona(self, group_id: str) -> str:
        return self._engine.get_persona(group_key(str(group_id)))

    def set_group_shared_context(self, group_id: str, enabled: bool) -> None:
        context = self.get_group_session(group_id)
        context.enable_shared_context = enabled
        context.updated_at = self._clock()
        logger.info("Group %s shared context %s", group_id, "enabled" if enabled else "disabled")

    def is_group_shared_context_enabled(self, group_id: str) -> bool:
        context = self._peek(group_id)
        return context.enable_shared_context if context else True

    def build_group_context_messages(
        self, group_id: str, system_prompt: str, user_message: str
    ) -> list[ChatMessage]:
        context = self.get_group_session(group_id)
        include_history = self.config.enable_context and context.enable_shared_context
        return self._engine.build_context_messages(
            group_key(str(group_id)),
            system_prompt,
            user_message,
            include_history=include_history,
        )

    # --- Statistics ---

    def get_group_message_count(self, group_id: str) -> int:
        context = self._peek(group_id)
        return len(context.messages) if context else 0

    def get_group_stats(self, group_id: str) -> GroupStats:
        context = self.get_group_session(group_id)
        return GroupStats(
            group_id=context.group_id,
            group_name=context.group_name,
            message_count=len(context.messages),
            member_count=len(context.members),
            total_tokens=context.total_tokens,
            created_at=context.created_at,
            updated_at=context.updated_at,
            persona=context.persona,
            enable_shared_context=context.enable_shared_context,
        )
