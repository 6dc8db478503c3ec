"""Shared conversation context engine.

Both the 1:1 conversation store and the group session layer keep a map of
contexts with the same lifecycle: read-triggered recreation after an idle
timeout, a bounded message list, and token-budgeted prompt assembly. This
module implements that lifecycle once, parameterized by a context factory.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar

from qwenbot.constants import ContextDefaults
from qwenbot.services.token_estimator import estimate_message_tokens, estimate_tokens
from qwenbot.utils import parse_timestamp, utcnow

logger = logging.getLogger(__name__)


class MessageRole(str, Enum):
    """Roles understood by the completion API."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class ChatMessage:
    """A single message in a conversation.

    ``tokens`` is computed when the message is stored and reused afterwards.
    """

    role: MessageRole
    content: str
    timestamp: Optional[datetime] = None
    tokens: Optional[int] = None

    def __post_init__(self) -> None:
        self.role = MessageRole(self.role)

    def token_count(self) -> int:
        if self.tokens is None:
            return estimate_tokens(self.content)
        return self.tokens

    def to_api(self) -> dict[str, str]:
        """Project to the ``{role, content}`` shape sent to the provider."""
        return {"role": self.role.value, "content": self.content}

    def to_dict(self) -> dict[str, Any]:
        return {
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "tokens": self.tokens,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChatMessage":
        return cls(
            role=MessageRole(data["role"]),
            content=data.get("content", ""),
            timestamp=parse_timestamp(data.get("timestamp")),
            tokens=data.get("tokens"),
        )


@dataclass
class GroupMessage(ChatMessage):
    """A message posted to a group conversation, tagged with its sender."""

    sender_id: str = ""
    sender_name: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["sender_id"] = self.sender_id
        data["sender_name"] = self.sender_name
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GroupMessage":
        return cls(
            role=MessageRole(data["role"]),
            content=data.get("content", ""),
            timestamp=parse_timestamp(data.get("timestamp")),
            tokens=data.get("tokens"),
            sender_id=str(data.get("sender_id", "")),
            sender_name=data.get("sender_name"),
        )


@dataclass
class ConversationContext:
    """History and persona selection for one conversation key.

    Attributes:
        session_id: The conversation key.
        persona: Canonical persona name used for this conversation.
        created_at: When the context was (re)created.
        updated_at: Last mutation time; drives idle expiry.
        max_history_length: Pair bound; at most ``2 * max_history_length``
            messages are kept.
        messages: Chronological message list.
    """

    session_id: str
    persona: str
    created_at: datetime
    updated_at: datetime
    max_history_length: int = ContextDefaults.MAX_HISTORY_LENGTH
    messages: list[ChatMessage] = field(default_factory=list)

    def is_expired(self, now: datetime, timeout: float) -> bool:
        return (now - self.updated_at).total_seconds() > timeout

    def trim_history(self) -> int:
        """Drop the oldest messages beyond the bound. Returns how many were dropped."""
        limit = max(self.max_history_length, 0) * 2
        overflow = len(self.messages) - limit
        if overflow <= 0:
            return 0
        del self.messages[:overflow]
        return overflow

    @property
    def total_tokens(self) -> int:
        return estimate_message_tokens(self.messages)

    @property
    def rounds(self) -> int:
        return sum(1 for message in self.messages if message.role == MessageRole.USER)


@dataclass(frozen=True)
class ConversationStats:
    """Read-only summary of a conversation."""

    message_count: int
    rounds: int
    total_tokens: int
    created_at: datetime
    updated_at: datetime
    persona: str


def truncate_messages(messages: list[ChatMessage], max_tokens: int) -> list[ChatMessage]:
    """Fit ``messages`` into a token budget, newest first.

    Walks backward accumulating token counts and stops at the first message
    that would push the total over ``max_tokens``. The first element (the
    system message) is always kept and is not counted against the budget.
    The newest element is kept even when it alone exceeds ``max_tokens``,
    so the prompt never goes out without the latest user message.
    Chronological order is preserved and no gaps are introduced in the
    kept tail.
    """
    if not messages:
        return []

    total = 0
    tail: list[ChatMessage] = []
    for index in range(len(messages) - 1, 0, -1):
        message = messages[index]
        tokens = message.token_count()
        if total + tokens > max_tokens and tail:
            break
        tail.append(message)
        total += tokens

    tail.reverse()
    return [messages[0]] + tail


C = TypeVar("C", bound=ConversationContext)
ContextFactory = Callable[[str, datetime], C]


class ContextEngine(Generic[C]):
    """Keyed store of conversation contexts.

    Args:
        factory: Builds a fresh context for ``(key, now)``.
        context_type: Entries that are not instances of this type are treated
            as malformed and replaced.
        timeout: Idle seconds after which a read recreates the context.
        max_context_tokens: Budget used by ``build_context_messages``.
        clock: Returns the current aware datetime.
        on_discard: Called with each context removed by expiry, sweep or
            delete, so owners can keep side indexes consistent.
    """

    def __init__(
        self,
        factory: ContextFactory,
        context_type: type = ConversationContext,
        timeout: float = ContextDefaults.TIMEOUT_SECONDS,
        max_context_tokens: int = ContextDefaults.MAX_CONTEXT_TOKENS,
        clock: Callable[[], datetime] = utcnow,
        on_discard: Optional[Callable[[C], None]] = None,
    ) -> None:
        self._factory = factory
        self._context_type = context_type
        self.timeout = timeout
        self.max_context_tokens = max_context_tokens
        self._clock = clock
        self._on_discard = on_discard
        self._contexts: dict[str, Any] = {}

    def now(self) -> datetime:
        return self._clock()

    def _discard(self, context: Any) -> None:
        if self._on_discard is not None and isinstance(context, self._context_type):
            self._on_discard(context)

    # --- Lifecycle ---

    def get_or_create(self, key: str) -> C:
        """Return the context for ``key``, recreating it if missing or stale."""
        context = self._contexts.get(key)
        now = self._clock()

        if context is not None and not isinstance(context, self._context_type):
            logger.warning("Dropping malformed context for key %s", key)
            context = None
        elif context is not None and context.is_expired(now, self.timeout):
            logger.debug("Context %s expired after idle timeout; recreating", key)
            self._discard(context)
            context = None

        if context is None:
            context = self._factory(key, now)
            self._contexts[key] = context
        return context

    def peek(self, key: str) -> Optional[C]:
        """Return the stored context without creating or expiring it."""
        context = self._contexts.get(key)
        if isinstance(context, self._context_type):
            return context
        return None

    def put(self, key: str, context: C) -> None:
        """Install a context, e.g. one restored from persistence."""
        previous = self._contexts.get(key)
        if previous is not None and previous is not context:
            self._discard(previous)
        self._contexts[key] = context

    def delete(self, key: str) -> bool:
        context = self._contexts.pop(key, None)
        if context is None:
            return False
        self._discard(context)
        return True

    def clear_all(self) -> None:
        for context in list(self._contexts.values()):
            self._discard(context)
        self._contexts.clear()

    def count(self) -> int:
        return len(self._contexts)

    def cleanup_expired(self, max_age: Optional[float] = None) -> int:
        """Remove contexts idle longer than ``max_age`` seconds (default: timeout).

        Iterates over a snapshot so concurrent request handling cannot
        corrupt the sweep.
        """
        max_age = self.timeout if max_age is None else max_age
        now = self._clock()
        removed = 0

        for key, context in list(self._contexts.items()):
            if not isinstance(context, self._context_type) or context.is_expired(now, max_age):
                if self._contexts.get(key) is context:
                    del self._contexts[key]
                    self._discard(context)
                    removed += 1

        if removed:
            logger.info("Removed %d expired contexts", removed)
        return removed

    # --- Mutation ---

    def add_message(self, key: str, message: ChatMessage) -> C:
        """Stamp, append and trim. Returns the context."""
        context = self.get_or_create(key)
        now = self._clock()
        message.timestamp = now
        message.tokens = estimate_tokens(message.content)
        context.messages.append(message)
        context.updated_at = now
        context.trim_history()
        return context

    def clear_history(self, key: str) -> C:
        context = self.get_or_create(key)
        context.messages.clear()
        context.updated_at = self._clock()
        return context

    def set_persona(self, key: str, persona: str) -> C:
        context = self.get_or_create(key)
        context.persona = persona
        context.updated_at = self._clock()
        return context

    def get_persona(self, key: str) -> str:
        return self.get_or_create(key).persona

    # --- Prompt assembly ---

    def build_context_messages(
        self,
        key: str,
        system_prompt: str,
        user_message: str,
        include_history: bool = True,
    ) -> list[ChatMessage]:
        """Assemble ``[system, *history, user]`` and fit it to the token budget."""
        context = self.get_or_create(key)
        now = self._clock()

        messages: list[ChatMessage] = [
            ChatMessage(
                MessageRole.SYSTEM,
                system_prompt,
                timestamp=now,
                tokens=estimate_tokens(system_prompt),
            )
        ]
        if include_history:
            messages.extend(context.messages)
        messages.append(
            ChatMessage(
                MessageRole.USER,
                user_message,
                timestamp=now,
                tokens=estimate_tokens(user_message),
            )
        )
        return truncate_messages(messages, self.max_context_tokens)

    # --- Derived values ---

    def total_tokens(self, key: str) -> int:
        return self.get_or_create(key).total_tokens

    def stats(self, key: str) -> ConversationStats:
        context = self.get_or_create(key)
        return ConversationStats(
            message_count=len(context.messages),
            rounds=context.rounds,
            total_tokens=context.total_tokens,
            created_at=context.created_at,
            updated_at=context.updated_at,
            persona=context.persona,
        )
