"""Services for QwenBot: context, personas, caching and the completion provider."""

from qwenbot.services.cache_manager import CacheManager, cached_call
from qwenbot.services.context_engine import ChatMessage, ContextEngine, MessageRole
from qwenbot.services.conversation_store import ConversationStore
from qwenbot.services.error_handler import ErrorHandler, FailureKind, classify_error
from qwenbot.services.group_session import GroupSessionManager
from qwenbot.services.llm_service import CompletionParams, LLMService, ModelRegistry
from qwenbot.services.performance import PerformanceMonitor, timed
from qwenbot.services.persona_catalog import PersonaCatalog, PersonaTemplate
from qwenbot.services.persona_manager import PersonaManager

__all__ = [
    # Cache
    "CacheManager",
    "cached_call",
    # Context
    "ChatMessage",
    "ContextEngine",
    "MessageRole",
    "ConversationStore",
    "GroupSessionManager",
    # Errors
    "ErrorHandler",
    "FailureKind",
    "classify_error",
    # Completion
    "CompletionParams",
    "LLMService",
    "ModelRegistry",
    # Performance
    "PerformanceMonitor",
    "timed",
    # Personas
    "PersonaCatalog",
    "PersonaTemplate",
    "PersonaManager",
]
