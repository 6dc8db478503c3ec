"""Constants for QwenBot.

This module centralizes magic numbers, endpoint tables and namespaced
defaults used throughout the codebase.
"""

from enum import Enum


# =============================================================================
# Provider Configuration
# =============================================================================


class APITimeout:
    """API timeout constants (in seconds)."""

    REQUEST = 120.0


class RetryConfig:
    """API retry configuration."""

    MAX_RETRIES = 2
    BACKOFF_BASE = 2.0
    BACKOFF_MAX = 32.0


class Region(str, Enum):
    """DashScope deployment regions."""

    BEIJING = "beijing"
    SINGAPORE = "singapore"


REGION_ALIASES = {
    "beijing": Region.BEIJING,
    "singapore": Region.SINGAPORE,
    "intl": Region.SINGAPORE,
}

REGION_BASE_URLS = {
    Region.BEIJING: "https://dashscope.aliyuncs.com/compatible-mode/v1",
    Region.SINGAPORE: "https://dashscope-intl.aliyuncs.com/compatible-mode/v1",
}

REGION_DISPLAY_NAMES = {
    Region.BEIJING: "北京 / Beijing",
    Region.SINGAPORE: "新加坡 / Singapore",
}


class ModelNames:
    """Default model names."""

    DEFAULT = "qwen-plus"


# =============================================================================
# LLM Configuration
# =============================================================================


class LLMDefaults:
    """Default completion parameters."""

    TEMPERATURE = 0.7
    MAX_TOKENS = 2000
    TEMPERATURE_MIN = 0.0
    TEMPERATURE_MAX = 2.0


# =============================================================================
# Persona Configuration
# =============================================================================


class PersonaDefaults:
    """Persona defaults."""

    DEFAULT_NAME = "default"
    FALLBACK_NAME = "default"
    CUSTOM_TEMPERATURE = 0.7
    CUSTOM_MAX_TOKENS = 1000
    CUSTOM_MAX_TOKENS_MIN = 100
    CUSTOM_MAX_TOKENS_MAX = 4000


class PersonaVariant(str, Enum):
    """Built-in persona catalog variants."""

    SIMPLE = "simple"
    COMPLEX = "complex"


# =============================================================================
# Conversation Context
# =============================================================================


class ContextDefaults:
    """Conversation context bounds."""

    MAX_CONTEXT_TOKENS = 4000
    MAX_HISTORY_LENGTH = 10
    TIMEOUT_SECONDS = 60 * 60
    RETENTION_SECONDS = 7 * 24 * 60 * 60
    CLEANUP_INTERVAL_SECONDS = 60 * 60


class ConversationKey:
    """Conversation key format templates."""

    USER = "{user_id}"
    GROUP = "group_{group_id}"


class GroupDefaults:
    """Group session defaults."""

    MAX_MEMBERS = 100
    NAME = "Group_{group_id}"
    RECENT_MESSAGES_LIMIT = 10


# =============================================================================
# Cache Configuration
# =============================================================================


class CacheNamespace:
    """Cache namespaces with dedicated TTL tiers."""

    PERSONA = "persona"
    CONVERSATION = "conversation"
    API_RESPONSE = "api_response"


class CacheDefaults:
    """Namespaced cache defaults (seconds)."""

    PERSONA_TTL = 60 * 60
    CONVERSATION_TTL = 30 * 60
    API_RESPONSE_TTL = 5 * 60
    MAX_SIZE = 1000
    CLEANUP_INTERVAL = 5 * 60
    ESTIMATED_BYTES_PER_ITEM = 100


# =============================================================================
# Performance Monitoring
# =============================================================================


class PerformanceThresholds:
    """Performance monitor thresholds (milliseconds unless noted)."""

    MAX_METRICS_PER_NAME = 1000
    SLOW_CALL_MS = 5000
    WARN_AVERAGE_MS = 3000
    WARN_MAX_MS = 10000
    WARN_SUCCESS_RATE = 0.9
    WARN_MIN_CALLS = 10
    RETENTION_SECONDS = 60 * 60


# =============================================================================
# Message Processing
# =============================================================================


class MessageLimits:
    """Discord message limits."""

    MAX_CONTENT_LENGTH = 2000
    MAX_SPLIT_LENGTH = 1900


class PersistenceNamespace:
    """Persistence namespaces."""

    CONVERSATIONS = "conversations"
    USER_PREFERENCES = "user_preferences"
    CUSTOM_PERSONAS = "custom_personas"
