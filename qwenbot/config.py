"""Configuration loader for QwenBot."""

import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from qwenbot.constants import (
    REGION_ALIASES,
    REGION_BASE_URLS,
    APITimeout,
    CacheDefaults,
    ContextDefaults,
    GroupDefaults,
    LLMDefaults,
    ModelNames,
    PersonaDefaults,
    PersonaVariant,
    Region,
    RetryConfig,
)

# --- Load Environment & Default Configuration ---
# Only the project-root .env is loaded; find_dotenv is not used.
_dotenv_path = Path(__file__).resolve().parent.parent / ".env"
if _dotenv_path.exists():
    _ = load_dotenv(_dotenv_path)

logger = logging.getLogger(__name__)


def _resolve_log_level(raw_level: str) -> int:
    """Return a logging level constant from a string, defaulting to INFO."""

    if not raw_level:
        return logging.INFO

    normalized = raw_level.strip().upper()

    level = getattr(logging, normalized, None)
    if isinstance(level, int) and level > 0:
        return level

    logger.warning("Unknown LOG_LEVEL '%s'; defaulting to INFO", raw_level)
    return logging.INFO


@dataclass
class ProviderConfig:
    """Connection settings for the completion provider."""

    api_key: Optional[str] = None
    base_url: str = REGION_BASE_URLS[Region.BEIJING]
    region: Region = Region.BEIJING
    model: str = ModelNames.DEFAULT
    max_retries: int = RetryConfig.MAX_RETRIES
    request_timeout: float = APITimeout.REQUEST
    retry_backoff_base: float = RetryConfig.BACKOFF_BASE
    retry_backoff_max: float = RetryConfig.BACKOFF_MAX


@dataclass
class ContextConfig:
    """Bounds for per-user and per-group conversation contexts."""

    enable_context: bool = True
    max_context_tokens: int = ContextDefaults.MAX_CONTEXT_TOKENS
    max_history_length: int = ContextDefaults.MAX_HISTORY_LENGTH
    context_timeout: float = ContextDefaults.TIMEOUT_SECONDS
    session_retention: float = ContextDefaults.RETENTION_SECONDS
    cleanup_interval: float = ContextDefaults.CLEANUP_INTERVAL_SECONDS
    group_max_members: int = GroupDefaults.MAX_MEMBERS


@dataclass
class CacheConfig:
    """TTL tiers and capacity for the namespaced cache."""

    persona_ttl: float = CacheDefaults.PERSONA_TTL
    conversation_ttl: float = CacheDefaults.CONVERSATION_TTL
    api_response_ttl: float = CacheDefaults.API_RESPONSE_TTL
    max_size: int = CacheDefaults.MAX_SIZE
    cleanup_interval: float = CacheDefaults.CLEANUP_INTERVAL


@dataclass
class AppConfig:
    """
    Application configuration.

    Holds every setting read from the environment at startup. Grouped views
    are exposed through the ``get_*_config`` helpers.
    """

    # Discord
    discord_token: str
    command_prefix: str = "!"

    # Provider
    dashscope_api_key: Optional[str] = None
    region: Region = Region.BEIJING
    base_url: Optional[str] = None
    model_name: str = ModelNames.DEFAULT
    available_models: list[str] = field(
        default_factory=lambda: ["qwen-plus", "qwen-turbo", "qwen-max"]
    )
    temperature: float = LLMDefaults.TEMPERATURE
    max_tokens: int = LLMDefaults.MAX_TOKENS
    api_max_retries: int = RetryConfig.MAX_RETRIES
    api_request_timeout: float = APITimeout.REQUEST
    api_retry_backoff_base: float = RetryConfig.BACKOFF_BASE
    api_retry_backoff_max: float = RetryConfig.BACKOFF_MAX

    # Personas
    persona_variant: PersonaVariant = PersonaVariant.SIMPLE
    default_persona: str = PersonaDefaults.DEFAULT_NAME
    enable_personas: bool = True
    enable_custom_personas: bool = True

    # Context
    enable_context: bool = True
    max_context_tokens: int = ContextDefaults.MAX_CONTEXT_TOKENS
    max_history_length: int = ContextDefaults.MAX_HISTORY_LENGTH
    context_timeout: float = ContextDefaults.TIMEOUT_SECONDS
    session_retention: float = ContextDefaults.RETENTION_SECONDS
    cleanup_interval: float = ContextDefaults.CLEANUP_INTERVAL_SECONDS
    group_max_members: int = GroupDefaults.MAX_MEMBERS

    # Cache
    persona_ttl: float = CacheDefaults.PERSONA_TTL
    conversation_ttl: float = CacheDefaults.CONVERSATION_TTL
    api_response_ttl: float = CacheDefaults.API_RESPONSE_TTL
    max_cache_size: int = CacheDefaults.MAX_SIZE
    cache_cleanup_interval: float = CacheDefaults.CLEANUP_INTERVAL

    # Persistence
    enable_persistence: bool = False
    data_dir: str = "data"

    # Logging
    log_level: int = logging.INFO

    def get_provider_config(self) -> ProviderConfig:
        """Get provider configuration, resolving the base URL from the region."""
        return ProviderConfig(
            api_key=self.dashscope_api_key,
            base_url=self.base_url or REGION_BASE_URLS[self.region],
            region=self.region,
            model=self.model_name,
            max_retries=self.api_max_retries,
            request_timeout=self.api_request_timeout,
            retry_backoff_base=self.api_retry_backoff_base,
            retry_backoff_max=self.api_retry_backoff_max,
        )

    def get_context_config(self) -> ContextConfig:
        """Get conversation context configuration."""
        return ContextConfig(
            enable_context=self.enable_context,
            max_context_tokens=self.max_context_tokens,
            max_history_length=self.max_history_length,
            context_timeout=self.context_timeout,
            session_retention=self.session_retention,
            cleanup_interval=self.cleanup_interval,
            group_max_members=self.group_max_members,
        )

    def get_cache_config(self) -> CacheConfig:
        """Get cache configuration."""
        return CacheConfig(
            persona_ttl=self.persona_ttl,
            conversation_ttl=self.conversation_ttl,
            api_response_ttl=self.api_response_ttl,
            max_size=self.max_cache_size,
            cleanup_interval=self.cache_cleanup_interval,
        )


def _first_nonempty_env(*names: str) -> Optional[str]:
    for name in names:
        value = os.environ.get(name)
        if value and value.strip():
            return value.strip()
    return None


def _parse_float_env(name: str, default: float) -> float:
    """Parse float from environment variable with fallback."""
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("%s is not a number; using default %s", name, default)
        return default


def _parse_int_env(name: str, default: int) -> int:
    """Parse int from environment variable with fallback."""
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("%s is not an integer; using default %s", name, default)
        return default


def _parse_bool_env(name: str, default: bool = False) -> bool:
    """Parse boolean from environment variable with fallback."""
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("true", "1", "yes", "on")


def _parse_region(raw: Optional[str]) -> Region:
    if not raw or not raw.strip():
        return Region.BEIJING
    region = REGION_ALIASES.get(raw.strip().lower())
    if region is None:
        logger.warning("Unknown DASHSCOPE_REGION '%s'; defaulting to beijing", raw)
        return Region.BEIJING
    return region


def _parse_persona_variant(raw: Optional[str]) -> PersonaVariant:
    if not raw or not raw.strip():
        return PersonaVariant.SIMPLE
    try:
        return PersonaVariant(raw.strip().lower())
    except ValueError:
        logger.warning("Unknown PERSONA_VARIANT '%s'; defaulting to simple", raw)
        return PersonaVariant.SIMPLE


def _parse_model_list(raw: Optional[str], current: str) -> list[str]:
    """Parse comma-separated model names, always including the current model."""
    models: list[str] = []
    if raw:
        for name in raw.split(","):
            stripped = name.strip()
            if stripped and stripped not in models:
                models.append(stripped)
    if not models:
        models = ["qwen-plus", "qwen-turbo", "qwen-max"]
    if current not in models:
        models.insert(0, current)
    return models


def load_config() -> AppConfig:
    """Load configuration from environment variables."""
    discord_token = os.environ.get("DISCORD_TOKEN")
    api_key = _first_nonempty_env("DASHSCOPE_API_KEY", "QWEN_API_KEY")

    # Required keys
    if not discord_token:
        logger.error("Error: DISCORD_TOKEN environment variable is not set.")
        sys.exit(1)

    if not api_key:
        logger.error("Error: DASHSCOPE_API_KEY environment variable is not set.")
        sys.exit(1)

    model_name = _first_nonempty_env("QWEN_MODEL") or ModelNames.DEFAULT

    return AppConfig(
        discord_token=discord_token,
        command_prefix=os.environ.get("COMMAND_PREFIX", "!"),
        dashscope_api_key=api_key,
        region=_parse_region(os.environ.get("DASHSCOPE_REGION")),
        base_url=_first_nonempty_env("DASHSCOPE_BASE_URL"),
        model_name=model_name,
        available_models=_parse_model_list(os.environ.get("QWEN_MODELS"), model_name),
        temperature=_parse_float_env("TEMPERATURE", LLMDefaults.TEMPERATURE),
        max_tokens=_parse_int_env("MAX_TOKENS", LLMDefaults.MAX_TOKENS),
        api_max_retries=_parse_int_env("API_MAX_RETRIES", RetryConfig.MAX_RETRIES),
        api_request_timeout=_parse_float_env("API_REQUEST_TIMEOUT", APITimeout.REQUEST),
        persona_variant=_parse_persona_variant(os.environ.get("PERSONA_VARIANT")),
        default_persona=_first_nonempty_env("DEFAULT_PERSONA") or PersonaDefaults.DEFAULT_NAME,
        enable_personas=_parse_bool_env("ENABLE_PERSONAS", default=True),
        enable_custom_personas=_parse_bool_env("ENABLE_CUSTOM_PERSONAS", default=True),
        enable_context=_parse_bool_env("ENABLE_CONTEXT", default=True),
        max_context_tokens=_parse_int_env(
            "MAX_CONTEXT_TOKENS", ContextDefaults.MAX_CONTEXT_TOKENS
        ),
        max_history_length=_parse_int_env(
            "MAX_HISTORY_LENGTH", ContextDefaults.MAX_HISTORY_LENGTH
        ),
        context_timeout=_parse_float_env("CONTEXT_TIMEOUT", ContextDefaults.TIMEOUT_SECONDS),
        session_retention=_parse_float_env(
            "SESSION_RETENTION", ContextDefaults.RETENTION_SECONDS
        ),
        cleanup_interval=_parse_float_env(
            "CLEANUP_INTERVAL", ContextDefaults.CLEANUP_INTERVAL_SECONDS
        ),
        group_max_members=_parse_int_env("GROUP_MAX_MEMBERS", GroupDefaults.MAX_MEMBERS),
        persona_ttl=_parse_float_env("PERSONA_CACHE_TTL", CacheDefaults.PERSONA_TTL),
        conversation_ttl=_parse_float_env(
            "CONVERSATION_CACHE_TTL", CacheDefaults.CONVERSATION_TTL
        ),
        api_response_ttl=_parse_float_env(
            "API_RESPONSE_CACHE_TTL", CacheDefaults.API_RESPONSE_TTL
        ),
        max_cache_size=_parse_int_env("MAX_CACHE_SIZE", CacheDefaults.MAX_SIZE),
        cache_cleanup_interval=_parse_float_env(
            "CACHE_CLEANUP_INTERVAL", CacheDefaults.CLEANUP_INTERVAL
        ),
        enable_persistence=_parse_bool_env("ENABLE_PERSISTENCE"),
        data_dir=os.environ.get("DATA_DIR", "data"),
        log_level=_resolve_log_level(os.environ.get("LOG_LEVEL", "INFO")),
    )
