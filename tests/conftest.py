"""Pytest configuration and fixtures for qwenbot tests."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from qwenbot.config import AppConfig, CacheConfig, ContextConfig, ProviderConfig
from qwenbot.constants import PersonaVariant
from qwenbot.services.cache_manager import CacheManager
from qwenbot.services.conversation_store import ConversationStore
from qwenbot.services.group_session import GroupSessionManager
from qwenbot.services.performance import PerformanceMonitor
from qwenbot.services.persistence import InMemoryPersistence
from qwenbot.services.persona_catalog import PersonaCatalog
from qwenbot.services.persona_manager import PersonaManager


class FakeClock:
    """Manually advanced clock returning aware UTC datetimes."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def context_config():
    return ContextConfig(
        enable_context=True,
        max_context_tokens=4000,
        max_history_length=10,
        context_timeout=3600,
        session_retention=7 * 24 * 3600,
        cleanup_interval=3600,
        group_max_members=3,
    )


@pytest.fixture
def cache_config():
    return CacheConfig(
        persona_ttl=3600,
        conversation_ttl=1800,
        api_response_ttl=300,
        max_size=3,
        cleanup_interval=300,
    )


@pytest.fixture
def provider_config():
    return ProviderConfig(
        api_key="test-key",
        model="qwen-plus",
        max_retries=2,
        request_timeout=5.0,
        retry_backoff_base=0.0,
        retry_backoff_max=0.0,
    )


@pytest.fixture
def app_config():
    return AppConfig(
        discord_token="test-token",
        dashscope_api_key="test-key",
        persona_variant=PersonaVariant.SIMPLE,
    )


@pytest.fixture
def catalog():
    return PersonaCatalog(PersonaVariant.SIMPLE)


@pytest.fixture
def persona_manager(catalog):
    return PersonaManager(catalog, "default")


@pytest.fixture
def persistence():
    return InMemoryPersistence()


@pytest.fixture
def conversation_store(context_config, clock, persistence):
    return ConversationStore(context_config, "default", persistence=persistence, clock=clock)


@pytest.fixture
def group_manager(context_config, clock):
    return GroupSessionManager(context_config, "default", clock=clock)


@pytest.fixture
def cache_manager(cache_config, clock):
    return CacheManager(cache_config, clock=clock)


@pytest.fixture
def performance_monitor(clock):
    return PerformanceMonitor(clock=clock)


@pytest.fixture
def mock_llm_service():
    llm = MagicMock()
    llm.complete = AsyncMock(return_value="模型回复")
    return llm


@pytest.fixture
def mock_ctx():
    ctx = MagicMock()
    ctx.author.id = 42
    ctx.author.display_name = "Alice"
    ctx.guild = None
    ctx.send = AsyncMock()
    return ctx
