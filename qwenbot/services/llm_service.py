"""Completion service for the DashScope OpenAI-compatible endpoint.

This module wraps the synchronous openai client, runs it off the event loop
and converts every failure into a typed ``APIException``. It also owns the
model registry and the region switch.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional, Union

from openai import OpenAI

from qwenbot.config import ProviderConfig
from qwenbot.constants import REGION_ALIASES, REGION_BASE_URLS, LLMDefaults, ModelNames, Region
from qwenbot.exceptions import APIException
from qwenbot.services.context_engine import ChatMessage
from qwenbot.services.error_handler import FailureKind, classify_error, to_api_exception

logger = logging.getLogger(__name__)

_RETRYABLE = {FailureKind.RATE_LIMITED, FailureKind.SERVER_ERROR, FailureKind.TIMEOUT}


@dataclass(frozen=True)
class CompletionParams:
    """Sampling parameters for one completion call."""

    temperature: float = LLMDefaults.TEMPERATURE
    max_tokens: int = LLMDefaults.MAX_TOKENS
    model: Optional[str] = None


@dataclass
class ModelInfo:
    name: str
    description: str = ""
    max_tokens: int = LLMDefaults.MAX_TOKENS


PRESET_MODELS: dict[str, ModelInfo] = {
    "qwen-turbo": ModelInfo("qwen-turbo", "快速模型，适合实时对话", 2000),
    "qwen-plus": ModelInfo("qwen-plus", "平衡模型，推荐使用", 2000),
    "qwen-max": ModelInfo("qwen-max", "高性能模型，适合复杂任务", 2000),
    "qwen-long": ModelInfo("qwen-long", "长文本模型，支持更长的输入", 4000),
}


class ModelRegistry:
    """Known models and the one currently used for completions."""

    def __init__(self, names: list[str], current: str = ModelNames.DEFAULT) -> None:
        self._models: dict[str, ModelInfo] = {}
        for name in names:
            preset = PRESET_MODELS.get(name)
            self._models[name] = replace(preset) if preset else ModelInfo(name)
        if current not in self._models:
            self._models[current] = ModelInfo(current)
        self._current = current

    @property
    def current(self) -> str:
        return self._current

    def list_models(self) -> list[ModelInfo]:
        return list(self._models.values())

    def get(self, name: str) -> Optional[ModelInfo]:
        return self._models.get(name)

    def switch(self, name: str) -> bool:
        if name not in self._models:
            return False
        self._current = name
        logger.info("Current model switched to %s", name)
        return True

    def add(self, model: ModelInfo) -> bool:
        if model.name in self._models:
            return False
        self._models[model.name] = model
        return True

    def remove(self, name: str) -> bool:
        """Remove a model. The current model cannot be removed."""
        if name == self._current:
            return False
        return self._models.pop(name, None) is not None

    def format_list(self) -> str:
        lines = []
        for model in self._models.values():
            marker = "✓ " if model.name == self._current else "  "
            lines.append(f"{marker}{model.name} - {model.description or model.name}")
        return "\n".join(lines)


def resolve_region(raw: str) -> Optional[Region]:
    if not raw:
        return None
    return REGION_ALIASES.get(raw.strip().lower())


class LLMService:
    """Async facade over the OpenAI-compatible chat completions API."""

    def __init__(
        self,
        config: ProviderConfig,
        models: Optional[ModelRegistry] = None,
        client_factory: Callable[..., Any] = OpenAI,
    ) -> None:
        """Initialize the completion service.

        Args:
            config: Provider connection settings.
            models: Model registry; defaults to the configured model only.
            client_factory: Builds the sync client; tests inject a fake.
        """
        self.config = config
        self.models = models or ModelRegistry([config.model], config.model)
        self._client_factory = client_factory
        self.client = self._create_client()
        logger.info(
            "Completion client ready (region=%s, model=%s)", config.region.value, self.models.current
        )

    def _create_client(self) -> Any:
        # SDK retries off; complete() retries by failure kind.
        return self._client_factory(
            api_key=self.config.api_key,
            base_url=self.config.base_url,
            timeout=self.config.request_timeout,
            max_retries=0,
        )

    # --- Region ---

    @property
    def region(self) -> Region:
        return self.config.region

    def switch_region(self, raw: str) -> Optional[Region]:
        """Switch to ``beijing`` or ``singapore`` (``intl``). Returns None if unknown."""
        region = resolve_region(raw)
        if region is None:
            return None

        self.config = replace(self.config, region=region, base_url=REGION_BASE_URLS[region])
        self.client = self._create_client()
        logger.info("Switched region to %s (%s)", region.value, self.config.base_url)
        return region

    # --- Completion ---

    def _backoff(self, attempt: int) -> float:
        return min(self.config.retry_backoff_base**attempt, self.config.retry_backoff_max)

    def _call(self, payload: list[dict[str, str]], params: CompletionParams, model: str) -> Any:
        return self.client.chat.completions.create(
            model=model,
            messages=payload,
            temperature=params.temperature,
            max_tokens=params.max_tokens,
        )

    @staticmethod
    def _extract_text(response: Any) -> str:
        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError):
            content = None
        if not content:
            raise APIException(
                "Empty response from provider",
                kind=FailureKind.UNKNOWN,
                details={"response": str(response)[:200]},
            )
        return content

    async def complete(
        self,
        messages: list[Union[ChatMessage, dict[str, str]]],
        params: Optional[CompletionParams] = None,
    ) -> str:
        """Send ``messages`` and return the reply text.

        Rate-limit, server and timeout failures are retried with exponential
        backoff up to ``max_retries`` times. Raises a typed ``APIException``
        carrying the ``FailureKind`` when the call finally fails.
        """
        params = params or CompletionParams()
        model = params.model or self.models.current
        payload = [m.to_api() if isinstance(m, ChatMessage) else dict(m) for m in messages]
        attempts = max(self.config.max_retries, 0) + 1

        for attempt in range(1, attempts + 1):
            try:
                response = await asyncio.wait_for(
                    asyncio.to_thread(self._call, payload, params, model),
                    timeout=self.config.request_timeout,
                )
                return self._extract_text(response)
            except APIException:
                raise
            except Exception as e:
                kind = classify_error(e)
                if kind not in _RETRYABLE or attempt >= attempts:
                    raise to_api_exception(e, context=f"complete/{model}") from e

                delay = self._backoff(attempt)
                logger.warning(
                    "Completion failed (%s, attempt %d/%d); retrying in %.1fs",
                    kind.value,
                    attempt,
                    attempts,
                    delay,
                )
                await asyncio.sleep(delay)

        raise APIException("Completion retries exhausted", kind=FailureKind.UNKNOWN)
