"""Persona templates, built-in catalogs and alias resolution."""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from qwenbot.constants import LLMDefaults, PersonaDefaults, PersonaVariant
from qwenbot.exceptions import PersonaValidationException
from qwenbot.prompts import COMPLEX_PERSONAS, PERSONA_ALIASES, SIMPLE_PERSONAS

logger = logging.getLogger(__name__)


@dataclass
class PersonaTemplate:
    """A persona definition used to build the system prompt and sampling params.

    Attributes:
        name: Unique canonical name across built-in and custom personas.
        description: Short display name.
        system_prompt: System message sent ahead of the conversation.
        temperature: Sampling temperature, clamped to 0..2.
        max_tokens: Maximum completion tokens.
        greeting: First line shown when the persona is selected.
        personality_traits: Ordered trait labels for display.
        avatar: Optional avatar URL.
    """

    name: str
    description: str = ""
    system_prompt: str = ""
    temperature: float = PersonaDefaults.CUSTOM_TEMPERATURE
    max_tokens: int = PersonaDefaults.CUSTOM_MAX_TOKENS
    greeting: str = ""
    personality_traits: list[str] = field(default_factory=list)
    avatar: Optional[str] = None

    def __post_init__(self) -> None:
        self.temperature = min(
            max(float(self.temperature), LLMDefaults.TEMPERATURE_MIN),
            LLMDefaults.TEMPERATURE_MAX,
        )
        self.personality_traits = list(self.personality_traits)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable projection."""
        data = {
            "name": self.name,
            "description": self.description,
            "system_prompt": self.system_prompt,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "greeting": self.greeting,
            "personality_traits": list(self.personality_traits),
        }
        if self.avatar:
            data["avatar"] = self.avatar
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PersonaTemplate":
        """Build a template from a snake_case or camelCase mapping.

        Missing sampling fields fall back to the custom persona defaults.
        """

        def pick(snake: str, camel: str, default: Any) -> Any:
            if snake in data:
                return data[snake]
            return data.get(camel, default)

        temperature = pick("temperature", "temperature", None)
        if not isinstance(temperature, (int, float)) or isinstance(temperature, bool):
            temperature = PersonaDefaults.CUSTOM_TEMPERATURE

        max_tokens = pick("max_tokens", "maxTokens", None)
        if not isinstance(max_tokens, int) or isinstance(max_tokens, bool):
            max_tokens = PersonaDefaults.CUSTOM_MAX_TOKENS

        traits = pick("personality_traits", "personalityTraits", [])
        if isinstance(traits, str):
            traits = [t.strip() for t in traits.split(",") if t.strip()]

        return cls(
            name=str(data.get("name", "")).strip(),
            description=str(data.get("description", "")),
            system_prompt=str(pick("system_prompt", "systemPrompt", "")),
            temperature=temperature,
            max_tokens=max_tokens,
            greeting=str(data.get("greeting", "")),
            personality_traits=list(traits or []),
            avatar=data.get("avatar") or None,
        )


def validate_template(template: PersonaTemplate) -> None:
    """Raise ``PersonaValidationException`` when a template is unusable."""
    if not template.name or not template.name.strip():
        raise PersonaValidationException("Persona name must not be empty")
    if not isinstance(template.system_prompt, str):
        raise PersonaValidationException(
            "Persona system prompt must be text", {"name": template.name}
        )
    if not LLMDefaults.TEMPERATURE_MIN <= template.temperature <= LLMDefaults.TEMPERATURE_MAX:
        raise PersonaValidationException(
            "Persona temperature out of range",
            {"name": template.name, "temperature": template.temperature},
        )
    if template.max_tokens <= 0:
        raise PersonaValidationException(
            "Persona max_tokens must be positive",
            {"name": template.name, "max_tokens": template.max_tokens},
        )


def _builtin_table(variant: PersonaVariant) -> list[dict]:
    if variant == PersonaVariant.COMPLEX:
        return COMPLEX_PERSONAS
    return SIMPLE_PERSONAS


class PersonaCatalog:
    """Built-in and custom persona storage with alias lookup.

    The variant is chosen once at construction; built-ins never change
    afterwards. Custom personas live beside them and share the name space.
    """

    def __init__(self, variant: PersonaVariant = PersonaVariant.SIMPLE) -> None:
        self.variant = PersonaVariant(variant)
        self._builtin: dict[str, PersonaTemplate] = {}
        self._custom: dict[str, PersonaTemplate] = {}
        self._aliases: dict[str, str] = {}

        for row in _builtin_table(self.variant):
            template = PersonaTemplate.from_dict(row)
            self._builtin[template.name] = template

        self._build_aliases()
        logger.debug(
            "Loaded %d built-in personas (%s variant)", len(self._builtin), self.variant.value
        )

    def _build_aliases(self) -> None:
        for alias, canonical in PERSONA_ALIASES.items():
            self._aliases[alias.lower()] = canonical
            self._aliases[alias] = canonical

        for name in self._builtin:
            self._aliases[name.lower()] = name
            self._aliases[name] = name

    # --- Lookup ---

    def get_exact(self, name: str) -> Optional[PersonaTemplate]:
        """Return a persona by canonical name, built-in first."""
        return self._builtin.get(name) or self._custom.get(name)

    def resolve(self, name_or_alias: str) -> Optional[PersonaTemplate]:
        """Resolve a canonical name or alias. Returns None when nothing matches."""
        if not name_or_alias:
            return None

        persona = self.get_exact(name_or_alias)
        if persona:
            return persona

        canonical = self._aliases.get(name_or_alias) or self._aliases.get(name_or_alias.lower())
        if canonical:
            return self.get_exact(canonical)
        return None

    def list_aliases(self, canonical: str) -> list[str]:
        """Return the canonical name, its lowercase form, then every other alias."""
        aliases = [canonical]
        lowered = canonical.lower()
        if lowered != canonical and self._aliases.get(lowered) == canonical:
            aliases.append(lowered)
        for alias, target in self._aliases.items():
            if target == canonical and alias not in aliases:
                aliases.append(alias)
        return aliases

    # --- Membership ---

    def is_builtin(self, name: str) -> bool:
        return name in self._builtin

    def is_custom(self, name: str) -> bool:
        return name in self._custom

    def contains(self, name: str) -> bool:
        return name in self._builtin or name in self._custom

    def add_custom(self, template: PersonaTemplate) -> bool:
        if self.contains(template.name):
            return False
        self._custom[template.name] = template
        return True

    def remove_custom(self, name: str) -> bool:
        if name in self._builtin:
            return False
        return self._custom.pop(name, None) is not None

    def builtin(self) -> list[PersonaTemplate]:
        return list(self._builtin.values())

    def custom(self) -> list[PersonaTemplate]:
        return list(self._custom.values())
