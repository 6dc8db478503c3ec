"""Per-user persona selection on top of the persona catalog."""

import logging
from typing import Optional

from qwenbot.constants import PersonaDefaults
from qwenbot.services.persona_catalog import PersonaCatalog, PersonaTemplate

logger = logging.getLogger(__name__)


class PersonaManager:
    """Tracks which persona each user has selected.

    Switching a persona here never touches conversation history; callers
    that want a clean slate use ``ChatUseCase.switch_persona_and_reset``.
    """

    def __init__(
        self,
        catalog: PersonaCatalog,
        default_persona: str = PersonaDefaults.DEFAULT_NAME,
    ) -> None:
        self.catalog = catalog
        self.default_persona = default_persona or PersonaDefaults.DEFAULT_NAME
        self._user_states: dict[str, str] = {}

    def get_persona(self, name_or_alias: str) -> Optional[PersonaTemplate]:
        return self.catalog.resolve(name_or_alias)

    def get_current_persona_name(self, user_id: str) -> str:
        return self._user_states.get(str(user_id)) or self.default_persona

    def get_current_persona(self, user_id: str) -> PersonaTemplate:
        """Return the user's persona, falling back to the configured default.

        If the configured default is itself missing the literal ``default``
        template is returned.
        """
        persona = self.catalog.resolve(self.get_current_persona_name(user_id))
        if persona is None:
            persona = self.catalog.resolve(PersonaDefaults.FALLBACK_NAME)
        return persona

    def switch_persona(self, user_id: str, name_or_alias: str) -> bool:
        persona = self.catalog.resolve(name_or_alias)
        if persona is None:
            return False
        # Canonical name, not the alias the user typed.
        self._user_states[str(user_id)] = persona.name
        logger.debug("User %s switched persona to %s", user_id, persona.name)
        return True

    def add_custom_persona(self, template: PersonaTemplate) -> bool:
        """Register a custom persona. Collisions are exact-name only."""
        if not self.catalog.add_custom(template):
            logger.info("Custom persona '%s' rejected: name already exists", template.name)
            return False
        logger.info("Custom persona '%s' added", template.name)
        return True

    def remove_custom_persona(self, name: str) -> bool:
        if self.catalog.is_builtin(name):
            logger.info("Refusing to remove built-in persona '%s'", name)
            return False
        return self.catalog.remove_custom(name)

    def has_persona(self, name: str) -> bool:
        return self.catalog.contains(name)

    def list_all(self) -> list[PersonaTemplate]:
        return self.catalog.builtin() + self.catalog.custom()

    def list_builtin(self) -> list[PersonaTemplate]:
        return self.catalog.builtin()

    def list_custom(self) -> list[PersonaTemplate]:
        return self.catalog.custom()

    def list_aliases(self, canonical: str) -> list[str]:
        return self.catalog.list_aliases(canonical)

    def clear_user_state(self, user_id: str) -> None:
        self._user_states.pop(str(user_id), None)

    def clear_all_user_states(self) -> None:
        self._user_states.clear()

    def export_user_states(self) -> dict[str, str]:
        """Snapshot of user -> persona name, for persistence."""
        return dict(self._user_states)

    def import_user_states(self, states: dict[str, str]) -> int:
        """Restore persona selections, skipping names that no longer resolve."""
        restored = 0
        for user_id, name in states.items():
            if self.switch_persona(user_id, name):
                restored += 1
        return restored
