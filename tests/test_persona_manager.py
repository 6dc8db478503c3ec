"""Tests for PersonaManager."""

from qwenbot.constants import PersonaVariant
from qwenbot.services.persona_catalog import PersonaCatalog, PersonaTemplate
from qwenbot.services.persona_manager import PersonaManager


class TestCurrentPersona:
    """Tests for current persona lookup."""

    def test_defaults_to_configured_default(self, persona_manager):
        assert persona_manager.get_current_persona("u1").name == "default"

    def test_missing_configured_default_falls_back_to_literal_default(self):
        manager = PersonaManager(PersonaCatalog(PersonaVariant.SIMPLE), "ghost")
        assert manager.get_current_persona("u1").name == "default"

    def test_switch_stores_canonical_name(self, persona_manager):
        assert persona_manager.switch_persona("u1", "猫娘")
        assert persona_manager.get_current_persona_name("u1") == "catgirl"
        assert persona_manager.export_user_states() == {"u1": "catgirl"}

    def test_switch_unknown_persona_keeps_state(self, persona_manager):
        persona_manager.switch_persona("u1", "maid")
        assert not persona_manager.switch_persona("u1", "nobody")
        assert persona_manager.get_current_persona_name("u1") == "maid"

    def test_clear_user_state(self, persona_manager):
        persona_manager.switch_persona("u1", "maid")
        persona_manager.clear_user_state("u1")
        assert persona_manager.get_current_persona_name("u1") == "default"


class TestCustomPersonas:
    """Tests for custom persona add/remove."""

    def test_add_collides_with_builtin(self, persona_manager):
        assert not persona_manager.add_custom_persona(PersonaTemplate("assistant"))

    def test_add_twice_fails(self, persona_manager):
        assert persona_manager.add_custom_persona(PersonaTemplate("x"))
        assert not persona_manager.add_custom_persona(PersonaTemplate("x"))

    def test_collision_check_ignores_aliases(self, persona_manager):
        """An alias string is not a canonical name, so it can be registered."""
        assert persona_manager.add_custom_persona(PersonaTemplate("猫娘"))
        assert persona_manager.get_persona("猫娘").name == "猫娘"

    def test_remove_builtin_fails(self, persona_manager):
        assert not persona_manager.remove_custom_persona("assistant")

    def test_remove_custom_succeeds(self, persona_manager):
        persona_manager.add_custom_persona(PersonaTemplate("x"))
        assert persona_manager.remove_custom_persona("x")
        assert not persona_manager.has_persona("x")
        assert not persona_manager.remove_custom_persona("x")

    def test_list_all_includes_custom(self, persona_manager):
        persona_manager.add_custom_persona(PersonaTemplate("x"))
        names = [p.name for p in persona_manager.list_all()]
        assert names[-1] == "x"
        assert [p.name for p in persona_manager.list_custom()] == ["x"]


class TestUserStateImport:
    """Tests for persona state import/export."""

    def test_import_skips_unknown_names(self, persona_manager):
        restored = persona_manager.import_user_states({"u1": "maid", "u2": "ghost"})
        assert restored == 1
        assert persona_manager.get_current_persona_name("u1") == "maid"
        assert persona_manager.get_current_persona_name("u2") == "default"
