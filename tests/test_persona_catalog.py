"""Tests for persona templates, catalogs and alias resolution."""

import pytest

from qwenbot.constants import PersonaVariant
from qwenbot.exceptions import PersonaValidationException
from qwenbot.prompts import PERSONA_ALIASES
from qwenbot.services.persona_catalog import PersonaCatalog, PersonaTemplate, validate_template


class TestPersonaTemplate:
    """Tests for PersonaTemplate construction helpers."""

    def test_temperature_is_clamped(self):
        assert PersonaTemplate("x", temperature=5).temperature == 2
        assert PersonaTemplate("x", temperature=-1).temperature == 0

    def test_from_dict_accepts_camel_case(self):
        template = PersonaTemplate.from_dict(
            {
                "name": "pirate",
                "systemPrompt": "Arr",
                "maxTokens": 500,
                "personalityTraits": "bold, loud",
            }
        )
        assert template.system_prompt == "Arr"
        assert template.max_tokens == 500
        assert template.personality_traits == ["bold", "loud"]

    def test_from_dict_falls_back_on_bad_numbers(self):
        template = PersonaTemplate.from_dict({"name": "x", "temperature": "hot", "max_tokens": "big"})
        assert template.temperature == 0.7
        assert template.max_tokens == 1000

    def test_to_dict_round_trip_keeps_fields(self):
        template = PersonaTemplate("x", "desc", "prompt", 1.0, 200, "hi", ["a"], "http://a")
        assert PersonaTemplate.from_dict(template.to_dict()) == template


class TestValidateTemplate:
    """Tests for validate_template."""

    def test_empty_name_rejected(self):
        with pytest.raises(PersonaValidationException):
            validate_template(PersonaTemplate(" "))

    def test_non_positive_max_tokens_rejected(self):
        with pytest.raises(PersonaValidationException):
            validate_template(PersonaTemplate("x", max_tokens=0))

    def test_valid_template_passes(self):
        validate_template(PersonaTemplate("x", system_prompt="p"))


class TestPersonaCatalog:
    """Tests for PersonaCatalog resolution."""

    def test_builtin_variants_share_identities(self):
        simple = {p.name for p in PersonaCatalog(PersonaVariant.SIMPLE).builtin()}
        complex_ = {p.name for p in PersonaCatalog(PersonaVariant.COMPLEX).builtin()}
        assert simple == complex_
        assert "default" in simple

    def test_resolve_exact_name(self, catalog):
        assert catalog.resolve("catgirl").name == "catgirl"

    def test_resolve_is_case_insensitive_for_aliases(self, catalog):
        assert catalog.resolve("CatGirl").name == "catgirl"

    def test_resolve_unknown_returns_none(self, catalog):
        assert catalog.resolve("no-such-persona") is None
        assert catalog.resolve("") is None

    def test_every_alias_round_trips(self, catalog):
        for alias, canonical in PERSONA_ALIASES.items():
            assert catalog.resolve(alias).name == canonical
            assert alias in catalog.list_aliases(canonical)

    def test_list_aliases_starts_with_canonical(self, catalog):
        aliases = catalog.list_aliases("catgirl")
        assert aliases[0] == "catgirl"
        assert "猫娘" in aliases

    def test_custom_personas_resolve_after_builtins(self, catalog):
        assert catalog.add_custom(PersonaTemplate("pirate", "海盗"))
        assert catalog.resolve("pirate").description == "海盗"
        assert catalog.is_custom("pirate")
        assert not catalog.is_builtin("pirate")

    def test_add_custom_rejects_existing_name(self, catalog):
        assert not catalog.add_custom(PersonaTemplate("assistant"))

    def test_remove_custom_refuses_builtin(self, catalog):
        assert not catalog.remove_custom("assistant")
        assert catalog.resolve("assistant") is not None
