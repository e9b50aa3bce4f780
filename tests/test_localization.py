from pathlib import Path

import pytest

from casewarden.datatypes.log_datatypes import ALL_CATEGORIES
from casewarden.localization.translator import LOCALES_DIR, Translator, translator
from casewarden.moderation.policy import DenialReason


def test_catalogs_available():
    assert translator.available_languages() == ["en", "pl"]


def test_placeholders_are_formatted():
    assert translator.get("cases.not_found", "en", case_id=7) == "Case 7 not found."
    assert translator.get("log.title.clear_messages", "en", count=3) == "3 Messages Purged"


def test_polish_lookup():
    assert translator.get("log.title.ban", "pl") != translator.get("log.title.ban", "en")


def test_falls_back_to_english_then_key(tmp_path: Path):
    (tmp_path / "en.yml").write_text("greeting: Hello {name}\nonly_en: English\n", encoding="utf-8")
    (tmp_path / "pl.yml").write_text("greeting: Cześć {name}\n", encoding="utf-8")
    local = Translator(tmp_path)

    assert local.get("greeting", "pl", name="Ola") == "Cześć Ola"
    assert local.get("only_en", "pl") == "English"
    assert local.get("missing.key", "pl") == "missing.key"
    assert local.get("greeting", "de", name="Max") == "Hello Max"


def test_missing_placeholder_returns_template(tmp_path: Path):
    (tmp_path / "en.yml").write_text("greeting: Hello {name}\n", encoding="utf-8")
    assert Translator(tmp_path).get("greeting", "en") == "Hello {name}"


@pytest.mark.parametrize("lang", ["en", "pl"])
def test_every_denial_and_category_is_translated(lang):
    catalog = Translator(LOCALES_DIR)
    for reason in DenialReason:
        assert catalog.get(reason.translation_key, lang) != reason.translation_key
    for category in ALL_CATEGORIES:
        assert catalog.get(f"log.title.{category.key}", lang, count=1) != f"log.title.{category.key}"
        assert catalog.get(f"log.category.{category.key}", lang) != f"log.category.{category.key}"
