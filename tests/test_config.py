"""Tests for settings."""

import pytest
from pydantic import ValidationError

from treelens.config import EngineSettings, HighlightSettings, IndentSettings, get_settings, set_settings


def test_defaults():
    settings = EngineSettings()
    assert settings.highlight.level == 3
    assert settings.indent.offset == 4
    assert settings.indent.tab_width == 8
    assert settings.rules.rules_file is None
    assert settings.rules.strict_tables is False


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("INDENT_OFFSET", "2")
    monkeypatch.setenv("HIGHLIGHT_LEVEL", "1")
    assert IndentSettings().offset == 2
    assert HighlightSettings().level == 1


def test_level_bounds():
    with pytest.raises(ValidationError):
        HighlightSettings(level=5)
    with pytest.raises(ValidationError):
        IndentSettings(tab_width=0)


def test_global_settings_round_trip():
    settings = EngineSettings(indent=IndentSettings(offset=3))
    set_settings(settings)
    assert get_settings() is settings
