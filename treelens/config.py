"""Configuration for the rule engine using pydantic-settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RulesSettings(BaseSettings):
    """Settings for loading rule tables."""

    model_config = SettingsConfigDict(
        env_prefix="RULES_",
    )

    rules_file: str | None = Field(
        default=None,
        description="Path to a YAML rules file overriding the built-in tables",
    )

    rules_file_ruleset: str = Field(
        default="default",
        description="Ruleset to load from the YAML rules file",
    )

    strict_tables: bool = Field(
        default=False,
        description="Reject indentation tables that do not end in a catch-all rule",
    )


class HighlightSettings(BaseSettings):
    """Settings for highlight projection."""

    model_config = SettingsConfigDict(
        env_prefix="HIGHLIGHT_",
    )

    level: int = Field(
        default=3,
        ge=1,
        le=4,
        description="Number of feature levels to enable (1 = fewest features)",
    )

    enable: list[str] = Field(
        default_factory=list,
        description="Features to enable regardless of level",
    )

    disable: list[str] = Field(
        default_factory=list,
        description="Features to disable regardless of level (e.g. ['comment'] on huge files)",
    )


class IndentSettings(BaseSettings):
    """Settings for indentation."""

    model_config = SettingsConfigDict(
        env_prefix="INDENT_",
    )

    offset: int = Field(
        default=4,
        ge=0,
        description="Number of columns one 'indent' offset unit stands for",
    )

    tab_width: int = Field(
        default=8,
        ge=1,
        description="Column width of a tab character when measuring existing indentation",
    )


class EngineSettings(BaseSettings):
    """Settings for one document session.

    Built once when a buffer is opened and passed explicitly to the engine
    entry points; never mutated while a request is running.
    """

    model_config = SettingsConfigDict(
        env_prefix="TREELENS_",
    )

    rules: RulesSettings = Field(default_factory=RulesSettings)
    highlight: HighlightSettings = Field(default_factory=HighlightSettings)
    indent: IndentSettings = Field(default_factory=IndentSettings)


# Settings used by the command line front end
_settings: EngineSettings | None = None


def get_settings() -> EngineSettings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = EngineSettings()
    return _settings


def set_settings(settings: EngineSettings) -> None:
    """Set the global settings instance."""
    global _settings
    _settings = settings
