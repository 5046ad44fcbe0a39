"""Configuration management for docfill using pydantic-settings.

Settings priority (highest to lowest):
1. CLI flags (applied after DocfillConfig creation)
2. Environment variables (DOCFILL_* prefix)
3. .env file
4. docfill.yaml project config
5. Default values
"""

import logging
import os
from pathlib import Path

import yaml
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

logger = logging.getLogger(__name__)

PROJECT_FILE = "docfill.yaml"

# Map docfill.yaml keys to DocfillConfig field names
_YAML_TO_FIELD = {
    "model": "default_model",
    "output": "output_dir",
    "history_turns": "history_turns",
    "missing_marker": "missing_marker",
    "document_kind": "document_kind",
    "rpm": "rpm",
}


class _ProjectYamlSource(PydanticBaseSettingsSource):
    """Read project config from docfill.yaml (lower priority than env vars)."""

    def get_field_value(self, field, field_name):  # type: ignore[override]
        return None, field_name, False

    def __call__(self) -> dict:
        project_file = Path(PROJECT_FILE)
        if not project_file.exists():
            return {}

        raw = yaml.safe_load(project_file.read_text()) or {}
        return {
            field_name: raw[yaml_key]
            for yaml_key, field_name in _YAML_TO_FIELD.items()
            if yaml_key in raw
        }


class DocfillConfig(BaseSettings):
    """Settings for docfill loaded from the environment.

    All environment variables are prefixed with DOCFILL_ (e.g.
    DOCFILL_OPENAI_API_KEY). Empty values are treated as unset.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="DOCFILL_",
        extra="ignore",
        env_ignore_empty=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            _ProjectYamlSource(settings_cls),
            file_secret_settings,
        )

    openai_api_key: str | None = Field(default=None, description="OpenAI API key")
    anthropic_api_key: str | None = Field(default=None, description="Anthropic API key")
    gemini_api_key: str | None = Field(default=None, description="Google Gemini API key")

    default_model: str = Field(
        default="openai/gpt-4o-mini",
        description="LLM model in provider/model-name form",
    )

    output_dir: Path = Field(
        default=Path("output"),
        description="Directory for drafts and rendered documents",
    )

    history_turns: int = Field(
        default=10, ge=0,
        description="Prior conversation turns sent to the oracle with each message",
    )

    missing_marker: str | None = Field(
        default=None,
        description="Text substituted for unfilled optional fields (unset keeps the placeholder)",
    )

    document_kind: str = Field(
        default="legal agreement",
        description="How prompts refer to the template, e.g. 'SAFE agreement'",
    )

    rpm: int = Field(default=40, ge=0, description="Max LLM requests per minute (0 disables)")

    @model_validator(mode="after")
    def _export_api_keys(self) -> "DocfillConfig":
        """Export API keys to environment so LiteLLM can find them."""
        key_map = {
            "OPENAI_API_KEY": self.openai_api_key,
            "ANTHROPIC_API_KEY": self.anthropic_api_key,
            "GEMINI_API_KEY": self.gemini_api_key,
        }
        for env_var, value in key_map.items():
            if value and env_var not in os.environ:
                os.environ[env_var] = value
        return self

    @field_validator("output_dir", mode="before")
    @classmethod
    def resolve_output_dir(cls, v: Path | str) -> Path:
        """Make output_dir absolute and create it."""
        path = Path(v).resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def validate_api_keys(self, model: str) -> None:
        """Check that the provider for ``model`` has an API key.

        Raises:
            ValueError: If the key is missing
        """
        required = {
            "openai/": ("OPENAI_API_KEY", self.openai_api_key),
            "anthropic/": ("ANTHROPIC_API_KEY", self.anthropic_api_key),
            "gemini/": ("GEMINI_API_KEY", self.gemini_api_key),
        }
        for prefix, (env_var, value) in required.items():
            if model.startswith(prefix) and not value and not os.environ.get(env_var):
                raise ValueError(
                    f"{env_var} not found. Set DOCFILL_{env_var} in the environment or .env file."
                )
        # Ollama and other local providers need no key
