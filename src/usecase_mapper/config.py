"""Configuration management for the use-case mapper."""

from pathlib import Path

import yaml
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from usecase_mapper.errors import ConfigurationError
from usecase_mapper.schemas import EngineSettings, ScopeMode, ScopeSelection


class Settings(BaseSettings):
    """Settings loaded from env vars and optionally overridden by a YAML config file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API key
    openai_api_key: str = ""

    # Model config
    openai_model: str = "gpt-4.1-mini"
    openai_base_url: str = ""
    openai_temperature: float = 0.0
    client_max_retries: int = 1
    client_backoff_seconds: float = 1.0

    # Engine
    batch_size: int = 40
    rpm: float = 15.0
    snippet_chars: int = 100

    # Scope
    scope_mode: ScopeMode = "all"
    scope_value: float = 100

    # Paths
    input_report_path: Path = Field(default=Path("data/report.json"))
    output_dir: Path = Field(default=Path("reports"))

    @classmethod
    def from_yaml(cls, config_path: str | Path, **overrides) -> "Settings":
        """Load settings from a YAML config file, with env vars and overrides applied on top."""
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                yaml_config = yaml.safe_load(f) or {}
        else:
            yaml_config = {}
        merged = {**yaml_config, **overrides}
        return cls(**merged)

    def resolved_base_url(self) -> str:
        """Return the explicit base URL with a trailing slash, or empty for the default."""

        candidate = self.openai_base_url.strip()
        if not candidate:
            return ""
        return f"{candidate.rstrip('/')}/"

    def resolved_api_key(self, override: str | None = None) -> str:
        """Resolve the credential; a non-blank override wins over the ambient key."""

        if override is not None and override.strip():
            return override.strip()
        return self.openai_api_key.strip()

    def resolved_key_source(self, override: str | None = None) -> str:
        """Return non-secret key source label for diagnostics."""

        if override is not None and override.strip():
            return "override"
        if self.openai_api_key.strip():
            return "OPENAI_API_KEY"
        return "none"

    def engine_settings(self, **overrides) -> EngineSettings:
        """Build validated engine settings, rejecting non-positive batch size or rpm."""

        values = {
            "model": self.openai_model.strip(),
            "batch_size": self.batch_size,
            "rpm": self.rpm,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        try:
            return EngineSettings(**values)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid engine settings: {exc}") from exc

    def scope_selection(
        self,
        mode: ScopeMode | None = None,
        value: float | None = None,
    ) -> ScopeSelection:
        """Build the scope selection from settings with optional overrides."""

        try:
            return ScopeSelection(
                mode=mode or self.scope_mode,
                value=self.scope_value if value is None else value,
            )
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid scope selection: {exc}") from exc
