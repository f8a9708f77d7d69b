"""Configuration management.

Loads from TOML config files + environment variables.
Uses pydantic-settings for validation and env var overriding.

Settings are built once by the caller and passed explicitly into the
calculator and the store factory; nothing reads them from global state.
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings

from .enums import AssetClass, LeverageMode, StorageBackend
from .errors import ConfigError


# ---------------------------------------------------------------------------
# Sub-configs
# ---------------------------------------------------------------------------

class CalculatorDefaults(BaseModel):
    """Pre-fill values for the position calculators."""

    default_risk: Decimal = Field(default=Decimal("100"), gt=0)  # USD
    default_leverage: Decimal = Field(default=Decimal("50"), gt=0)
    default_asset_class: AssetClass = AssetClass.FOREX
    crypto_leverage_mode: LeverageMode = LeverageMode.MARGIN_ONLY
    forex_leverage: Decimal = Field(default=Decimal("50"), gt=0)  # Fixed 50:1


class StorageConfig(BaseModel):
    backend: StorageBackend = StorageBackend.JSON
    data_dir: str = "data"
    json_filename: str = "journal.json"
    database_url: str = ""  # Empty -> sqlite file inside data_dir

    @property
    def json_path(self) -> Path:
        return Path(self.data_dir) / self.json_filename

    @property
    def resolved_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite:///{Path(self.data_dir) / 'journal.db'}"


class SyncConfig(BaseModel):
    enabled: bool = False
    replica_dir: str = ""  # Shared folder holding the replica snapshot
    pull_on_start: bool = True


class ObservabilityConfig(BaseModel):
    log_level: str = "INFO"
    log_format: str = "console"  # "json" or "console"


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """Top-level application settings.

    Loaded from TOML config files, overridden by environment variables.
    """

    calculator: CalculatorDefaults = Field(default_factory=CalculatorDefaults)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    model_config = {"env_prefix": "EZPZ_", "env_nested_delimiter": "__"}

    def validate_sync(self) -> None:
        """Sync needs somewhere to replicate to."""
        if self.sync.enabled and not self.sync.replica_dir:
            raise ConfigError(
                "sync.enabled requires sync.replica_dir to be set."
            )


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from TOML file + env vars.

    Args:
        config_path: Path to TOML config file (optional).
        overrides: Dict of overrides to apply on top.
    """
    data: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            import tomli

            try:
                with open(path, "rb") as f:
                    data = tomli.load(f)
            except tomli.TOMLDecodeError as exc:
                raise ConfigError(f"Cannot parse {path}: {exc}") from exc

    if overrides:
        for key, value in overrides.items():
            if isinstance(value, dict) and isinstance(data.get(key), dict):
                data[key] = {**data[key], **value}
            else:
                data[key] = value

    try:
        settings = Settings(**data)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
    settings.validate_sync()
    return settings
