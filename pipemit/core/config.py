"""Configuration management for pipemit emitters."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
import yaml


class DiagnosticsConfig(BaseSettings):
    """
    Diagnostics Collector Configuration.

    Controls recording of reported failures and routing decisions.
    """

    enabled: bool = Field(
        default=False, description="Record diagnostics (True=tests/debug, False=production)"
    )
    max_events: int = Field(
        default=10000, ge=0, description="Max diagnostics to keep in memory (0=unlimited)"
    )

    model_config = SettingsConfigDict(
        env_prefix="PIPEMIT_DIAGNOSTICS_",
        extra="ignore",
    )


class EmitterConfig(BaseSettings):
    """
    Configuration for an EventEmitter.

    Can be loaded from:
    - Environment variables (prefix: PIPEMIT_)
    - YAML file
    - Direct initialization

    Example:
        >>> config = EmitterConfig(max_listeners=25)
        >>> config = EmitterConfig.from_yaml("emitter.yaml")
        >>> config = EmitterConfig()
    """

    model_config = SettingsConfigDict(
        env_prefix="PIPEMIT_",
        extra="ignore",
        validate_default=True,
        validate_assignment=True,
    )

    max_listeners: int = Field(
        default=10,
        ge=0,
        description="Advisory listener cap per event name (0 disables the warning)",
    )
    warn_on_max_listeners: bool = Field(
        default=True,
        description="Issue MaxListenersExceededWarning when the cap is passed",
    )

    @classmethod
    def from_yaml(cls, path: Path | str) -> EmitterConfig:
        """
        Load configuration from YAML file.

        Keys that are also set in the environment (``PIPEMIT_<KEY>``) are
        skipped so the environment wins.

        Args:
            path: Path to YAML configuration file

        Returns:
            EmitterConfig instance

        Raises:
            FileNotFoundError: If the file does not exist
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f) or {}

        result_data = {}
        for key, value in yaml_data.items():
            if f"PIPEMIT_{key.upper()}" in os.environ:
                continue
            result_data[key] = value

        return cls(**result_data)

    def to_yaml(self, path: Path | str) -> None:
        """
        Save configuration to YAML file.

        Args:
            path: Path to save YAML configuration
        """
        path = Path(path)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.model_dump(mode="json"),
                f,
                default_flow_style=False,
                sort_keys=False,
            )

    def __repr__(self) -> str:
        return f"EmitterConfig(max_listeners={self.max_listeners})"
