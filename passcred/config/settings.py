"""
Configuration for the credential helper using pydantic-settings.

Every setting can come from an ``AWS_CREDENTIAL_PROCESS_*`` environment
variable or from an optional YAML file. Environment variables win over the
file, so a one-off ``AWS_CREDENTIAL_PROCESS_DEBUG=true`` works even when a
config file is present.

Example config file (``~/.config/passcred/config.yaml``)::

    pass_prefix: aws
    default_profile: dev
    fetch_attempts: 3
    fetch_delay: 1.0
    auth_helper: ~/.aws/gpg-auth-helper.sh
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from passcred.exceptions import ConfigurationError

ENV_PREFIX = "AWS_CREDENTIAL_PROCESS_"
CONFIG_ENV_VAR = f"{ENV_PREFIX}CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.config/passcred/config.yaml")

_TRUTHY = {"1", "true", "yes", "on"}
_PREFIX_PATTERN = re.compile(r"^[A-Za-z0-9_-]+(/[A-Za-z0-9_-]+)*$")


class HelperSettings(BaseSettings):
    """Settings for one credential_process invocation."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        case_sensitive=False,
        populate_by_name=True,
        extra="forbid",
    )

    debug: bool = Field(default=False, description="Emit redacted diagnostics on stderr")
    pass_prefix: str = Field(default="aws", description="Password-store folder holding profiles")
    default_profile: str = Field(default="default", description="Profile used when none is given")

    fetch_attempts: int = Field(default=3, ge=1, le=10, description="Attempts per required entry")
    fetch_delay: float = Field(default=1.0, ge=0.0, le=30.0, description="Seconds between attempts")
    agent_attempts: int = Field(default=5, ge=1, le=50, description="GPG agent readiness checks")
    agent_delay: float = Field(default=0.5, ge=0.0, le=10.0, description="Seconds to wait after each failed check")

    auth_helper: Path | None = Field(
        default=None,
        description="Executable run before any decryption (PIN entry, token touch)",
    )
    password_store_dir: Path | None = Field(
        default=None,
        validation_alias=AliasChoices("password_store_dir", "PASSWORD_STORE_DIR"),
        description="Password store location (pass's own PASSWORD_STORE_DIR)",
    )

    pass_command: str = Field(default="pass", description="Password manager executable")
    gpg_connect_agent_command: str = Field(default="gpg-connect-agent")
    gpg_agent_command: str = Field(default="gpg-agent")

    @field_validator("debug", mode="before")
    @classmethod
    def _parse_debug(cls, value: Any) -> bool:
        # Unknown spellings mean "off" rather than a hard failure
        if isinstance(value, bool):
            return value
        return str(value or "").strip().lower() in _TRUTHY

    @field_validator("pass_prefix")
    @classmethod
    def _check_prefix(cls, value: str) -> str:
        value = value.strip("/")
        if ".." in value or not _PREFIX_PATTERN.fullmatch(value):
            raise ValueError("pass_prefix must be slash-separated [A-Za-z0-9_-] segments")
        return value

    @field_validator("auth_helper", "password_store_dir", mode="after")
    @classmethod
    def _expand_user(cls, value: Path | None) -> Path | None:
        return value.expanduser() if value is not None else None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment first so it overrides values read from the YAML file
        return env_settings, init_settings

    @property
    def store_dir(self) -> Path:
        """Directory pass keeps its entries in."""
        return self.password_store_dir or Path("~/.password-store").expanduser()

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> HelperSettings:
        """Load settings from a YAML file, with environment overrides.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            HelperSettings instance

        Raises:
            ConfigurationError: If the file is missing, unreadable, or invalid
        """
        config_file = Path(config_path).expanduser()
        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_file}")

        try:
            with open(config_file) as f:
                yaml_content = f.read()
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file: {config_file}") from e

        try:
            config_dict = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML syntax in {config_file}: {e}") from e

        if config_dict is None:
            config_dict = {}
        if not isinstance(config_dict, dict):
            raise ConfigurationError("Configuration must be a YAML mapping, not a list or scalar")

        return cls._build(**config_dict)

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> HelperSettings:
        """Load settings from the first config file found, else the environment.

        Lookup order: ``config_path``, ``$AWS_CREDENTIAL_PROCESS_CONFIG``,
        ``~/.config/passcred/config.yaml`` (only if it exists).

        Raises:
            ConfigurationError: If settings fail validation
        """
        if config_path is not None:
            return cls.from_yaml(config_path)

        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            return cls.from_yaml(env_path)

        default_path = DEFAULT_CONFIG_PATH.expanduser()
        if default_path.is_file():
            return cls.from_yaml(default_path)

        return cls._build()

    @classmethod
    def _build(cls, **values: Any) -> HelperSettings:
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e
