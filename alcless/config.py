# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from alcless.core.constants import (
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_CONCURRENCY,
    DEFAULT_HEARTBEAT_INTERVAL,
    DEFAULT_INSTALL_TIMEOUT,
    DEFAULT_TOOLS,
    DEFAULT_VALIDATION_COMMANDS,
    HOMEBREW_REPO_URL,
    SUDOERS_DIR,
)
from alcless.core.exceptions import ConfigurationError
from alcless.core.types import ReadinessConfig, RetryConfig


DEFAULT_SETTINGS_FILE = "settings.alcless.yaml"


class Settings(BaseSettings):
    """alcless configuration with environment variable support.

    All settings can be overridden via environment variables with the
    ALCLESS_ prefix; nested fields use ``__`` (ALCLESS_RETRY__DELAY=2).
    """

    model_config = SettingsConfigDict(
        env_prefix="ALCLESS_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    host_user: str | None = Field(
        default=None,
        description="Operator name used in account names (default: whoami)",
    )
    concurrency: int = Field(
        default=DEFAULT_CONCURRENCY,
        ge=1,
        le=16,
        description="Maximum sessions processed at once",
    )
    command_timeout: float = Field(
        default=DEFAULT_COMMAND_TIMEOUT,
        gt=0,
        description="Deadline for ordinary external commands",
    )
    install_timeout: float = Field(
        default=DEFAULT_INSTALL_TIMEOUT,
        gt=0,
        description="Deadline for clone, update and package installs",
    )
    heartbeat_interval: float = Field(
        default=DEFAULT_HEARTBEAT_INTERVAL,
        gt=0,
        description="Seconds between sudo credential refreshes",
    )
    readiness: ReadinessConfig = Field(default_factory=ReadinessConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    default_tools: list[str] = Field(default_factory=lambda: list(DEFAULT_TOOLS))
    validation_commands: list[str] = Field(
        default_factory=lambda: list(DEFAULT_VALIDATION_COMMANDS),
    )
    privileged_commands: list[str] = Field(
        default_factory=lambda: ["ALL"],
        min_length=1,
        description="Commands a session may run as root without a password",
    )
    sudoers_dir: str = SUDOERS_DIR
    homebrew_repo: str = HOMEBREW_REPO_URL
    log_level: str = "INFO"


def load_settings(config_path: Path | None = None) -> Settings:
    """Load settings from a YAML file layered over environment variables.

    Resolution order:
    1. Explicit config_path parameter (if provided)
    2. ALCLESS_SETTINGS environment variable (if set)
    3. Default: 'settings.alcless.yaml' in the current directory, if present

    Args:
        config_path: Optional explicit path to the configuration file.

    Returns:
        Settings populated from the file, the environment and defaults.

    Raises:
        FileNotFoundError: If an explicitly named file does not exist.
        ConfigurationError: If the YAML is malformed or not a mapping.
        pydantic.ValidationError: If the configuration fails validation.
    """
    explicit = config_path is not None
    if config_path is None:
        env_path = os.environ.get("ALCLESS_SETTINGS")
        explicit = bool(env_path)
        config_path = Path(env_path) if env_path else Path(DEFAULT_SETTINGS_FILE)

    if not config_path.exists():
        if explicit:
            raise FileNotFoundError(f"Configuration file not found at {config_path}")
        return Settings()

    try:
        with open(config_path) as f:
            data: Any = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Malformed configuration file {config_path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {config_path} must contain a mapping")

    # Init kwargs take precedence over environment variables in pydantic-settings.
    return Settings(**data)
