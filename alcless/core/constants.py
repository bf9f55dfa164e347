# alcless/core/constants.py
"""Constants used across the alcless codebase."""

from enum import StrEnum


class LifecycleStep(StrEnum):
    """Step names reported by ProvisioningError."""

    CREATE_ACCOUNT = "create_account"
    READINESS = "readiness"
    HOME_PERMISSIONS = "home_permissions"
    PRIVILEGE_GRANT = "privilege_grant"
    PACKAGE_MANAGER = "package_manager"
    PACKAGES = "packages"
    POST_INSTALL = "post_install"
    VALIDATION = "validation"
    PRIVILEGE_REVOKE = "privilege_revoke"
    DELETE_ACCOUNT = "delete_account"


# Account naming: alcl_<host-user>_<session-name>
ACCOUNT_PREFIX = "alcl"
# macOS short names are limited to 32 characters
MAX_ACCOUNT_NAME_LENGTH = 32

# Tools every session gets, extended by caller-supplied extras
DEFAULT_TOOLS: tuple[str, ...] = (
    "git",
    "gh",
    "python@3.12",
    "uv",
    "bun",
)

# Version checks run as the session identity during validation
DEFAULT_VALIDATION_COMMANDS: tuple[str, ...] = (
    "git --version",
    "bun --version",
    "python3 --version",
)

# Resolution tools tried in order when checking network readiness
NETWORK_CHECK_TOOLS: tuple[tuple[str, ...], ...] = (
    ("host",),
    ("nslookup",),
    ("ping", "-c", "1"),
)
DEFAULT_LOOKUP_HOST = "github.com"

# Isolated Homebrew layout inside the session home directory
HOMEBREW_REPO_URL = "https://github.com/Homebrew/brew"
HOMEBREW_DIR = "$HOME/homebrew"
HOMEBREW_BIN = f"{HOMEBREW_DIR}/bin/brew"
SHELL_PROFILES: tuple[str, ...] = (".zprofile", ".bash_profile")
SHELLENV_LINE = f'eval "$({HOMEBREW_BIN} shellenv)"'

# macOS directory layout
USERS_DIR = "/Users"
STAFF_GROUP = "staff"
SUDOERS_DIR = "/etc/sudoers.d"

# Timeouts and intervals (seconds)
DEFAULT_COMMAND_TIMEOUT = 120.0
DEFAULT_INSTALL_TIMEOUT = 1800.0
DEFAULT_HEARTBEAT_INTERVAL = 45.0
DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_READINESS_ATTEMPTS = 15
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 5.0
DEFAULT_CONCURRENCY = 2

# Captured output kept in error messages
MAX_ERROR_OUTPUT_LINES = 20
