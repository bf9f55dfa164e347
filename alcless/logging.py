"""Logging configuration for the alcless CLI.

Log lines carry the session they belong to as a highlighted tag, so output
from concurrently provisioned sessions stays readable when interleaved.
"""

import sys
from typing import TYPE_CHECKING

from loguru import logger


if TYPE_CHECKING:
    from loguru import Record


COLORS = {
    "amber": "#E0A526",  # Warnings, retries
    "green": "#4F9D69",  # Success
    "slate": "#7D8A96",  # Timestamps, debug, extra fields
    "slate_dark": "#4B555E",  # Separators
    "ivory": "#F2EFE6",  # Message text
    "red": "#C2453A",  # Errors
    "cyan": "#4FA3C7",  # Info
    "violet": "#9A7FD1",  # Session tags
}

LEVEL_COLORS = {
    "TRACE": COLORS["slate_dark"],
    "DEBUG": COLORS["slate"],
    "INFO": COLORS["cyan"],
    "SUCCESS": COLORS["green"],
    "WARNING": COLORS["amber"],
    "ERROR": COLORS["red"],
    "CRITICAL": COLORS["red"],
}


def _escape(text: str) -> str:
    """Escape braces and angle brackets so loguru does not interpret them."""
    return text.replace("{", "{{").replace("}", "}}").replace("<", r"\<")


def _log_format(record: "Record") -> str:
    """Build the loguru format string for one record.

    Format: ``time │ level │ [session] message │ key=value ...``

    Args:
        record: Loguru record containing level, message and extra fields.

    Returns:
        Format string with loguru color tags.
    """
    level = record["level"].name
    color = LEVEL_COLORS.get(level, COLORS["ivory"])
    sep = f"<fg {COLORS['slate_dark']}>│</>"

    fmt = (
        f"<fg {COLORS['slate']}>{{time:HH:mm:ss}}</> {sep} "
        f"<fg {color}>{{level: <8}}</>{sep} "
    )

    extra = dict(record["extra"])
    session = extra.pop("session", None)
    if session is not None:
        fmt += f"<fg {COLORS['violet']}>[{_escape(str(session))}]</> "

    fmt += f"<fg {COLORS['ivory']}>{{message}}</>"

    if extra:
        extra_str = _escape(" ".join(f"{k}={v!r}" for k, v in extra.items()))
        fmt += f" <fg {COLORS['slate']}>│ {extra_str}</>"

    fmt += "\n"
    if record["exception"]:
        fmt += "{exception}\n"
    return fmt


def configure_logging(level: str = "INFO") -> None:
    """Replace loguru's default handler with the alcless stderr handler.

    Args:
        level: Minimum log level to display (e.g., "DEBUG", "INFO", "WARNING").
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format=_log_format,
        colorize=True,
    )
