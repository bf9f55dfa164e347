"""Core utility functions for alcless."""
import re

from alcless.core.constants import MAX_ERROR_OUTPUT_LINES


# ANSI escape code pattern
# Matches:
# - CSI sequences: \x1b[<params><command> (e.g., \x1b[31m for red, \x1b[2K for clear line)
# - OSC sequences: \x1b]<params>\x07 (e.g., \x1b]0;Title\x07 for terminal title)
ANSI_ESCAPE_PATTERN = re.compile(r'\x1b\[[0-9;]*[a-zA-Z]|\x1b\].*?\x07')


def strip_ansi(text: str) -> str:
    """Remove ANSI escape codes from text.

    Installers such as Homebrew color their output even when it is captured,
    so captured output is cleaned before it lands in logs or error messages.

    Args:
        text: String that may contain ANSI codes

    Returns:
        Text with all ANSI escape sequences removed

    Example:
        >>> strip_ansi("\\x1b[31mERROR\\x1b[0m")
        'ERROR'
    """
    return ANSI_ESCAPE_PATTERN.sub('', text)


def tail_output(text: str, max_lines: int = MAX_ERROR_OUTPUT_LINES) -> str:
    """Keep the last lines of captured command output.

    Args:
        text: Captured output.
        max_lines: Number of trailing lines to keep.

    Returns:
        Cleaned output, prefixed with an omission marker when trimmed.
    """
    lines = strip_ansi(text).strip().splitlines()
    if len(lines) <= max_lines:
        return "\n".join(lines)
    omitted = len(lines) - max_lines
    return "\n".join([f"... ({omitted} lines omitted)", *lines[-max_lines:]])
