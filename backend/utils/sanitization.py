"""Input sanitization utilities."""

import re

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f]")


def sanitize_log_value(value: str | None, max_length: int = 120) -> str:
    """Make user-provided text safe to embed in a log line.

    Prevents:
    - Log injection (newlines, control characters)
    - Excessively long log lines

    Args:
        value: The raw text from user input
        max_length: Maximum number of characters kept

    Returns:
        A single-line string, suffixed with "..." when truncated
    """
    if not value:
        return ""

    safe_value = _CONTROL_CHARS.sub(" ", value)
    safe_value = " ".join(safe_value.split())

    if len(safe_value) > max_length:
        safe_value = safe_value[:max_length].rstrip() + "..."

    return safe_value
