"""
Logging helpers shared by the engine, the CLI and the API
"""

import re

_CONTROL_CHARS = re.compile(r'[\r\n\x00-\x1f\x7f-\x9f]')
_SPACES = re.compile(r'\s+')


def sanitize_for_logging(text: str, max_length: int = 500) -> str:
    """Sanitize user input for safe logging, preventing log injection

    Removes newlines, carriage returns, and other control characters
    that could be used to inject fake log entries.

    Args:
        text: User input text
        max_length: Truncate the result to this many characters

    Returns:
        Sanitized text safe for logging
    """
    if not text:
        return ''
    sanitized = _CONTROL_CHARS.sub(' ', str(text))
    sanitized = _SPACES.sub(' ', sanitized).strip()
    return sanitized[:max_length]
