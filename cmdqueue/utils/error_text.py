"""Cleans verbose remote CLI error output into a short user-facing message."""

import json
from typing import Any, Optional

from cmdqueue.utils.redaction import sanitize_text

# Informational lines the remote CLI prints ahead of real errors
BANNER_PREFIXES = ('Bypassing master password',)
BANNER_FRAGMENTS = ('running in service mode',)

# A trailing "...: <detail>" is only promoted when the detail is this long
MIN_DETAIL_LENGTH = 20


def _is_banner(line: str) -> bool:
    return line.startswith(BANNER_PREFIXES) or any(f in line for f in BANNER_FRAGMENTS)


def _unwrap_json(text: str) -> str:
    """Returns the 'error' or 'message' field when text is a JSON object."""
    try:
        parsed = json.loads(text)
    except (ValueError, TypeError):
        return text
    if isinstance(parsed, dict):
        inner = parsed.get('error') or parsed.get('message')
        if isinstance(inner, str) and inner:
            return inner
    return text


def extract_error_message(raw: Any) -> Optional[str]:
    """Reduces raw CLI output to its most specific trailing message.

    Banner lines are dropped and the last remaining line is used. If that
    line reads like "Failed to X: <detail>" the detail is returned alone.
    """
    if raw is None:
        return None
    # Structured bodies are rendered as JSON so their secret fields are matched
    text = _unwrap_json(raw if isinstance(raw, str) else json.dumps(raw, default=str))

    lines = [line.strip() for line in text.split('\n') if line.strip()]
    meaningful = [line for line in lines if not _is_banner(line)]
    if not meaningful:
        return text

    last_line = meaningful[-1]
    colon_index = last_line.rfind(': ')
    if colon_index != -1:
        detail = last_line[colon_index + 2:].strip()
        if len(detail) > MIN_DETAIL_LENGTH and 'Failed to' not in detail:
            return detail
    return last_line


def clean_error_message(raw: Any, fallback: str = "Unknown error") -> str:
    """Extracts and sanitizes an error message from remote output.

    The whole text is sanitized before extraction as well, so a secret
    cut loose from its key by the trailing-message rule stays redacted.
    """
    if raw is not None and not isinstance(raw, str):
        raw = json.dumps(raw, default=str)
    message = extract_error_message(sanitize_text(raw))
    if not message:
        return fallback
    return sanitize_text(message)
