"""Credential redaction for error text and log context.

Two entry points:
- sanitize_text() scrubs free-form text (error messages) of anything that
  resembles a credential: long opaque tokens, bearer/authorization headers
  and JSON fields named like a secret.
- redact_mapping() replaces values of sensitive keys in nested dicts/lists,
  used before a context object is rendered into a log line.
"""

import re
from typing import Any, Iterable

REDACTED = "[REDACTED]"

# Substrings that mark a key as sensitive (compared case-insensitively)
SENSITIVE_KEYS = ('apikey', 'api_key', 'api-key', 'password', 'passwd', 'token', 'secret', 'authorization', 'credential')

# Minimum length of an uninterrupted token that is treated as opaque
MIN_TOKEN_LENGTH = 32

_SENSITIVE_NAME = r'[\w\-]*(?:password|passwd|secret|token|credential|api[_\-]?key|authorization)[\w\-]*'

_JSON_FIELD_PATTERN = re.compile(
    r'(?P<prefix>"' + _SENSITIVE_NAME + r'"\s*:\s*)(?:"(?:[^"\\]|\\.)*"|[^\s,}\]]+)',
    re.IGNORECASE,
)
_AUTH_HEADER_PATTERN = re.compile(r'(?P<prefix>\bauthorization\s*[:=]\s*)(?:(?:bearer|basic|token)\s+)?\S+', re.IGNORECASE)
_BEARER_PATTERN = re.compile(r'(?P<prefix>\bbearer\s+)[A-Za-z0-9\-._~+/]+=*', re.IGNORECASE)
_KEY_VALUE_PATTERN = re.compile(r'(?P<prefix>\b' + _SENSITIVE_NAME + r'\s*=\s*)[^\s&,;"\']+', re.IGNORECASE)
_OPAQUE_TOKEN_PATTERN = re.compile(r'(?<![A-Za-z0-9_\-])[A-Za-z0-9_\-]{%d,}(?![A-Za-z0-9_\-])' % MIN_TOKEN_LENGTH)


def _keep_prefix(match: 're.Match[str]') -> str:
    return match.group('prefix') + REDACTED


def sanitize_text(text: str) -> str:
    """Redacts credential-like fragments from free-form text."""
    if not text or not isinstance(text, str):
        return text
    text = _JSON_FIELD_PATTERN.sub(lambda m: m.group('prefix') + '"' + REDACTED + '"', text)
    text = _AUTH_HEADER_PATTERN.sub(_keep_prefix, text)
    text = _BEARER_PATTERN.sub(_keep_prefix, text)
    text = _KEY_VALUE_PATTERN.sub(_keep_prefix, text)
    text = _OPAQUE_TOKEN_PATTERN.sub(REDACTED, text)
    return text


def is_sensitive_key(key: str, sensitive_keys: Iterable[str] = SENSITIVE_KEYS) -> bool:
    lowered = str(key).lower()
    return any(k in lowered for k in sensitive_keys)


def redact_mapping(data: Any) -> Any:
    """Returns a copy of data with values under sensitive keys redacted."""
    if isinstance(data, dict):
        return {
            key: REDACTED if is_sensitive_key(key) else redact_mapping(value)
            for key, value in data.items()
        }
    if isinstance(data, (list, tuple)):
        return [redact_mapping(item) for item in data]
    return data
