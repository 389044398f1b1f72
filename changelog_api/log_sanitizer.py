"""Redaction for structured log context.

Credentials never reach log records, and user-generated text (PR bodies, changelog
content, prompts) is reduced to its length.
"""

from __future__ import annotations

import re
from typing import Any, Mapping, Optional

REDACTED = "***REDACTED***"

_CREDENTIAL_FIELDS = ("authorization", "token", "api_key", "apikey", "root_key", "secret", "password", "cookie")
_CONTENT_FIELDS = ("body", "content", "changelog", "prompt", "payload", "raw")

_CREDENTIAL_TEXT = (
    re.compile(r"(?i)(bearer\s+)[^\s,;]+"),
    re.compile(r"(?i)((?:access_)?token\s*[=:]\s*)[^\s,;&]+"),
    re.compile(r"(?i)(api[_-]?key\s*[=:]\s*)[^\s,;&]+"),
    re.compile(r"\b(gh[pousr]_)[A-Za-z0-9]{20,}\b"),
    re.compile(r"\b(sk-(?:ant-)?)[A-Za-z0-9_-]{16,}\b"),
    re.compile(r"\b(unkey_)[A-Za-z0-9]{8,}\b"),
)


def _field_matches(field: str, names: tuple[str, ...]) -> bool:
    lowered = field.lower()
    return any(name in lowered for name in names)


def redact_text(text: str) -> str:
    """Mask credential-looking substrings, keeping the prefix that identifies them."""
    for pattern in _CREDENTIAL_TEXT:
        text = pattern.sub(rf"\1{REDACTED}", text)
    return text


def _summarize_content(text: str) -> str:
    if not text.strip():
        return ""
    return f"<{len(text)} chars omitted>"


def sanitize_for_log(value: Any, *, field: Optional[str] = None) -> Any:
    """Return a copy of `value` that is safe to attach to a log record."""
    if field is not None and _field_matches(field, _CREDENTIAL_FIELDS):
        return REDACTED

    if isinstance(value, Mapping):
        return {str(key): sanitize_for_log(item, field=str(key)) for key, item in value.items()}

    if isinstance(value, (list, tuple, set, frozenset)):
        return [sanitize_for_log(item, field=field) for item in value]

    if isinstance(value, str):
        if field is not None and _field_matches(field, _CONTENT_FIELDS):
            return _summarize_content(value)
        return redact_text(value)

    return value


def sanitize_log_extra(**fields: Any) -> dict[str, Any]:
    """Build an `extra=` mapping for logger calls."""
    return {name: sanitize_for_log(value, field=name) for name, value in fields.items()}
