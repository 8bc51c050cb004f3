"""Error taxonomy & redaction.

Every failure a command can report derives from :class:`LinCliError`; the
runtime turns any of them into a printed message and exit code 1.

Public API:
- LinCliError and its subclasses
- classify_error(exc) -> ErrorInfo
- redact(text) -> str
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

_SENSITIVE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"lin_api_[A-Za-z0-9]{16,}"),  # personal API keys
    re.compile(r"lin_oauth_[A-Za-z0-9]{16,}"),  # OAuth access tokens
]

_REDACTION_PLACEHOLDER = "<redacted>"


class LinCliError(RuntimeError):
    """Base class for failures reported to the user."""


class AuthenticationError(LinCliError):
    """No token stored for the workspace, or the API rejected it."""


class NotFoundError(LinCliError):
    """A human-readable identifier did not resolve to a remote entity."""


class CommandError(LinCliError):
    """Invalid command input or an unsuccessful mutation."""


@dataclass
class ErrorInfo:
    category: str
    message: str
    original_type: str
    details: dict[str, Any] | None = None


def redact(text: str) -> str:
    """Redact API tokens in arbitrary text."""
    if not text:
        return text
    redacted = text
    for pat in _SENSITIVE_PATTERNS:
        redacted = pat.sub(_REDACTION_PLACEHOLDER, redacted)
    return redacted


def classify_error(exc: BaseException) -> ErrorInfo:
    """Best-effort classification of an exception.

    - AuthenticationError -> 'auth'
    - NotFoundError -> 'not_found'
    - CommandError -> 'usage'
    - API errors (anything exposing a ``status`` attribute) -> 'api'
    - Network-y keywords -> 'network'
    - Fallback -> 'generic'
    """
    msg = str(exc) if exc else ""
    low = msg.lower()
    name = exc.__class__.__name__

    if isinstance(exc, AuthenticationError):
        return ErrorInfo("auth", redact(msg), name)
    if isinstance(exc, NotFoundError):
        return ErrorInfo("not_found", redact(msg), name)
    if isinstance(exc, CommandError):
        return ErrorInfo("usage", redact(msg), name)
    if any(k in low for k in ("timeout", "timed out", "connection", "temporarily unavailable")):
        return ErrorInfo("network", redact(msg), name)
    if hasattr(exc, "status"):
        status = getattr(exc, "status", None)
        return ErrorInfo("api", redact(msg), name, details={"status": status})
    return ErrorInfo("generic", redact(msg), name)


__all__ = [
    "AuthenticationError",
    "CommandError",
    "ErrorInfo",
    "LinCliError",
    "NotFoundError",
    "classify_error",
    "redact",
]
