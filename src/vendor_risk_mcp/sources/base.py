"""Shared helpers for provider adapters."""

import os


class MissingCredentialError(RuntimeError):
    """Raised when a provider's API key is not configured."""

    pass


def require_env(name: str, note: str = "") -> str:
    value = os.environ.get(name, "").strip()
    if not value:
        raise MissingCredentialError(f"{name} is not set{note}")
    return value


def describe_error(error: BaseException) -> str:
    """Human-readable message for a SourceResult error field."""
    return str(error) or type(error).__name__
