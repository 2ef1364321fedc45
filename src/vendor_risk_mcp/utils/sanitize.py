"""Text sanitization utilities."""

import re


def sanitize_text(text: str | None, max_length: int = 500) -> str | None:
    """
    Sanitize untrusted text fields.

    Removes control characters and truncates to max_length.
    Apply to provider descriptions, news snippets and reasoning output
    before it reaches a client.

    Args:
        text: Text to sanitize (may be None)
        max_length: Maximum length before truncation

    Returns:
        Sanitized text or None if input was None
    """
    if text is None:
        return None

    text = re.sub(r"[\x00-\x08\x0b-\x1f\x7f-\x9f]", "", text)

    if len(text) > max_length:
        text = text[:max_length]

    return text.strip()


def truncate(text: str | None, max_length: int) -> str:
    """Collapse whitespace and cut to max_length, for prompt snapshots."""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()[:max_length]
