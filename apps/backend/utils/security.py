"""
Centralized security utilities for redaction and outbound URL checks.
"""

import re
from urllib.parse import urlparse


def redact_secrets_from_text(text: str) -> str:
    """
    Redact secrets from plain text using regex patterns.

    Useful for sanitizing error messages and URLs that may carry query
    parameters or headers with credentials.

    Args:
        text: String potentially containing secrets in URLs or headers

    Returns:
        String with secrets replaced with '[REDACTED]'
    """
    if not text:
        return text

    redactions = [
        (r"(api_key=)[^&\s]+", r"\1[REDACTED]"),
        (r"(key=)[^&\s]+", r"\1[REDACTED]"),
        (r"(token=)[^&\s]+", r"\1[REDACTED]"),
        (r"(Authorization: Bearer)\s+[^\s]+", r"\1 [REDACTED]"),
        (r"(Bearer)\s+[A-Za-z0-9\-_\.=]+", r"\1 [REDACTED]"),
    ]

    out = text
    for pattern, repl in redactions:
        out = re.sub(pattern, repl, out, flags=re.IGNORECASE)
    return out


def is_safe_redirect_url(url: str) -> bool:
    """True for absolute http(s) URLs with a host; used before redirecting out."""
    if not url:
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def extract_domain(url: str) -> str:
    """Extract the bare domain (no ``www.``) from a URL."""
    try:
        domain = urlparse(url).netloc.lower()
    except ValueError:
        return "unknown"
    if domain.startswith("www."):
        domain = domain[4:]
    return domain or "unknown"
