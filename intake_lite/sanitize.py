"""
PII Redaction for Logs
======================

Keeps client contact details out of log output.

Usage:
    from intake_lite.sanitize import redact_parameters
    logger.info(f"Tool call: {redact_parameters(arguments)}")
"""

import re
from typing import Any, Dict, List, Set

# =============================================================================
# Sensitive fields & patterns
# =============================================================================

SENSITIVE_KEYS: Set[str] = {
    "name",
    "email",
    "phone",
    "location",
    "address",
    "client_name",
    "owner_email",
}

PII_PATTERNS: List[re.Pattern] = [
    re.compile(r'[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}'),           # Email
    re.compile(r'(?<!\d)(?:\+?1[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}(?!\d)'),  # Phone
    re.compile(r'(?<!\d)\d{3}[-.\s]\d{4}(?!\d)'),                             # Local phone
    re.compile(r'\b\d{3}-\d{2}-\d{4}\b'),                                     # SSN
]

REDACTED = "[REDACTED]"


def mask_value(value: str) -> str:
    """
    Mask a sensitive value, keeping a hint of its shape.

    Emails keep their domain; anything else keeps only its first character.
    """
    if not value:
        return value
    value = str(value)
    if "@" in value:
        local, _, domain = value.partition("@")
        return f"{local[:1]}***@{domain}"
    if len(value) <= 2:
        return "***"
    return f"{value[:1]}***"


def redact_text(text: str) -> str:
    """Replace emails, phone numbers and SSNs in free text"""
    if not text:
        return ""
    for pattern in PII_PATTERNS:
        text = pattern.sub(REDACTED, text)
    return text


def redact_parameters(params: Any) -> Any:
    """
    Copy of a tool-call parameter structure with PII masked.

    Sensitive keys are masked; every other string is scanned for
    email/phone shapes. Nested dicts and lists are handled.
    """
    if isinstance(params, dict):
        redacted: Dict[str, Any] = {}
        for key, value in params.items():
            if key.lower() in SENSITIVE_KEYS and isinstance(value, str):
                redacted[key] = mask_value(value)
            else:
                redacted[key] = redact_parameters(value)
        return redacted

    if isinstance(params, (list, tuple)):
        return [redact_parameters(item) for item in params]

    if isinstance(params, str):
        return redact_text(params)

    return params


def preview(text: str, max_length: int = 100) -> str:
    """Redacted, single-line, truncated preview for logs"""
    if not text:
        return ""
    clean = ' '.join(redact_text(text).split())
    if len(clean) > max_length:
        return clean[:max_length - 3] + "..."
    return clean
