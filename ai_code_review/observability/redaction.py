"""
Secret redaction for log lines and error messages.
"""

import re
from typing import Any

REDACTED = "[REDACTED]"

SECRET_PATTERNS = [
    re.compile(r"sk-or-[a-zA-Z0-9-]+"),  # OpenRouter API keys
    re.compile(r"sk-[a-zA-Z0-9-]+"),  # OpenAI-style keys
    re.compile(r"Bearer\s+[a-zA-Z0-9\-_.]+", re.IGNORECASE),
]

SECRET_FIELDS = {"apiKey", "api_key", "authorization", "Authorization"}


def redact_secrets(text: str) -> str:
    """Replace API keys and bearer tokens in text with [REDACTED]."""
    for pattern in SECRET_PATTERNS:
        text = pattern.sub(REDACTED, text)
    return text


def redact_value(value: Any) -> Any:
    """
    Recursively redact a structure destined for a log record.

    Dict entries whose key names a secret are replaced outright;
    strings are scrubbed with `redact_secrets`.
    """
    if isinstance(value, str):
        return redact_secrets(value)
    if isinstance(value, dict):
        return {
            k: REDACTED if k in SECRET_FIELDS else redact_value(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(redact_value(v) for v in value)
    return value
