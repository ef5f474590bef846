"""Redact secrets before they reach logs or the console.

WireGuard keys are 44 character base64 strings and PIA tokens are long
opaque strings; both are masked the same way the operator tooling masks
them elsewhere so logs can be shared safely.
"""

from __future__ import annotations

import re

KEY_REGEX = re.compile(r"(?<![A-Za-z0-9+/=])[A-Za-z0-9+/]{42,43}=(?![A-Za-z0-9+/=])")
TOKEN_REGEX = re.compile(r"(?i)\b(PIA_TOKEN|pt|token)(\s*[=:]\s*|\s+)([A-Za-z0-9._\-]{8,})")
PRIVATE_KEY_LINE = re.compile(r"(?im)^(\s*private\s*key\s*=\s*)(\S+)")


def mask_secret(value: str | None, visible: int = 4) -> str:
    """Keep the first ``visible`` characters of ``value`` and hide the rest."""

    if not value:
        return ""
    if len(value) <= visible * 2:
        return "*" * len(value)
    return value[:visible] + "*" * (len(value) - visible)


def redact_text(text: str) -> str:
    result = PRIVATE_KEY_LINE.sub(lambda m: m.group(1) + "***KEY_REDACTED***", text)
    result = KEY_REGEX.sub("***KEY_REDACTED***", result)

    def token_replacer(match: re.Match[str]) -> str:
        return f"{match.group(1)}{match.group(2)}***TOKEN***"

    return TOKEN_REGEX.sub(token_replacer, result)

