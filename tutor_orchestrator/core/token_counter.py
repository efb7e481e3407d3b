"""
Token counting and usage tracking.

Holds provider-reported usage and the character-based estimate used for
pre-call budget checks.
"""

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional

CHARS_PER_TOKEN = 4


@dataclass(frozen=True)
class TokenUsage:
    """Token usage reported by the provider for one completion.

    Zero-valued counters are valid: providers may omit usage entirely.
    """
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def from_payload(cls, usage: Optional[Mapping[str, Any]]) -> "TokenUsage":
        """Build usage from a provider ``usage`` object, defaulting missing fields to 0."""
        if not isinstance(usage, Mapping):
            return cls()
        return cls(
            prompt_tokens=_to_int(usage.get("prompt_tokens")),
            completion_tokens=_to_int(usage.get("completion_tokens")),
            total_tokens=_to_int(usage.get("total_tokens"))
        )


def count_tokens(text: Optional[str]) -> int:
    """Approximate token count for budgeting.

    One token is taken as four characters, rounded up.
    """
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    return 0
