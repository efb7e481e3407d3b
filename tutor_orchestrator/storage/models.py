"""
Data models for storage layer.

Defines the records the orchestration core reads from and writes to its stores.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union


class UserTier(Enum):
    """Subscription class governing daily token cap and model eligibility."""
    FREE = "free"
    PRO = "pro"


class Role(Enum):
    """Author of a conversation turn."""
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class UserRecord:
    """Persisted user fields the core reads and writes.

    The budget fields are owned by the token budget tracker. Updates are made by
    saving a replaced record, never by mutating an instance in place.
    """
    user_id: str
    tier: Union[UserTier, str]  # unknown stored values are kept as str
    app_language_code: str
    tokens_used_today: Optional[int] = 0
    last_token_reset: Optional[datetime] = None


@dataclass(frozen=True)
class Language:
    """Supported language."""
    code: str
    name: str


@dataclass(frozen=True)
class ConversationTurn:
    """Single chat message in a user's recent history."""
    role: Role
    content: str
    created_at: datetime


@dataclass(frozen=True)
class ConversationSummary:
    """Condensed older history for a user and learning language."""
    summary_text: str
    created_at: datetime
