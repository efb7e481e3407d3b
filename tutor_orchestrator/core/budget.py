"""
Per-user daily token budget enforcement.

Budget state lives on the persisted user record. The tracker is stateless: every
call re-reads the user, applies the lazy daily reset and writes back
synchronously.

Check-then-record is not atomic. Two concurrent requests from the same user can
both pass ``check_budget`` before either records its usage, so the daily cap is
a soft limit.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime, time
from typing import Callable, Optional, Union

from .errors import NotFoundError
from .token_counter import TokenUsage
from ..config.loader import TokenLimitsConfig
from ..storage.models import UserRecord, UserTier
from ..storage.repository import UserStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BudgetStatus:
    """Current budget state for a user."""
    user_id: str
    daily_limit: int
    tokens_used: int
    remaining: int
    last_reset: Optional[datetime]


def resolve_tier(tier: Union[UserTier, str, None]) -> UserTier:
    """Map a stored tier value to UserTier.

    Raises:
        NotFoundError: If the tier is missing or unrecognized
    """
    if isinstance(tier, UserTier):
        return tier
    if isinstance(tier, str):
        try:
            return UserTier(tier.strip().lower())
        except ValueError:
            pass
    raise NotFoundError(f"User tier not found: {tier!r}")


class TokenBudgetTracker:
    """Answers whether a request may proceed and records consumption afterwards."""

    def __init__(
        self,
        user_store: UserStore,
        limits: TokenLimitsConfig,
        now: Callable[[], datetime] = datetime.now
    ):
        self.user_store = user_store
        self.limits = limits
        self.now = now

    def daily_limit(self, tier: Union[UserTier, str]) -> int:
        """Daily token cap for a tier."""
        if resolve_tier(tier) == UserTier.PRO:
            return self.limits.pro_tier_daily
        return self.limits.free_tier_daily

    def check_budget(self, user_id: str, estimated_tokens: int) -> bool:
        """Check whether ``estimated_tokens`` fit in the user's remaining daily budget.

        The comparison is inclusive: a request landing exactly on the limit is
        allowed.

        Raises:
            NotFoundError: If the user doesn't exist
        """
        user = self._load_current(user_id)
        used = user.tokens_used_today or 0
        allowed = used + estimated_tokens <= self.daily_limit(user.tier)
        if not allowed:
            logger.warning(
                f"Token budget exceeded: user_id={user_id}, used={used}, "
                f"estimated={estimated_tokens}, limit={self.daily_limit(user.tier)}"
            )
        return allowed

    def record_usage(self, user_id: str, usage: TokenUsage) -> None:
        """Add a completion's total tokens to the user's daily consumption.

        The lazy reset is applied first, so a request checked before midnight
        and recorded after it counts against the new day.

        Raises:
            NotFoundError: If the user doesn't exist
        """
        user = self._load_current(user_id)
        current = user.tokens_used_today if user.tokens_used_today is not None else 0
        updated = replace(user, tokens_used_today=current + usage.total_tokens)
        self._save(updated)
        logger.info(
            f"Recorded token usage: user_id={user_id}, tokens={usage.total_tokens}, "
            f"total_used={updated.tokens_used_today}"
        )

    def get_budget_status(self, user_id: str) -> BudgetStatus:
        """Report the user's budget after applying any pending daily reset."""
        user = self._load_current(user_id)
        limit = self.daily_limit(user.tier)
        used = user.tokens_used_today or 0
        return BudgetStatus(
            user_id=user_id,
            daily_limit=limit,
            tokens_used=used,
            remaining=max(0, limit - used),
            last_reset=user.last_token_reset
        )

    def _find(self, user_id: str) -> UserRecord:
        user = self.user_store.find_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User not found: {user_id}")
        return user

    def _load_current(self, user_id: str) -> UserRecord:
        """Load the user, persisting a reset first if the last one was before today."""
        user = self._find(user_id)
        today = self.now().date()
        if user.last_token_reset is None or user.last_token_reset.date() < today:
            user = replace(
                user,
                tokens_used_today=0,
                last_token_reset=datetime.combine(today, time.min)
            )
            self._save(user)
            logger.info(f"Daily token budget reset: user_id={user_id}, date={today.isoformat()}")
        return user

    def _save(self, user: UserRecord) -> None:
        try:
            self.user_store.save(user)
        except LookupError as e:
            raise NotFoundError(f"User not found: {user.user_id}") from e
