"""
Model selection policy.

Maps (user tier, intent, depth) to one of the configured cheap, standard or
premium models through an explicit decision table.
"""

from enum import Enum
from typing import Dict, Optional, Tuple, Union

from .budget import resolve_tier
from ..config.loader import ModelsConfig
from ..storage.models import UserTier


class ModelClass(Enum):
    """Cost class of a configured model."""
    CHEAP = "cheap"
    STANDARD = "standard"
    PREMIUM = "premium"


EDUCATIONAL_INTENTS = frozenset({"grammar_explanation", "vocabulary", "correction_request"})
DETAILED_DEPTH = "detailed"

# (tier, educational intent, detailed depth) -> model class
DECISION_TABLE: Dict[Tuple[UserTier, bool, bool], ModelClass] = {
    (UserTier.FREE, False, False): ModelClass.CHEAP,
    (UserTier.FREE, False, True): ModelClass.CHEAP,
    (UserTier.FREE, True, False): ModelClass.CHEAP,
    (UserTier.FREE, True, True): ModelClass.STANDARD,
    (UserTier.PRO, False, False): ModelClass.STANDARD,
    (UserTier.PRO, False, True): ModelClass.PREMIUM,
    (UserTier.PRO, True, False): ModelClass.PREMIUM,
    (UserTier.PRO, True, True): ModelClass.PREMIUM,
}


def is_educational(intent: Optional[str]) -> bool:
    """Whether an intent biases selection toward a stronger model."""
    if not intent:
        return False
    return intent.strip().lower() in EDUCATIONAL_INTENTS


def is_detailed(depth: Optional[str]) -> bool:
    if not depth:
        return False
    return depth.strip().lower() == DETAILED_DEPTH


def classify_request(
    tier: Union[UserTier, str],
    intent: Optional[str],
    depth: Optional[str]
) -> ModelClass:
    """Look up the model class for a request.

    Missing intent or depth count as non-educational and non-detailed.

    Raises:
        NotFoundError: If the tier cannot be resolved
    """
    return DECISION_TABLE[(resolve_tier(tier), is_educational(intent), is_detailed(depth))]


class ModelSelector:
    """Resolves model classes to the configured model identifiers."""

    def __init__(self, models: ModelsConfig):
        self.models = models

    def model_for(self, model_class: ModelClass) -> str:
        return getattr(self.models, model_class.value)

    def select_model(
        self,
        tier: Union[UserTier, str],
        intent: Optional[str] = None,
        depth: Optional[str] = None
    ) -> str:
        """Select the model identifier for a request.

        Args:
            tier: User subscription tier
            intent: Message purpose hint, e.g. "casual_chat" or "vocabulary"
            depth: Requested explanation depth, e.g. "normal" or "detailed"

        Returns:
            Configured model identifier

        Raises:
            NotFoundError: If the tier cannot be resolved
        """
        return self.model_for(classify_request(tier, intent, depth))

    def select_tier_model(self, tier: Union[UserTier, str]) -> str:
        """Model for calls that carry no intent or depth hint."""
        return self.select_model(tier, None, None)
