"""
Unit tests for model selection.
"""

import itertools

import pytest

from tutor_orchestrator.config.loader import ModelsConfig
from tutor_orchestrator.core.errors import NotFoundError
from tutor_orchestrator.core.model_selection import (
    DECISION_TABLE,
    ModelClass,
    ModelSelector,
    classify_request,
    is_detailed,
    is_educational
)
from tutor_orchestrator.storage.models import UserTier


@pytest.fixture
def selector():
    return ModelSelector(ModelsConfig(cheap="cheap-model", standard="standard-model", premium="premium-model"))


class TestDecisionTable:
    """Test the tier x intent x depth table."""

    def test_table_is_total(self):
        """Every (tier, educational, detailed) combination has an entry."""
        keys = set(itertools.product(list(UserTier), [False, True], [False, True]))
        assert set(DECISION_TABLE) == keys

    @pytest.mark.parametrize("intent,depth,expected", [
        ("casual_chat", "normal", "cheap-model"),
        ("casual_chat", "detailed", "cheap-model"),
        ("vocabulary", "normal", "cheap-model"),
        ("grammar_explanation", "detailed", "standard-model"),
        (None, None, "cheap-model"),
    ])
    def test_free_tier(self, selector, intent, depth, expected):
        assert selector.select_model(UserTier.FREE, intent, depth) == expected

    @pytest.mark.parametrize("intent,depth,expected", [
        ("casual_chat", "normal", "standard-model"),
        ("casual_chat", "detailed", "premium-model"),
        ("correction_request", "normal", "premium-model"),
        ("vocabulary", "detailed", "premium-model"),
        (None, None, "standard-model"),
    ])
    def test_pro_tier(self, selector, intent, depth, expected):
        assert selector.select_model(UserTier.PRO, intent, depth) == expected

    def test_deterministic(self, selector):
        first = selector.select_model("pro", "vocabulary", "normal")
        assert all(selector.select_model("pro", "vocabulary", "normal") == first for _ in range(5))

    def test_tier_accepted_as_string(self, selector):
        assert selector.select_model("free", "vocabulary", "detailed") == "standard-model"

    def test_unknown_tier_raises(self, selector):
        with pytest.raises(NotFoundError):
            selector.select_model("enterprise", None, None)

    def test_select_tier_model(self, selector):
        assert selector.select_tier_model(UserTier.FREE) == "cheap-model"
        assert selector.select_tier_model(UserTier.PRO) == "standard-model"


class TestClassification:
    """Test intent and depth normalization."""

    def test_educational_intents_normalized(self):
        assert is_educational("  Grammar_Explanation ")
        assert is_educational("VOCABULARY")
        assert not is_educational("casual_chat")
        assert not is_educational(None)
        assert not is_educational("")

    def test_detailed_normalized(self):
        assert is_detailed(" Detailed")
        assert not is_detailed("normal")
        assert not is_detailed(None)

    def test_classify_request(self):
        assert classify_request(UserTier.PRO, "vocabulary", None) == ModelClass.PREMIUM
        assert classify_request(UserTier.FREE, None, "detailed") == ModelClass.CHEAP
