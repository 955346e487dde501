"""Tests for weight sanitising, role masking and combo scoring."""
from __future__ import annotations

import pytest

from arkgrid.constants import DEFAULT_WEIGHTS, LEVEL_CURVES, OPTIONS, ROLE_KEYS
from arkgrid.models import Gem
from arkgrid.scoring import level_value, sanitize_weights, score_combo, score_gem_for_role, thresholds_hit


@pytest.fixture(scope="module")
def mixed_gem() -> Gem:
    """One dealer option and one support option."""
    return Gem(id="m", will=4, point=5, o1k="atk", o1v=5, o2k="brand", o2v=3)


class TestSanitizeWeights:
    def test_none_gives_defaults(self):
        assert sanitize_weights(None) == {key: DEFAULT_WEIGHTS[key] for key in OPTIONS}

    def test_invalid_values_fall_back(self):
        weights = sanitize_weights({"atk": -1, "add": "abc", "boss": "2.5", "brand": float("nan"),
                                    "ally_dmg": None, "ally_atk": 0})
        assert weights["atk"] == 1.0
        assert weights["add"] == 1.0
        assert weights["boss"] == 2.5
        assert weights["brand"] == 1.0
        assert weights["ally_dmg"] == 1.0
        assert weights["ally_atk"] == 0.0

    def test_unknown_keys_ignored(self):
        assert "crit" not in sanitize_weights({"crit": 3})


class TestRoleMasking:
    def test_dealer_ignores_support_keys(self, mixed_gem):
        assert score_gem_for_role(mixed_gem, "dealer", sanitize_weights(None)) == 5.0

    def test_support_ignores_dealer_keys(self, mixed_gem):
        assert score_gem_for_role(mixed_gem, "support", sanitize_weights(None)) == 3.0

    def test_no_role_scores_zero(self, mixed_gem):
        assert score_gem_for_role(mixed_gem, None, sanitize_weights(None)) == 0.0

    def test_weights_scale_contribution(self, mixed_gem):
        weights = sanitize_weights({"atk": 2.0, "brand": 10.0})
        assert score_gem_for_role(mixed_gem, "dealer", weights) == 10.0

    def test_role_key_sets_are_disjoint(self):
        assert not ROLE_KEYS["dealer"] & ROLE_KEYS["support"]


class TestLevelCurve:
    def test_linear_by_default(self):
        assert level_value("dealer", "boss", 4) == 4.0

    def test_curve_table_lookup(self):
        assert level_value("dealer", "atk", 5, curve=True) == LEVEL_CURVES["dealer"]["atk"][5]

    def test_curve_clamps_level(self):
        assert level_value("support", "brand", 9, curve=True) == LEVEL_CURVES["support"]["brand"][5]

    def test_missing_level_is_zero(self):
        assert level_value("dealer", "atk", None) == 0.0


class TestScoreCombo:
    def test_thresholds_hit(self):
        assert thresholds_hit("RELIC", 17) == (10, 14, 17)
        assert thresholds_hit("HERO", 9) == ()

    def test_more_thresholds_dominate(self):
        weights = sanitize_weights(None)
        low = [Gem("a", 1, 5, "atk", 5, "boss", 5), Gem("b", 1, 4, "atk", 5, "boss", 5)]
        high = [Gem("c", 9, 5, "brand", 1, "ally_dmg", 1), Gem("d", 9, 5, "brand", 1, "ally_dmg", 1)]
        *_, low_score = score_combo(low, "LEGEND", "dealer", weights)
        *_, high_score = score_combo(high, "LEGEND", "dealer", weights)
        # 10P(1구간) > 9P(0구간): 의지력/역할 점수와 무관
        assert high_score > low_score

    def test_totals(self):
        gems = [Gem("a", 4, 5, "atk", 2, "add", 3), Gem("b", 3, 4, "boss", 1, "brand", 5)]
        total_will, total_point, thr, role_sum, _ = score_combo(gems, "LEGEND", "dealer", sanitize_weights(None))
        assert total_will == 7
        assert total_point == 9
        assert thr == ()
        assert role_sum == 6.0
