# tests/test_achievement_scorer.py

"""
Achievement Scorer Tests - weighted_sum_v1 components, ranking and top-N selection
"""

from decimal import Decimal

import pytest

from folio.models.achievement import Achievement, Metric
from folio.scoring.achievement_scorer import (
    DEFAULT_SCOPE,
    NO_METRIC_STRENGTH,
    SCORING_ALGORITHM,
    TOP_N,
    AchievementScorer,
    evidence_strength,
    has_action_verb,
    metric_strength,
    normalize_unit,
    scope_size,
)


@pytest.fixture
def scorer():
    return AchievementScorer()


class TestMetricStrength:

    def test_missing_metric_gets_floor(self):
        assert metric_strength(None, None) == NO_METRIC_STRENGTH
        assert metric_strength(50, None) == NO_METRIC_STRENGTH
        assert metric_strength(None, "percent") == NO_METRIC_STRENGTH

    def test_value_above_ceiling_is_capped(self):
        assert metric_strength(2_000_000, "users") == Decimal("1")

    def test_full_percentage_is_maximal(self):
        assert metric_strength(100, "%") == Decimal("1")

    def test_non_finite_values_do_not_raise(self):
        assert metric_strength(float("inf"), "users") == Decimal("1")
        assert metric_strength(float("-inf"), "percent") == Decimal("1")
        assert metric_strength(float("nan"), "users") == NO_METRIC_STRENGTH

    def test_small_value_clamped_to_floor(self):
        assert metric_strength(1, "users") == NO_METRIC_STRENGTH

    def test_logarithmic_growth(self):
        assert metric_strength(10, "percent") < metric_strength(50, "percent")

    def test_negative_values_use_magnitude(self):
        assert metric_strength(-40, "percent") == metric_strength(40, "percent")

    @pytest.mark.parametrize("alias,canonical", [
        ("%", "percent"),
        ("PCT", "percent"),
        ("k", "thousand"),
        ("Customers", "users"),
        ("$", "revenue"),
        ("widgets", "widgets"),
    ])
    def test_unit_aliases(self, alias, canonical):
        assert normalize_unit(alias) == canonical


class TestScopeSize:

    @pytest.mark.parametrize("scope,expected", [
        ("Fortune 500 client", Decimal("1.0")),
        ("company-wide", Decimal("0.9")),
        ("the whole organization", Decimal("0.9")),
        ("Finance department", Decimal("0.7")),
        ("my team", Decimal("0.6")),
        ("pilot project", Decimal("0.5")),
        ("somewhere", DEFAULT_SCOPE),
        (None, DEFAULT_SCOPE),
    ])
    def test_scope_tiers(self, scope, expected):
        assert scope_size(scope) == expected


class TestEvidenceStrength:

    def test_plain_text_gets_base(self, plain_achievement):
        assert evidence_strength(plain_achievement) == Decimal("0.5")

    def test_bonuses_capped_at_one(self, flagship_achievement):
        assert evidence_strength(flagship_achievement) == Decimal("1")

    def test_action_verb_is_whole_word(self):
        assert has_action_verb("Led the rollout")
        assert not has_action_verb("Misled nobody")

    def test_scope_only_metric(self, user_id):
        achievement = Achievement(user_id=user_id, raw_text="Built it", metric=Metric(scope="team"))
        # base + scope + verb
        assert evidence_strength(achievement) == Decimal("0.8")


class TestAchievementScorer:

    def test_flagship_achievement_scores_high(self, scorer, flagship_achievement):
        breakdown = scorer.score(flagship_achievement)
        assert breakdown.metric_strength == Decimal("1")
        assert breakdown.scope_size == Decimal("0.9")
        assert breakdown.score >= Decimal("0.94")
        assert breakdown.score == Decimal("0.9700")

    def test_plain_achievement_score(self, scorer, plain_achievement):
        # 0.4*0.3 + 0.3*0.5 + 0.3*0.5
        assert scorer.score(plain_achievement).score == Decimal("0.4200")

    def test_score_is_deterministic(self, scorer, flagship_achievement):
        assert scorer.score(flagship_achievement) == scorer.score(flagship_achievement)

    def test_score_has_four_places(self, scorer, mixed_achievements):
        for a in mixed_achievements:
            assert scorer.score(a).score.as_tuple().exponent == -4

    def test_rank_descending(self, scorer, mixed_achievements):
        ranked = scorer.rank(mixed_achievements)
        scores = [r.score for r in ranked]
        assert scores == sorted(scores, reverse=True)
        assert [r.rank for r in ranked] == [1, 2, 3, 4]

    def test_rank_ties_keep_input_order(self, scorer, user_id):
        twins = [Achievement(user_id=user_id, raw_text=f"Did thing {i}") for i in range(5)]
        ranked = scorer.rank(twins)
        assert [r.achievement.id for r in ranked] == [a.id for a in twins]

    def test_select_top_is_prefix_of_rank(self, scorer, mixed_achievements):
        full = scorer.rank(mixed_achievements)
        top = scorer.select_top(mixed_achievements, 2)
        assert [r.achievement.id for r in top] == [r.achievement.id for r in full[:2]]

    def test_select_top_never_exceeds_input(self, scorer, mixed_achievements):
        assert len(scorer.select_top(mixed_achievements)) == len(mixed_achievements)
        assert len(scorer.select_top(mixed_achievements, 0)) == 0
        assert scorer.select_top([]) == []

    def test_default_top_n(self, scorer, user_id):
        many = [Achievement(user_id=user_id, raw_text=f"Item {i}") for i in range(10)]
        assert len(scorer.select_top(many)) == TOP_N

    def test_build_ranking_snapshot(self, scorer, mixed_achievements, user_id):
        top = scorer.select_top(mixed_achievements, 3)
        ranking = scorer.build_ranking(user_id, top)
        assert ranking.algorithm == SCORING_ALGORITHM
        assert ranking.weights == {"metric_strength": 0.4, "scope_size": 0.3, "evidence_strength": 0.3}
        assert [i.rank for i in ranking.items] == [1, 2, 3]
        assert ranking.items[0].achievement_id == top[0].achievement.id

    def test_build_ranking_empty(self, scorer, user_id):
        ranking = scorer.build_ranking(user_id, [])
        assert ranking.items == []
        assert ranking.user_id == user_id
