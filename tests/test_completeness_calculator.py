# tests/test_completeness_calculator.py

"""
Completeness Calculator Tests - section coverage formulas and fill strategies
"""

from datetime import date
from decimal import Decimal

import pytest

from folio.models.achievement import Achievement, Metric
from folio.models.career import Company, Story, UserProfile, WorkExperience
from folio.models.enumerations import FillStrategy, Placement, Section
from folio.scoring.completeness_calculator import (
    CompletenessCalculator,
    SectionObservations,
    achievements_coverage,
    decide_strategy,
    images_coverage,
    logos_coverage,
    navigation_coverage,
    skills_coverage,
    story_coverage,
    work_history_coverage,
)


class TestDecideStrategy:

    @pytest.mark.parametrize("score,expected", [
        (1.0, FillStrategy.COMPLETE),
        (0.9, FillStrategy.COMPLETE),
        (0.89, FillStrategy.POLISH),
        (0.7, FillStrategy.POLISH),
        (0.5, FillStrategy.CONTEXT),
        (0.3, FillStrategy.QUALITATIVE),
        (0.29, FillStrategy.TEMPLATE),
        (0.0001, FillStrategy.TEMPLATE),
        (0.00001, FillStrategy.TEMPLATE),
        (0.29996, FillStrategy.TEMPLATE),
        (0.69995, FillStrategy.CONTEXT),
        (0.0, FillStrategy.HIDE),
    ])
    def test_thresholds(self, score, expected):
        assert decide_strategy(score) == expected

    def test_accepts_decimal(self):
        assert decide_strategy(Decimal("0.75")) == FillStrategy.POLISH


class TestSectionCoverage:

    def test_images_partial(self):
        coverage = images_coverage(["hero", Placement.CERTIFICATIONS_BG])
        assert coverage.score == Decimal("0.5")
        assert coverage.missing == ["achievements_general_main", "achievements_career_main"]

    def test_images_complete(self):
        coverage = images_coverage([p.value for p in Placement])
        assert coverage.score == Decimal("1")
        assert coverage.strategy == FillStrategy.COMPLETE

    def test_zero_achievements_hide(self):
        coverage = achievements_coverage([])
        assert coverage.score == Decimal("0")
        assert coverage.strategy == FillStrategy.HIDE

    def test_achievements_formula(self, user_id):
        items = [
            Achievement(user_id=user_id, raw_text="a", metric=Metric(value=5, unit="%"), impact_statement="A"),
            Achievement(user_id=user_id, raw_text="b", metric=Metric(value=7, unit="users")),
            Achievement(user_id=user_id, raw_text="c"),
        ]
        coverage = achievements_coverage(items)
        # 0.4*(3/6) + 0.4*(2/3) + 0.2*(1/3)
        assert coverage.score == Decimal("0.5333")
        assert "more_achievements" in coverage.missing
        assert "impact_statements" in coverage.missing
        assert "metrics" not in coverage.missing

    def test_logos(self):
        companies = [Company(name="Acme", logo_url="https://x/acme.png"), Company(name="Globex")]
        coverage = logos_coverage(companies)
        assert coverage.score == Decimal("0.5")
        assert coverage.missing == ["logo:Globex"]

    def test_logos_without_companies(self):
        assert logos_coverage([]).strategy == FillStrategy.HIDE

    def test_work_history_field_fraction(self, user_id):
        experiences = [
            WorkExperience(user_id=user_id, company="Acme", role="Engineer",
                           start_date=date(2020, 1, 1), description="Built APIs"),
            WorkExperience(user_id=user_id, company="Globex", role="Intern"),
        ]
        coverage = work_history_coverage(experiences)
        assert coverage.score == Decimal("0.75")
        assert coverage.missing == ["description", "start_date"]

    def test_skills(self):
        assert skills_coverage(4).score == Decimal("0.5")
        assert skills_coverage(12).score == Decimal("1")
        assert skills_coverage(0).strategy == FillStrategy.HIDE

    def test_story_parts(self, user_id):
        story = Story(user_id=user_id, opener="Hi", paragraphs=["p1"], quote=None)
        coverage = story_coverage(story)
        assert coverage.score == Decimal("0.7")
        assert coverage.missing == ["quote"]

    def test_navigation(self, user_id):
        coverage = navigation_coverage(UserProfile(user_id=user_id, first_name="Ada", last_name="Lovelace"))
        assert coverage.score == Decimal("0.6667")
        assert coverage.missing == ["headline"]
        assert navigation_coverage(None).score == Decimal("0")


class TestCompletenessCalculator:

    def test_evaluates_every_section(self, user_id):
        records = CompletenessCalculator().evaluate(user_id, SectionObservations())
        assert {r.section for r in records} == set(Section)
        assert all(r.score == 0.0 and r.strategy == FillStrategy.HIDE for r in records)

    def test_records_are_rounded_and_bounded(self, user_id, mixed_achievements):
        obs = SectionObservations(
            achievements=mixed_achievements,
            skill_count=3,
            profile=UserProfile(user_id=user_id, first_name="Ada"),
        )
        records = {r.section: r for r in CompletenessCalculator().evaluate(user_id, obs)}
        assert records[Section.SKILLS].score == 0.375
        assert records[Section.NAVIGATION].score == 0.3333
        assert records[Section.NAVIGATION].strategy == FillStrategy.QUALITATIVE
        for record in records.values():
            assert 0.0 <= record.score <= 1.0
