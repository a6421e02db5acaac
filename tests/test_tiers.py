from dataclasses import replace

import pytest

from tiers.engine import (
    analyze,
    clamp_metrics,
    determine_tier,
    project_upgrade,
    tier_distribution,
    tier_statistics,
    weighted_score,
)
from tiers.models import Tier, TierConfigError, TierMetrics
from tiers.policy import TierCriteria, TierProfile, default_tier_profile


@pytest.fixture
def gold_metrics():
    # Gold, short of Platinum on every metric.
    return TierMetrics(
        completed_jobs=30,
        average_rating=4.1,
        photo_quality=4.2,
        response_minutes=50,
        on_time_rate=85,
        satisfaction_rate=82,
    )


@pytest.fixture
def diamond_metrics():
    return TierMetrics(
        completed_jobs=150,
        average_rating=4.9,
        photo_quality=9.0,
        response_minutes=20,
        on_time_rate=98,
        satisfaction_rate=95,
    )


def test_determine_tier(gold_metrics, diamond_metrics):
    assert determine_tier(gold_metrics) == Tier.GOLD
    assert determine_tier(diamond_metrics) == Tier.DIAMOND
    assert determine_tier(TierMetrics()) == Tier.BRONZE


def test_one_failed_threshold_drops_the_tier(diamond_metrics):
    slow = replace(diamond_metrics, response_minutes=31)
    assert determine_tier(slow) == Tier.PLATINUM


def test_malformed_metrics_never_raise():
    metrics = {"average_rating": "abc", "completed_jobs": None, "on_time_rate": float("nan")}

    assert determine_tier(metrics) == Tier.BRONZE
    assert 0 <= weighted_score(metrics) <= 100


def test_clamping():
    m = clamp_metrics(TierMetrics(
        completed_jobs=5000,
        average_rating=7,
        photo_quality=-3,
        response_minutes=0,
        on_time_rate=140,
        satisfaction_rate=-1,
    ))

    assert m == TierMetrics(1000, 5.0, 0.0, 1.0, 100.0, 0.0)


@pytest.mark.parametrize("field, better", [
    ("completed_jobs", 200),
    ("average_rating", 5.0),
    ("photo_quality", 10.0),
    ("response_minutes", 1),
    ("on_time_rate", 100),
    ("satisfaction_rate", 100),
])
def test_improving_a_metric_never_lowers_the_tier(gold_metrics, field, better):
    assert determine_tier(replace(gold_metrics, **{field: better})) >= determine_tier(gold_metrics)


def test_weighted_score():
    m = TierMetrics(
        completed_jobs=50,
        average_rating=4.0,
        photo_quality=5.0,
        response_minutes=60,
        on_time_rate=90,
    )
    # 12.5 + 24 + 10 + 10.5 + 9
    assert weighted_score(m) == pytest.approx(66.0)


@pytest.mark.parametrize("metrics", [
    TierMetrics(),
    TierMetrics(1000, 5, 10, 1, 100, 100),
    TierMetrics(-5, -1, -1, 10000, -50, -50),
])
def test_weighted_score_bounds(metrics):
    assert 0 <= weighted_score(metrics) <= 100


def test_analyze_gaps_to_next_tier(gold_metrics):
    analysis = analyze(gold_metrics)

    assert analysis.tier == Tier.GOLD
    assert analysis.next_tier == Tier.PLATINUM
    assert analysis.gaps["completed_jobs"] == 20
    assert analysis.gaps["average_rating"] == pytest.approx(0.2)
    assert analysis.gaps["photo_quality"] == pytest.approx(0.3)
    assert analysis.gaps["response_minutes"] == pytest.approx(5)
    assert analysis.gaps["on_time_rate"] == pytest.approx(5)
    assert analysis.gaps["satisfaction_rate"] == pytest.approx(3)
    assert all(gap >= 0 for gap in analysis.gaps.values())


def test_analyze_at_the_top(diamond_metrics):
    analysis = analyze(diamond_metrics)

    assert analysis.next_tier is None
    assert analysis.gaps == {}
    assert set(analysis.strengths) == {
        "average_rating", "photo_quality", "response_minutes", "on_time_rate", "completed_jobs",
    }
    assert analysis.weaknesses == []


def test_analyze_weaknesses():
    analysis = analyze(TierMetrics(completed_jobs=3, average_rating=3.2, response_minutes=90))

    assert "average_rating" in analysis.weaknesses
    assert "response_minutes" in analysis.weaknesses
    assert "completed_jobs" in analysis.weaknesses


def test_project_upgrade(gold_metrics):
    improvements = {
        "completed_jobs": 20,
        "average_rating": 0.3,
        "photo_quality": 0.5,
        "response_minutes": 10,
        "on_time_rate": 6,
        "satisfaction_rate": 4,
    }

    projection = project_upgrade(
        gold_metrics,
        improvements,
        monthly_rates={"completed_jobs": 5, "on_time_rate": 1},
    )

    assert projection.can_upgrade
    assert projection.projected_tier == Tier.PLATINUM
    # completed: 20 / 5 = 4 months, on-time: 5 / 1 = 5 months
    assert projection.estimated_months == 5


def test_project_upgrade_not_enough(gold_metrics):
    projection = project_upgrade(gold_metrics, {"completed_jobs": 100})

    assert not projection.can_upgrade
    assert projection.projected_tier == Tier.GOLD
    assert projection.estimated_months is None


def test_project_upgrade_at_the_top(diamond_metrics):
    projection = project_upgrade(diamond_metrics, {"completed_jobs": 10})
    assert not projection.can_upgrade
    assert projection.next_tier is None


def test_distribution_and_statistics(gold_metrics, diamond_metrics):
    counts = tier_distribution([gold_metrics, diamond_metrics, TierMetrics()])
    assert counts[Tier.GOLD] == 1
    assert counts[Tier.DIAMOND] == 1
    assert counts[Tier.BRONZE] == 1
    assert sum(counts.values()) == 3

    stats = tier_statistics({"g": gold_metrics, "d": diamond_metrics})
    assert stats.total == 2
    assert stats.top_performers == ["d", "g"]
    assert stats.average_completed_jobs == pytest.approx(90)


@pytest.mark.parametrize("value, expected", [
    (Tier.GOLD, Tier.GOLD),
    (3, Tier.GOLD),
    ("gold", Tier.GOLD),
    ("B", Tier.GOLD),
    ("a", Tier.PLATINUM),
    ("d", Tier.BRONZE),
])
def test_tier_parse(value, expected):
    assert Tier.parse(value) == expected


def test_letter_mapping():
    assert Tier.DIAMOND.letter == "A"
    assert Tier.PLATINUM.letter == "A"
    assert Tier.BRONZE.letter == "D"


@pytest.mark.parametrize("value", ["E", "mythril", 0, 6, None])
def test_unknown_tier_is_config_error(value):
    with pytest.raises(TierConfigError):
        Tier.parse(value)


def test_profile_validation_rejects_inverted_thresholds():
    profile = default_tier_profile()
    criteria = list(profile.criteria)
    # Gold easier than Silver
    criteria[2] = replace(criteria[2], min_completed_jobs=5)

    with pytest.raises(ValueError):
        TierProfile(criteria=criteria).validate()


def test_profile_validation_rejects_missing_tier():
    with pytest.raises(TierConfigError):
        TierProfile(criteria=[TierCriteria(Tier.BRONZE, 0, 0, 0, 120, 0, 0)]).validate()
