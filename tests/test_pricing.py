from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from jobs.models import Job
from pricing.engine import PricingEngine, urgency_percent
from pricing.models import PricingConfigError, Urgency
from pricing.policy import PricingPolicy, UrgencyRule, default_pricing_policy, pricing_policy_from_env
from tiers.models import Tier


@pytest.fixture
def engine():
    return PricingEngine()


def test_urgent_gold_scenario(engine):
    price = engine.price_fee(100000, "urgent", "gold", elapsed_minutes=0)

    # 15% urgent - 10% gold discount
    assert price.urgency_percent == 5
    assert price.urgency_fee == Decimal("5000.00")
    assert price.total_fee == Decimal("105000.00")
    assert price.platform_fee == Decimal("10500.00")
    assert price.payout == Decimal("94500.00")
    assert price.tax == Decimal("10500.00")
    assert price.customer_total == Decimal("115500.00")


def test_urgent_gold_escalates_per_interval(engine):
    assert engine.price_fee(100000, "urgent", "gold", elapsed_minutes=9.9).urgency_fee == 5000
    assert engine.price_fee(100000, "urgent", "gold", elapsed_minutes=10).urgency_fee == 10000
    assert engine.price_fee(100000, "urgent", "gold", elapsed_minutes=35).urgency_fee == 20000
    # cap 50% - 10%
    assert engine.price_fee(100000, "urgent", "gold", elapsed_minutes=10000).urgency_fee == 40000


@pytest.mark.parametrize("urgency", ["urgent", "emergency", "same_day"])
def test_urgency_is_monotone_and_capped(urgency):
    policy = default_pricing_policy()
    previous = -1
    for minutes in range(0, 200, 3):
        pct = urgency_percent(urgency, minutes, policy)
        assert pct >= previous
        assert pct <= 50
        previous = pct
    assert previous == 50


def test_normal_never_escalates():
    assert urgency_percent(Urgency.NORMAL, 0) == 0
    assert urgency_percent(Urgency.NORMAL, 10000) == 0


def test_negative_elapsed_counts_as_zero():
    assert urgency_percent("emergency", -30) == 25


def test_tier_discount_floors_at_zero(engine):
    price = engine.price_fee(100000, "urgent", Tier.DIAMOND)

    assert price.escalated_percent == 15
    assert price.tier_discount_percent == 20
    assert price.urgency_percent == 0
    assert price.urgency_fee == 0


@pytest.mark.parametrize("base_fee", [1, 99999.99, 123456.78, 500000])
@pytest.mark.parametrize("urgency", list(Urgency))
@pytest.mark.parametrize("tier", list(Tier))
def test_settlement_identities(engine, base_fee, urgency, tier):
    price = engine.price_fee(base_fee, urgency, tier, elapsed_minutes=17)

    assert price.payout + price.platform_fee == price.total_fee
    assert price.total_fee + price.tax == price.customer_total
    assert price.urgency_fee >= 0


def test_seller_discount_applies_to_base():
    engine = PricingEngine(PricingPolicy(discount_percent=10))

    price = engine.price_fee(100000, "normal", "bronze")

    assert price.discount_amount == 10000
    assert price.total_fee == 90000


@pytest.mark.parametrize("base_fee", [0, -5, None, "lots", float("inf")])
def test_bad_base_fee_is_config_error(engine, base_fee):
    with pytest.raises(PricingConfigError):
        engine.price_fee(base_fee, "normal", "gold")


@pytest.mark.parametrize("policy", [
    PricingPolicy(platform_fee_percent=120),
    PricingPolicy(tax_percent=-1),
    PricingPolicy(discount_percent=101),
    PricingPolicy(urgency_rules={
        Urgency.NORMAL: UrgencyRule(0, escalates=False),
        Urgency.URGENT: UrgencyRule(15, interval_minutes=0),
        Urgency.EMERGENCY: UrgencyRule(25),
        Urgency.SAME_DAY: UrgencyRule(35),
    }),
    PricingPolicy(urgency_rules={Urgency.NORMAL: UrgencyRule(0, escalates=False)}),
])
def test_invalid_policy_is_rejected(policy):
    with pytest.raises(ValueError):
        PricingEngine(policy)


def test_unknown_urgency_is_config_error(engine):
    assert Urgency.parse("same-day") == Urgency.SAME_DAY
    with pytest.raises(PricingConfigError):
        engine.price_fee(100000, "asap", "gold")


def test_price_uses_time_since_creation(engine):
    created = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
    job = Job.new(
        seller_id="S1",
        location=(37.5, 127.0),
        requested_start=created + timedelta(days=1),
        budget=200000,
        base_fee=100000,
        urgency="urgent",
        created_at=created,
    )

    price = engine.price(job, Tier.GOLD, now=created + timedelta(minutes=25))

    # 15 + 2 steps * 5 - 10
    assert price.urgency_percent == 15
    assert price.base_fee == 100000


def test_budget_stands_in_for_missing_base_fee(engine):
    job = Job.new(seller_id="S1", location=None, requested_start=datetime(2024, 6, 2, tzinfo=timezone.utc), budget=80000)

    assert engine.price(job, "silver").base_fee == 80000


def test_policy_from_env(monkeypatch):
    monkeypatch.setenv("PLATFORM_FEE_PERCENT", "20")
    monkeypatch.setenv("URGENCY_CAP_PERCENT", "40")

    policy = pricing_policy_from_env()

    assert policy.platform_fee_percent == 20
    assert policy.rule_for(Urgency.URGENT).cap_percent == 40
    assert policy.rule_for(Urgency.NORMAL).cap_percent == 50
    assert urgency_percent("same_day", 1000, policy) == 40


def test_policy_from_env_rejects_garbage(monkeypatch):
    monkeypatch.setenv("TAX_PERCENT", "ten")

    with pytest.raises(PricingConfigError):
        pricing_policy_from_env()
