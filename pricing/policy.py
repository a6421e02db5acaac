"""
Purpose: Central configuration for job pricing.
What it does:

Stores the urgency surcharge rules and the settlement percentages:

urgent      15%  +5% every 10 min, capped at 50%
emergency   25%  +5% every 10 min, capped at 50%
same_day    35%  +5% every 10 min, capped at 50%
normal       0%  never escalates
platform fee 10%, tax 10%

Rule: No logic here beyond validation, just parameters so you can tune
without rewriting code. Environment overrides come from .env.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Dict, Optional

from dotenv import load_dotenv

from .models import PricingConfigError, Urgency


@dataclass(frozen=True)
class UrgencyRule:
    base_percent: float
    step_percent: float = 5.0
    interval_minutes: float = 10.0
    cap_percent: float = 50.0
    escalates: bool = True


def _default_rules() -> Dict[Urgency, UrgencyRule]:
    return {
        Urgency.NORMAL: UrgencyRule(base_percent=0.0, escalates=False),
        Urgency.URGENT: UrgencyRule(base_percent=15.0),
        Urgency.EMERGENCY: UrgencyRule(base_percent=25.0),
        Urgency.SAME_DAY: UrgencyRule(base_percent=35.0),
    }


@dataclass(frozen=True)
class PricingPolicy:
    urgency_rules: Dict[Urgency, UrgencyRule] = field(default_factory=_default_rules)

    # Seller-side discount on the base fee.
    discount_percent: float = 0.0

    platform_fee_percent: float = 10.0
    tax_percent: float = 10.0

    def rule_for(self, urgency: Urgency) -> UrgencyRule:
        urgency = Urgency.parse(urgency)
        try:
            return self.urgency_rules[urgency]
        except KeyError:
            raise PricingConfigError(f"No urgency rule configured for {urgency.value}") from None

    def validate(self) -> None:
        missing = [u.value for u in Urgency if u not in self.urgency_rules]
        if missing:
            raise PricingConfigError(f"Missing urgency rules: {', '.join(missing)}")

        for urgency, rule in self.urgency_rules.items():
            for name in ("base_percent", "step_percent", "cap_percent"):
                _check_percent(f"{urgency.value}.{name}", getattr(rule, name))
            if rule.interval_minutes <= 0:
                raise PricingConfigError(f"{urgency.value}.interval_minutes must be > 0")
            if rule.escalates and rule.cap_percent < rule.base_percent:
                raise PricingConfigError(f"{urgency.value}.cap_percent must be >= base_percent")

        _check_percent("discount_percent", self.discount_percent)
        _check_percent("platform_fee_percent", self.platform_fee_percent)
        _check_percent("tax_percent", self.tax_percent)


def default_pricing_policy() -> PricingPolicy:
    """
    Convenience factory for the default policy.
    """
    p = PricingPolicy()
    p.validate()
    return p


def pricing_policy_from_env(base: Optional[PricingPolicy] = None) -> PricingPolicy:
    """
    Default policy with overrides from the environment (.env):
    PLATFORM_FEE_PERCENT, TAX_PERCENT, URGENCY_STEP_PERCENT,
    URGENCY_INTERVAL_MINUTES, URGENCY_CAP_PERCENT.
    """
    load_dotenv()
    policy = base or PricingPolicy()

    step = _env_float("URGENCY_STEP_PERCENT")
    interval = _env_float("URGENCY_INTERVAL_MINUTES")
    cap = _env_float("URGENCY_CAP_PERCENT")

    rules = {}
    for urgency, rule in policy.urgency_rules.items():
        if rule.escalates:
            rule = replace(
                rule,
                step_percent=rule.step_percent if step is None else step,
                interval_minutes=rule.interval_minutes if interval is None else interval,
                cap_percent=rule.cap_percent if cap is None else cap,
            )
        rules[urgency] = rule

    platform = _env_float("PLATFORM_FEE_PERCENT")
    tax = _env_float("TAX_PERCENT")
    policy = replace(
        policy,
        urgency_rules=rules,
        platform_fee_percent=policy.platform_fee_percent if platform is None else platform,
        tax_percent=policy.tax_percent if tax is None else tax,
    )
    policy.validate()
    return policy


# ---- Internal helpers ----

def _check_percent(name: str, value: float) -> None:
    if not 0 <= value <= 100:
        raise PricingConfigError(f"{name} must be within [0, 100], got {value}")


def _env_float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return float(raw)
    except ValueError:
        raise PricingConfigError(f"{name} must be a number, got {raw!r}") from None
