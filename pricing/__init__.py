"""
Pricing package.

Public API:
- Models: Urgency, PriceBreakdown, PricingConfigError
- Configuration: UrgencyRule, PricingPolicy, default_pricing_policy, pricing_policy_from_env
- Engine: PricingEngine, urgency_percent
- Quotes: EstimatePolicy, EstimateRequest, MaterialLine, Estimate, quote_estimate
"""
from .models import Urgency, PriceBreakdown, PricingConfigError
from .policy import UrgencyRule, PricingPolicy, default_pricing_policy, pricing_policy_from_env
from .engine import PricingEngine, urgency_percent
from .estimate import EstimatePolicy, EstimateRequest, MaterialLine, Estimate, quote_estimate, default_estimate_policy

__all__ = [
    "Urgency",
    "PriceBreakdown",
    "PricingConfigError",
    "UrgencyRule",
    "PricingPolicy",
    "default_pricing_policy",
    "pricing_policy_from_env",
    "PricingEngine",
    "urgency_percent",
    "EstimatePolicy",
    "EstimateRequest",
    "MaterialLine",
    "Estimate",
    "quote_estimate",
    "default_estimate_policy",
]
