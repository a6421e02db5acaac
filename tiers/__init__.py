"""
Contractor tiers package.

Public API:
- Models: Tier, TierMetrics, TierConfigError
- Configuration: TierCriteria, TierProfile, default_tier_profile
- Engine: determine_tier, weighted_score, analyze, project_upgrade, tier_distribution
"""
from .models import Tier, TierMetrics, TierConfigError
from .policy import TierCriteria, TierProfile, default_tier_profile
from .engine import (
    TierAnalysis,
    UpgradeProjection,
    TierStatistics,
    clamp_metrics,
    determine_tier,
    weighted_score,
    analyze,
    project_upgrade,
    tier_distribution,
    tier_statistics,
)

__all__ = [
    "Tier",
    "TierMetrics",
    "TierConfigError",
    "TierCriteria",
    "TierProfile",
    "default_tier_profile",
    "TierAnalysis",
    "UpgradeProjection",
    "TierStatistics",
    "clamp_metrics",
    "determine_tier",
    "weighted_score",
    "analyze",
    "project_upgrade",
    "tier_distribution",
    "tier_statistics",
]
