"""
Purpose: Load contractor snapshots from tabular data.
What it does:
Reads a CSV (or an existing DataFrame) with one row per contractor and turns
each row into a Contractor. Multi-valued columns are semicolon separated:

available_dates  2024-06-01;2024-06-02
skills           curtain;blind
experience       curtain:12;blind:3

Rows with a missing or malformed location still load, with location None.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional

import pandas as pd

from tiers.models import TierMetrics

from .models import Contractor, DEFAULT_MAX_CONCURRENT_JOBS

logger = logging.getLogger(__name__)

CONTRACTOR_COLUMNS = [
    "contractor_id",
    "name",
    "tier",
    "lat",
    "lon",
    "status",
    "estimated_cost",
    "min_cost",
    "max_cost",
    "available_dates",
    "skills",
    "experience",
    "completed_jobs",
    "average_rating",
    "photo_quality",
    "response_minutes",
    "on_time_rate",
    "satisfaction_rate",
    "active_jobs_count",
    "max_concurrent_jobs",
]


def load_contractors_csv(path: str) -> List[Contractor]:
    df = pd.read_csv(path, dtype={"contractor_id": str})
    contractors = contractors_from_frame(df)
    logger.info("Loaded %d contractors from %s", len(contractors), path)
    return contractors


def contractors_from_frame(df: pd.DataFrame) -> List[Contractor]:
    missing = [c for c in ("contractor_id", "tier") if c not in df.columns]
    if missing:
        raise ValueError(f"Contractor table is missing columns: {', '.join(missing)}")

    contractors = []
    for _, row in df.iterrows():
        contractors.append(_row_to_contractor(row))
    return contractors


def contractors_to_frame(contractors: List[Contractor]) -> pd.DataFrame:
    rows = []
    for c in contractors:
        rows.append({
            "contractor_id": c.id,
            "name": c.name,
            "tier": c.tier.name.lower(),
            "lat": c.location.lat if c.location else None,
            "lon": c.location.lon if c.location else None,
            "status": c.status.value,
            "estimated_cost": c.estimated_cost,
            "min_cost": c.min_cost,
            "max_cost": c.max_cost,
            "available_dates": ";".join(sorted(d.isoformat() for d in c.available_dates)),
            "skills": ";".join(sorted(c.skills)),
            "experience": ";".join(f"{k}:{v}" for k, v in sorted(c.experience.items())),
            "completed_jobs": c.metrics.completed_jobs,
            "average_rating": c.metrics.average_rating,
            "photo_quality": c.metrics.photo_quality,
            "response_minutes": c.metrics.response_minutes,
            "on_time_rate": c.metrics.on_time_rate,
            "satisfaction_rate": c.metrics.satisfaction_rate,
            "active_jobs_count": c.active_jobs_count,
            "max_concurrent_jobs": c.max_concurrent_jobs,
        })
    return pd.DataFrame(rows, columns=CONTRACTOR_COLUMNS)


# ---- Internal helpers ----

def _row_to_contractor(row: pd.Series) -> Contractor:
    location = None
    if not pd.isna(row.get("lat")) and not pd.isna(row.get("lon")):
        location = (row["lat"], row["lon"])

    metrics = TierMetrics.from_dict({
        k: row[k] for k in (
            "completed_jobs",
            "average_rating",
            "photo_quality",
            "response_minutes",
            "on_time_rate",
            "satisfaction_rate",
        )
        if k in row and not pd.isna(row[k])
    })

    return Contractor.new(
        contractor_id=str(row["contractor_id"]),
        name=_text(row.get("name")) or str(row["contractor_id"]),
        tier=_tier_value(row["tier"]),
        location=location,
        status=_text(row.get("status")) or "active",
        estimated_cost=_number(row.get("estimated_cost")) or 0.0,
        min_cost=_number(row.get("min_cost")),
        max_cost=_number(row.get("max_cost")),
        available_dates=[date.fromisoformat(d) for d in _split(row.get("available_dates"))],
        skills=_split(row.get("skills")),
        experience=_experience(row.get("experience")),
        metrics=metrics,
        active_jobs_count=int(_number(row.get("active_jobs_count")) or 0),
        max_concurrent_jobs=int(_number(row.get("max_concurrent_jobs")) or DEFAULT_MAX_CONCURRENT_JOBS),
    )


def _tier_value(value: Any) -> Any:
    # pandas hands a numeric tier back as a numpy int or a float64.
    if pd.api.types.is_integer(value):
        return int(value)
    if pd.api.types.is_float(value) and float(value).is_integer():
        return int(value)
    return value


def _text(value: Any) -> Optional[str]:
    if value is None or pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


def _number(value: Any) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(value)


def _split(value: Any) -> List[str]:
    text = _text(value)
    if not text:
        return []
    return [part.strip() for part in text.split(";") if part.strip()]


def _experience(value: Any) -> Dict[str, int]:
    out = {}
    for part in _split(value):
        job_type, _, count = part.partition(":")
        out[job_type.strip()] = int(count) if count.strip() else 0
    return out
