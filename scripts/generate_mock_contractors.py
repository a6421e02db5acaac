from datetime import date, timedelta

import numpy as np
import pandas as pd

from contractors.loader import CONTRACTOR_COLUMNS
from tiers.engine import determine_tier
from tiers.models import TierMetrics

SKILLS = ["curtain", "blind", "rod", "motorized", "wallpaper"]
JOB_TYPES = ["curtain", "blind", "motorized"]


def generate_mock_contractors(count=100, start=None, days=14, seed=42, output_file=None):
    """
    Generates a realistic contractor pool for matching/dispatch simulations.
    Contractors are scattered around central Seoul; a few have no location,
    some are inactive or suspended, and each tier is derived from the
    generated metrics so the ladder stays consistent.
    """
    # Center around Seoul City Hall
    CENTER_LAT = 37.5665
    CENTER_LON = 126.9780

    rng = np.random.default_rng(seed)
    start = start or date.today()

    rows = []
    for i in range(count):
        # ~ +/- 15km
        lat = CENTER_LAT + rng.uniform(-0.13, 0.13)
        lon = CENTER_LON + rng.uniform(-0.17, 0.17)
        has_location = rng.random() > 0.03

        completed = int(rng.integers(0, 160))
        metrics = TierMetrics(
            completed_jobs=completed,
            average_rating=float(np.round(rng.uniform(3.0, 5.0), 1)),
            photo_quality=float(np.round(rng.uniform(2.0, 10.0), 1)),
            response_minutes=float(rng.integers(10, 150)),
            on_time_rate=float(np.round(rng.uniform(60, 100), 1)),
            satisfaction_rate=float(np.round(rng.uniform(60, 100), 1)),
        )

        cost = int(rng.integers(30, 70)) * 10000
        available = [start + timedelta(days=int(d)) for d in sorted(rng.choice(days, size=int(rng.integers(3, days)), replace=False))]
        skills = sorted(set(["curtain"] + list(rng.choice(SKILLS, size=int(rng.integers(1, 4)), replace=False))))
        experience = {t: int(rng.integers(0, 10)) for t in JOB_TYPES if t in skills}

        rows.append({
            "contractor_id": f"CTR-{str(i + 1).zfill(3)}",
            "name": f"Contractor {i + 1}",
            "tier": determine_tier(metrics).name.lower(),
            "lat": np.round(lat, 6) if has_location else None,
            "lon": np.round(lon, 6) if has_location else None,
            "status": rng.choice(["active", "inactive", "suspended"], p=[0.85, 0.1, 0.05]),
            "estimated_cost": cost,
            "min_cost": int(cost * 0.6),
            "max_cost": int(cost * 1.8),
            "available_dates": ";".join(d.isoformat() for d in available),
            "skills": ";".join(skills),
            "experience": ";".join(f"{k}:{v}" for k, v in experience.items()),
            "completed_jobs": metrics.completed_jobs,
            "average_rating": metrics.average_rating,
            "photo_quality": metrics.photo_quality,
            "response_minutes": metrics.response_minutes,
            "on_time_rate": metrics.on_time_rate,
            "satisfaction_rate": metrics.satisfaction_rate,
            "active_jobs_count": int(rng.integers(0, 4)),
            "max_concurrent_jobs": 5,
        })

    df = pd.DataFrame(rows, columns=CONTRACTOR_COLUMNS)
    if output_file:
        df.to_csv(output_file, index=False)
        print(f"Generated {count} contractors into '{output_file}'")
        print("\nTier distribution:")
        for tier, n in df["tier"].value_counts().items():
            print(f"  {tier}: {n}")
    return df


if __name__ == "__main__":
    generate_mock_contractors(output_file="mock_contractors.csv")
