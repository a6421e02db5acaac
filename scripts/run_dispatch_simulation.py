import logging
import os
import random
from datetime import datetime, time, timedelta, timezone

from dotenv import load_dotenv

from contractors.loader import contractors_from_frame, load_contractors_csv
from dispatch.dispatcher import Dispatcher
from dispatch.events import InMemoryEventSink
from dispatch.matcher import MatchOutcome, match
from dispatch.policy import MatchOptions, Priority, dispatch_policy_from_env
from dispatch.store import InMemoryDispatchStore
from jobs.models import Job
from pricing.engine import PricingEngine
from pricing.models import Urgency
from pricing.policy import pricing_policy_from_env
from routing.geo import GeoPoint, TravelMode
from routing.matrix_adapter import RoadDistanceProvider
from routing.osrm_client import OSRMClient
from routing.route_service import RouteStop, sequence_route
from scripts.generate_mock_contractors import generate_mock_contractors

logger = logging.getLogger("dispatch_simulation")

CENTER = GeoPoint(37.5665, 126.9780)


def make_jobs(count, start_day, rng):
    jobs = []
    for i in range(count):
        day = start_day + timedelta(days=rng.randint(0, 6))
        start = datetime.combine(day, time(hour=rng.choice([9, 10, 13])), tzinfo=timezone.utc)
        jobs.append(Job.new(
            job_id=f"JOB-{str(i + 1).zfill(3)}",
            seller_id=f"SELLER-{rng.randint(1, 5)}",
            location=(CENTER.lat + rng.uniform(-0.1, 0.1), CENTER.lon + rng.uniform(-0.12, 0.12)),
            requested_start=start,
            budget=rng.choice([300000, 450000, 600000, 800000]),
            title=f"Curtain install #{i + 1}",
            job_type=rng.choice(["curtain", "blind"]),
            required_skills=["curtain"],
            urgency=rng.choice(list(Urgency)),
        ))
    return jobs


def distance_function():
    """
    Road distances when OSRM_BASE_URL is configured, great-circle otherwise.
    """
    if os.getenv("OSRM_BASE_URL"):
        return RoadDistanceProvider(OSRMClient())
    return None


def run_simulation(contractors_csv=None, job_count=20, seed=7):
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    rng = random.Random(seed)
    today = datetime.now(timezone.utc).date()

    # 1. Load Data
    if contractors_csv:
        contractors = load_contractors_csv(contractors_csv)
    else:
        contractors = contractors_from_frame(generate_mock_contractors(count=60, start=today, seed=seed))
    jobs = make_jobs(job_count, today, rng)
    logger.info("Loaded %d contractors and %d jobs", len(contractors), len(jobs))

    # 2. Configure System
    store = InMemoryDispatchStore()
    sink = InMemoryEventSink()
    pricing = PricingEngine(pricing_policy_from_env())
    dispatcher = Dispatcher(store, pricing, sink, dispatch_policy_from_env())
    options = MatchOptions(priority=Priority.COMPOSITE, auto_assign=True, max_distance_km=30)

    for c in contractors:
        store.add_contractor(c)
    jobs = [store.add_job(j) for j in jobs]

    provider = distance_function()
    if provider is not None:
        provider.prefetch([c.location for c in contractors] + [j.location for j in jobs])

    # 3. Match and auto-assign each job against the live contractor snapshots
    assigned = 0
    for job in jobs:
        kwargs = {"distance_fn": provider} if provider is not None else {}
        result = match(store.list_contractors(), job, options, pricing=pricing, dispatcher=dispatcher, **kwargs)

        if result.outcome == MatchOutcome.NO_ELIGIBLE_CONTRACTOR:
            logger.info("[NO MATCH] %s (%d rejected)", job.id, result.stats.rejected)
            continue

        top = result.top
        if result.assignment is not None and result.assignment.ok:
            assigned += 1
            fee = result.assignment.assignment.fee
            logger.info(
                "[ASSIGNED] %s -> %s (%s, score %d, %s km) total %s",
                job.id, top.contractor.id, top.contractor.tier.name, top.score.composite,
                "?" if top.distance_km is None else f"{top.distance_km:.1f}", fee.total_fee,
            )
        else:
            logger.info("[NOT ASSIGNED] %s: %s", job.id, result.assignment.outcome.value)

    # 4. Plan each busy contractor's route for their assigned jobs
    by_contractor = {}
    for job in store.find_jobs():
        if job.assigned_contractor_id:
            by_contractor.setdefault(job.assigned_contractor_id, []).append(job)

    for contractor_id, their_jobs in sorted(by_contractor.items()):
        contractor = store.get_contractor(contractor_id).value
        stops = [RouteStop(j.id, j.location) for j in their_jobs]
        kwargs = {"distance_fn": provider} if provider is not None else {}
        route = sequence_route(stops, contractor.location, mode=TravelMode.CAR, **kwargs)
        logger.info(
            "Route %s: %s, %.1f km, ~%d min",
            contractor_id, " -> ".join(route.order), route.total_distance_m / 1000,
            route.total_travel_time.average_minutes,
        )

    print("\n=== SIMULATION COMPLETE ===")
    print(f"Jobs Assigned: {assigned} / {len(jobs)}")
    print(f"Events emitted: {len(sink.events)}")


if __name__ == "__main__":
    run_simulation()
