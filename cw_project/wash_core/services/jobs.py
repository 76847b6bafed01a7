import logging
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Union

from django.conf import settings

from ..exceptions import InvalidRunParameters
from ..models import Building, Customer, Job
from ..schedule import VehicleSchedule
from .counters import SCHEDULER, next_id
from .periods import service_now

logger = logging.getLogger(__name__)


@dataclass
class JobRunResult:
    success: bool = True
    schedule_id: Optional[int] = None
    run_date: Optional[date] = None
    # "tomorrow" (or the manual override); same-day buildings use run_date
    target_date: Optional[date] = None
    jobs_generated: int = 0
    immediate_jobs: int = 0
    skipped_customers: int = 0
    skipped_inactive: int = 0
    skipped_not_started: int = 0
    skipped_not_due: int = 0
    skipped_existing: int = 0
    message: str = ""

    def as_dict(self):
        data = asdict(self)
        for key in ("run_date", "target_date"):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data


def _parse_target_date(value: Union[date, str, None]) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise InvalidRunParameters(f"Invalid target date {value!r}, expected YYYY-MM-DD") from None


def _resolve_building(customer, buildings):
    """Return the customer's building, or None when the reference is dangling."""
    building = buildings.get(customer.building_id)
    if building is None or building.is_deleted:
        return None
    return building


# ----------------------------------------------
# Daily job generation
# ----------------------------------------------
def generate_jobs(run_at: Optional[datetime] = None,
                  target_date: Union[date, str, None] = None,
                  created_by: Optional[str] = None) -> JobRunResult:
    """
    Materialize one Job per vehicle due on the target day.

    The target is tomorrow in the service zone, or today for buildings
    flagged ``schedule_today``. A manual ``target_date`` replaces both.
    Vehicles that already have a live job on that day are left alone,
    so re-running the same day inserts nothing twice.
    """
    override = _parse_target_date(target_date)
    now = service_now(run_at)
    today = now.date()
    tomorrow = override or today + timedelta(days=1)
    same_day = override or today
    created_by = created_by or settings.WASH_CRON_ACTOR

    logger.info("Assign jobs is running on %s for the date %s", now.isoformat(), tomorrow)

    result = JobRunResult(run_date=today, target_date=tomorrow)

    # Only customers that reference a building at all;
    # dangling references are weeded out per customer below
    customers = list(
        Customer.objects.alive()
        .filter(building__isnull=False)
        .prefetch_related("vehicles")
        .order_by("pk")
    )
    buildings = Building.objects.in_bulk({customer.building_id for customer in customers})

    # One batch id for the whole run
    result.schedule_id = next_id(SCHEDULER)

    jobs = []
    for customer in customers:
        building = _resolve_building(customer, buildings)
        if building is None:
            logger.warning(
                "Skipping customer %s - building %s not found", customer.pk, customer.building_id
            )
            result.skipped_customers += 1
            continue

        immediate = building.schedule_today
        assigned_date = same_day if immediate else tomorrow

        for vehicle in customer.vehicles.all():
            schedule = VehicleSchedule.from_vehicle(vehicle)

            if schedule.is_deactivated(assigned_date):
                logger.debug("Vehicle is inactive %s %s", vehicle.pk, customer.pk)
                result.skipped_inactive += 1
                continue
            if not schedule.has_started(assigned_date):
                logger.debug("Vehicle start date is ahead %s %s", vehicle.pk, customer.pk)
                result.skipped_not_started += 1
                continue
            if not schedule.matches_pattern(assigned_date):
                result.skipped_not_due += 1
                continue

            jobs.append(
                Job(
                    schedule_id=result.schedule_id,
                    customer=customer,
                    vehicle=vehicle,
                    building=building,
                    # copied only when assigned, otherwise stays NULL
                    worker_id=vehicle.worker_id,
                    location=customer.location,
                    assigned_date=assigned_date,
                    immediate=immediate,
                    created_by=created_by,
                )
            )

    jobs = _drop_existing(jobs, result)

    if jobs:
        # The unique constraint still backs us up if another run
        # inserted the same rows in the meantime
        Job.objects.bulk_create(jobs, ignore_conflicts=True)
        # ignored conflicts are not reported back: count what this run really stored
        stored = Job.objects.filter(schedule_id=result.schedule_id)
        result.jobs_generated = stored.count()
        result.immediate_jobs = stored.filter(immediate=True).count()
        result.skipped_existing += len(jobs) - result.jobs_generated
        result.message = f"Generated {result.jobs_generated} jobs."
    else:
        result.message = "No jobs generated."

    logger.info(
        "Assign jobs completed (schedule %s). %s skipped: customers=%d inactive=%d "
        "not_started=%d not_due=%d existing=%d",
        result.schedule_id,
        result.message,
        result.skipped_customers,
        result.skipped_inactive,
        result.skipped_not_started,
        result.skipped_not_due,
        result.skipped_existing,
    )
    return result


def _drop_existing(jobs, result):
    """Remove candidates whose (customer, vehicle, day) already has a live job."""
    if not jobs:
        return jobs
    existing = set(
        Job.objects.alive()
        .filter(
            assigned_date__in={job.assigned_date for job in jobs},
            vehicle_id__in={job.vehicle_id for job in jobs},
        )
        .values_list("customer_id", "vehicle_id", "assigned_date")
    )
    fresh = []
    for job in jobs:
        if (job.customer_id, job.vehicle_id, job.assigned_date) in existing:
            result.skipped_existing += 1
            continue
        fresh.append(job)
    return fresh
