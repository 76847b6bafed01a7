import datetime
from decimal import Decimal
from unittest import mock
from zoneinfo import ZoneInfo

from django.core.exceptions import ValidationError
from django.test import TestCase

from ..exceptions import InvalidRunParameters
from ..models import Building, Customer, Job, Vehicle, Worker
from ..models.customer import (SCHEDULE_DAILY, SCHEDULE_ONETIME,
                               SCHEDULE_WEEKLY, VEHICLE_INACTIVE)
from ..services import generate_jobs
from ..tasks import generate_daily_jobs

DUBAI = ZoneInfo("Asia/Dubai")

# Monday 2026-03-09, 4:05 PM in Dubai: the regular cron slot
RUN_AT = datetime.datetime(2026, 3, 9, 16, 5, tzinfo=DUBAI)
TODAY = datetime.date(2026, 3, 9)
TOMORROW = datetime.date(2026, 3, 10)  # Tuesday


class JobGenerationTests(TestCase):
    def setUp(self):
        self.building = Building.objects.create(name="Marina Heights")
        self.same_day_building = Building.objects.create(name="Palm Tower", schedule_today=True)
        self.worker = Worker.objects.create(name="Ali")

    def make_vehicle(self, building=None, **fields):
        """
        Helper: one customer with one vehicle. Keyword arguments override vehicle fields.
        """
        customer = Customer.objects.create(
            first_name="Test",
            building=building or self.building,
            location="Dubai Marina",
        )
        values = {
            "registration_no": f"D {Vehicle.objects.count() + 1:05d}",
            "schedule_type": SCHEDULE_DAILY,
            "amount": Decimal("100.00"),
        }
        values.update(fields)
        return Vehicle.objects.create(customer=customer, **values)

    def run_jobs(self, **kwargs):
        kwargs.setdefault("run_at", RUN_AT)
        return generate_jobs(**kwargs)

    def test_daily_vehicle_gets_a_job_for_tomorrow(self):
        vehicle = self.make_vehicle(worker=self.worker)

        result = self.run_jobs()

        self.assertTrue(result.success)
        self.assertEqual(result.jobs_generated, 1)
        self.assertEqual(result.run_date, TODAY)
        self.assertEqual(result.target_date, TOMORROW)
        job = Job.objects.get(vehicle=vehicle)
        self.assertEqual(job.assigned_date, TOMORROW)
        self.assertFalse(job.immediate)
        self.assertEqual(job.status, "pending")
        self.assertEqual(job.worker, self.worker)
        self.assertEqual(job.building, self.building)
        self.assertEqual(job.location, "Dubai Marina")
        self.assertEqual(job.schedule_id, result.schedule_id)
        self.assertEqual(job.created_by, "Cron Scheduler")

    def test_unassigned_worker_stays_null(self):
        vehicle = self.make_vehicle()
        self.run_jobs()
        self.assertIsNone(Job.objects.get(vehicle=vehicle).worker_id)

    def test_same_day_building_gets_immediate_job_today(self):
        vehicle = self.make_vehicle(building=self.same_day_building)

        result = self.run_jobs()

        job = Job.objects.get(vehicle=vehicle)
        self.assertEqual(job.assigned_date, TODAY)
        self.assertTrue(job.immediate)
        self.assertEqual(result.immediate_jobs, 1)

    def test_inactive_vehicle_deactivated_yesterday_gets_no_job(self):
        self.make_vehicle(status=VEHICLE_INACTIVE, deactivate_date=TODAY)

        result = self.run_jobs()

        self.assertEqual(result.jobs_generated, 0)
        self.assertEqual(result.skipped_inactive, 1)
        self.assertFalse(Job.objects.exists())

    def test_pending_deactivation_still_gets_a_job(self):
        self.make_vehicle(status=VEHICLE_INACTIVE, deactivate_date=TOMORROW + datetime.timedelta(days=1))
        self.assertEqual(self.run_jobs().jobs_generated, 1)

    def test_vehicle_not_started_yet(self):
        self.make_vehicle(start_date=TOMORROW + datetime.timedelta(days=1))

        result = self.run_jobs()

        self.assertEqual(result.jobs_generated, 0)
        self.assertEqual(result.skipped_not_started, 1)

    def test_weekly_and_onetime_vehicles(self):
        tuesday = self.make_vehicle(schedule_type=SCHEDULE_WEEKLY, schedule_days=["Tue"])
        self.make_vehicle(schedule_type=SCHEDULE_WEEKLY, schedule_days=[{"day": "Wed", "value": 3}])
        self.make_vehicle(schedule_type=SCHEDULE_ONETIME)

        result = self.run_jobs()

        self.assertEqual(result.jobs_generated, 1)
        self.assertEqual(result.skipped_not_due, 2)
        self.assertTrue(Job.objects.filter(vehicle=tuesday).exists())

    def test_dangling_and_deleted_buildings_are_skipped(self):
        ghost = Customer.objects.create(first_name="Ghost", building_id=987654)
        Vehicle.objects.create(customer=ghost, registration_no="G 1", amount=Decimal("100.00"))
        closed = Building.objects.create(name="Closed", is_deleted=True)
        self.make_vehicle(building=closed)
        kept = self.make_vehicle()

        result = self.run_jobs()

        self.assertEqual(result.skipped_customers, 2)
        self.assertEqual(list(Job.objects.values_list("vehicle_id", flat=True)), [kept.pk])

    def test_customers_without_building_or_deleted_are_ignored(self):
        homeless = Customer.objects.create(first_name="No building")
        Vehicle.objects.create(customer=homeless, registration_no="N 1")
        deleted = self.make_vehicle()
        Customer.objects.filter(pk=deleted.customer_id).update(is_deleted=True)

        result = self.run_jobs()

        self.assertEqual(result.jobs_generated, 0)
        self.assertEqual(result.skipped_customers, 0)

    def test_rerun_on_the_same_day_inserts_nothing_twice(self):
        self.make_vehicle()
        first = self.run_jobs()
        second = self.run_jobs()

        self.assertEqual(first.jobs_generated, 1)
        self.assertEqual(second.jobs_generated, 0)
        self.assertEqual(second.skipped_existing, 1)
        self.assertNotEqual(first.schedule_id, second.schedule_id)
        self.assertEqual(Job.objects.count(), 1)

    def test_rows_ignored_by_the_database_are_not_counted(self):
        vehicle = self.make_vehicle()
        # a concurrent run stored the same job between our check and our insert
        Job.objects.create(customer=vehicle.customer, vehicle=vehicle, assigned_date=TOMORROW)

        with mock.patch("wash_core.services.jobs._drop_existing", lambda jobs, result: jobs):
            result = self.run_jobs()

        self.assertEqual(result.jobs_generated, 0)
        self.assertEqual(result.immediate_jobs, 0)
        self.assertEqual(result.skipped_existing, 1)
        self.assertEqual(Job.objects.count(), 1)

    def test_soft_deleted_job_does_not_block_a_new_one(self):
        vehicle = self.make_vehicle()
        self.run_jobs()
        Job.objects.filter(vehicle=vehicle).update(is_deleted=True)

        self.assertEqual(self.run_jobs().jobs_generated, 1)
        self.assertEqual(Job.objects.alive().count(), 1)

    def test_manual_target_date_replaces_both_targets(self):
        self.make_vehicle()
        self.make_vehicle(building=self.same_day_building)

        result = self.run_jobs(target_date="2026-03-20")

        self.assertEqual(result.target_date, datetime.date(2026, 3, 20))
        self.assertEqual(
            set(Job.objects.values_list("assigned_date", flat=True)),
            {datetime.date(2026, 3, 20)},
        )

    def test_invalid_target_date(self):
        with self.assertRaises(InvalidRunParameters):
            self.run_jobs(target_date="20/03/2026")

    def test_late_utc_evening_is_already_tomorrow_in_dubai(self):
        self.make_vehicle()
        # 21:00 UTC on the 9th is 01:00 on the 10th in Dubai
        run_at = datetime.datetime(2026, 3, 9, 21, 0, tzinfo=datetime.timezone.utc)

        result = self.run_jobs(run_at=run_at)

        self.assertEqual(result.target_date, datetime.date(2026, 3, 11))

    def test_jobs_are_soft_deleted_only(self):
        self.make_vehicle()
        self.run_jobs()
        with self.assertRaises(ValidationError):
            Job.objects.get().delete()

    def test_celery_task_returns_summary(self):
        self.make_vehicle()

        summary = generate_daily_jobs(target_date="2026-03-20")

        self.assertEqual(summary["jobs_generated"], 1)
        self.assertEqual(summary["target_date"], "2026-03-20")
