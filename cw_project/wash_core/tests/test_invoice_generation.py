import datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

from django.test import TestCase

from ..exceptions import InvalidRunParameters
from ..models import Building, Customer, Invoice, Job, Vehicle
from ..models.customer import SCHEDULE_WEEKLY, VEHICLE_INACTIVE
from ..models.invoice import MODE_FULL_SUBSCRIPTION, MODE_PER_WASH
from ..services import check_existing, generate_invoices, round2
from ..services.invoicing import per_wash_charge

DUBAI = ZoneInfo("Asia/Dubai")

# Fires on April 1st: bills March 2026
NOW = datetime.datetime(2026, 4, 1, 0, 5, tzinfo=DUBAI)
APRIL_1 = datetime.datetime(2026, 4, 1, tzinfo=DUBAI)


class InvoiceGenerationTests(TestCase):
    def setUp(self):
        self.building = Building.objects.create(name="Marina Heights")
        self.customer = Customer.objects.create(
            first_name="Sara", last_name="Khan", building=self.building, location="Dubai Marina"
        )

    def make_vehicle(self, amount="100.00", customer=None, **fields):
        return Vehicle.objects.create(
            customer=customer or self.customer,
            registration_no=fields.pop("registration_no", f"D {Vehicle.objects.count() + 1:05d}"),
            parking_no="B1-014",
            amount=Decimal(amount),
            **fields,
        )

    def make_invoice(self, vehicle, created_at, billing_month=None, balance="0.00", **fields):
        """
        Helper: an invoice row as an earlier run (or a legacy import) left it.
        """
        balance = Decimal(balance)
        return Invoice.objects.create(
            customer=vehicle.customer,
            vehicle=vehicle,
            registration_no=vehicle.registration_no,
            amount_charged=balance,
            total_amount=balance,
            balance=balance,
            billing_month=billing_month,
            created_at=created_at,
            **fields,
        )

    def complete_washes(self, vehicle, days, month=3):
        for day in days:
            Job.objects.create(
                customer=vehicle.customer,
                vehicle=vehicle,
                assigned_date=datetime.date(2026, month, day),
                status="completed",
                completed_date=datetime.datetime(2026, month, day, 10, 0, tzinfo=DUBAI),
            )

    def run_invoices(self, **kwargs):
        kwargs.setdefault("now", NOW)
        return generate_invoices(**kwargs)

    # ---------- full subscription ----------

    def test_march_2026_full_subscription(self):
        vehicle = self.make_vehicle(worker=None)

        result = self.run_invoices()

        self.assertTrue(result.success)
        self.assertFalse(result.blocked)
        self.assertEqual(result.created, 1)
        self.assertEqual(result.billing_month, "2026-03")
        self.assertEqual(result.invoice_date, APRIL_1)

        invoice = Invoice.objects.get(vehicle=vehicle)
        self.assertEqual(invoice.amount_charged, Decimal("100.00"))
        self.assertEqual(invoice.old_balance, Decimal("0.00"))
        self.assertEqual(invoice.total_amount, Decimal("100.00"))
        self.assertEqual(invoice.amount_paid, Decimal("0.00"))
        self.assertEqual(invoice.balance, Decimal("100.00"))
        self.assertEqual(invoice.status, "pending")
        self.assertEqual(invoice.billing_month, "2026-03")
        self.assertEqual(invoice.invoice_mode, MODE_FULL_SUBSCRIPTION)
        self.assertEqual(invoice.created_at, APRIL_1)
        self.assertEqual(invoice.registration_no, vehicle.registration_no)
        self.assertEqual(invoice.parking_no, "B1-014")
        self.assertEqual(invoice.building, self.building)
        self.assertIsNone(invoice.worker_id)
        self.assertIsNotNone(invoice.number)
        self.assertEqual(invoice.created_by, "Cron Scheduler")

    def test_invoice_numbers_are_sequential(self):
        self.make_vehicle()
        self.make_vehicle()
        self.run_invoices()
        numbers = list(Invoice.objects.order_by("number").values_list("number", flat=True))
        self.assertEqual(numbers, [numbers[0], numbers[0] + 1])

    def test_second_run_for_the_same_month_is_blocked(self):
        self.make_vehicle()
        self.run_invoices()

        result = self.run_invoices()

        self.assertFalse(result.success)
        self.assertTrue(result.blocked)
        self.assertEqual(result.existing_count, 1)
        self.assertEqual(result.created, 0)
        self.assertEqual(Invoice.objects.count(), 1)

    def test_any_existing_invoice_blocks_the_whole_run(self):
        billed = self.make_vehicle()
        self.make_vehicle()  # would be new, still not billed
        self.make_invoice(billed, APRIL_1, billing_month="2026-03")

        result = self.run_invoices()

        self.assertTrue(result.blocked)
        self.assertEqual(Invoice.objects.count(), 1)

    def test_legacy_invoice_without_billing_month_blocks_by_created_at(self):
        vehicle = self.make_vehicle()
        self.make_invoice(vehicle, datetime.datetime(2026, 3, 10, tzinfo=DUBAI), billing_month="")

        self.assertTrue(self.run_invoices().blocked)

    def test_deleted_and_onewash_invoices_do_not_block(self):
        vehicle = self.make_vehicle()
        self.make_invoice(vehicle, APRIL_1, billing_month="2026-03", is_deleted=True)
        self.make_invoice(vehicle, datetime.datetime(2026, 3, 10, tzinfo=DUBAI), onewash=True)

        result = self.run_invoices()

        self.assertEqual(result.created, 1)

    def test_inactive_and_zero_amount_vehicles_are_skipped(self):
        self.make_vehicle(status=VEHICLE_INACTIVE, deactivate_date=datetime.date(2026, 3, 15))
        self.make_vehicle(amount="0.00")
        charged = self.make_vehicle()

        result = self.run_invoices()

        self.assertEqual(result.created, 1)
        self.assertEqual(result.skipped_inactive, 1)
        self.assertEqual(result.skipped_zero_amount, 1)
        self.assertEqual(Invoice.objects.get().vehicle, charged)

    def test_deleted_customers_are_not_billed(self):
        self.make_vehicle()
        Customer.objects.filter(pk=self.customer.pk).update(is_deleted=True)
        self.assertEqual(self.run_invoices().created, 0)

    def test_previous_balance_is_carried(self):
        vehicle = self.make_vehicle()
        self.make_invoice(vehicle, datetime.datetime(2026, 3, 1, tzinfo=DUBAI),
                          billing_month="2026-02", balance="40.00")

        self.run_invoices()

        invoice = Invoice.objects.get(billing_month="2026-03")
        self.assertEqual(invoice.old_balance, Decimal("40.00"))
        self.assertEqual(invoice.total_amount, Decimal("140.00"))
        self.assertEqual(invoice.balance, Decimal("140.00"))

    def test_explicit_month(self):
        self.make_vehicle()

        result = self.run_invoices(year=2026, month=2)

        invoice = Invoice.objects.get()
        self.assertEqual(result.billing_month, "2026-02")
        self.assertEqual(invoice.billing_month, "2026-02")
        self.assertEqual(invoice.created_at, datetime.datetime(2026, 3, 1, tzinfo=DUBAI))

    def test_december_is_invoiced_in_january(self):
        self.make_vehicle()
        result = self.run_invoices(now=datetime.datetime(2027, 1, 1, 0, 5, tzinfo=DUBAI))
        self.assertEqual(result.billing_month, "2026-12")
        self.assertEqual(Invoice.objects.get().created_at, datetime.datetime(2027, 1, 1, tzinfo=DUBAI))

    # ---------- per wash ----------

    def test_per_wash_daily_vehicle(self):
        vehicle = self.make_vehicle(amount="260.00")
        # nine regular washes plus one just before midnight on the 31st
        self.complete_washes(vehicle, range(2, 11))
        Job.objects.create(
            customer=vehicle.customer,
            vehicle=vehicle,
            assigned_date=datetime.date(2026, 3, 31),
            status="completed",
            completed_date=datetime.datetime(2026, 3, 31, 23, 30, tzinfo=DUBAI),
        )

        result = self.run_invoices(mode=MODE_PER_WASH)

        self.assertEqual(result.created, 1)
        invoice = Invoice.objects.get()
        self.assertEqual(invoice.completed_washes, 10)
        self.assertEqual(invoice.expected_washes, 26)
        self.assertEqual(invoice.per_wash_rate, Decimal("10.0000"))
        self.assertEqual(invoice.amount_charged, Decimal("100.00"))
        self.assertEqual(invoice.invoice_mode, MODE_PER_WASH)

    def test_per_wash_ignores_other_months_pending_and_deleted_jobs(self):
        vehicle = self.make_vehicle(amount="260.00")
        self.complete_washes(vehicle, [2, 3])
        self.complete_washes(vehicle, [1], month=4)
        Job.objects.create(customer=vehicle.customer, vehicle=vehicle,
                           assigned_date=datetime.date(2026, 3, 4))
        Job.objects.create(customer=vehicle.customer, vehicle=vehicle,
                           assigned_date=datetime.date(2026, 3, 5), status="completed",
                           completed_date=datetime.datetime(2026, 3, 5, 9, 0, tzinfo=DUBAI),
                           is_deleted=True)

        self.run_invoices(mode=MODE_PER_WASH)

        self.assertEqual(Invoice.objects.get().completed_washes, 2)
        self.assertEqual(Invoice.objects.get().amount_charged, Decimal("20.00"))

    def test_per_wash_weekly_vehicle(self):
        vehicle = self.make_vehicle(amount="130.00", schedule_type=SCHEDULE_WEEKLY,
                                    schedule_days=["Mon", "Wed", "Fri"])
        self.complete_washes(vehicle, [2, 4, 6])

        self.run_invoices(mode=MODE_PER_WASH)

        invoice = Invoice.objects.get()
        self.assertEqual(invoice.expected_washes, 13)
        self.assertEqual(invoice.amount_charged, Decimal("30.00"))

    def test_per_wash_without_completed_washes_is_skipped(self):
        self.make_vehicle()

        result = self.run_invoices(mode=MODE_PER_WASH)

        self.assertEqual(result.created, 0)
        self.assertEqual(result.skipped_no_washes, 1)

    def test_per_wash_rounding(self):
        rate, charge = per_wash_charge(Decimal("100.00"), 7, 26)
        self.assertEqual(charge, Decimal("26.92"))
        # no expected washes: the monthly amount is the rate
        rate, charge = per_wash_charge(Decimal("80.00"), 2, 0)
        self.assertEqual(rate, Decimal("80.00"))
        self.assertEqual(charge, Decimal("160.00"))
        self.assertEqual(round2(Decimal("2.345")), Decimal("2.35"))

    # ---------- parameters ----------

    def test_invalid_mode_fails_before_any_query(self):
        with self.assertNumQueries(0):
            with self.assertRaises(InvalidRunParameters):
                self.run_invoices(mode="monthly")

    def test_half_specified_period_is_rejected(self):
        with self.assertRaises(InvalidRunParameters):
            self.run_invoices(month=3)

    def test_check_existing(self):
        vehicle = self.make_vehicle()
        self.assertEqual(check_existing(2026, 3), {"exists": False, "count": 0, "billing_month": "2026-03"})

        self.make_invoice(vehicle, APRIL_1, billing_month="2026-03")

        self.assertEqual(check_existing(2026, 3), {"exists": True, "count": 1, "billing_month": "2026-03"})
        self.assertEqual(check_existing("2026", "4")["exists"], False)
