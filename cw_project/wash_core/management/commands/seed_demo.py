from datetime import timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from wash_core.models import Building, Customer, Vehicle, Worker
from wash_core.models.customer import SCHEDULE_DAILY, SCHEDULE_WEEKLY
from wash_core.services.periods import service_today


class Command(BaseCommand):
    help = "Seeds the database with a demo building, workers, customers and vehicles."

    # Define command-line argument
    def add_arguments(self, parser):
        parser.add_argument(
            "--building",  # Define flag
            type=str,
            default="Marina Heights",
            help="Name of the demo building (default: Marina Heights)",
        )
        parser.add_argument(
            "--same-day",
            action="store_true",
            help="Flag the building for same-day job scheduling",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        name = options["building"]  # Read argument from add_arguments()
        self.stdout.write(self.style.NOTICE(f"Seeding demo data for {name}..."))

        building, _ = Building.objects.get_or_create(
            name=name,
            defaults={"location": "Dubai Marina", "schedule_today": options["same_day"]},
        )
        ali, _ = Worker.objects.get_or_create(name="Ali", defaults={"mobile": "0501111111"})
        ravi, _ = Worker.objects.get_or_create(name="Ravi", defaults={"mobile": "0502222222"})

        started = service_today() - timedelta(days=30)
        demo = [
            # first, last, registration, parking, schedule, days, amount, worker
            ("Sara", "Khan", "D 12345", "B1-014", SCHEDULE_DAILY, [], "260.00", ali),
            ("Omar", "Haddad", "A 55021", "B2-101", SCHEDULE_WEEKLY, ["Mon", "Wed", "Fri"], "150.00", ravi),
            ("Lena", "Fischer", "K 90877", "B1-220", SCHEDULE_WEEKLY, [{"day": "Sat", "value": 6}], "80.00", None),
        ]

        created = 0
        for first, last, reg, parking, schedule, days, amount, worker in demo:
            customer, _ = Customer.objects.get_or_create(
                first_name=first,
                last_name=last,
                defaults={"building": building, "location": building.location},
            )
            _, is_new = Vehicle.objects.get_or_create(
                customer=customer,
                registration_no=reg,
                defaults={
                    "parking_no": parking,
                    "schedule_type": schedule,
                    "schedule_days": days,
                    "amount": Decimal(amount),
                    "start_date": started,
                    "worker": worker,
                },
            )
            created += int(is_new)

        self.stdout.write(self.style.SUCCESS(f"Demo data seeded successfully! ({created} new vehicles)"))
