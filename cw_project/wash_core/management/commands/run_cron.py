from django.core.management.base import BaseCommand, CommandError

from wash_core.exceptions import InvalidRunParameters
from wash_core.services import (close_month, generate_invoices, generate_jobs,
                                revert_month)


class Command(BaseCommand):
    help = (
        "Run one scheduled billing job by hand: "
        "jobs [YYYY-MM-DD] | invoice [--month M --year Y --mode MODE] | "
        "close --month M --year Y | revert --month M --year Y"
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "job",
            choices=["jobs", "invoice", "close", "revert"],
            help="Which run to execute",
        )
        parser.add_argument(
            "date",  # only read by "jobs"
            nargs="?",
            default=None,
            help="Target date for 'jobs' (default: tomorrow in the service zone)",
        )
        parser.add_argument("--month", type=int, default=None, help="Month number, 1-12")
        parser.add_argument("--year", type=int, default=None, help="Four digit year")
        parser.add_argument(
            "--mode",
            choices=["full_subscription", "per_wash"],
            default=None,
            help="Invoice pricing mode (default: WASH_DEFAULT_INVOICE_MODE)",
        )

    def handle(self, *args, **options):
        job = options["job"]
        self.stdout.write(self.style.NOTICE(f"Running {job}..."))

        try:
            if job == "jobs":
                result = generate_jobs(target_date=options["date"])
            elif job == "invoice":
                result = generate_invoices(
                    year=options["year"], month=options["month"], mode=options["mode"]
                )
            elif job == "close":
                result = close_month(options["year"], options["month"])
            else:
                result = revert_month(options["year"], options["month"])
        except InvalidRunParameters as e:
            raise CommandError(str(e)) from e

        for key, value in result.as_dict().items():
            self.stdout.write(f"  {key}: {value}")

        if not result.success or getattr(result, "failed", 0):
            raise CommandError(result.message or f"{job} failed")
        self.stdout.write(self.style.SUCCESS(result.message or f"{job} finished"))
