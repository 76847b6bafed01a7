from .counters import next_id
from .invoicing import (InvoiceRunResult, check_existing, generate_invoices,
                        round2)
from .jobs import JobRunResult, generate_jobs
from .month_end import (CloseResult, RevertResult, close_month,
                        months_overview, revert_closure, revert_month)
from .payment import collect_payment
from .periods import BillingPeriod, BillingPeriodResolver, service_today
