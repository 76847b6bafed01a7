from .actions import (close_month_of_selected, restore_selected,
                      revert_selected_closures, soft_delete_selected)
from .auditlog import AuditLogAdmin
from .building import BuildingAdmin, WorkerAdmin
from .closure import MonthClosureAdmin
from .customer import CustomerAdmin
from .inlines import (ClosureEntryInline, PaymentTransactionInline,
                      VehicleInline)
from .invoice import InvoiceAdmin
from .job import JobAdmin
from .ReadOnly import ReadOnlyAdmin
