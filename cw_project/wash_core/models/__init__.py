from .auditlog import AuditLog
from .building import Building, Worker
from .closure import ClosureEntry, MonthClosure
from .counter import Counter
from .customer import Customer, Vehicle
from .invoice import Invoice, PaymentTransaction
from .job import Job
