from django.db import transaction
from django.db.models import F

from ..models import Counter

# Sequence names in use
PAYMENTS = "payments"      # invoice numbers
SCHEDULER = "scheduler"    # job batch ids
CLOSURES = "closures"      # month-end closure batch ids


def next_id(name: str) -> int:
    """
    Allocate the next integer of a named sequence.
    Never reuses a value; the row is created on first use.
    """
    with transaction.atomic():
        # Lock the counter row until the increment commits
        counter, _ = Counter.objects.select_for_update().get_or_create(name=name)
        # Increment in SQL so two workers cannot read the same value
        Counter.objects.filter(pk=counter.pk).update(seq=F("seq") + 1)
        counter.refresh_from_db(fields=["seq"])
        return counter.seq
