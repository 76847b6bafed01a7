from django.db import models

# -----------------------------------------
# Soft-delete aware querysets
# Records here are never removed from the table,
# only flagged with is_deleted=True
# -----------------------------------------
class SoftDeleteQuerySet(models.QuerySet):
    def alive(self):
        return self.filter(is_deleted=False)  # skip soft-deleted rows

    def soft_delete(self, **extra):
        # Bulk flag instead of DELETE
        return self.update(is_deleted=True, **extra)


class SoftDeleteManager(models.Manager):
    def get_queryset(self):
        return SoftDeleteQuerySet(self.model, using=self._db)

    def alive(self):
        return self.get_queryset().alive()


# Invoices add "residence" scoping on top: the one-off wash family
# (onewash=True) is billed elsewhere and never touched by this engine
class InvoiceQuerySet(SoftDeleteQuerySet):
    def residence(self):
        return self.filter(is_deleted=False, onewash=False)

    def created_between(self, start, end):
        # half-open range [start, end)
        return self.filter(created_at__gte=start, created_at__lt=end)

    def for_vehicle(self, customer_id, vehicle_id):
        return self.filter(customer_id=customer_id, vehicle_id=vehicle_id)


class InvoiceManager(SoftDeleteManager):
    def get_queryset(self):
        return InvoiceQuerySet(self.model, using=self._db)

    def residence(self):
        return self.get_queryset().residence()
