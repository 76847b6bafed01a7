from django.core.exceptions import ValidationError
from django.db.models.signals import pre_delete
from django.dispatch import receiver

from .models import Invoice, Job

""" Invoices are financial records: soft delete only. """


# pre_delete signal auto-fires just before Django deletes a model instance
@receiver(pre_delete, sender=Invoice)
def prevent_delete_invoice(sender, instance, **kwargs):
    raise ValidationError(
        "Invoices cannot be deleted; set is_deleted=True instead.")


""" Jobs feed per-wash billing: soft delete only. """


@receiver(pre_delete, sender=Job)
def prevent_delete_job(sender, instance, **kwargs):
    raise ValidationError(
        "Jobs cannot be deleted; set is_deleted=True instead.")
