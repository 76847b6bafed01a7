from typing import Optional

from ..models import AuditLog


def actor_label(user=None, default: str = "") -> str:
    """Turn a request user, a plain string or None into the stored actor name."""
    if user is None:
        return default
    if isinstance(user, str):
        return user
    return getattr(user, "get_username", lambda: str(user))() or default


def log_action(
    *,
    action: str,
    instance,
    user=None,
    changes: Optional[dict] = None,
):
    """
    Central audit logger for money-moving operations
    (month-end close/revert, carry-forward, payment collection).
    One row per call: callers log once per invoice they change.
    """
    AuditLog.objects.create(
        user=actor_label(user),
        action=action,
        object_type=instance.__class__.__name__,
        object_id=str(instance.pk),
        changes=changes,
    )
