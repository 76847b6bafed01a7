class WashCoreError(Exception):
    """Base class for errors raised by the scheduling and billing engine."""


class InvalidRunParameters(WashCoreError, ValueError):
    """
    A batch run was asked for something it cannot do
    (unknown invoice mode, half-given period, bad date).
    Raised before any database access.
    """
