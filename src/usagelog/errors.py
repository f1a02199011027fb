class UsageLogError(Exception):
    """
    base class for all errors raised by usagelog.
    """


class StoreError(UsageLogError):
    """
    raised when the snapshot store fails. The unit of work that
    was in flight has been rolled back by the time it surfaces.
    """


class InvalidPeriodError(UsageLogError, ValueError):
    """
    raised for reporting periods with a non-positive duration.
    """
