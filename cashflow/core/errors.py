# cashflow/core/errors.py


class CashflowError(ValueError):
    """Base class for errors raised by the cashflow package."""


class NoAnchorSnapshot(CashflowError):
    """No balance snapshot exists at or before the requested date."""

    def __init__(self, start_date):
        self.start_date = start_date
        super().__init__(
            f"No balance snapshot on or before {start_date.isoformat()}. "
            "Set your balance first: cashflow balance set <amount>"
        )


class InvalidWindow(CashflowError):
    def __init__(self, days):
        self.days = days
        super().__init__(f"Number of days must not be negative (got {days}).")


class InvalidRecurrenceDay(CashflowError):
    def __init__(self, day_of_month):
        self.day_of_month = day_of_month
        super().__init__(
            f"Day of month must be between 1 and 31 (got {day_of_month})."
        )


class EntityNotFound(CashflowError):
    pass


class AmbiguousIdentifier(CashflowError):
    pass


class StorageError(CashflowError):
    pass


class ConfigError(CashflowError):
    pass
