"""Errors raised by the valuation engine."""


class ValuationError(Exception):
    """Base class for valuation failures."""


class NoDataError(ValuationError):
    """No ledger activity exists for the requested chain."""

    def __init__(self, message="No share price history available."):
        super().__init__(message)


class AggregationFailure(ValuationError):
    """Ledger data needed by the chain could not be read."""


class InvalidPeriodError(ValuationError, ValueError):
    """Requested month/year is outside the accepted bounds."""


class ValuationStoreError(ValuationError):
    """The computed chain could not be written."""
