"""Per-month reductions over a snapshot of the ledger.

Everything here is read-only: a ``LedgerSnapshot`` is loaded once per
request and the ``LedgerAggregator`` answers monthly questions from it
without touching the database again.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, Iterable, Optional

from dateutil.parser import isoparse
from django.db import DatabaseError
from django.db.models import F

from ..exceptions import AggregationFailure
from ..models import ExpenseEntry, IncomeEntry, Member, ShareTransaction
from ..utils.date_helpers import MonthKey

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class EntryRecord:
    date: date
    net_amount: Decimal


@dataclass(frozen=True)
class ShareRecord:
    date: date
    member_id: object
    contribution_amount: Decimal
    share_count: Decimal
    member_role: str = Member.Role.MEMBER


def _field(record, name, default=None):
    if isinstance(record, dict):
        return record.get(name, default)
    return getattr(record, name, default)


def to_decimal(value, field: str = "amount") -> Decimal:
    """Coerce an amount to Decimal. Missing or unparseable values count as 0."""
    if value is None or value == "":
        return ZERO
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        logger.warning("Unparseable %s %r treated as 0", field, value)
        return ZERO
    if not result.is_finite():
        logger.warning("Non-finite %s %r treated as 0", field, value)
        return ZERO
    return result


def to_date(value) -> date:
    """Coerce a record date. A record without a usable date cannot be aggregated."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return isoparse(value.strip()).date()
        except ValueError as exc:
            raise AggregationFailure(f"Unparseable ledger date {value!r}") from exc
    raise AggregationFailure(f"Ledger record has no usable date: {value!r}")


def exclude_non_members(record: ShareRecord) -> bool:
    """Share filter dropping transactions of members with the non-member role."""
    return record.member_role != Member.Role.NON_MEMBER


class LedgerSnapshot:
    """Immutable income, expense and share records as read at one moment."""

    def __init__(self, income=(), expenses=(), shares=()):
        self.income = tuple(income)
        self.expenses = tuple(expenses)
        self.shares = tuple(shares)

    @classmethod
    def build(cls, income: Iterable = (), expenses: Iterable = (), shares: Iterable = ()):
        """Normalize dicts or objects exposing the ledger field names."""
        return cls(
            income=[
                EntryRecord(to_date(_field(r, "date")), to_decimal(_field(r, "net_amount"), "net_amount"))
                for r in income
            ],
            expenses=[
                EntryRecord(to_date(_field(r, "date")), to_decimal(_field(r, "net_amount"), "net_amount"))
                for r in expenses
            ],
            shares=[
                ShareRecord(
                    date=to_date(_field(r, "date")),
                    member_id=_field(r, "member_id"),
                    contribution_amount=to_decimal(_field(r, "contribution_amount"), "contribution_amount"),
                    share_count=to_decimal(_field(r, "share_count"), "share_count"),
                    member_role=_field(r, "member_role") or Member.Role.MEMBER,
                )
                for r in shares
            ],
        )

    @classmethod
    def from_database(cls, until: Optional[date] = None):
        """Load the ledger, optionally only records dated on or before ``until``."""
        income_qs = IncomeEntry.objects.all()
        expense_qs = ExpenseEntry.objects.all()
        share_qs = ShareTransaction.objects.all()
        if until is not None:
            income_qs = income_qs.filter(date__lte=until)
            expense_qs = expense_qs.filter(date__lte=until)
            share_qs = share_qs.filter(date__lte=until)

        try:
            income = list(income_qs.order_by().values("date", "net_amount"))
            expenses = list(expense_qs.order_by().values("date", "net_amount"))
            shares = list(
                share_qs.order_by().values(
                    "date",
                    "member_id",
                    "contribution_amount",
                    "share_count",
                    member_role=F("member__role"),
                )
            )
        except DatabaseError as exc:
            logger.error("Failed to read ledger data: %s", exc)
            raise AggregationFailure("Could not read ledger data") from exc

        logger.debug(
            "Loaded ledger snapshot: %s income, %s expenses, %s share transactions",
            len(income), len(expenses), len(shares),
        )
        return cls.build(income, expenses, shares)

    def is_empty(self) -> bool:
        return not (self.income or self.expenses or self.shares)


class LedgerAggregator:
    """Answer monthly sums over a ``LedgerSnapshot``."""

    def __init__(self, snapshot: LedgerSnapshot, share_filter: Optional[Callable[[ShareRecord], bool]] = None):
        self.snapshot = snapshot
        self.share_filter = share_filter

    @staticmethod
    def _sum_in_month(entries, key: MonthKey) -> Decimal:
        start, end = key.first_day(), key.last_day()
        return sum((e.net_amount for e in entries if start <= e.date <= end), ZERO)

    def _shares_through(self, key: MonthKey):
        end = key.last_day()
        for record in self.snapshot.shares:
            if record.date > end:
                continue
            if self.share_filter is not None and not self.share_filter(record):
                continue
            yield record

    def sum_net_income(self, month: int, year: int) -> Decimal:
        return self._sum_in_month(self.snapshot.income, MonthKey(year, month))

    def sum_net_expenses(self, month: int, year: int) -> Decimal:
        return self._sum_in_month(self.snapshot.expenses, MonthKey(year, month))

    def cumulative_shares(self, month: int, year: int) -> Decimal:
        """Shares issued on or before the last day of the month."""
        return sum((r.share_count for r in self._shares_through(MonthKey(year, month))), ZERO)

    def cumulative_contributions(self, month: int, year: int) -> Decimal:
        """Contributions through the end of the month. Reporting only."""
        return sum((r.contribution_amount for r in self._shares_through(MonthKey(year, month))), ZERO)

    def shares_by_member(self, month: int, year: int) -> dict:
        totals = defaultdict(lambda: ZERO)
        for record in self._shares_through(MonthKey(year, month)):
            totals[record.member_id] += record.share_count
        return dict(totals)

    def earliest_month(self) -> Optional[MonthKey]:
        """Month of the earliest dated record across all three collections."""
        dates = [r.date for r in self.snapshot.income]
        dates += [r.date for r in self.snapshot.expenses]
        dates += [r.date for r in self.snapshot.shares]
        if not dates:
            return None
        return MonthKey.from_date(min(dates))
