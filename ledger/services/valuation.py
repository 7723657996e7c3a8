"""Monthly valuation and share price chain.

Valuation of month N is the running total of net flows (income minus
expenses) from the floor month through N. The share price divides that
valuation by the shares outstanding at the end of the month before N, and is
0 while no shares have been issued.

The chain is recomputed from the floor month on every request because
ledger entries can be edited or backfilled after the fact.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils import timezone

from ..exceptions import InvalidPeriodError, NoDataError, ValuationStoreError
from ..models import MAX_YEAR, MIN_YEAR, MonthlyValuation
from ..utils.date_helpers import MonthKey, month_range
from .aggregation import LedgerAggregator, LedgerSnapshot, exclude_non_members
from .valuation_store import ValuationStore

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class ValuationRow:
    month: int
    year: int
    total_inflows: Decimal
    total_outflows: Decimal
    total_flows: Decimal
    total_shares_previous_month: Decimal
    terracotta_valuation: Decimal
    terracotta_share_price: Decimal

    @property
    def period(self) -> MonthKey:
        return MonthKey(self.year, self.month)


@dataclass(frozen=True)
class ValuationAccumulator:
    """State carried from one month to the next."""

    prior_valuation: Decimal = ZERO
    prior_shares: Decimal = ZERO


@dataclass
class ValuationResult:
    current: MonthlyValuation
    history: List[MonthlyValuation] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "current": valuation_to_dict(self.current),
            "history": [valuation_to_dict(v) for v in self.history],
        }


def valuation_to_dict(valuation) -> dict:
    return {
        "month": valuation.month,
        "year": valuation.year,
        "label": MonthKey(valuation.year, valuation.month).label,
        "total_inflows": float(valuation.total_inflows),
        "total_outflows": float(valuation.total_outflows),
        "total_flows": float(valuation.total_flows),
        "terracotta_valuation": float(valuation.terracotta_valuation),
        "terracotta_share_price": float(valuation.terracotta_share_price),
        "total_shares_previous_month": float(valuation.total_shares_previous_month),
    }


def _whole_number(value, name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise InvalidPeriodError(f"Invalid {name} {value!r}") from exc
    # int() truncates 2.9 to 2
    if not isinstance(value, str) and number != value:
        raise InvalidPeriodError(f"Invalid {name} {value!r}")
    return number


def validate_period(month, year) -> MonthKey:
    month = _whole_number(month, "month")
    year = _whole_number(year, "year")
    if not 1 <= month <= 12:
        raise InvalidPeriodError(f"Month must be between 1 and 12, got {month}")
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise InvalidPeriodError(f"Year must be between {MIN_YEAR} and {MAX_YEAR}, got {year}")
    return MonthKey(year, month)


def resolve_target(month=None, year=None) -> MonthKey:
    """Requested period, defaulting missing parts to the current month."""
    today = timezone.localdate()
    return validate_period(
        today.month if month is None else month,
        today.year if year is None else year,
    )


def valuation_step(acc: ValuationAccumulator, key: MonthKey, aggregator: LedgerAggregator):
    """Compute one month and the accumulator handed to the next."""
    inflows = aggregator.sum_net_income(key.month, key.year)
    outflows = aggregator.sum_net_expenses(key.month, key.year)
    flows = inflows - outflows
    valuation = acc.prior_valuation + flows
    shares_previous = acc.prior_shares
    share_price = valuation / shares_previous if shares_previous > 0 else ZERO

    row = ValuationRow(
        month=key.month,
        year=key.year,
        total_inflows=inflows,
        total_outflows=outflows,
        total_flows=flows,
        total_shares_previous_month=shares_previous,
        terracotta_valuation=valuation,
        terracotta_share_price=share_price,
    )
    logger.debug(
        "%s inflows=%s outflows=%s valuation=%s shares_prev=%s price=%s",
        key, inflows, outflows, valuation, shares_previous, share_price,
    )
    next_acc = ValuationAccumulator(
        prior_valuation=valuation,
        prior_shares=aggregator.cumulative_shares(key.month, key.year),
    )
    return row, next_acc


def compute_chain(aggregator: LedgerAggregator, floor: MonthKey, target: MonthKey) -> List[ValuationRow]:
    """Fold the months from ``floor`` through ``target`` into valuation rows."""
    before_floor = floor.previous()
    acc = ValuationAccumulator(
        prior_valuation=ZERO,
        prior_shares=aggregator.cumulative_shares(before_floor.month, before_floor.year),
    )
    rows = []
    for key in month_range(floor, target):
        row, acc = valuation_step(acc, key, aggregator)
        rows.append(row)
    return rows


def _default_share_filter(exclude_non_member_shares: Optional[bool]):
    if exclude_non_member_shares is None:
        conf = getattr(settings, "TERRACOTTA_VALUATION", {})
        exclude_non_member_shares = conf.get("EXCLUDE_NON_MEMBER_SHARES", False)
    return exclude_non_members if exclude_non_member_shares else None


class ValuationEngine:
    """Recompute and persist the valuation chain up to a requested month."""

    def __init__(self, store: Optional[ValuationStore] = None, exclude_non_member_shares: Optional[bool] = None):
        self.store = store or ValuationStore()
        self.share_filter = _default_share_filter(exclude_non_member_shares)

    def compute(self, target_month=None, target_year=None) -> ValuationResult:
        target = resolve_target(target_month, target_year)

        # Records dated after the target cannot affect any month in the chain
        snapshot = LedgerSnapshot.from_database(until=target.last_day())
        aggregator = LedgerAggregator(snapshot, share_filter=self.share_filter)

        floor = aggregator.earliest_month()
        if floor is None:
            logger.info("No ledger activity on or before %s", target)
            raise NoDataError()

        rows = compute_chain(aggregator, floor, target)
        history = self._persist(rows, floor, target)
        logger.info("Valuation chain %s..%s recomputed (%s months)", floor, target, len(history))
        return ValuationResult(current=history[-1], history=history)

    def _persist(self, rows: List[ValuationRow], floor: MonthKey, target: MonthKey) -> List[MonthlyValuation]:
        """Write the whole chain or nothing, then read it back in order."""
        try:
            with transaction.atomic():
                for row in rows:
                    self.store.upsert(row)
                return list(self.store.list_range(floor, target))
        except DatabaseError as exc:
            logger.error("Failed to save valuation chain: %s", exc)
            raise ValuationStoreError("Could not save valuation chain") from exc


def compute_valuation(target_month=None, target_year=None) -> ValuationResult:
    """Recompute the chain through the target month (default: current month)."""
    return ValuationEngine().compute(target_month, target_year)


def recompute_year(year) -> ValuationResult:
    """Recompute through December of ``year``, capped at the current month."""
    validate_period(1, year)
    today = timezone.localdate()
    year = int(year)
    if year >= today.year:
        return compute_valuation(today.month, today.year)
    return compute_valuation(12, year)
