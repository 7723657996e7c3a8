"""Display-only share figures for dashboards.

Nothing here writes to the valuation chain. The non-member exclusion offered
by these helpers affects what is shown, never the stored share price.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP

from django.db import DatabaseError

from ..exceptions import AggregationFailure
from ..models import Member
from .aggregation import LedgerAggregator, LedgerSnapshot, exclude_non_members
from .valuation import validate_period

logger = logging.getLogger(__name__)


# Helper for consistent percentage math with Decimals
def pct(part, whole) -> Decimal:
    if not whole:
        return Decimal("0.00")
    return (Decimal(part) / Decimal(whole) * Decimal("100")).quantize(
        Decimal("0.01"), rounding=ROUND_HALF_UP
    )


def share_totals(month, year) -> dict:
    """Cumulative contributions and shares through the end of the month."""
    key = validate_period(month, year)
    snapshot = LedgerSnapshot.from_database(until=key.last_day())
    everyone = LedgerAggregator(snapshot)
    members_only = LedgerAggregator(snapshot, share_filter=exclude_non_members)
    return {
        "cumulative_contributions": float(everyone.cumulative_contributions(key.month, key.year)),
        "outstanding_shares": float(everyone.cumulative_shares(key.month, key.year)),
        "member_shares": float(members_only.cumulative_shares(key.month, key.year)),
    }


def ownership_report(month, year, exclude_non_member_shares=False) -> list:
    """Per-member shares and percentage of the total, largest holder first."""
    key = validate_period(month, year)
    snapshot = LedgerSnapshot.from_database(until=key.last_day())
    aggregator = LedgerAggregator(
        snapshot,
        share_filter=exclude_non_members if exclude_non_member_shares else None,
    )
    by_member = aggregator.shares_by_member(key.month, key.year)
    total = sum(by_member.values(), Decimal("0"))

    try:
        members = Member.objects.in_bulk(list(by_member))
    except DatabaseError as exc:
        raise AggregationFailure("Could not read members") from exc

    rows = []
    for member_id, shares in by_member.items():
        member = members.get(member_id)
        rows.append({
            "member_id": member_id,
            "member_code": member.member_code if member else None,
            "name": f"{member.first_name} {member.last_name}" if member else None,
            "role": member.role if member else None,
            "shares": float(shares),
            "share_percentage": float(pct(shares, total)),
        })
    rows.sort(key=lambda r: (-r["shares"], r["member_code"] or ""))
    return rows
