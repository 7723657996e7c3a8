from datetime import date, datetime
from decimal import Decimal

import pytest

from ledger.exceptions import AggregationFailure
from ledger.models import Member
from ledger.services.aggregation import (
    LedgerAggregator,
    LedgerSnapshot,
    exclude_non_members,
    to_date,
    to_decimal,
)
from ledger.utils.date_helpers import MonthKey


def make_snapshot():
    return LedgerSnapshot.build(
        income=[
            {"date": date(2024, 1, 10), "net_amount": Decimal("1000")},
            {"date": date(2024, 1, 31), "net_amount": Decimal("50.50")},
            {"date": date(2024, 2, 1), "net_amount": Decimal("25")},
        ],
        expenses=[
            {"date": date(2024, 2, 5), "net_amount": Decimal("200")},
        ],
        shares=[
            {"date": date(2024, 2, 5), "member_id": 1, "contribution_amount": "1000", "share_count": "100"},
            {
                "date": date(2024, 3, 1),
                "member_id": 2,
                "contribution_amount": "500",
                "share_count": "50",
                "member_role": Member.Role.NON_MEMBER,
            },
        ],
    )


def test_monthly_sums_respect_month_boundaries():
    agg = LedgerAggregator(make_snapshot())
    assert agg.sum_net_income(1, 2024) == Decimal("1050.50")
    assert agg.sum_net_income(2, 2024) == Decimal("25")
    assert agg.sum_net_expenses(1, 2024) == Decimal("0")
    assert agg.sum_net_expenses(2, 2024) == Decimal("200")


def test_empty_month_sums_to_zero():
    agg = LedgerAggregator(make_snapshot())
    assert agg.sum_net_income(6, 2024) == 0
    assert agg.sum_net_expenses(6, 2024) == 0


def test_cumulative_shares_counts_through_month_end():
    agg = LedgerAggregator(make_snapshot())
    assert agg.cumulative_shares(1, 2024) == 0
    assert agg.cumulative_shares(2, 2024) == Decimal("100")
    assert agg.cumulative_shares(3, 2024) == Decimal("150")
    assert agg.cumulative_contributions(3, 2024) == Decimal("1500")


def test_share_filter_excludes_non_members():
    agg = LedgerAggregator(make_snapshot(), share_filter=exclude_non_members)
    assert agg.cumulative_shares(3, 2024) == Decimal("100")
    assert agg.shares_by_member(3, 2024) == {1: Decimal("100")}


def test_shares_by_member_groups_totals():
    agg = LedgerAggregator(make_snapshot())
    assert agg.shares_by_member(3, 2024) == {1: Decimal("100"), 2: Decimal("50")}


def test_earliest_month_spans_all_collections():
    snapshot = LedgerSnapshot.build(
        income=[{"date": date(2024, 5, 1), "net_amount": 1}],
        shares=[{"date": date(2023, 11, 20), "member_id": 1, "share_count": 10}],
    )
    assert LedgerAggregator(snapshot).earliest_month() == MonthKey(2023, 11)


def test_earliest_month_none_for_empty_snapshot():
    snapshot = LedgerSnapshot.build()
    assert snapshot.is_empty()
    assert LedgerAggregator(snapshot).earliest_month() is None


def test_unparseable_amount_counts_as_zero(caplog):
    snapshot = LedgerSnapshot.build(
        income=[
            {"date": date(2024, 1, 1), "net_amount": "abc"},
            {"date": date(2024, 1, 2), "net_amount": None},
            {"date": date(2024, 1, 3), "net_amount": "10"},
        ]
    )
    assert LedgerAggregator(snapshot).sum_net_income(1, 2024) == Decimal("10")
    assert "treated as 0" in caplog.text


def test_non_finite_amount_counts_as_zero():
    assert to_decimal("NaN") == 0
    assert to_decimal(Decimal("Infinity")) == 0
    assert to_decimal(" 12.50 ") == Decimal("12.50")


def test_string_and_datetime_dates_are_accepted():
    assert to_date("2024-02-29") == date(2024, 2, 29)
    assert to_date(datetime(2024, 2, 29, 13, 45)) == date(2024, 2, 29)


@pytest.mark.parametrize("value", [None, "", "not-a-date", 20240101])
def test_unusable_date_raises(value):
    with pytest.raises(AggregationFailure):
        to_date(value)


def test_build_accepts_objects():
    class Row:
        date = date(2024, 4, 2)
        net_amount = Decimal("7")

    snapshot = LedgerSnapshot.build(expenses=[Row()])
    assert LedgerAggregator(snapshot).sum_net_expenses(4, 2024) == Decimal("7")


@pytest.mark.django_db
def test_from_database_reads_until_cutoff():
    from .factories import IncomeEntryFactory, ShareTransactionFactory

    IncomeEntryFactory(date=date(2024, 1, 15), net_amount=Decimal("10"))
    IncomeEntryFactory(date=date(2024, 3, 15), net_amount=Decimal("99"))
    ShareTransactionFactory(date=date(2024, 1, 20), share_count=Decimal("5"))

    snapshot = LedgerSnapshot.from_database(until=date(2024, 1, 31))
    assert len(snapshot.income) == 1
    assert snapshot.shares[0].member_role == Member.Role.MEMBER
    assert LedgerAggregator(snapshot).cumulative_shares(1, 2024) == Decimal("5")
