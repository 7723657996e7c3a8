from datetime import date
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.db import DatabaseError

from ledger.exceptions import AggregationFailure
from ledger.models import Member
from ledger.services.reporting import ownership_report, pct, share_totals

from .factories import MemberFactory, ShareTransactionFactory


def test_pct_rounds_half_up():
    assert pct(1, 3) == Decimal("33.33")
    assert pct(2, 3) == Decimal("66.67")
    assert pct(5, 0) == Decimal("0.00")


@pytest.mark.django_db
def test_share_totals_split_members_and_outsiders():
    outsider = MemberFactory(role=Member.Role.NON_MEMBER)
    ShareTransactionFactory(date=date(2024, 1, 5), share_count=Decimal("60"), contribution_amount=Decimal("600"))
    ShareTransactionFactory(member=outsider, date=date(2024, 1, 9), share_count=Decimal("40"), contribution_amount=Decimal("400"))
    ShareTransactionFactory(date=date(2024, 2, 1), share_count=Decimal("999"))

    assert share_totals(1, 2024) == {
        "cumulative_contributions": 1000.0,
        "outstanding_shares": 100.0,
        "member_shares": 60.0,
    }


@pytest.mark.django_db
def test_ownership_sorted_by_holding():
    small = MemberFactory(member_code="S")
    large = MemberFactory(member_code="L")
    ShareTransactionFactory(member=small, date=date(2024, 1, 1), share_count=Decimal("1"))
    ShareTransactionFactory(member=large, date=date(2024, 1, 1), share_count=Decimal("2"))

    rows = ownership_report(1, 2024)
    assert [r["member_code"] for r in rows] == ["L", "S"]
    assert [r["share_percentage"] for r in rows] == [66.67, 33.33]


@pytest.mark.django_db
def test_ownership_empty_before_any_shares():
    assert ownership_report(1, 2024) == []


@pytest.mark.django_db
def test_member_lookup_failure_raises():
    ShareTransactionFactory(date=date(2024, 1, 1))
    with patch.object(Member.objects, "in_bulk", side_effect=DatabaseError):
        with pytest.raises(AggregationFailure):
            ownership_report(1, 2024)
