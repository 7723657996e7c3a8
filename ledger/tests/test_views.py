from datetime import date
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.urls import reverse

from ledger.exceptions import AggregationFailure, ValuationStoreError
from ledger.models import Member

from .factories import ExpenseEntryFactory, IncomeEntryFactory, MemberFactory, ShareTransactionFactory


@pytest.fixture
def q1_ledger():
    IncomeEntryFactory(date=date(2024, 1, 12), net_amount=Decimal("1000"))
    ExpenseEntryFactory(date=date(2024, 2, 20), net_amount=Decimal("200"))
    ShareTransactionFactory(date=date(2024, 2, 5), share_count=Decimal("100"), contribution_amount=Decimal("1000"))


@pytest.mark.django_db
def test_share_price_requires_login(client):
    response = client.get(reverse("share_price_json"), {"month": 3, "year": 2024})
    assert response.status_code == 302
    assert response["Location"].startswith("/site-admin/login/")


@pytest.mark.django_db
def test_share_price_returns_current_and_history(logged_client, q1_ledger):
    response = logged_client.get(reverse("share_price_json"), {"month": 3, "year": 2024})
    assert response.status_code == 200
    data = response.json()
    assert data["current"]["label"] == "2024-03"
    assert data["current"]["terracotta_valuation"] == 800.0
    assert data["current"]["terracotta_share_price"] == 8.0
    assert [h["label"] for h in data["history"]] == ["2024-01", "2024-02", "2024-03"]
    assert data["totals"] == {
        "cumulative_contributions": 1000.0,
        "outstanding_shares": 100.0,
        "member_shares": 100.0,
    }


@pytest.mark.django_db
def test_share_price_defaults_to_current_month(logged_client):
    IncomeEntryFactory(date=date(2024, 1, 12), net_amount=Decimal("10"))
    with patch("ledger.services.valuation.timezone.localdate", return_value=date(2024, 2, 10)):
        response = logged_client.get(reverse("share_price_json"))
    assert response.status_code == 200
    assert response.json()["current"]["label"] == "2024-02"


@pytest.mark.django_db
@pytest.mark.parametrize("params", [{"month": 13, "year": 2024}, {"month": "abc", "year": 2024}, {"month": 1, "year": 3000}])
def test_share_price_invalid_period(logged_client, params):
    response = logged_client.get(reverse("share_price_json"), params)
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_period"


@pytest.mark.django_db
def test_share_price_without_data_is_404(logged_client):
    response = logged_client.get(reverse("share_price_json"), {"month": 3, "year": 2024})
    assert response.status_code == 404
    data = response.json()
    assert data["error"] == "no_data"
    assert data["current"] is None
    assert data["history"] == []


@pytest.mark.django_db
@pytest.mark.parametrize("exc", [AggregationFailure("boom"), ValuationStoreError("boom")])
def test_share_price_failure_is_503(logged_client, q1_ledger, exc):
    with patch("ledger.views.compute_valuation", side_effect=exc):
        response = logged_client.get(reverse("share_price_json"), {"month": 3, "year": 2024})
    assert response.status_code == 503
    assert response.json() == {"error": "failed", "message": "Failed to load share price data."}


@pytest.mark.django_db
def test_share_price_is_cached_until_ledger_changes(logged_client, q1_ledger):
    url = reverse("share_price_json")
    params = {"month": 3, "year": 2024}
    assert logged_client.get(url, params).json()["current"]["terracotta_valuation"] == 800.0

    with patch("ledger.views.compute_valuation", side_effect=AssertionError("should be cached")):
        assert logged_client.get(url, params).status_code == 200

    IncomeEntryFactory(date=date(2024, 3, 3), net_amount=Decimal("400"))
    assert logged_client.get(url, params).json()["current"]["terracotta_valuation"] == 1200.0


@pytest.mark.django_db
def test_share_price_rejects_post(logged_client):
    response = logged_client.post(reverse("share_price_json"))
    assert response.status_code == 405


@pytest.mark.django_db
def test_valuation_history_lists_stored_rows(logged_client, q1_ledger):
    assert logged_client.get(reverse("valuation_history_json")).json() == {"history": []}

    logged_client.get(reverse("share_price_json"), {"month": 2, "year": 2024})
    data = logged_client.get(reverse("valuation_history_json")).json()
    assert [h["label"] for h in data["history"]] == ["2024-01", "2024-02"]


@pytest.mark.django_db
def test_valuation_detail(logged_client, q1_ledger):
    logged_client.get(reverse("share_price_json"), {"month": 3, "year": 2024})

    response = logged_client.get(reverse("valuation_detail_json", args=[2024, 3]))
    assert response.status_code == 200
    assert response.json()["terracotta_share_price"] == 8.0

    missing = logged_client.get(reverse("valuation_detail_json", args=[2024, 4]))
    assert missing.status_code == 404
    assert missing.json()["error"] == "not_found"

    invalid = logged_client.get(reverse("valuation_detail_json", args=[2024, 13]))
    assert invalid.status_code == 400


@pytest.mark.django_db
def test_ownership_report(logged_client):
    alice = MemberFactory(member_code="A1", first_name="Alice", last_name="Silva")
    bob = MemberFactory(member_code="B1", first_name="Bob", last_name="Costa", role=Member.Role.NON_MEMBER)
    ShareTransactionFactory(member=alice, date=date(2024, 1, 5), share_count=Decimal("75"))
    ShareTransactionFactory(member=bob, date=date(2024, 1, 6), share_count=Decimal("25"))

    data = logged_client.get(reverse("ownership_json"), {"month": 1, "year": 2024}).json()
    assert data["period"] == "2024-01"
    assert data["exclude_non_members"] is False
    assert [(m["member_code"], m["share_percentage"]) for m in data["members"]] == [("A1", 75.0), ("B1", 25.0)]
    assert data["members"][0]["name"] == "Alice Silva"

    members_only = logged_client.get(
        reverse("ownership_json"), {"month": 1, "year": 2024, "exclude_non_members": "1"}
    ).json()
    assert members_only["exclude_non_members"] is True
    assert [(m["member_code"], m["share_percentage"]) for m in members_only["members"]] == [("A1", 100.0)]


@pytest.mark.django_db
def test_ownership_failure_is_503(logged_client):
    with patch("ledger.views.ownership_report", side_effect=AggregationFailure("boom")):
        response = logged_client.get(reverse("ownership_json"), {"month": 1, "year": 2024})
    assert response.status_code == 503
