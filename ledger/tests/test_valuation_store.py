from decimal import Decimal
from unittest.mock import patch

import pytest
from django.db import IntegrityError

from ledger.models import MonthlyValuation
from ledger.services.valuation import ValuationRow
from ledger.services.valuation_store import ValuationStore
from ledger.utils.date_helpers import MonthKey


def row(month=1, year=2024, valuation="1000", price="0"):
    return ValuationRow(
        month=month,
        year=year,
        total_inflows=Decimal(valuation),
        total_outflows=Decimal("0"),
        total_flows=Decimal(valuation),
        total_shares_previous_month=Decimal("0"),
        terracotta_valuation=Decimal(valuation),
        terracotta_share_price=Decimal(price),
    )


@pytest.mark.django_db
def test_upsert_keeps_one_row_per_period():
    store = ValuationStore()
    store.upsert(row(valuation="100"))
    store.upsert(row(valuation="250"))

    assert MonthlyValuation.objects.count() == 1
    assert store.get(1, 2024).terracotta_valuation == Decimal("250.00")


@pytest.mark.django_db
def test_upsert_quantizes_to_column_scale():
    stored = ValuationStore().upsert(row(valuation="10.005", price=str(Decimal(1) / Decimal(3))))
    assert stored.terracotta_valuation == Decimal("10.01")
    assert stored.terracotta_share_price == Decimal("0.333333")


@pytest.mark.django_db
def test_upsert_skips_unchanged_row():
    store = ValuationStore()
    first = store.upsert(row())
    with patch.object(MonthlyValuation, "save") as save:
        again = store.upsert(row())
    save.assert_not_called()
    assert again.pk == first.pk


@pytest.mark.django_db
def test_concurrent_insert_falls_back_to_update():
    store = ValuationStore()
    MonthlyValuation.objects.create(month=1, year=2024)

    with patch.object(store, "get", side_effect=[None, MonthlyValuation.objects.get(month=1, year=2024)]):
        with patch.object(MonthlyValuation.objects, "create", side_effect=IntegrityError):
            store.upsert(row(valuation="42"))

    assert MonthlyValuation.objects.get(month=1, year=2024).terracotta_valuation == Decimal("42.00")


@pytest.mark.django_db
def test_list_range_is_inclusive_and_ordered():
    store = ValuationStore()
    for month, year in [(11, 2023), (12, 2023), (1, 2024), (2, 2024), (3, 2024)]:
        store.upsert(row(month=month, year=year))

    rows = store.list_range(MonthKey(2023, 12), MonthKey(2024, 2))
    assert [(r.year, r.month) for r in rows] == [(2023, 12), (2024, 1), (2024, 2)]
    assert [(r.year, r.month) for r in store.list_all()][0] == (2023, 11)


@pytest.mark.django_db
def test_get_missing_period_returns_none():
    assert ValuationStore().get(7, 2030) is None
