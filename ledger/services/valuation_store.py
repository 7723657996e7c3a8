import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from ..models import MonthlyValuation
from ..utils.date_helpers import MonthKey

logger = logging.getLogger(__name__)


def _column_values(row) -> dict:
    """Computed fields of ``row`` quantized to their column scale."""
    values = {}
    for name in MonthlyValuation.COMPUTED_FIELDS:
        places = MonthlyValuation._meta.get_field(name).decimal_places
        values[name] = Decimal(getattr(row, name)).quantize(
            Decimal(10) ** -places, rounding=ROUND_HALF_UP
        )
    return values


class ValuationStore:
    """Keyed record store for ``MonthlyValuation`` rows. No business logic."""

    def get(self, month: int, year: int) -> Optional[MonthlyValuation]:
        return MonthlyValuation.objects.filter(month=month, year=year).first()

    def list_all(self):
        return MonthlyValuation.objects.order_by("year", "month")

    def list_range(self, start: MonthKey, end: MonthKey):
        """Rows from ``start`` through ``end`` inclusive, oldest first."""
        return self.list_all().filter(
            Q(year__gt=start.year) | Q(year=start.year, month__gte=start.month),
            Q(year__lt=end.year) | Q(year=end.year, month__lte=end.month),
        )

    def upsert(self, row) -> MonthlyValuation:
        """Insert or overwrite the row for ``(row.month, row.year)``.

        An existing row holding identical values is returned untouched so
        that repeated recomputation does not churn ``updated_at``.
        """
        values = _column_values(row)
        existing = self.get(row.month, row.year)

        if existing is not None:
            if all(getattr(existing, name) == value for name, value in values.items()):
                logger.debug("Valuation %02d/%s unchanged", row.month, row.year)
                return existing
            for name, value in values.items():
                setattr(existing, name, value)
            existing.save(update_fields=[*values, "updated_at"])
            logger.debug("Valuation %02d/%s updated", row.month, row.year)
            return existing

        try:
            with transaction.atomic():
                created = MonthlyValuation.objects.create(month=row.month, year=row.year, **values)
        except IntegrityError:
            # Another request inserted the same period first; last write wins
            logger.info("Concurrent insert for %02d/%s, overwriting", row.month, row.year)
            MonthlyValuation.objects.filter(month=row.month, year=row.year).update(
                updated_at=timezone.now(), **values
            )
            return self.get(row.month, row.year)

        logger.debug("Valuation %02d/%s created", row.month, row.year)
        return created
