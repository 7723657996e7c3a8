import logging

from celery import shared_task

from .exceptions import NoDataError
from .services.valuation import compute_valuation, recompute_year

logger = logging.getLogger(__name__)


@shared_task
def recompute_valuations_task(month=None, year=None):
    """Refresh the valuation chain off-request.

    With only ``year`` the whole year is refreshed (capped at the current
    month); with neither the current month is used.
    """
    try:
        if year is not None and month is None:
            result = recompute_year(year)
        else:
            result = compute_valuation(month, year)
    except NoDataError:
        logger.info("No ledger activity yet, nothing to recompute")
        return None

    current = result.current
    return {
        "period": current.period.label,
        "months": len(result.history),
        "share_price": str(current.terracotta_share_price),
    }
