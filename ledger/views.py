#  ledger/views.py

"""
JSON endpoints for the share price dashboard.

The share price endpoint recomputes the valuation chain (through a short
cache); the valuation endpoints only read back what has been stored.
"""

import logging

from django.conf import settings
from django.contrib.auth.decorators import login_required
from django.core.cache import cache
from django.http import HttpResponse, JsonResponse
from django.views.decorators.http import require_GET

from .exceptions import (
    AggregationFailure,
    InvalidPeriodError,
    NoDataError,
    ValuationStoreError,
)
from .services.reporting import ownership_report, share_totals
from .services.valuation import (
    compute_valuation,
    resolve_target,
    validate_period,
    valuation_to_dict,
)
from .services.valuation_store import ValuationStore
from .utils.cache_helpers import share_price_cache_key

logger = logging.getLogger(__name__)

TRUTHY = {"1", "true", "yes", "on"}


def _error(code: str, message: str, status: int, **extra) -> JsonResponse:
    return JsonResponse({"error": code, "message": message, **extra}, status=status)


def _requested_target(request):
    return resolve_target(
        request.GET.get("month") or None,
        request.GET.get("year") or None,
    )


@require_GET
@login_required
def share_price_json(request):
    """Current valuation and share price plus the full chain for charting."""
    try:
        target = _requested_target(request)
    except InvalidPeriodError as e:
        return _error("invalid_period", str(e), 400)

    cache_key = share_price_cache_key(target)
    cached = cache.get(cache_key)
    if cached is not None:
        return JsonResponse(cached)

    try:
        result = compute_valuation(target.month, target.year)
        payload = result.as_dict()
        payload["totals"] = share_totals(target.month, target.year)
    except NoDataError as e:
        return _error("no_data", str(e), 404, current=None, history=[])
    except (AggregationFailure, ValuationStoreError) as e:
        logger.error("Share price calculation failed for %s: %s", target, e)
        return _error("failed", "Failed to load share price data.", 503)

    timeout = settings.TERRACOTTA_VALUATION.get("CACHE_TIMEOUT", 300)
    cache.set(cache_key, payload, timeout)
    return JsonResponse(payload)


@require_GET
@login_required
def valuation_history_json(request):
    """Stored valuation rows, oldest first. Does not recompute."""
    rows = ValuationStore().list_all()
    return JsonResponse({"history": [valuation_to_dict(v) for v in rows]})


@require_GET
@login_required
def valuation_detail_json(request, year, month):
    try:
        period = validate_period(month, year)
    except InvalidPeriodError as e:
        return _error("invalid_period", str(e), 400)

    valuation = ValuationStore().get(period.month, period.year)
    if valuation is None:
        return _error("not_found", f"No valuation stored for {period}.", 404)
    return JsonResponse(valuation_to_dict(valuation))


@require_GET
@login_required
def ownership_json(request):
    """Per-member share ownership through the requested month."""
    try:
        target = _requested_target(request)
    except InvalidPeriodError as e:
        return _error("invalid_period", str(e), 400)

    exclude = request.GET.get("exclude_non_members", "").lower() in TRUTHY
    try:
        members = ownership_report(target.month, target.year, exclude_non_member_shares=exclude)
    except AggregationFailure as e:
        logger.error("Ownership report failed for %s: %s", target, e)
        return _error("failed", "Failed to load ownership data.", 503)

    return JsonResponse({
        "period": target.label,
        "exclude_non_members": exclude,
        "members": members,
    })


def healthz(_request):
    """
    Lightweight health endpoint used by external monitors to keep the app warm.
    Must not touch the database or perform expensive work.
    """
    response = HttpResponse("ok", content_type="text/plain", status=200)
    # Avoid intermediary caches; make sure the request reaches the app
    response["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
    response["X-Robots-Tag"] = "noindex, nofollow"
    return response
