from django.urls import path

from .views import (
    healthz,
    ownership_json,
    share_price_json,
    valuation_detail_json,
    valuation_history_json,
)

urlpatterns = [
    # Valuation & share price
    path("api/share-price/", share_price_json, name="share_price_json"),
    path("api/valuations/", valuation_history_json, name="valuation_history_json"),
    path("api/valuations/<int:year>/<int:month>/", valuation_detail_json, name="valuation_detail_json"),

    # Reporting
    path("api/ownership/", ownership_json, name="ownership_json"),

    # Health check
    path("healthz", healthz, name="healthz"),
]
