from django.conf import settings
from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("", include("ledger.urls")),
    path("site-admin/", admin.site.urls),
]

if settings.DEBUG and getattr(settings, "SHOW_DEBUG_TOOLBAR", False):
    import debug_toolbar
    urlpatterns = [path("__debug__/", include(debug_toolbar.urls))] + urlpatterns
