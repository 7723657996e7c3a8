# ledger/admin.py

from django.contrib import admin, messages

from .exceptions import ValuationError
from .models import ExpenseEntry, IncomeEntry, Member, MonthlyValuation, ShareTransaction
from .services.valuation import compute_valuation


@admin.register(Member)
class MemberAdmin(admin.ModelAdmin):
    list_display = ("member_code", "first_name", "last_name", "role", "join_date")
    list_filter = ("role",)
    search_fields = ("member_code", "first_name", "last_name", "email")


@admin.register(IncomeEntry, ExpenseEntry)
class LedgerEntryAdmin(admin.ModelAdmin):
    list_display = ("date", "member", "total_amount", "tax_amount", "net_amount")
    date_hierarchy = "date"
    search_fields = ("description",)
    autocomplete_fields = ("member",)


@admin.register(ShareTransaction)
class ShareTransactionAdmin(admin.ModelAdmin):
    list_display = ("date", "member", "contribution_amount", "share_count")
    date_hierarchy = "date"
    autocomplete_fields = ("member",)


@admin.action(description="Recompute valuation chain through the latest selected month")
def recompute_chain(modeladmin, request, queryset):
    latest = queryset.order_by("-year", "-month").first()
    try:
        result = compute_valuation(latest.month, latest.year)
    except ValuationError as e:
        modeladmin.message_user(request, f"Recomputation failed: {e}", level=messages.ERROR)
        return
    modeladmin.message_user(
        request, f"Recomputed {len(result.history)} months through {latest.period}."
    )


@admin.register(MonthlyValuation)
class MonthlyValuationAdmin(admin.ModelAdmin):
    """Derived rows: browsable, never edited by hand."""

    list_display = (
        "year",
        "month",
        "total_inflows",
        "total_outflows",
        "terracotta_valuation",
        "total_shares_previous_month",
        "terracotta_share_price",
        "updated_at",
    )
    list_filter = ("year",)
    actions = [recompute_chain]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
