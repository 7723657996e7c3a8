from decimal import Decimal

from django.contrib.auth.models import User
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.db.models import UniqueConstraint

from .utils.date_helpers import MonthKey


MIN_YEAR = 1900
MAX_YEAR = 2100


# --------------------------------------------------------------------------------
# Members
# --------------------------------------------------------------------------------

class Member(models.Model):
    """Person holding (or contributing towards) shares in the company."""

    class Role(models.TextChoices):
        MEMBER = "member", "Member"
        NON_MEMBER = "non_member", "Non member"

    user = models.OneToOneField(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="member",
    )
    member_code = models.CharField(max_length=32, unique=True)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    email = models.EmailField(blank=True)
    role = models.CharField(max_length=12, choices=Role.choices, default=Role.MEMBER)
    join_date = models.DateField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("last_name", "first_name")

    def __str__(self):
        return f"{self.first_name} {self.last_name} ({self.member_code})"

    @property
    def is_non_member(self) -> bool:
        return self.role == self.Role.NON_MEMBER


# --------------------------------------------------------------------------------
# Ledger entries
# --------------------------------------------------------------------------------

class LedgerEntry(models.Model):
    """Dated income or expense. ``net_amount`` is what the valuation reads."""

    date = models.DateField()
    member = models.ForeignKey(
        Member,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
    )
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    tax_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0"))
    tax_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    # Nullable so an incomplete imported row can exist; aggregation treats it as 0
    net_amount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
        ordering = ("-date", "-id")
        indexes = [models.Index(fields=["date"], name="%(app_label)s_%(class)s_date_idx")]

    def __str__(self):
        return f"{self.date} {self._meta.verbose_name} {self.net_amount}"

    def save(self, *args, **kwargs):
        """Derive tax and net amounts from the gross amount when missing."""
        if self.total_amount is not None:
            if not self.tax_amount and self.tax_percentage:
                self.tax_amount = (
                    self.total_amount * self.tax_percentage / Decimal("100")
                ).quantize(Decimal("0.01"))
            if self.net_amount is None:
                self.net_amount = self.total_amount - (self.tax_amount or Decimal("0"))
        super().save(*args, **kwargs)


class IncomeEntry(LedgerEntry):
    class Meta(LedgerEntry.Meta):
        verbose_name = "income entry"
        verbose_name_plural = "income entries"


class ExpenseEntry(LedgerEntry):
    class Meta(LedgerEntry.Meta):
        verbose_name = "expense entry"
        verbose_name_plural = "expense entries"


class ShareTransaction(models.Model):
    """Capital contribution and the shares issued for it."""

    date = models.DateField()
    member = models.ForeignKey(Member, on_delete=models.PROTECT, related_name="share_transactions")
    contribution_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    share_count = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-date", "-id")
        indexes = [
            models.Index(fields=["date"], name="ledger_sharetx_date_idx"),
            models.Index(fields=["member", "date"], name="ledger_sharetx_member_date_idx"),
        ]

    def __str__(self):
        return f"{self.date} {self.member_id}: {self.share_count} shares for {self.contribution_amount}"


# --------------------------------------------------------------------------------
# Valuation chain
# --------------------------------------------------------------------------------

class MonthlyValuation(models.Model):
    """Computed valuation and share price for one month. Derived data only."""

    COMPUTED_FIELDS = (
        "total_inflows",
        "total_outflows",
        "total_flows",
        "total_shares_previous_month",
        "terracotta_valuation",
        "terracotta_share_price",
    )

    month = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(12)]
    )
    year = models.PositiveIntegerField(
        validators=[MinValueValidator(MIN_YEAR), MaxValueValidator(MAX_YEAR)]
    )
    total_inflows = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    total_outflows = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    total_flows = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    total_shares_previous_month = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    terracotta_valuation = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0"))
    terracotta_share_price = models.DecimalField(max_digits=20, decimal_places=6, default=Decimal("0"))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("year", "month")
        constraints = [
            UniqueConstraint(fields=["year", "month"], name="unique_monthlyvaluation_year_month")
        ]

    def __str__(self):
        return f"Valuation {self.period}: {self.terracotta_valuation} ({self.terracotta_share_price}/share)"

    @property
    def period(self) -> MonthKey:
        return MonthKey(self.year, self.month)
