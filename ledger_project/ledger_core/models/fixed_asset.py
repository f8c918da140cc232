from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..exceptions import TenantMismatch
from ..managers import TenantManager
from ..money import money
from .account import Account
from .company import Company
from .journal import JournalEntry
from .vendor import Vendor

ASSET_STATUS_CHOICES = [
    ("capitalized", "Capitalized"),
    ("disposed", "Disposed"),
]

DEPRECIATION_METHODS = [
    ("straight_line", "Straight line"),  # equal expense every year
    ("none", "Not depreciated"),  # land, investments
]


# ---------- Fixed Assets ----------
class FixedAsset(models.Model):  # long-term asset, depreciated over time
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    # An optional identifier for the asset
    asset_code = models.CharField(max_length=80, null=True, blank=True)
    description = models.CharField(max_length=400)
    purchase_date = models.DateField()
    # Acquisition cost
    purchase_cost = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    # Value expected at the end of its useful life; never depreciated
    salvage_value = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))

    # GL account where this asset is capitalized
    asset_account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="fixed_assets",
    )
    # Contra-asset; the accumulated_depreciation posting role when unset
    accumulated_depreciation_account = models.ForeignKey(
        Account,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="depreciated_assets",
    )
    # who sold it to you
    vendor = models.ForeignKey(
        Vendor,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="fixed_assets",
    )
    status = models.CharField(
        max_length=20, choices=ASSET_STATUS_CHOICES, default="capitalized")
    # Estimated lifespan in years (for depreciation)
    useful_life_years = models.PositiveIntegerField(null=True, blank=True)
    depreciation_method = models.CharField(
        max_length=30, choices=DEPRECIATION_METHODS, default="straight_line")

    # Track how much depreciation has already been recorded
    accumulated_depreciation = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    """ Example: a 12,000 asset depreciated 4,000 per year
        shows 8,000 here after 2 years. """

    purchase_journal = models.OneToOneField(
        JournalEntry,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="purchased_asset",
    )
    disposal_date = models.DateField(null=True, blank=True)
    # Sale proceeds; 0 for a write-off
    disposal_price = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    disposal_account = models.ForeignKey(
        Account,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="asset_disposals",
    )
    disposal_journal = models.OneToOneField(
        JournalEntry,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="disposed_asset",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL
    )
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        # assets are often looked up by code
        indexes = [
            models.Index(
                fields=["company", "asset_code"], name="fa_company_code_idx"
            ),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "asset_code"],
                name="uq_fa_company_asset_code"
            ),
            models.CheckConstraint(
                condition=models.Q(purchase_cost__gte=0)
                & models.Q(salvage_value__gte=0)
                & models.Q(accumulated_depreciation__gte=0)
                & models.Q(
                    accumulated_depreciation__lte=models.F("purchase_cost")),
                name="fa_valid_amounts",
            ),
        ]

    def __str__(self):
        return self.description

    @property
    def book_value(self):
        return money(self.purchase_cost - self.accumulated_depreciation)

    @property
    def depreciable_remaining(self):
        """What depreciation may still take before reaching salvage."""
        return money(self.book_value - self.salvage_value)

    @property
    def annual_depreciation(self):
        """Straight-line charge per year."""
        if not self.useful_life_years:
            return Decimal("0.00")
        return money((self.purchase_cost - self.salvage_value)
                     / Decimal(self.useful_life_years))

    def clean(self):
        # Tenancy checks
        for field in ("asset_account", "accumulated_depreciation_account",
                      "vendor", "disposal_account"):
            related = getattr(self, field) if getattr(
                self, f"{field}_id") else None
            if related is not None and related.company_id != self.company_id:
                raise TenantMismatch(
                    f"{field} must belong to the same company.")

        if self.asset_account_id and self.asset_account.ac_type != "asset":
            raise ValidationError("Asset account must be of type asset.")
        accumulated = (self.accumulated_depreciation_account
                       if self.accumulated_depreciation_account_id else None)
        if accumulated is not None and not (
                accumulated.ac_type == "asset" and accumulated.is_contra):
            raise ValidationError(
                "Accumulated depreciation needs a contra-asset account.")

        # Without a positive number of years, depreciation makes no sense
        if self.depreciation_method == "straight_line" and (
                not self.useful_life_years or self.useful_life_years <= 0):
            raise ValidationError(
                "Useful life must be > 0 for straight-line depreciation")
        if self.purchase_cost < 0 or self.salvage_value < 0:
            raise ValidationError("Cost and salvage value must be >= 0")
        if self.salvage_value > self.purchase_cost:
            raise ValidationError("Salvage value cannot exceed cost")
        if self.accumulated_depreciation > self.purchase_cost:
            raise ValidationError(
                "Accumulated depreciation cannot exceed cost")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
