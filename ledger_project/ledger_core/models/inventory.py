from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..exceptions import TenantMismatch
from ..managers import TenantManager
from .account import Account
from .company import Company
from .journal import JournalEntry

ITEM_TYPES = [
    ("goods", "Goods"),  # tracked stock, valued at weighted average cost
    ("service", "Service"),  # never touches inventory
]

DIRECTIONS = [
    ("IN", "In"),
    ("OUT", "Out"),
]

REASONS = [
    ("PURCHASE", "Purchase"),
    ("SALE", "Sale"),
    ("CUSTOMER_RETURN", "Customer return"),
    ("SUPPLIER_RETURN", "Supplier return"),
    ("DAMAGED", "Damaged"),
    ("THEFT", "Theft"),
    ("EXPIRED", "Expired"),
    ("LOST", "Lost"),
    ("FOUND", "Found"),
    ("COUNT_ADJUSTMENT", "Physical count adjustment"),
    ("TRANSFER_IN", "Transfer in"),
    ("TRANSFER_OUT", "Transfer out"),
    ("SAMPLE", "Sample"),
    ("OPENING_STOCK", "Opening stock"),
]

# Reasons that only make sense in one direction.
# COUNT_ADJUSTMENT goes either way.
IN_REASONS = {"PURCHASE", "CUSTOMER_RETURN", "FOUND",
              "TRANSFER_IN", "OPENING_STOCK"}
OUT_REASONS = {"SALE", "SUPPLIER_RETURN", "DAMAGED", "THEFT", "EXPIRED",
               "LOST", "TRANSFER_OUT", "SAMPLE"}


# ---------- Inventory item ----------
class InventoryItem(models.Model):  # Something a company buys, stocks & sells
    """
    Stock-keeping unit valued at weighted average cost.

    quantity_on_hand and weighted_average_cost are owned by the costing
    engine (services.costing); nothing else writes them.
    cost_price / selling_price are list prices only.
    """

    # Multi-tenant: each item belongs to a company
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    sku = models.CharField(max_length=80)
    name = models.CharField(max_length=200)
    unit = models.CharField(max_length=20, default="each")
    item_type = models.CharField(
        max_length=10, choices=ITEM_TYPES, default="goods")

    # Current stock level of the item
    quantity_on_hand = models.DecimalField(
        max_digits=18,
        decimal_places=4,  # Allow precise tracking
        default=Decimal("0"),
    )
    weighted_average_cost = models.DecimalField(
        max_digits=20, decimal_places=6, default=Decimal("0"))

    # store standard prices per product
    cost_price = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    selling_price = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    reorder_level = models.DecimalField(
        max_digits=18, decimal_places=4, default=Decimal("0"))

    # Per-item overrides of the posting configuration roles
    """ Example: Item "Coffee beans" → posts revenue to "4010 Beverage Sales" """
    asset_account = models.ForeignKey(
        Account,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="items_asset_account",
    )
    income_account = models.ForeignKey(
        Account,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="items_income_account",
    )
    cogs_account = models.ForeignKey(
        Account,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="items_cogs_account",
    )

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        # for fast lookups
        indexes = [
            models.Index(
                fields=["company", "name"], name="item_company_name_idx"
            )
        ]

        # Ensure each SKU is unique within a company
        constraints = [
            models.UniqueConstraint(
                fields=["company", "sku"], name="uq_company_item_sku"
            ),
            models.CheckConstraint(
                condition=models.Q(weighted_average_cost__gte=0),
                name="item_wac_non_negative",
            ),
        ]
        ordering = ("company", "sku")

    def __str__(self):
        return f"{self.sku} {self.name}"

    @property
    def is_stocked(self):
        return self.item_type == "goods"

    @property
    def stock_value(self):
        return (self.quantity_on_hand * self.weighted_average_cost).quantize(
            Decimal("0.01"))

    """ Can’t create an Item for Company A
    but point it to an Account from Company B """

    def clean(self):
        expected = (
            ("asset_account", "asset"),
            ("income_account", "income"),
            ("cogs_account", "expense"),
        )
        for field, ac_type in expected:
            if not getattr(self, f"{field}_id", None):
                continue
            account = getattr(self, field)
            if account.company_id != self.company_id:
                raise TenantMismatch(
                    f"{field} must belong to the same company as the item.")
            if account.ac_type != ac_type:
                raise ValidationError(f"{field} must be an {ac_type} account")
        if self.item_type == "service" and self.quantity_on_hand:
            raise ValidationError("Service items carry no stock")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self.quantity_on_hand > 0 or self.movements.exists():
            raise ValidationError(
                "Items with stock or movement history are deactivated, "
                "not deleted")
        return super().delete(*args, **kwargs)


# ---------- Stock movement (immutable) ----------
class StockMovement(models.Model):
    """
    One change of an item's stock, with before/after snapshots of
    quantity and WAC. Written once by the costing engine; the only later
    change allowed is attaching the journal that posted it.
    """

    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    item = models.ForeignKey(
        InventoryItem, on_delete=models.PROTECT, related_name="movements")
    direction = models.CharField(max_length=3, choices=DIRECTIONS)
    reason = models.CharField(max_length=20, choices=REASONS)

    quantity = models.DecimalField(max_digits=18, decimal_places=4)
    unit_cost = models.DecimalField(max_digits=20, decimal_places=6)
    total_cost = models.DecimalField(max_digits=18, decimal_places=2)

    quantity_before = models.DecimalField(max_digits=18, decimal_places=4)
    quantity_after = models.DecimalField(max_digits=18, decimal_places=4)
    wac_before = models.DecimalField(max_digits=20, decimal_places=6)
    wac_after = models.DecimalField(max_digits=20, decimal_places=6)
    # set when the caller explicitly allowed stock to go below zero
    negative_override = models.BooleanField(default=False)

    journal = models.ForeignKey(
        JournalEntry,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="stock_movements",
    )
    reference = models.CharField(max_length=100, blank=True, default="")
    # traces where the movement originated (invoice, bill, credit memo...)
    source_type = models.CharField(max_length=50, blank=True, default="")
    source_id = models.BigIntegerField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "item", "created_at"],
                         name="sm_company_item_created_idx"),
            models.Index(fields=["company", "source_type", "source_id"],
                         name="sm_company_source_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name="sm_quantity_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(unit_cost__gte=0),
                name="sm_unit_cost_non_negative",
            ),
        ]
        ordering = ("created_at", "id")

    def __str__(self):
        return (f"{self.direction} {self.quantity} x {self.item.sku} "
                f"({self.reason})")

    def clean(self):
        if self.item_id and self.item.company_id != self.company_id:
            raise TenantMismatch("Movement item must belong to the company")
        if self.direction == "IN" and self.reason in OUT_REASONS:
            raise ValidationError(f"{self.reason} is an outgoing reason")
        if self.direction == "OUT" and self.reason in IN_REASONS:
            raise ValidationError(f"{self.reason} is an incoming reason")

    def save(self, *args, **kwargs):
        if self.pk:
            orig = StockMovement.objects.get(pk=self.pk)
            only_journal = set(kwargs.get("update_fields") or []) == {"journal"}
            if not (only_journal and orig.journal_id is None):
                raise ValidationError("Stock movements are immutable")
            return super().save(*args, **kwargs)
        if not getattr(self, "company_id", None) and self.item_id:
            self.company_id = self.item.company_id
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Stock movements are immutable")
