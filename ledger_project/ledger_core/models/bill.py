from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..exceptions import TenantMismatch
from ..managers import TenantManager
from ..money import money
from .account import Account
from .company import Company
from .inventory import InventoryItem, StockMovement
from .invoice import DOC_STATUS_CHOICES, settlement_status
from .vendor import Vendor


class Bill(models.Model):  # Mirrors Invoice but for vendors (AP side)
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    vendor = models.ForeignKey(
        Vendor,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="bills",
    )
    bill_number = models.CharField(max_length=64)
    date = models.DateField()
    due_date = models.DateField(null=True, blank=True)

    # Set when paid immediately: CR this account instead of AP
    payment_account = models.ForeignKey(
        Account,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="cash_bills",
    )
    status = models.CharField(
        max_length=10, choices=DOC_STATUS_CHOICES, default="unpaid"
    )
    total = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    amount_paid = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    # Goods sent back to the vendor reduce what we owe
    amount_returned = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    description = models.TextField(blank=True, default="")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL
    )
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(
                fields=["company", "vendor"], name="bill_company_vendor_idx"
            ),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "bill_number"],
                name="uq_bill_company_number"
            ),
            models.CheckConstraint(
                condition=models.Q(amount_paid__gte=0)
                & models.Q(amount_returned__gte=0),
                name="bill_non_negative_settlements",
            ),
        ]

    def __str__(self):
        return f"Bill {self.bill_number or self.pk}"

    @property
    def balance_due(self):
        return money(self.total - self.amount_paid - self.amount_returned)

    def refresh_status(self):
        self.status = settlement_status(
            self.total, self.amount_paid + self.amount_returned)
        return self.status

    def clean(self):
        if self.vendor_id and self.vendor.company_id != self.company_id:
            raise TenantMismatch("Vendor must belong to the same company.")
        pay = self.payment_account if self.payment_account_id else None
        if pay is not None:
            if pay.company_id != self.company_id:
                raise TenantMismatch(
                    "Payment account must belong to the same company.")
            if not pay.is_payment_eligible:
                raise ValidationError(
                    f"Account {pay.code} cannot make payments")
        if self.amount_paid + self.amount_returned > self.total:
            raise ValidationError(
                "Payments and returns cannot exceed the bill total")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)


class BillLine(models.Model):  # One purchased item or expense on a bill
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    bill = models.ForeignKey(
        Bill, on_delete=models.CASCADE, related_name="lines")
    line_no = models.PositiveIntegerField(default=0)

    # Stock item (debits inventory) or expense/asset account
    item = models.ForeignKey(
        InventoryItem,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="bill_lines",
    )
    account = models.ForeignKey(
        Account,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="bill_lines",
    )
    description = models.CharField(max_length=400, blank=True, default="")
    quantity = models.DecimalField(max_digits=18, decimal_places=4)
    unit_cost = models.DecimalField(max_digits=20, decimal_places=6)
    line_total = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    stock_movement = models.OneToOneField(
        StockMovement,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="bill_line",
    )

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(
                fields=["company", "bill"], name="bl_company_bill_idx"
            )
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0)
                & models.Q(unit_cost__gte=0),
                name="bill_line_valid_amounts",
            ),
        ]
        ordering = ("bill", "line_no", "id")

    def __str__(self):
        return (f"Bill: {self.bill.bill_number} - "
                f"{self.item or self.account} - Total: {self.line_total}")

    def clean(self):
        if not self.item_id and not self.account_id:
            raise ValidationError("BillLine needs an item or an account")
        if self.bill_id and self.bill.company_id != self.company_id:
            raise TenantMismatch("BillLine.company must match Bill.company")
        if self.item_id and self.item.company_id != self.company_id:
            raise TenantMismatch("BillLine.company must match Item.company")
        if self.account_id and self.account.company_id != self.company_id:
            raise TenantMismatch("BillLine.company must match Account.company")

    def save(self, *args, **kwargs):
        if not getattr(self, "company_id", None) and self.bill_id:
            self.company_id = self.bill.company_id
        self.line_total = money(
            (self.quantity or Decimal("0")) * (self.unit_cost or Decimal("0")))
        self.full_clean()
        return super().save(*args, **kwargs)
