from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..exceptions import TenantMismatch
from ..managers import TenantManager
from ..money import money
from .company import Company
from .inventory import StockMovement
from .invoice import Invoice, InvoiceLine


# ---------- Credit memo (customer return) ----------
class CreditMemo(models.Model):
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    invoice = models.ForeignKey(
        Invoice, on_delete=models.PROTECT, related_name="credit_memos")
    memo_number = models.CharField(max_length=64)
    date = models.DateField()
    # Returned line amounts, with the invoice tax / discount share
    subtotal = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    tax = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    discount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    # subtotal + tax - discount: what the customer is credited
    total = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    # COGS reversed (stock value brought back)
    cost_total = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    reason = models.TextField(blank=True, default="")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(
                fields=["company", "invoice"], name="cm_company_invoice_idx"
            )
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["company", "memo_number"],
                name="uq_credit_memo_company_number"
            ),
        ]

    def __str__(self):
        return f"CM {self.memo_number} for {self.invoice}"

    def clean(self):
        if self.invoice_id and self.invoice.company_id != self.company_id:
            raise TenantMismatch("Credit memo invoice must be same company")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)


class CreditMemoLine(models.Model):
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    credit_memo = models.ForeignKey(
        CreditMemo, on_delete=models.CASCADE, related_name="lines")
    # The sold line being returned
    invoice_line = models.ForeignKey(
        InvoiceLine, on_delete=models.PROTECT, related_name="returns")
    quantity = models.DecimalField(max_digits=18, decimal_places=4)
    unit_price = models.DecimalField(max_digits=18, decimal_places=4)
    # Amount credited for this line; the last return of an invoice line
    # takes what is left of its line_total
    line_total = models.DecimalField(max_digits=18, decimal_places=2)
    unit_cost = models.DecimalField(
        max_digits=20, decimal_places=6, default=Decimal("0"))
    stock_movement = models.OneToOneField(
        StockMovement,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="credit_memo_line",
    )

    objects = TenantManager()

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name="cm_line_quantity_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(line_total__gte=0),
                name="cm_line_total_non_negative",
            ),
        ]

    def clean(self):
        if self.invoice_line_id and self.credit_memo_id:
            if self.invoice_line.invoice_id != self.credit_memo.invoice_id:
                raise ValidationError(
                    "Returned line must belong to the credited invoice")
        if self.invoice_line_id and (
                self.invoice_line.company_id != self.company_id):
            raise TenantMismatch("Returned line must be same company")

    def save(self, *args, **kwargs):
        if not getattr(self, "company_id", None) and self.credit_memo_id:
            self.company_id = self.credit_memo.company_id
        if self.line_total is None:
            self.line_total = money(self.quantity * self.unit_price)
        self.full_clean()
        return super().save(*args, **kwargs)
