from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..exceptions import TenantMismatch
from ..managers import TenantManager
from ..money import money
from .account import Account
from .company import Company
from .customer import Customer
from .inventory import InventoryItem, StockMovement

# Settlement status, recomputed from payments and credits
DOC_STATUS_CHOICES = [
    ("unpaid", "Unpaid"),
    ("partial", "Partially paid"),
    ("paid", "Paid"),
]


def settlement_status(total, settled):
    """unpaid / partial / paid for a document of ``total`` with ``settled``
    covered by payments, credits or returns."""
    if total <= 0 or settled >= total:
        return "paid"
    if settled > 0:
        return "partial"
    return "unpaid"


class Invoice(models.Model):  # Represents a customer invoice

    # Invoice belongs to one company (multi-tenant)
    company = models.ForeignKey(Company, on_delete=models.CASCADE)

    # Optionally linked to a Customer (walk-in cash sales have none)
    customer = models.ForeignKey(
        Customer,
        null=True,
        blank=True,
        # prevent deleting customer who has an invoice
        on_delete=models.PROTECT,
        related_name="invoices",
    )

    # Identifiers and key dates
    # human-readable (e.g. "INV-000001")
    invoice_number = models.CharField(max_length=64)
    date = models.DateField()  # issue date
    # payment deadline (defaults from customer’s payment terms)
    due_date = models.DateField(null=True, blank=True)

    # Set for cash sales: the sale debits this account instead of AR
    payment_account = models.ForeignKey(
        Account,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="cash_invoices",
    )

    status = models.CharField(
        max_length=10, choices=DOC_STATUS_CHOICES, default="unpaid"
    )
    """ Workflow:
        unpaid = issued, nothing settled.
        partial = some payment or credit applied.
        paid = fully settled. """

    subtotal = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    tax = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    discount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    # subtotal + tax - discount
    total = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    amount_paid = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    # Sum of credit memos issued against this invoice
    amount_credited = models.DecimalField(
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
        # Optimize for fast lookups by customer
        indexes = [
            models.Index(
                fields=["company", "customer"], name="inv_company_customer_idx"
            ),
        ]

        constraints = [
            # Within one company, each invoice number must be unique
            # Across companies, duplicates are allowed
            models.UniqueConstraint(
                fields=["company", "invoice_number"],
                name="uq_invoice_company_number"
            ),
            models.CheckConstraint(
                condition=models.Q(amount_paid__gte=0)
                & models.Q(amount_credited__gte=0),
                name="inv_non_negative_settlements",
            ),
        ]

    def __str__(self):
        return f"Inv {self.invoice_number or self.pk}"

    @property
    def is_cash_sale(self):
        return self.payment_account_id is not None

    @property
    def balance_due(self):
        return money(self.total - self.amount_paid - self.amount_credited)

    def refresh_status(self):
        self.status = settlement_status(
            self.total, self.amount_paid + self.amount_credited)
        return self.status

    def clean(self):
        if self.customer_id and self.customer.company_id != self.company_id:
            raise TenantMismatch("Customer must belong to the same company.")
        pay = self.payment_account if self.payment_account_id else None
        if pay is not None:
            if pay.company_id != self.company_id:
                raise TenantMismatch(
                    "Payment account must belong to the same company.")
            if not pay.is_payment_eligible:
                raise ValidationError(
                    f"Account {pay.code} cannot receive payments")
        for field in ("subtotal", "tax", "discount"):
            if getattr(self, field) < 0:
                raise ValidationError(f"{field} must be >= 0")
        if self.total < 0:
            raise ValidationError("Discount cannot exceed subtotal + tax")
        # prevent “overpayment” situations where invoice would go negative
        if self.amount_paid + self.amount_credited > self.total:
            raise ValidationError(
                "Payments and credits cannot exceed the invoice total")

        """Make paid invoices immutable in all code paths"""
        if self.pk:
            orig = Invoice.objects.filter(pk=self.pk).first()
            if orig and orig.status == "paid":
                changed_fields = [
                    field for field in ("invoice_number", "total", "company_id")
                    if getattr(orig, field) != getattr(self, field)
                ]
                if changed_fields:
                    raise ValidationError(
                        f"Cannot modify {changed_fields} on a paid invoice."
                    )

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)


class InvoiceLine(models.Model):  # One sold item or service on an invoice
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    invoice = models.ForeignKey(
        Invoice, on_delete=models.CASCADE, related_name="lines")
    line_no = models.PositiveIntegerField(default=0)

    # Either a stock/service item or a plain income account
    item = models.ForeignKey(
        InventoryItem,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="invoice_lines",
    )
    account = models.ForeignKey(
        Account,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="invoice_lines",
    )
    description = models.CharField(max_length=400, blank=True, default="")

    quantity = models.DecimalField(max_digits=18, decimal_places=4)
    unit_price = models.DecimalField(max_digits=18, decimal_places=4)
    line_total = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))

    # WAC at time of sale; credit memos return stock at this cost
    unit_cost = models.DecimalField(
        max_digits=20, decimal_places=6, default=Decimal("0"))
    stock_movement = models.OneToOneField(
        StockMovement,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="invoice_line",
    )

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(
                fields=["company", "invoice"], name="il_company_invoice_idx"
            ),
            models.Index(
                fields=["company", "item"], name="il_company_item_idx"
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0)
                & models.Q(unit_price__gte=0),
                name="inv_line_valid_amounts",
            ),
        ]
        ordering = ("invoice", "line_no", "id")

    def __str__(self):
        return (f"Invoice: {self.invoice.invoice_number} - "
                f"{self.item or self.account} - Total: {self.line_total}")

    @property
    def quantity_returned(self):
        return self.returns.aggregate(
            total=models.Sum("quantity"))["total"] or Decimal("0")

    @property
    def quantity_returnable(self):
        return self.quantity - self.quantity_returned

    def clean(self):
        if not self.item_id and not self.account_id:
            raise ValidationError("InvoiceLine needs an item or an account")
        if self.quantity is not None and self.quantity <= 0:
            raise ValidationError("Quantity must be > 0")
        if self.unit_price is not None and self.unit_price < 0:
            raise ValidationError("Unit price must be >= 0")

        # Tenant safety
        if self.invoice_id and self.invoice.company_id != self.company_id:
            raise TenantMismatch(
                "InvoiceLine.company must match Invoice.company")
        if self.item_id and self.item.company_id != self.company_id:
            raise TenantMismatch("InvoiceLine.company must match Item.company")
        if self.account_id and self.account.company_id != self.company_id:
            raise TenantMismatch(
                "InvoiceLine.company must match Account.company")

    def save(self, *args, **kwargs):
        # copy company_id from the invoice
        if not getattr(self, "company_id", None) and self.invoice_id:
            self.company_id = self.invoice.company_id
        # compute line_total always
        self.line_total = money(
            (self.quantity or Decimal("0")) * (self.unit_price or Decimal("0")))
        # Run validation, this will call clean()
        self.full_clean()
        return super().save(*args, **kwargs)
