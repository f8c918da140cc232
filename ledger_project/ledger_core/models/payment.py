from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..exceptions import TenantMismatch
from ..managers import TenantManager
from .account import Account
from .bill import Bill
from .company import Company
from .invoice import Invoice
from .journal import JournalEntry

PAYMENT_KINDS = [
    ("received", "Received"),  # customer pays an invoice (AR settlement)
    ("made", "Made"),  # we pay a vendor bill (AP settlement)
]


# ---------- Payment ----------
class Payment(models.Model):
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    kind = models.CharField(max_length=10, choices=PAYMENT_KINDS)
    invoice = models.ForeignKey(
        Invoice, null=True, blank=True,
        on_delete=models.PROTECT, related_name="payments")
    bill = models.ForeignKey(
        Bill, null=True, blank=True,
        on_delete=models.PROTECT, related_name="payments")
    # Cash / bank / mobile-money account the money moves through
    account = models.ForeignKey(
        Account, on_delete=models.PROTECT, related_name="payments")
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    date = models.DateField()
    reference = models.CharField(max_length=100, blank=True, default="")
    journal = models.OneToOneField(
        JournalEntry, null=True, blank=True,
        on_delete=models.PROTECT, related_name="payment")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(
                fields=["company", "date"], name="pay_company_date_idx"
            )
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="payment_amount_positive",
            ),
        ]

    def __str__(self):
        target = self.invoice or self.bill
        return f"Payment {self.amount} ({self.kind}) → {target}"

    def clean(self):
        if self.kind == "received" and (not self.invoice_id or self.bill_id):
            raise ValidationError("A received payment settles one invoice")
        if self.kind == "made" and (not self.bill_id or self.invoice_id):
            raise ValidationError("A payment made settles one bill")
        target = self.invoice if self.invoice_id else self.bill
        if target is not None and target.company_id != self.company_id:
            raise TenantMismatch("Payment document must be same company")
        if self.account_id:
            if self.account.company_id != self.company_id:
                raise TenantMismatch("Payment account must be same company")
            if not self.account.is_payment_eligible:
                raise ValidationError(
                    f"Account {self.account.code} is not payment eligible")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
