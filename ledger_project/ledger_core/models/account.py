from django.core.exceptions import ValidationError
from django.db import models
from ..managers import TenantManager
from .company import Company

# Choice Lists
AC_TYPES = [
    # Used in Account model to classify general ledger accounts
    ("asset", "Asset"),
    ("liability", "Liability"),
    ("equity", "Equity"),
    ("income", "Income"),
    ("expense", "Expense"),
]

# Balance sheet sectioning; set explicitly, never inferred from the code
CLASSIFICATIONS = [
    ("current", "Current"),
    ("non_current", "Non-current"),
]

DEBIT_NORMAL_TYPES = ("asset", "expense")
BALANCE_SHEET_TYPES = ("asset", "liability", "equity")
PROFIT_AND_LOSS_TYPES = ("income", "expense")


class Account(models.Model):
    """
    Ledger account in the Chart of Accounts.
    - code is unique per company and sorts accounts in reports
    - ac_type decides Balance Sheet vs P&L and the normal balance side
    - is_contra flips the normal balance (e.g. accumulated depreciation)
    """

    # All reports must filter by company to prevent data leaks
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    code = models.CharField(max_length=32)
    name = models.CharField(max_length=200)

    ac_type = models.CharField(max_length=10, choices=AC_TYPES)
    # Free-form classification ("bank", "receivable", "cogs", ...)
    subtype = models.CharField(max_length=64, blank=True, default="")
    classification = models.CharField(
        max_length=12,
        choices=CLASSIFICATIONS,
        blank=True,
        default="",
    )

    # Optional hierarchy:
    # (e.g. 1000 Cash & Bank, 1010 Petty Cash, 1020 Bank Account)
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,  # you can’t delete a parent if children exist
        related_name="children",
    )

    is_system = models.BooleanField(default=False)  # protected from removal
    is_contra = models.BooleanField(default=False)
    # Usable as a cash/bank settlement account
    is_payment_eligible = models.BooleanField(default=False)
    # “soft deactivate” accounts (stop new postings) without deleting history
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(
                fields=["company", "ac_type"], name="acct_company_type_idx"
            ),
            models.Index(
                fields=["company", "parent"], name="acct_company_parent_idx"
            ),
        ]

        """ Each company defines its own chart of accounts.
               Codes repeat across companies but must be unique within one. """
        constraints = [
            models.UniqueConstraint(
                fields=["company", "code"], name="uq_company_account_code"
            )
        ]
        ordering = ("company", "code")

    def __str__(self):
        return f"{self.code} – {self.name}"

    @property
    def normal_balance(self):
        debit_normal = self.ac_type in DEBIT_NORMAL_TYPES
        if self.is_contra:
            debit_normal = not debit_normal
        return "debit" if debit_normal else "credit"

    @property
    def balance_sign(self):
        """+1 for debit-normal accounts, -1 for credit-normal accounts."""
        return 1 if self.normal_balance == "debit" else -1

    def clean(self):
        """Enforce company consistency (multi-tenancy) and an acyclic tree"""
        if self.parent_id is None:
            return
        parent = self.parent
        if parent.company_id != self.company_id:
            raise ValidationError(
                "Parent & child accounts must belong to the same company"
            )
        if parent.ac_type != self.ac_type:
            raise ValidationError(
                "Parent & child accounts must share the same account type"
            )
        if self.pk:
            # walk up from the new parent; reaching self means a cycle
            seen = set()
            node = parent
            while node is not None:
                if node.pk == self.pk:
                    raise ValidationError(
                        "Account cannot be its own ancestor")
                if node.pk in seen:
                    break
                seen.add(node.pk)
                node = node.parent

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
