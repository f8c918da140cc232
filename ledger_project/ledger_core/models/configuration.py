from django.core.exceptions import ValidationError
from django.db import models
from ..exceptions import MissingAccountMapping
from ..managers import TenantManager
from .account import Account
from .company import Company

# role -> account type each mapped account must have
ROLE_TYPES = {
    "accounts_receivable": "asset",
    "accounts_payable": "liability",
    "sales_revenue": "income",
    "sales_returns": "income",
    "sales_tax": "liability",
    "sales_discounts": "income",
    "inventory_asset": "asset",
    "cost_of_goods_sold": "expense",
    "inventory_shrinkage": "expense",
    "inventory_gain": "income",
    "count_adjustment": "expense",
    "opening_balance_equity": "equity",
    "default_payment_account": "asset",
    "depreciation_expense": "expense",
    "accumulated_depreciation": "asset",
    "gain_on_disposal": "income",
    "loss_on_disposal": "expense",
}


def _role(related_name, required=True):
    return models.ForeignKey(
        Account,
        null=not required,
        blank=not required,
        on_delete=models.PROTECT,
        related_name=f"posting_role_{related_name}",
    )


# ---------- Posting Configuration ----------
class PostingConfiguration(models.Model):
    """
    Per-company mapping of posting roles to ledger accounts.

    Resolved once per orchestrator operation so that no call site has
    to search for "the AR account" by code.
    """

    company = models.OneToOneField(
        Company, on_delete=models.CASCADE, related_name="posting_configuration"
    )

    accounts_receivable = _role("accounts_receivable")
    accounts_payable = _role("accounts_payable")
    sales_revenue = _role("sales_revenue")
    # Contra-revenue for credit memos; revenue account is debited when unset
    sales_returns = _role("sales_returns", required=False)
    sales_tax = _role("sales_tax", required=False)
    sales_discounts = _role("sales_discounts", required=False)
    inventory_asset = _role("inventory_asset")
    cost_of_goods_sold = _role("cost_of_goods_sold")
    inventory_shrinkage = _role("inventory_shrinkage")
    inventory_gain = _role("inventory_gain")
    # Physical count differences; shrinkage/gain accounts are used when unset
    count_adjustment = _role("count_adjustment", required=False)
    opening_balance_equity = _role("opening_balance_equity")
    default_payment_account = _role("default_payment_account", required=False)
    # Fixed assets; an asset may name its own accumulated depreciation account
    depreciation_expense = _role("depreciation_expense", required=False)
    accumulated_depreciation = _role(
        "accumulated_depreciation", required=False)
    gain_on_disposal = _role("gain_on_disposal", required=False)
    loss_on_disposal = _role("loss_on_disposal", required=False)

    objects = TenantManager()

    def __str__(self):
        return f"Posting configuration for {self.company}"

    @classmethod
    def for_company(cls, company):
        try:
            return cls.objects.select_related(*ROLE_TYPES.keys()).get(
                company=company)
        except cls.DoesNotExist:
            raise MissingAccountMapping(
                f"No posting configuration for company {company}")

    def account_for(self, role):
        """Return the account mapped to role or raise MissingAccountMapping."""
        if role not in ROLE_TYPES:
            raise KeyError(role)
        account = getattr(self, role)
        if account is None:
            raise MissingAccountMapping(
                f"Posting role '{role}' has no account for {self.company}")
        return account

    def clean(self):
        for role, ac_type in ROLE_TYPES.items():
            account = getattr(self, role, None) if getattr(
                self, f"{role}_id", None) else None
            if account is None:
                continue
            if account.company_id != self.company_id:
                raise ValidationError(
                    f"{role} account must belong to the same company.")
            # contra accounts sit under their parent type
            # (sales returns / discounts are contra-income)
            if account.ac_type != ac_type:
                raise ValidationError(
                    f"{role} account must be of type {ac_type}, "
                    f"got {account.ac_type}.")
        pay = (self.default_payment_account
               if self.default_payment_account_id else None)
        if pay is not None and not pay.is_payment_eligible:
            raise ValidationError(
                "default_payment_account must be payment eligible.")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
