"""Shared builders for ledger tests: a company with a small chart of
accounts, its posting configuration, a customer, a vendor and items."""
import datetime
from decimal import Decimal
from ..models import (Company, Currency, Customer, InventoryItem,
                      PostingConfiguration, Vendor)
from ..services.accounts import create_account

TODAY = datetime.date(2025, 9, 15)

# code, name, type, extra flags
CHART = [
    ("1000", "Cash on Hand", "asset",
     {"classification": "current", "is_payment_eligible": True}),
    ("1010", "Bank Account", "asset",
     {"classification": "current", "is_payment_eligible": True}),
    ("1100", "Accounts Receivable", "asset", {"classification": "current"}),
    ("1200", "Inventory", "asset", {"classification": "current"}),
    ("1500", "Equipment", "asset", {"classification": "non_current"}),
    ("1510", "Accumulated Depreciation", "asset",
     {"classification": "non_current", "is_contra": True}),
    ("2000", "Accounts Payable", "liability", {"classification": "current"}),
    ("2100", "Sales Tax Payable", "liability",
     {"classification": "current"}),
    ("2200", "Equipment Loan", "liability",
     {"classification": "non_current"}),
    ("3000", "Owner's Capital", "equity", {}),
    ("3100", "Opening Balance Equity", "equity", {}),
    ("4000", "Sales Revenue", "income", {}),
    ("4010", "Sales Returns", "income", {"is_contra": True}),
    ("4020", "Sales Discounts", "income", {"is_contra": True}),
    ("4100", "Inventory Gain", "income", {}),
    ("4200", "Gain on Asset Disposal", "income", {}),
    ("5000", "Cost of Goods Sold", "expense", {}),
    ("5100", "Inventory Shrinkage", "expense", {}),
    ("5200", "Rent", "expense", {}),
    ("5400", "Depreciation Expense", "expense", {}),
    ("5500", "Loss on Asset Disposal", "expense", {}),
]

ROLES = {
    "accounts_receivable": "1100",
    "accounts_payable": "2000",
    "sales_revenue": "4000",
    "sales_returns": "4010",
    "sales_tax": "2100",
    "sales_discounts": "4020",
    "inventory_asset": "1200",
    "cost_of_goods_sold": "5000",
    "inventory_shrinkage": "5100",
    "inventory_gain": "4100",
    "opening_balance_equity": "3100",
    "default_payment_account": "1000",
    "depreciation_expense": "5400",
    "accumulated_depreciation": "1510",
    "gain_on_disposal": "4200",
    "loss_on_disposal": "5500",
}


def make_currency(code="USD"):
    currency, _ = Currency.objects.get_or_create(
        code=code, defaults={"name": "US Dollar", "symbol": "$"})
    return currency


def make_company(slug="acme", name=None):
    return Company.objects.create(
        name=name or slug.title(),
        slug=slug,
        default_currency=make_currency(),
    )


def make_chart(company):
    """Create CHART for company; returns {code: Account}."""
    return {
        code: create_account(company, code=code, name=name, ac_type=ac_type,
                             **extra)
        for code, name, ac_type, extra in CHART
    }


def configure_posting(company, accounts, **overrides):
    roles = {role: accounts[code] for role, code in ROLES.items()}
    roles.update(overrides)
    return PostingConfiguration.objects.create(company=company, **roles)


def make_customer(company, name="Jane Doe", terms=30):
    return Customer.objects.create(
        company=company, name=name, payment_terms_days=terms)


def make_vendor(company, name="Widget Supplies", terms=30):
    return Vendor.objects.create(
        company=company, name=name, payment_terms_days=terms)


def make_item(company, sku="WID-1", name="Widget", selling_price="100.00",
              **fields):
    return InventoryItem.objects.create(
        company=company,
        sku=sku,
        name=name,
        selling_price=Decimal(selling_price),
        **fields,
    )


class LedgerSetup:
    """Everything a workflow test needs for one tenant."""

    def __init__(self, slug="acme"):
        self.company = make_company(slug)
        self.accounts = make_chart(self.company)
        self.config = configure_posting(self.company, self.accounts)
        self.customer = make_customer(self.company)
        self.vendor = make_vendor(self.company)

    def __getitem__(self, code):
        return self.accounts[code]

    @property
    def cash(self):
        return self.accounts["1000"]

    @property
    def bank(self):
        return self.accounts["1010"]
