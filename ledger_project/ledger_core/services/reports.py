"""
Financial statements assembled from posted ledger lines.

Every report is a plain dict with a ``meta`` block (currency, dates and
check flags). An out-of-balance ledger is reported through ``is_balanced``
and ``difference``, never raised.
"""
import logging
from datetime import timedelta
from ..models import Account
from ..models.account import BALANCE_SHEET_TYPES, PROFIT_AND_LOSS_TYPES
from ..money import ZERO, money, to_minor_units
from . import costing
from .accounts import resolve_tree
from .balances import hierarchy_net, net_totals, trial_balance_rows

logger = logging.getLogger(__name__)

# raw (debit - credit) -> amount shown in the statement
STATEMENT_SIGN = {
    "asset": 1,
    "expense": 1,
    "liability": -1,
    "equity": -1,
    "income": -1,
}


def _meta(company, **extra):
    meta = {
        "company_id": company.pk,
        "currency": company.currency_code,
    }
    meta.update(extra)
    return meta


def _same_amount(company, left, right):
    dp = company.decimal_places
    return to_minor_units(left, dp) == to_minor_units(right, dp)


def _item(account, tree, totals, sign):
    """{code, name, amount, children} with amounts rolled up."""
    children = []
    for child in tree.children(account):
        node = _item(child, tree, totals, sign)
        if node["amount"] or node["children"]:
            children.append(node)
    return {
        "account_id": account.pk,
        "code": account.code,
        "name": account.name,
        "amount": money(hierarchy_net(account, tree, totals) * sign),
        "children": children,
    }


def _section(tree, totals, ac_type):
    sign = STATEMENT_SIGN[ac_type]
    items = []
    for root in tree.roots():
        if root.ac_type != ac_type:
            continue
        node = _item(root, tree, totals, sign)
        if node["amount"] or node["children"]:
            items.append(node)
    return items


def _total(items):
    return sum((item["amount"] for item in items), ZERO)


# ---------- Trial Balance ----------
def trial_balance(company, as_of=None):
    rows = trial_balance_rows(company, as_of=as_of)
    total_debit = sum((row["debit_total"] for row in rows), ZERO)
    total_credit = sum((row["credit_total"] for row in rows), ZERO)
    balanced = _same_amount(company, total_debit, total_credit)
    if not balanced:
        logger.warning("Trial balance for company %s off by %s",
                       company.pk, total_debit - total_credit)
    return {
        "rows": rows,
        "totals": {"debit": total_debit, "credit": total_credit},
        "meta": _meta(
            company,
            as_of=as_of,
            difference=total_debit - total_credit,
            is_balanced=balanced,
        ),
    }


# ---------- Profit & Loss ----------
def profit_and_loss(company, date_from, date_to):
    """
    Income shows credit - debit, expenses debit - credit, so
    contra accounts (returns, discounts) reduce their section.
    """
    tree = resolve_tree(company, include_inactive=True)
    totals = net_totals(company, as_of=date_to, date_from=date_from)
    income = _section(tree, totals, "income")
    expenses = _section(tree, totals, "expense")
    total_income = _total(income)
    total_expenses = _total(expenses)
    net_income = total_income - total_expenses
    savings_rate = None
    if total_income:
        savings_rate = net_income / total_income
    return {
        "income": {"items": income, "total": total_income},
        "expenses": {"items": expenses, "total": total_expenses},
        "net_income": net_income,
        "savings_rate": savings_rate,
        "meta": _meta(company, date_from=date_from, date_to=date_to),
    }


# ---------- Balance Sheet ----------
def _classified(items, tree):
    buckets = {"current": [], "non_current": [], "unclassified": []}
    for item in items:
        account = tree.get(item["account_id"])
        buckets[account.classification or "unclassified"].append(item)
    return {
        "current": buckets["current"],
        "non_current": buckets["non_current"],
        "unclassified": buckets["unclassified"],
        "total": _total(items),
    }


def balance_sheet(company, as_of=None):
    tree = resolve_tree(company, include_inactive=True)
    totals = net_totals(company, as_of=as_of)

    assets = _section(tree, totals, "asset")
    liabilities = _section(tree, totals, "liability")
    equity = _section(tree, totals, "equity")

    # income and expenses not yet closed into an equity account
    retained = ZERO
    for account_id, (debit_total, credit_total) in totals.items():
        if tree.get(account_id).ac_type in PROFIT_AND_LOSS_TYPES:
            retained += credit_total - debit_total
    retained = money(retained)
    if retained:
        equity.append({
            "account_id": None,
            "code": "",
            "name": "Retained Earnings",
            "amount": retained,
            "children": [],
        })

    total_assets = _total(assets)
    total_liabilities = _total(liabilities)
    total_equity = _total(equity)
    difference = total_assets - (total_liabilities + total_equity)
    balanced = _same_amount(company, difference, ZERO)
    if not balanced:
        logger.warning("Balance sheet for company %s off by %s",
                       company.pk, difference)
    return {
        "assets": _classified(assets, tree),
        "liabilities": _classified(liabilities, tree),
        "equity": {"items": equity, "total": total_equity},
        "totals": {
            "assets": total_assets,
            "liabilities": total_liabilities,
            "equity": total_equity,
            "liabilities_and_equity": total_liabilities + total_equity,
        },
        "meta": _meta(
            company,
            as_of=as_of,
            difference=difference,
            is_balanced=balanced,
            sections=BALANCE_SHEET_TYPES,
        ),
    }


# ---------- Cash Flow ----------
def _cash_position(company, account_ids, as_of):
    """
    debit - credit of account_ids as the balance sheet at as_of shows
    them; each node's own amount is its total less its children's.
    """
    report = balance_sheet(company, as_of=as_of)
    sections = [
        (report[key][bucket], STATEMENT_SIGN[ac_type])
        for key, ac_type in (("assets", "asset"),
                             ("liabilities", "liability"))
        for bucket in ("current", "non_current", "unclassified")
    ]
    sections.append((report["equity"]["items"], STATEMENT_SIGN["equity"]))

    position = ZERO
    for items, sign in sections:
        stack = list(items)
        while stack:
            node = stack.pop()
            stack.extend(node["children"])
            if node["account_id"] in account_ids:
                own = node["amount"] - _total(node["children"])
                position += own * sign
    return position


def cash_flow(company, date_from, date_to):
    """
    Direct method over payment-eligible accounts: debits are inflows,
    credits outflows. meta.reconciles compares the net change with the
    movement of the same accounts on the balance sheets at the day
    before date_from and at date_to.
    """
    day_before = date_from - timedelta(days=1)
    accounts = (
        Account.objects.for_company(company)
        .filter(is_payment_eligible=True)
        .order_by("code")
    )
    opening_totals = net_totals(company, as_of=day_before)
    period_totals = net_totals(company, as_of=date_to, date_from=date_from)

    items = []
    for account in accounts:
        opening_dr, opening_cr = opening_totals.get(account.pk, (ZERO, ZERO))
        inflows, outflows = period_totals.get(account.pk, (ZERO, ZERO))
        opening = money(opening_dr - opening_cr)
        net_change = money(inflows - outflows)
        items.append({
            "account_id": account.pk,
            "code": account.code,
            "name": account.name,
            "opening": opening,
            "inflows": money(inflows),
            "outflows": money(outflows),
            "net_change": net_change,
            "closing": opening + net_change,
        })
    cash_ids = {item["account_id"] for item in items}
    expected_change = money(
        _cash_position(company, cash_ids, date_to)
        - _cash_position(company, cash_ids, day_before))

    totals = {
        key: sum((item[key] for item in items), ZERO)
        for key in ("opening", "inflows", "outflows", "net_change",
                    "closing")
    }
    reconciles = _same_amount(company, totals["net_change"], expected_change)
    if not reconciles:
        logger.warning("Cash flow for company %s does not reconcile: "
                       "%s vs %s", company.pk, totals["net_change"],
                       expected_change)
    return {
        "accounts": items,
        "totals": totals,
        "meta": _meta(
            company,
            date_from=date_from,
            date_to=date_to,
            balance_change=expected_change,
            reconciles=reconciles,
        ),
    }


# ---------- Inventory ----------
def inventory_valuation(company):
    report = costing.inventory_valuation(company)
    report["meta"] = _meta(company)
    return report
