"""
Balances are computed on demand from the lines of journals that are in
the ledger: POSTED journals plus VOID ones, whose posted reversal
cancels them out. Drafts never count.
"""
from datetime import timedelta
from django.db.models import Sum
from ..exceptions import AccountCycleError
from ..models import JournalLine
from ..money import ZERO, money
from .accounts import resolve_tree

IN_LEDGER = ("posted", "void")


def ledger_lines(company, as_of=None, date_from=None):
    qs = JournalLine.objects.for_company(company).filter(
        journal__status__in=IN_LEDGER)
    if as_of is not None:
        qs = qs.filter(journal__date__lte=as_of)
    if date_from is not None:
        qs = qs.filter(journal__date__gte=date_from)
    return qs


def net_totals(company, as_of=None, date_from=None):
    """
    {account_id: (debit_sum, credit_sum)} in one aggregate query.
    Accounts without lines in the range are absent.
    """
    rows = (
        ledger_lines(company, as_of=as_of, date_from=date_from)
        .values("account_id")
        .annotate(debit=Sum("debit"), credit=Sum("credit"))
        .order_by()
    )
    return {
        row["account_id"]: (row["debit"] or ZERO, row["credit"] or ZERO)
        for row in rows
    }


def signed(account, debit_total, credit_total):
    """Normal-side balance: debit - credit, flipped for credit-normal."""
    return money((debit_total - credit_total) * account.balance_sign)


def balance_of(account, as_of=None, date_from=None):
    agg = (
        ledger_lines(account.company_id, as_of=as_of, date_from=date_from)
        .filter(account=account)
        .aggregate(debit=Sum("debit"), credit=Sum("credit"))
    )
    return signed(account, agg["debit"] or ZERO, agg["credit"] or ZERO)


def hierarchy_net(account, tree, totals):
    """debit - credit of account and all its descendants."""
    def _net(node, path):
        if node.pk in path:
            raise AccountCycleError(
                f"Account {node.code} is its own ancestor")
        debit_total, credit_total = totals.get(node.pk, (ZERO, ZERO))
        net = debit_total - credit_total
        for child in tree.children(node):
            net += _net(child, path | {node.pk})
        return net

    return _net(account, frozenset())


def hierarchy_balance(account, tree=None, as_of=None, date_from=None,
                      totals=None):
    """
    Own balance plus every descendant's, expressed on the account's
    normal side (children of the other side reduce it).
    """
    if tree is None:
        tree = resolve_tree(account.company_id, include_inactive=True)
    if totals is None:
        totals = net_totals(account.company_id, as_of=as_of,
                            date_from=date_from)
    return money(hierarchy_net(account, tree, totals) * account.balance_sign)


def trial_balance_rows(company, as_of=None, date_from=None):
    """
    One row per active leaf account, plus any other account carrying a
    balance (an inactive account or a parent posted to directly), so
    the columns always foot.
    """
    tree = resolve_tree(company, include_inactive=True)
    totals = net_totals(company, as_of=as_of, date_from=date_from)
    rows = []
    for account in tree.walk():
        debit_total, credit_total = totals.get(account.pk, (ZERO, ZERO))
        net = money(debit_total - credit_total)
        listed = account.is_active and tree.is_leaf(account)
        if not listed and net == 0:
            continue
        rows.append({
            "account_id": account.pk,
            "code": account.code,
            "name": account.name,
            "type": account.ac_type,
            "debit_total": net if net > 0 else ZERO,
            "credit_total": -net if net < 0 else ZERO,
        })
    return rows


def account_ledger(account, date_from=None, as_of=None):
    """Opening balance, lines with running balance, closing balance."""
    opening = ZERO
    if date_from is not None:
        opening = balance_of(account, as_of=date_from - timedelta(days=1))

    lines = (
        ledger_lines(account.company_id, as_of=as_of, date_from=date_from)
        .filter(account=account)
        .select_related("journal")
        .order_by("journal__date", "journal_id", "line_no", "id")
    )
    running = opening
    entries = []
    for line in lines:
        running = money(
            running + (line.debit - line.credit) * account.balance_sign)
        entries.append({
            "date": line.journal.date,
            "journal_number": line.journal.journal_number,
            "journal_status": line.journal.status,
            "memo": line.memo or line.journal.memo,
            "debit": line.debit,
            "credit": line.credit,
            "balance": running,
        })
    return {
        "account_id": account.pk,
        "code": account.code,
        "name": account.name,
        "normal_balance": account.normal_balance,
        "opening_balance": opening,
        "lines": entries,
        "closing_balance": running,
    }


def global_net(company, as_of=None):
    """Sum of debit - credit across the whole ledger; always zero."""
    agg = ledger_lines(company, as_of=as_of).aggregate(
        debit=Sum("debit"), credit=Sum("credit"))
    return money((agg["debit"] or ZERO) - (agg["credit"] or ZERO))
