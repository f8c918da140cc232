import logging
from collections import defaultdict
from django.db import transaction
from django.db.models import ProtectedError
from ..exceptions import (AccountCycleError, AccountInUse, DuplicateCode,
                          TenantMismatch)
from ..models import Account, JournalLine

logger = logging.getLogger(__name__)


# ----------------------------
# Chart of Accounts workflows
# ----------------------------
def create_account(company, *, code, name, ac_type, parent=None, **extra):
    """
    Add an account to the company's chart.

    extra carries the optional flags (subtype, classification, is_system,
    is_contra, is_payment_eligible). Type, parent type and cycle checks
    run in Account.clean() and surface as ValidationError.
    """
    if Account.objects.for_company(company).filter(code=code).exists():
        raise DuplicateCode(f"Account code {code} already exists")
    if parent is not None and parent.company_id != company.pk:
        raise TenantMismatch("Parent account belongs to another company")

    account = Account(
        company=company,
        code=code,
        name=name,
        ac_type=ac_type,
        parent=parent,
        **extra,
    )
    account.save()
    logger.info("Created account %s %s (company=%s)",
                code, name, company.pk)
    return account


def set_parent(account, parent):
    """Move account under parent (None makes it a root)."""
    if parent is not None and parent.company_id != account.company_id:
        raise TenantMismatch("Parent account belongs to another company")
    account.parent = parent
    account.save(update_fields=["parent"])
    return account


def get_balance_sign(account):
    return account.balance_sign


def deactivate(account, soft=True):
    """
    Soft deactivation keeps history and stops new postings.
    Hard removal is refused for system accounts and for any account
    referenced by a journal line.
    """
    if soft:
        account.is_active = False
        account.save(update_fields=["is_active"])
        logger.info("Deactivated account %s (company=%s)",
                    account.code, account.company_id)
        return account

    if account.is_system:
        raise AccountInUse(f"Account {account.code} is a system account")
    if JournalLine.objects.filter(account=account).exists():
        raise AccountInUse(
            f"Account {account.code} is referenced by journal lines")
    try:
        with transaction.atomic():
            account.delete()
    except ProtectedError as exc:
        # children, items or posting roles still point at it
        raise AccountInUse(
            f"Account {account.code} is still referenced") from exc
    logger.info("Deleted account %s (company=%s)",
                account.code, account.company_id)
    return None


def reactivate(account):
    account.is_active = True
    account.save(update_fields=["is_active"])
    return account


# ----------------------------
# Account tree (arena + index maps)
# ----------------------------
class AccountTree:
    """
    A company's accounts loaded once with parent -> children and
    id -> account index maps, so reports walk the hierarchy in memory
    instead of querying per node.
    """

    def __init__(self, accounts):
        self.by_id = {}
        self._children = defaultdict(list)
        self._roots = []
        ordered = sorted(accounts, key=lambda a: a.code)
        for account in ordered:
            self.by_id[account.pk] = account
        for account in ordered:
            if account.parent_id in self.by_id:
                self._children[account.parent_id].append(account)
            else:
                # parent missing from the arena (e.g. filtered out) -> root
                self._roots.append(account)
        self._check_acyclic()

    def _check_acyclic(self):
        # Nodes on a cycle all have parents in the arena,
        # so they are never reached from a root.
        seen = set()
        stack = list(self._roots)
        while stack:
            node = stack.pop()
            if node.pk in seen:
                raise AccountCycleError(
                    f"Account {node.code} reached twice in the hierarchy")
            seen.add(node.pk)
            stack.extend(self._children.get(node.pk, ()))
        if len(seen) != len(self.by_id):
            stuck = sorted(
                a.code for pk, a in self.by_id.items() if pk not in seen)
            raise AccountCycleError(
                f"Account hierarchy has a cycle through {', '.join(stuck)}")

    def __contains__(self, account):
        return account.pk in self.by_id

    def __len__(self):
        return len(self.by_id)

    def get(self, account_id):
        return self.by_id[account_id]

    def roots(self):
        return list(self._roots)

    def children(self, account):
        return list(self._children.get(account.pk, ()))

    def is_leaf(self, account):
        return not self._children.get(account.pk)

    def walk(self, start=None):
        """Depth-first, parents before children, siblings by code."""
        if start is not None:
            stack = [start]
        else:
            stack = list(reversed(self._roots))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(self._children.get(node.pk, ())))

    def descendants(self, account):
        walker = self.walk(account)
        next(walker)  # skip the account itself
        return list(walker)


def resolve_tree(company, include_inactive=False):
    qs = Account.objects.for_company(company)
    if not include_inactive:
        qs = qs.filter(is_active=True)
    return AccountTree(qs)
