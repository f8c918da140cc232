import logging
from dataclasses import dataclass
from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone
from ..exceptions import (AlreadyVoided, DuplicateJournalNumber,
                          TenantMismatch)
from ..models import Company, JournalEntry, JournalLine
from ..money import money

logger = logging.getLogger(__name__)


@dataclass
class JournalLineSpec:
    """One debit or credit to be written as a JournalLine."""
    account: object
    debit: Decimal = Decimal("0.00")
    credit: Decimal = Decimal("0.00")
    memo: str = ""


def debit(account, amount, memo=""):
    return JournalLineSpec(account=account, debit=money(amount), memo=memo)


def credit(account, amount, memo=""):
    return JournalLineSpec(account=account, credit=money(amount), memo=memo)


# ----------------------------
# Numbering
# ----------------------------
def next_sequence_number(queryset, field, prefix, width=6):
    """
    Next "PREFIX-000042" style number for queryset's field.
    Callers hold the company row lock, so two writers never
    hand out the same number.
    """
    pattern = rf"^{prefix}-\d{{{width}}}$"
    last = (
        queryset.filter(**{f"{field}__regex": pattern})
        .order_by(f"-{field}")
        .values_list(field, flat=True)
        .first()
    )
    seq = int(last.rsplit("-", 1)[1]) + 1 if last else 1
    return f"{prefix}-{seq:0{width}d}"


def lock_company(company):
    return Company.objects.select_for_update().get(pk=company.pk)


def next_journal_number(company):
    prefix = getattr(settings, "LEDGER_JOURNAL_PREFIX", "JE")
    lock_company(company)
    return next_sequence_number(
        JournalEntry.objects.for_company(company), "journal_number", prefix)


# ----------------------------
# Journal-related workflows
# ----------------------------
@transaction.atomic
def build_journal(company, date, lines, journal_number=None, memo="",
                  source=None, idempotency_key=None, user=None):
    """
    Create a DRAFT journal with its lines.

    lines is an iterable of JournalLineSpec. source is an optional
    (source_type, source_id) pair tracing the originating document.
    """
    if journal_number is None:
        journal_number = next_journal_number(company)
    elif JournalEntry.objects.for_company(company).filter(
            journal_number=journal_number).exists():
        raise DuplicateJournalNumber(
            f"Journal number {journal_number} already used")

    source_type, source_id = source or ("", None)
    je = JournalEntry.objects.create(
        company=company,
        journal_number=journal_number,
        date=date,
        memo=memo,
        status="draft",
        source_type=source_type,
        source_id=source_id,
        idempotency_key=idempotency_key,
        created_by=user,
    )
    for line_no, spec in enumerate(lines, start=1):
        if spec.account.company_id != company.pk:
            raise TenantMismatch(
                f"Account {spec.account.code} belongs to another company")
        JournalLine.objects.create(
            company=company,
            journal=je,
            line_no=line_no,
            account=spec.account,
            debit=spec.debit,
            credit=spec.credit,
            memo=spec.memo,
        )
    return je


def post_journal(journal, user=None):
    """
    Wraps pure business logic with transaction management + orchestration
    """
    with transaction.atomic():
        # Lock the row to avoid race conditions
        je = JournalEntry.objects.select_for_update().get(pk=journal.pk)
        if je.status == "posted":
            # idempotent re-post or AlreadyPostedDifferentPayload
            je.post(user=user)
        else:
            je.transition_to("posted", user=user)
    journal.refresh_from_db()
    return journal


@transaction.atomic
def post_lines(company, date, lines, journal_number=None, memo="",
               source=None, idempotency_key=None, user=None):
    """Build and post in one atomic call; nothing is left behind on error."""
    je = build_journal(
        company, date, lines,
        journal_number=journal_number,
        memo=memo,
        source=source,
        idempotency_key=idempotency_key,
        user=user,
    )
    return post_journal(je, user=user)


@transaction.atomic
def reverse_journal(journal, date=None, memo=None, user=None):
    """
    Post a mirror journal (debits and credits swapped line for line)
    and mark the original VOID. Original lines are never touched.
    """
    original = JournalEntry.objects.select_for_update().get(pk=journal.pk)
    if original.status == "void":
        raise AlreadyVoided(f"Journal {original.journal_number} is void")
    if JournalEntry.objects.filter(reversal_of=original).exists():
        raise AlreadyVoided(
            f"Journal {original.journal_number} is already reversed")
    if original.status != "posted":
        raise ValidationError("Only posted journals can be reversed")

    specs = [
        JournalLineSpec(
            account=line.account,
            debit=line.credit,
            credit=line.debit,
            memo=line.memo,
        )
        for line in original.lines.select_related("account").order_by(
            "line_no", "id")
    ]
    reversal = build_journal(
        original.company,
        date or timezone.localdate(),
        specs,
        journal_number=f"{original.journal_number}-REV",
        memo=memo if memo is not None else (
            f"Reversal of {original.journal_number}"),
        source=(original.source_type, original.source_id),
        user=user,
    )
    reversal.reversal_of = original
    reversal.save(update_fields=["reversal_of"])
    post_journal(reversal, user=user)

    original.transition_to("void", user=user)
    logger.info("Reversed journal %s with %s (company=%s)",
                original.journal_number, reversal.journal_number,
                original.company_id)
    journal.refresh_from_db()
    reversal.refresh_from_db()
    return reversal
