import hashlib
import json
import logging
from decimal import ROUND_HALF_UP, Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.utils import timezone
from ..exceptions import (AlreadyPostedDifferentPayload, DuplicateJournalNumber,
                          TenantMismatch, UnbalancedJournal)
from ..managers import JournalManager, TenantManager
from ..money import from_minor_units, to_minor_units
from .account import Account
from .company import Company

logger = logging.getLogger(__name__)

JOURNAL_STATUS = [
    ("draft", "Draft"),  # still editable
    ("posted", "Posted"),  # finalized, immutable
    ("void", "Void"),  # cancelled by a posted reversing journal
]


# ---------- Journal (Header) & JournalLine ----------
class JournalEntry(models.Model):  # Represents one accounting transaction
    # Multi-tenant: every entry belongs to a company
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    # Human-readable, unique per company (e.g. "JE-000042", "INV-7-REV")
    journal_number = models.CharField(max_length=64)
    date = models.DateField()
    memo = models.TextField(blank=True, default="")
    status = models.CharField(
        max_length=10,
        choices=JOURNAL_STATUS,
        default="draft",
    )
    posted_at = models.DateTimeField(null=True, blank=True)
    voided_at = models.DateTimeField(null=True, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL
    )
    created_at = models.DateTimeField(auto_now_add=True)

    # optional polymorphic source info (invoice, bill, credit memo,
    # stock adjustment, payment); traces where the JE originated
    source_type = models.CharField(max_length=50, blank=True, default="")
    source_id = models.BigIntegerField(null=True, blank=True)
    # Client-supplied key shared by every journal one operation posts
    idempotency_key = models.CharField(
        max_length=100, null=True, blank=True, db_index=True)

    # Set on the reversing journal; original.reversed_by is the way back
    reversal_of = models.OneToOneField(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="reversed_by",
    )

    # Fingerprint-based idempotency (safe to call twice if nothing has changed)
    posting_fingerprint = models.CharField(
        max_length=64, null=True, blank=True)

    objects = JournalManager()

    class Meta:
        indexes = [
            models.Index(
                fields=["company", "date"], name="je_company_date_idx"
            ),
            models.Index(
                fields=["company", "status"], name="je_company_status_idx"
            ),
            models.Index(fields=["company", "source_type", "source_id"],
                         name="je_company_source_idx"),
        ]

        constraints = [
            # Within one company, each journal number must be unique
            models.UniqueConstraint(
                fields=["company", "journal_number"],
                name="uq_je_company_number"
            )
        ]
        ordering = ("date", "id")

    def __str__(self):
        return f"{self.journal_number} {self.date} [{self.status}]"

    @property
    def decimal_places(self):
        return self.company.default_currency.decimal_places

    # Aggregate all debit and credit amounts across entry’s lines
    def compute_totals(self):
        """Return debits, credits sums for lines"""
        aggs = self.lines.aggregate(
            total_debit=models.Sum("debit"),
            total_credit=models.Sum("credit"),
        )
        return (
            aggs["total_debit"] or Decimal("0.00"),
            aggs["total_credit"] or Decimal("0.00"),
        )

    def imbalance(self):
        """debits - credits, compared in integer minor units"""
        debit, credit = self.compute_totals()
        places = self.decimal_places
        units = to_minor_units(debit, places) - to_minor_units(credit, places)
        return from_minor_units(units, places)

    # True if double-entry rule holds: total debits = total credits
    def is_balanced(self):
        return self.imbalance() == 0

    def _posting_payload(self):
        """Deterministic JSON snapshot of what matters for posting.

        If the data hasn't changed the string is always the same, so it can
        be compared against the fingerprint stored when the entry was posted.
        """
        lines = [
            {
                "acct": line.account_id,
                "debit": str(line.debit),
                "credit": str(line.credit),
                "memo": line.memo or "",
            }
            for line in self.lines.order_by("line_no", "id").all()
        ]

        payload = {
            "company": self.company_id,
            "number": self.journal_number,
            "date": self.date.isoformat(),
            "lines": lines,
        }
        return json.dumps(payload, separators=(",", ":"), sort_keys=True)

    def _fingerprint(self):
        return hashlib.sha256(self._posting_payload().encode()).hexdigest()

    # Post the entry safely inside a database transaction
    @transaction.atomic
    def post(self, user=None):
        """
        Validate and post the journal; nothing is persisted on failure.

        Order of checks: line accounts (active, same company), balance,
        journal number uniqueness.
        """
        # Lock row + lines to prevent concurrent modifications
        je = JournalEntry.objects.select_for_update().get(pk=self.pk)
        lines = list(
            je.lines.select_for_update().select_related("account")
            .order_by("line_no", "id")
        )

        """ Idempotency & immutability """
        if je.status == "posted":
            if je.posting_fingerprint == je._fingerprint():
                # Idempotent: safe to return without raising
                self._refresh_state(je)
                return je
            raise AlreadyPostedDifferentPayload(
                f"Journal {je.journal_number} already posted "
                "with different payload."
            )
        if je.status == "void":
            raise ValidationError(f"Journal {je.journal_number} is void")

        """ Business validations """
        if not lines:  # Prevent posting an empty entry
            raise UnbalancedJournal(
                f"Journal {je.journal_number} has no lines")

        for line in lines:
            if line.account.company_id != je.company_id:
                raise TenantMismatch(
                    f"Account {line.account.code} belongs to another company")
            if not line.account.is_active:
                raise ValidationError(
                    f"Account {line.account.code} is inactive")

        # Enforce double-entry rule: debits = credits
        diff = je.imbalance()
        if diff != 0:
            total_debit, total_credit = je.compute_totals()
            raise UnbalancedJournal(
                f"Journal not balanced: debits={total_debit}, "
                f"credits={total_credit}, imbalance={diff}",
                imbalance=diff,
            )

        if JournalEntry.objects.filter(
            company_id=je.company_id, journal_number=je.journal_number
        ).exclude(pk=je.pk).exists():
            raise DuplicateJournalNumber(
                f"Journal number {je.journal_number} already used")

        """ Update state """
        je.status = "posted"
        je.posted_at = timezone.now()
        if user:
            je.created_by = user
        je.posting_fingerprint = je._fingerprint()
        je.save(
            update_fields=[
                "status", "posted_at", "created_by", "posting_fingerprint"]
        )
        logger.info(
            "Posted journal %s (company=%s, lines=%d)",
            je.journal_number, je.company_id, len(lines),
        )
        self._refresh_state(je)
        return je

    def _refresh_state(self, je):
        # keep the caller's instance in sync with the locked copy
        for f in ("status", "posted_at", "created_by_id", "posting_fingerprint"):
            setattr(self, f, getattr(je, f))

    def clean(self):
        """Don't modify posted journals"""
        if self.pk:
            orig = JournalEntry.objects.filter(pk=self.pk).first()
            if orig and orig.status != "draft":
                for f in ("journal_number", "date", "memo", "company_id"):
                    if getattr(orig, f) != getattr(self, f):
                        raise ValidationError(
                            "Cannot modify a posted JournalEntry. "
                            "It is immutable."
                        )

    def save(self, *args, **kwargs):
        if self.pk:  # Does this row already exist in DB?
            orig = JournalEntry.objects.filter(pk=self.pk).first()
            if orig and orig.status == "posted" and self.status == "draft":
                # disallow toggling posted flag
                raise ValidationError("Cannot unpost a posted journal")
            if orig and orig.status == "void" and self.status != "void":
                raise ValidationError("Cannot revive a void journal")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if self.status != "draft":
            raise ValidationError(
                "Posted journals are corrected by reversal, never deleted")
        return super().delete(*args, **kwargs)

    # Control status changes
    def transition_to(self, new_status, user=None):
        allowed = {
            "draft": ["posted"],
            "posted": ["void"],
            "void": [],
        }
        if new_status not in allowed.get(self.status, []):
            raise ValidationError(
                f"Cannot go from {self.status} to {new_status}")

        if new_status == "posted":
            # call posting logic (validations, fingerprint, etc.)
            self.post(user=user)
            return
        # VOID is only reached through a posted reversing journal
        reversal = JournalEntry.objects.filter(
            reversal_of=self, status="posted").first()
        if reversal is None:
            raise ValidationError(
                "A journal is voided only by posting its reversal")
        self.status = "void"
        self.voided_at = timezone.now()
        self.save(update_fields=["status", "voided_at"])


class JournalLine(models.Model):  # Stores Lines ( credits / debits )
    """
    Each line belongs to a journal entry and to a GL account.
    Exactly one of debit / credit is non-zero; both are non-negative.
    """

    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    journal = models.ForeignKey(
        JournalEntry,
        on_delete=models.CASCADE,
        related_name="lines",
    )
    line_no = models.PositiveIntegerField(default=0)

    # Can’t delete account if lines exist → PROTECT
    account = models.ForeignKey(
        Account, on_delete=models.PROTECT, related_name="journal_lines")
    memo = models.CharField(max_length=400, blank=True, default="")

    debit = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    credit = models.DecimalField(max_digits=18, decimal_places=2, default=0)

    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(
                fields=["company", "account"], name="jl_company_account_idx"
            ),
            models.Index(
                fields=["company", "journal"], name="jl_company_journal_idx"
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(debit__gte=0) &
                    models.Q(credit__gte=0)
                ),
                name="jl_non_negative_amounts",
            ),
            models.CheckConstraint(
                condition=~(models.Q(debit=0) & models.Q(credit=0)),
                name="jl_debit_or_credit_nonzero",
            ),
            models.CheckConstraint(
                condition=models.Q(debit=0) | models.Q(credit=0),
                name="jl_not_both_debit_and_credit",
            ),
        ]
        ordering = ("journal", "line_no", "id")

    def __str__(self):
        return (f"{self.journal_id} | {self.account.code} {self.account.name}"
                f" | D:{self.debit or 0} C:{self.credit or 0}")

    @property
    def signed_amount(self):
        """debit - credit"""
        return (self.debit or Decimal("0")) - (self.credit or Decimal("0"))

    def clean(self):
        if self.debit < 0 or self.credit < 0:
            raise ValidationError("Debit and credit must be >= 0")
        if (self.debit > 0) and (self.credit > 0):
            raise ValidationError(
                "JournalLine should not have both debit and credit > 0"
            )
        if (self.debit == 0) and (self.credit == 0):
            raise ValidationError(
                "JournalLine requires a non-0 amount on either debit or credit"
            )

        # Company consistency
        if self.journal_id and self.company_id != self.journal.company_id:
            raise TenantMismatch(
                "JournalLine.company must equal JournalEntry.company")
        if self.account_id and self.account.company_id != self.company_id:
            raise TenantMismatch(
                "JournalLine.account must belong to the same company.")

        # Lines of a posted or void journal are frozen
        if self.journal_id:
            frozen = JournalEntry.objects.filter(
                pk=self.journal_id, status__in=("posted", "void")
            ).exists()
            if frozen:
                if not self.pk:
                    raise ValidationError(
                        "Cannot add JournalLine: parent journal is posted."
                    )
                orig = JournalLine.objects.get(pk=self.pk)
                changed = (
                    orig.debit != self.debit
                    or orig.credit != self.credit
                    or orig.account_id != self.account_id
                    or orig.memo != self.memo
                )
                if changed:
                    raise ValidationError(
                        "Cannot modify JournalLine: "
                        "parent JournalEntry is posted."
                    )

    def delete(self, *args, **kwargs):
        # Prevent deletion if parent journal is posted
        if JournalEntry.objects.filter(
            pk=self.journal_id, status__in=("posted", "void")
        ).exists():
            raise ValidationError(
                "Cannot delete JournalLine: parent JournalEntry is posted."
            )
        return super().delete(*args, **kwargs)

    def save(self, *args, **kwargs):
        # If company not set but JE is known, get company from JE
        if not getattr(self, "company_id", None) and self.journal_id:
            self.company_id = self.journal.company_id

        # round to 2 decimal places before assigning
        self.debit = Decimal(self.debit or 0).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP)
        self.credit = Decimal(self.credit or 0).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP)

        # clean()+field validation run whenever a line is saved
        self.full_clean()
        return super().save(*args, **kwargs)
