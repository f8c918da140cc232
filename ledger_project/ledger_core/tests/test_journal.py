from decimal import Decimal
from django.core.exceptions import ValidationError
from django.test import TestCase
from ..exceptions import (AlreadyPostedDifferentPayload, AlreadyVoided,
                          DuplicateJournalNumber, TenantMismatch,
                          UnbalancedJournal)
from ..models import JournalEntry, JournalLine
from ..services.balances import balance_of
from ..services.posting import (JournalLineSpec, build_journal, credit,
                                debit, post_journal, post_lines,
                                reverse_journal)
from ..services.accounts import create_account, deactivate
from .factories import TODAY, make_company

""" Success tests """


class JournalPostingTests(TestCase):

    def setUp(self):
        self.company = make_company("acme")
        self.cash = create_account(self.company, code="1110",
                                   name="Cash on Hand", ac_type="asset")
        self.revenue = create_account(self.company, code="4000",
                                      name="Operating Revenue",
                                      ac_type="income")
        self.je = build_journal(self.company, TODAY, [
            debit(self.cash, "100.00"),
            credit(self.revenue, "100.00"),
        ])

    """ Test Balanced Entry """
    def test_balanced_entry_posts_successfully(self):
        post_journal(self.je)
        self.assertEqual(self.je.status, "posted")
        self.assertIsNotNone(self.je.posted_at)
        self.assertTrue(self.je.posting_fingerprint)
        self.assertEqual(balance_of(self.cash), Decimal("100.00"))
        self.assertEqual(balance_of(self.revenue), Decimal("100.00"))

    def test_numbers_are_sequential_per_company(self):
        second = build_journal(self.company, TODAY, [
            debit(self.cash, "1.00"), credit(self.revenue, "1.00")])
        self.assertEqual(self.je.journal_number, "JE-000001")
        self.assertEqual(second.journal_number, "JE-000002")

        other = make_company("globex")
        acct = create_account(other, code="1110", name="Cash",
                              ac_type="asset")
        rev = create_account(other, code="4000", name="Sales",
                             ac_type="income")
        first_other = build_journal(other, TODAY, [
            debit(acct, "1.00"), credit(rev, "1.00")])
        self.assertEqual(first_other.journal_number, "JE-000001")

    """ Test for Idempotency
          Posting twice with the same payload changes nothing. """
    def test_reposting_same_payload_is_noop(self):
        post_journal(self.je)
        fingerprint = self.je.posting_fingerprint
        posted_at = self.je.posted_at
        post_journal(self.je)
        self.je.refresh_from_db()
        self.assertEqual(self.je.posting_fingerprint, fingerprint)
        self.assertEqual(self.je.posted_at, posted_at)
        self.assertEqual(self.je.lines.count(), 2)

    def test_reposting_changed_payload_raises(self):
        post_journal(self.je)
        # simulate a payload changed underneath the posted journal
        line = self.je.lines.get(line_no=1)
        JournalLine.objects.filter(pk=line.pk).update(memo="tampered")
        with self.assertRaises(AlreadyPostedDifferentPayload):
            post_journal(self.je)

    def test_post_lines_builds_and_posts(self):
        je = post_lines(self.company, TODAY, [
            debit(self.cash, "25.50"), credit(self.revenue, "25.50")],
            memo="Cash sale", source=("invoice", 7), idempotency_key="k-1")
        self.assertEqual(je.status, "posted")
        self.assertEqual(je.source_type, "invoice")
        self.assertEqual(je.source_id, 7)
        self.assertEqual(je.idempotency_key, "k-1")


""" Failure tests """


class JournalValidationTests(TestCase):

    def setUp(self):
        self.company = make_company("acme")
        self.cash = create_account(self.company, code="1110", name="Cash",
                                   ac_type="asset")
        self.revenue = create_account(self.company, code="4000",
                                      name="Revenue", ac_type="income")

    def test_unbalanced_entry_reports_imbalance(self):
        je = build_journal(self.company, TODAY, [
            debit(self.cash, "100.00"), credit(self.revenue, "90.00")])
        with self.assertRaises(UnbalancedJournal) as ctx:
            post_journal(je)
        self.assertEqual(ctx.exception.imbalance, Decimal("10.00"))
        je.refresh_from_db()
        self.assertEqual(je.status, "draft")

    def test_one_cent_difference_is_unbalanced(self):
        je = build_journal(self.company, TODAY, [
            debit(self.cash, "100.01"), credit(self.revenue, "100.00")])
        with self.assertRaises(UnbalancedJournal):
            post_journal(je)

    def test_empty_journal_cannot_post(self):
        je = build_journal(self.company, TODAY, [])
        with self.assertRaises(UnbalancedJournal):
            post_journal(je)

    def test_post_lines_leaves_nothing_behind_on_failure(self):
        with self.assertRaises(UnbalancedJournal):
            post_lines(self.company, TODAY, [
                debit(self.cash, "5.00"), credit(self.revenue, "4.00")])
        self.assertFalse(
            JournalEntry.objects.for_company(self.company).exists())

    def test_inactive_account_cannot_be_posted_to(self):
        je = build_journal(self.company, TODAY, [
            debit(self.cash, "5.00"), credit(self.revenue, "5.00")])
        deactivate(self.cash)
        with self.assertRaises(ValidationError):
            post_journal(je)

    def test_account_of_other_company_rejected(self):
        other = make_company("globex")
        foreign = create_account(other, code="1110", name="Cash",
                                 ac_type="asset")
        with self.assertRaises(TenantMismatch):
            build_journal(self.company, TODAY, [
                debit(foreign, "5.00"), credit(self.revenue, "5.00")])

    def test_duplicate_journal_number_rejected(self):
        build_journal(self.company, TODAY, [
            debit(self.cash, "5.00"), credit(self.revenue, "5.00")],
            journal_number="MAN-1")
        with self.assertRaises(DuplicateJournalNumber):
            build_journal(self.company, TODAY, [
                debit(self.cash, "5.00"), credit(self.revenue, "5.00")],
                journal_number="MAN-1")

    def test_line_needs_exactly_one_side(self):
        with self.assertRaises(ValidationError):
            build_journal(self.company, TODAY, [
                JournalLineSpec(account=self.cash, debit=Decimal("5.00"),
                                credit=Decimal("5.00"))])
        with self.assertRaises(ValidationError):
            build_journal(self.company, TODAY, [
                JournalLineSpec(account=self.cash)])


class PostedJournalImmutabilityTests(TestCase):

    def setUp(self):
        self.company = make_company("acme")
        self.cash = create_account(self.company, code="1110", name="Cash",
                                   ac_type="asset")
        self.revenue = create_account(self.company, code="4000",
                                      name="Revenue", ac_type="income")
        self.je = post_lines(self.company, TODAY, [
            debit(self.cash, "100.00"), credit(self.revenue, "100.00")])

    def test_cannot_add_line_to_posted_journal(self):
        with self.assertRaises(ValidationError):
            JournalLine.objects.create(
                journal=self.je, account=self.cash, debit=Decimal("1.00"))

    def test_cannot_edit_posted_line(self):
        line = self.je.lines.get(line_no=1)
        line.debit = Decimal("99.00")
        with self.assertRaises(ValidationError):
            line.save()

    def test_cannot_delete_posted_line_or_journal(self):
        with self.assertRaises(ValidationError):
            self.je.lines.first().delete()
        with self.assertRaises(ValidationError):
            self.je.delete()

    def test_cannot_edit_posted_header(self):
        self.je.memo = "changed"
        with self.assertRaises(ValidationError):
            self.je.full_clean()

    def test_cannot_unpost(self):
        self.je.status = "draft"
        with self.assertRaises(ValidationError):
            self.je.save()

    def test_void_only_through_reversal(self):
        with self.assertRaises(ValidationError):
            self.je.transition_to("void")


class ReversalTests(TestCase):

    def setUp(self):
        self.company = make_company("acme")
        self.cash = create_account(self.company, code="1110", name="Cash",
                                   ac_type="asset")
        self.revenue = create_account(self.company, code="4000",
                                      name="Revenue", ac_type="income")
        self.je = post_lines(self.company, TODAY, [
            debit(self.cash, "100.00", "sale"),
            credit(self.revenue, "100.00", "sale")])

    def test_reversal_swaps_lines_and_voids_original(self):
        reversal = reverse_journal(self.je)
        self.je.refresh_from_db()
        self.assertEqual(self.je.status, "void")
        self.assertIsNotNone(self.je.voided_at)
        self.assertEqual(reversal.status, "posted")
        self.assertEqual(reversal.reversal_of, self.je)
        self.assertEqual(reversal.journal_number,
                         f"{self.je.journal_number}-REV")
        swapped = [(l.account_id, l.debit, l.credit)
                   for l in reversal.lines.order_by("line_no")]
        self.assertEqual(swapped, [
            (self.cash.pk, Decimal("0.00"), Decimal("100.00")),
            (self.revenue.pk, Decimal("100.00"), Decimal("0.00")),
        ])
        # void original and its reversal net to zero
        self.assertEqual(balance_of(self.cash), Decimal("0.00"))
        self.assertEqual(balance_of(self.revenue), Decimal("0.00"))

    def test_original_lines_untouched(self):
        before = list(self.je.lines.values_list("debit", "credit", "memo"))
        reverse_journal(self.je)
        after = list(self.je.lines.values_list("debit", "credit", "memo"))
        self.assertEqual(before, after)

    def test_second_reversal_raises_already_voided(self):
        reverse_journal(self.je)
        with self.assertRaises(AlreadyVoided):
            reverse_journal(self.je)

    def test_draft_cannot_be_reversed(self):
        draft = build_journal(self.company, TODAY, [
            debit(self.cash, "1.00"), credit(self.revenue, "1.00")])
        with self.assertRaises(ValidationError):
            reverse_journal(draft)
