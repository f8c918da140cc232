import datetime
from decimal import Decimal
from unittest import mock
from django.core.exceptions import ValidationError
from django.db import OperationalError
from django.test import TestCase, TransactionTestCase
from ..exceptions import (ConcurrentUpdateConflict, InsufficientStock,
                          MissingAccountMapping, ReturnExceedsOriginal,
                          TenantMismatch)
from ..models import (AuditLog, Bill, CreditMemo, Invoice, JournalEntry,
                      Payment, StockMovement)
from ..services.accounts import create_account
from ..services.balances import balance_of, global_net, trial_balance_rows
from ..services.orchestrator import (_replay, adjust_stock,
                                     create_credit_memo,
                                     create_inventory_item, create_invoice,
                                     physical_count, record_purchase,
                                     return_to_supplier)
from ..services.payment import record_bill_payment, record_invoice_payment
from ..services.posting import lock_company
from .factories import LedgerSetup, make_company, make_item

JAN_1 = datetime.date(2025, 1, 1)
SALE_DAY = datetime.date(2025, 3, 10)
LATER = datetime.date(2025, 3, 20)


class WorkflowMixin:
    """A configured company holding 200 widgets at 50."""

    def setUp(self):
        self.l = LedgerSetup("acme")
        self.company = self.l.company
        self.item = create_inventory_item(
            self.company, sku="WID-1", name="Widget",
            selling_price=Decimal("100.00"),
            opening_quantity=200, opening_unit_cost=50, date=JAN_1,
        ).document

    def sell(self, qty, price=100, **kwargs):
        kwargs.setdefault("date", SALE_DAY)
        return create_invoice(
            self.company, kwargs.pop("customer", self.l.customer),
            [{"item": self.item, "quantity": qty, "unit_price": price}],
            **kwargs)

    def balance(self, code, **kwargs):
        return balance_of(self.l[code], **kwargs)


class WorkflowTestCase(WorkflowMixin, TestCase):
    pass


class InventoryItemCreationTests(WorkflowTestCase):

    def test_opening_stock_posted_against_opening_equity(self):
        self.assertEqual(self.item.quantity_on_hand, Decimal("200"))
        self.assertEqual(self.item.weighted_average_cost, Decimal("50"))
        self.assertEqual(self.balance("1200"), Decimal("10000.00"))
        self.assertEqual(self.balance("3100"), Decimal("10000.00"))
        movement = self.item.movements.get()
        self.assertEqual(movement.reason, "OPENING_STOCK")
        self.assertIsNotNone(movement.journal_id)

    def test_duplicate_sku_rejected(self):
        with self.assertRaises(ValidationError):
            create_inventory_item(self.company, sku="WID-1", name="Again")

    def test_item_without_opening_stock_posts_nothing(self):
        result = create_inventory_item(self.company, sku="WID-2",
                                       name="Gadget")
        self.assertEqual(result.journals, [])
        self.assertEqual(result.movements, [])


class InvoiceTests(WorkflowTestCase):

    """ Scenario B: 10,000 revenue, 5,000 cost of sales """
    def test_invoice_posts_revenue_and_cost_journals(self):
        result = self.sell(100)
        invoice = result.document
        self.assertEqual(len(result.journals), 2)
        self.assertEqual(invoice.total, Decimal("10000.00"))
        self.assertEqual(invoice.status, "unpaid")
        self.assertEqual(invoice.invoice_number, "INV-000001")
        self.assertEqual(invoice.due_date,
                         SALE_DAY + datetime.timedelta(days=30))

        rows = trial_balance_rows(self.company, date_from=SALE_DAY,
                                  as_of=SALE_DAY)
        posted = {r["code"]: (r["debit_total"], r["credit_total"])
                  for r in rows if r["debit_total"] or r["credit_total"]}
        self.assertEqual(posted, {
            "1100": (Decimal("10000.00"), Decimal("0.00")),
            "1200": (Decimal("0.00"), Decimal("5000.00")),
            "4000": (Decimal("0.00"), Decimal("10000.00")),
            "5000": (Decimal("5000.00"), Decimal("0.00")),
        })
        self.assertEqual(global_net(self.company), Decimal("0.00"))

    def test_sale_movement_linked_to_cost_journal(self):
        result = self.sell(10)
        revenue_je, cost_je = result.journals
        movement = result.movements[0]
        movement.refresh_from_db()
        self.assertEqual(movement.journal_id, cost_je.pk)
        line = result.document.lines.get()
        self.assertEqual(line.unit_cost, Decimal("50"))
        self.assertEqual(line.stock_movement_id, movement.pk)
        self.assertEqual(revenue_je.source_type, "invoice")
        self.assertEqual(result.items[0].quantity_on_hand, Decimal("190"))

    def test_cash_sale_is_paid_and_skips_receivables(self):
        result = self.sell(2, customer=None, payment_account=self.l.cash)
        self.assertEqual(result.document.status, "paid")
        self.assertEqual(result.document.amount_paid, Decimal("200.00"))
        self.assertEqual(self.balance("1000"), Decimal("200.00"))
        self.assertEqual(self.balance("1100"), Decimal("0.00"))

    def test_credit_sale_needs_customer(self):
        with self.assertRaises(ValidationError):
            self.sell(1, customer=None)

    def test_tax_and_discount(self):
        result = self.sell(2, tax="20.00", discount="10.00")
        invoice = result.document
        self.assertEqual(invoice.subtotal, Decimal("200.00"))
        self.assertEqual(invoice.total, Decimal("210.00"))
        self.assertEqual(self.balance("1100"), Decimal("210.00"))
        self.assertEqual(self.balance("2100"), Decimal("20.00"))
        # contra-income discount account is debit-normal
        self.assertEqual(self.balance("4020"), Decimal("10.00"))
        self.assertEqual(self.balance("4000"), Decimal("200.00"))

    def test_service_and_account_lines_post_no_cost(self):
        service = make_item(self.company, sku="SVC-1", name="Install",
                            item_type="service")
        result = create_invoice(self.company, self.l.customer, [
            {"item": service, "quantity": 1, "unit_price": 75},
            {"account": self.l["4000"], "quantity": 1, "unit_price": 25},
        ], date=SALE_DAY)
        self.assertEqual(len(result.journals), 1)
        self.assertEqual(result.movements, [])
        self.assertEqual(self.balance("4000"), Decimal("100.00"))

    def test_account_line_must_be_income(self):
        with self.assertRaises(ValidationError):
            create_invoice(self.company, self.l.customer, [
                {"account": self.l["5200"], "quantity": 1,
                 "unit_price": 25}], date=SALE_DAY)

    def test_insufficient_stock_rolls_back_everything(self):
        journals_before = JournalEntry.objects.count()
        with self.assertRaises(InsufficientStock):
            self.sell(201)
        self.assertFalse(Invoice.objects.exists())
        self.assertEqual(JournalEntry.objects.count(), journals_before)
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity_on_hand, Decimal("200"))

    def test_sales_have_no_negative_stock_override(self):
        # only stock adjustments may drive stock negative
        with self.assertRaises(TypeError):
            self.sell(205, allow_negative=True)
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity_on_hand, Decimal("200"))

    def test_missing_optional_role_raises(self):
        self.l.config.sales_tax = None
        self.l.config.save()
        with self.assertRaises(MissingAccountMapping):
            self.sell(1, tax="5.00")

    def test_company_without_configuration_raises(self):
        bare = make_company("bare")
        item = make_item(bare)
        with self.assertRaises(MissingAccountMapping):
            create_invoice(bare, None, [
                {"item": item, "quantity": 1, "unit_price": 1}])


class IdempotencyAndRetryTests(WorkflowTestCase):

    def test_replaying_key_applies_nothing(self):
        first = self.sell(10, idempotency_key="sale-1")
        journals = JournalEntry.objects.count()
        second = self.sell(10, idempotency_key="sale-1")
        self.assertTrue(second.replayed)
        self.assertFalse(first.replayed)
        self.assertEqual(second.document.pk, first.document.pk)
        self.assertEqual([j.pk for j in second.journals],
                         [j.pk for j in first.journals])
        self.assertEqual([m.pk for m in second.movements],
                         [m.pk for m in first.movements])
        self.assertEqual(Invoice.objects.count(), 1)
        self.assertEqual(JournalEntry.objects.count(), journals)
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity_on_hand, Decimal("190"))

    def test_key_reused_for_another_operation_rejected(self):
        self.sell(1, idempotency_key="op-1")
        with self.assertRaises(ValidationError):
            adjust_stock(self.company, self.item, 1, "DAMAGED",
                         idempotency_key="op-1")

    def test_same_key_in_other_company_is_independent(self):
        self.sell(1, idempotency_key="shared")
        other = LedgerSetup("globex")
        item = create_inventory_item(
            other.company, sku="WID-1", name="Widget",
            opening_quantity=5, opening_unit_cost=10, date=JAN_1).document
        result = create_invoice(
            other.company, other.customer,
            [{"item": item, "quantity": 1, "unit_price": 20}],
            date=SALE_DAY, idempotency_key="shared")
        self.assertFalse(result.replayed)

    def test_operations_are_audited(self):
        result = self.sell(1, idempotency_key="audit-1")
        entry = AuditLog.objects.for_company(self.company).get(
            action="create_invoice")
        self.assertEqual(entry.object_id, str(result.document.pk))
        self.assertEqual(entry.changes["idempotency_key"], "audit-1")

    def test_company_locked_before_key_lookup(self):
        calls = []

        def locking(company):
            calls.append("lock")
            return lock_company(company)

        def looking_up(*args):
            calls.append("lookup")
            return _replay(*args)

        with mock.patch(
            "ledger_core.services.orchestrator.lock_company",
            side_effect=locking,
        ), mock.patch(
            "ledger_core.services.orchestrator._replay",
            side_effect=looking_up,
        ):
            self.sell(1, idempotency_key="locked-1")
            self.sell(1, idempotency_key="locked-1")
        self.assertEqual(calls[:2], ["lock", "lookup"])
        self.assertEqual(calls[-2:], ["lock", "lookup"])
        self.assertEqual(Invoice.objects.count(), 1)

    @mock.patch("ledger_core.services.orchestrator.time.sleep")
    def test_conflict_inside_callers_transaction_not_retried(self, sleep):
        # TestCase already wraps each test in an atomic block
        with mock.patch(
            "ledger_core.services.orchestrator.PostingConfiguration"
            ".for_company",
            side_effect=OperationalError("deadlock detected"),
        ):
            with self.assertRaises(OperationalError):
                self.sell(1)
        sleep.assert_not_called()


class RetryTests(WorkflowMixin, TransactionTestCase):
    """Retries need the operation to own its transaction."""

    @mock.patch("ledger_core.services.orchestrator.time.sleep")
    def test_conflict_is_retried(self, sleep):
        config = self.l.config
        with mock.patch(
            "ledger_core.services.orchestrator.PostingConfiguration"
            ".for_company",
            side_effect=[OperationalError("deadlock detected"), config],
        ):
            result = self.sell(1)
        self.assertEqual(result.document.status, "unpaid")
        sleep.assert_called_once()

    @mock.patch("ledger_core.services.orchestrator.time.sleep")
    def test_persistent_conflict_surfaces(self, sleep):
        with mock.patch(
            "ledger_core.services.orchestrator.PostingConfiguration"
            ".for_company",
            side_effect=OperationalError("could not serialize access"),
        ):
            with self.assertRaises(ConcurrentUpdateConflict):
                self.sell(1)
        self.assertEqual(sleep.call_count, 3)
        # backoff doubles
        delays = [c.args[0] for c in sleep.call_args_list]
        self.assertEqual(delays, [0.05, 0.1, 0.2])
        self.assertFalse(Invoice.objects.exists())


class CreditMemoTests(WorkflowTestCase):

    def test_full_return_round_trip(self):
        invoice = self.sell(10).document
        result = create_credit_memo(self.company, invoice, [
            {"invoice_line": invoice.lines.get(), "quantity": 10}],
            date=LATER)
        memo = result.document
        self.assertEqual(memo.memo_number, "CM-000001")
        self.assertEqual(memo.total, Decimal("1000.00"))
        self.assertEqual(memo.cost_total, Decimal("500.00"))

        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity_on_hand, Decimal("200"))
        self.assertEqual(self.item.weighted_average_cost, Decimal("50"))
        self.assertEqual(self.balance("1100"), Decimal("0.00"))
        self.assertEqual(self.balance("1200"), Decimal("10000.00"))
        self.assertEqual(self.balance("5000"), Decimal("0.00"))
        self.assertEqual(self.balance("4010"), Decimal("1000.00"))

        invoice.refresh_from_db()
        self.assertEqual(invoice.amount_credited, Decimal("1000.00"))
        self.assertEqual(invoice.status, "paid")
        self.assertEqual(global_net(self.company), Decimal("0.00"))

    def test_return_restocks_at_sale_cost(self):
        invoice = self.sell(10).document
        # WAC moves after the sale
        record_purchase(self.company, self.l.vendor, [
            {"item": self.item, "quantity": 190, "unit_cost": 70}],
            date=LATER)
        result = create_credit_memo(self.company, invoice, [
            {"invoice_line": invoice.lines.get(), "quantity": 10}],
            date=LATER)
        self.assertEqual(result.movements[0].unit_cost, Decimal("50"))

    def test_return_exceeding_sold_quantity(self):
        invoice = self.sell(10).document
        line = invoice.lines.get()
        with self.assertRaises(ReturnExceedsOriginal):
            create_credit_memo(self.company, invoice, [
                {"invoice_line": line, "quantity": 11}])
        create_credit_memo(self.company, invoice, [
            {"invoice_line": line, "quantity": 6}])
        with self.assertRaises(ReturnExceedsOriginal):
            create_credit_memo(self.company, invoice, [
                {"invoice_line": line, "quantity": 5}])
        self.assertEqual(CreditMemo.objects.count(), 1)

    def test_tax_and_discount_returned_proportionally(self):
        invoice = self.sell(10, tax="100.00", discount="50.00").document
        line = invoice.lines.get()
        first = create_credit_memo(self.company, invoice, [
            {"invoice_line": line, "quantity": 3}]).document
        self.assertEqual(first.tax, Decimal("30.00"))
        self.assertEqual(first.discount, Decimal("15.00"))
        self.assertEqual(first.total, Decimal("315.00"))
        last = create_credit_memo(self.company, invoice, [
            {"invoice_line": line, "quantity": 7}]).document
        self.assertEqual(last.total, Decimal("735.00"))

        invoice.refresh_from_db()
        self.assertEqual(invoice.amount_credited, Decimal("1050.00"))
        self.assertEqual(self.balance("1100"), Decimal("0.00"))
        self.assertEqual(self.balance("2100"), Decimal("0.00"))
        self.assertEqual(self.balance("4020"), Decimal("0.00"))

    def return_one_by_one(self, invoice):
        line = invoice.lines.get()
        return [create_credit_memo(self.company, invoice, [
            {"invoice_line": line, "quantity": 1}]).document.total
            for _ in range(int(line.quantity))]

    """ 3 @ 0.165: units round up to 0.17, the line total is 0.50 """
    def test_unit_returns_do_not_overshoot_line_total(self):
        invoice = self.sell(3, price="0.165").document
        self.assertEqual(invoice.total, Decimal("0.50"))
        self.assertEqual(self.return_one_by_one(invoice), [
            Decimal("0.17"), Decimal("0.17"), Decimal("0.16")])
        invoice.refresh_from_db()
        self.assertEqual(invoice.amount_credited, Decimal("0.50"))
        self.assertEqual(invoice.amount_paid, Decimal("0.00"))
        self.assertEqual(invoice.balance_due, Decimal("0.00"))
        self.assertEqual(invoice.status, "paid")
        self.assertEqual(self.balance("1100"), Decimal("0.00"))
        self.assertEqual(self.balance("4010"), Decimal("0.50"))

    """ 3 @ 0.3333: units round down to 0.33, the line total is 1.00 """
    def test_unit_returns_do_not_fall_short_of_line_total(self):
        invoice = self.sell(3, price="0.3333").document
        self.assertEqual(invoice.total, Decimal("1.00"))
        self.assertEqual(self.return_one_by_one(invoice), [
            Decimal("0.33"), Decimal("0.33"), Decimal("0.34")])
        invoice.refresh_from_db()
        self.assertEqual(invoice.amount_credited, Decimal("1.00"))
        self.assertEqual(invoice.balance_due, Decimal("0.00"))
        self.assertEqual(invoice.status, "paid")
        returned = invoice.lines.get().returns.order_by("id")
        self.assertEqual([r.line_total for r in returned], [
            Decimal("0.33"), Decimal("0.33"), Decimal("0.34")])

    def test_cash_sale_refund_reduces_amount_paid(self):
        invoice = self.sell(10, customer=None,
                            payment_account=self.l.cash).document
        create_credit_memo(self.company, invoice, [
            {"invoice_line": invoice.lines.get(), "quantity": 4}])
        invoice.refresh_from_db()
        self.assertEqual(invoice.amount_paid, Decimal("600.00"))
        self.assertEqual(invoice.amount_credited, Decimal("400.00"))
        self.assertEqual(self.balance("1000"), Decimal("600.00"))

    def test_line_of_another_invoice_rejected(self):
        first = self.sell(1).document
        second = self.sell(1).document
        with self.assertRaises(ValidationError):
            create_credit_memo(self.company, first, [
                {"invoice_line": second.lines.get(), "quantity": 1}])


class PaymentTests(WorkflowTestCase):

    def test_invoice_payments_settle_status(self):
        invoice = self.sell(10).document
        record_invoice_payment(invoice, "400.00", self.l.bank,
                               date=LATER)
        invoice.refresh_from_db()
        self.assertEqual(invoice.status, "partial")
        record_invoice_payment(invoice, "600.00", self.l.bank,
                               date=LATER)
        invoice.refresh_from_db()
        self.assertEqual(invoice.status, "paid")
        self.assertEqual(self.balance("1010"), Decimal("1000.00"))
        self.assertEqual(self.balance("1100"), Decimal("0.00"))
        self.assertEqual(Payment.objects.filter(invoice=invoice).count(), 2)

    def test_overpayment_rejected(self):
        invoice = self.sell(1).document
        with self.assertRaises(ValidationError):
            record_invoice_payment(invoice, "100.01", self.l.bank)

    def test_payment_account_must_be_eligible(self):
        invoice = self.sell(1).document
        with self.assertRaises(ValidationError):
            record_invoice_payment(invoice, "10.00", self.l["1200"])

    def test_payment_journal_linked(self):
        invoice = self.sell(1).document
        payment = record_invoice_payment(invoice, "100.00",
                                         self.l.cash).document
        self.assertEqual(payment.journal.source_type, "payment")
        self.assertEqual(payment.journal.source_id, payment.pk)

    def test_bill_payment(self):
        bill = record_purchase(self.company, self.l.vendor, [
            {"item": self.item, "quantity": 10, "unit_cost": 12}],
            date=SALE_DAY).document
        record_bill_payment(bill, "120.00", self.l.bank, date=LATER)
        bill.refresh_from_db()
        self.assertEqual(bill.status, "paid")
        self.assertEqual(self.balance("2000"), Decimal("0.00"))
        self.assertEqual(self.balance("1010"), Decimal("-120.00"))


class PurchaseTests(WorkflowTestCase):

    def test_credit_purchase_updates_wac_and_ap(self):
        result = record_purchase(self.company, self.l.vendor, [
            {"item": self.item, "quantity": 100, "unit_cost": 80}],
            date=SALE_DAY)
        bill = result.document
        self.assertEqual(bill.bill_number, "BILL-000001")
        self.assertEqual(bill.total, Decimal("8000.00"))
        self.assertEqual(bill.status, "unpaid")
        self.item.refresh_from_db()
        self.assertEqual(self.item.weighted_average_cost, Decimal("60"))
        self.assertEqual(self.item.quantity_on_hand, Decimal("300"))
        self.assertEqual(self.item.cost_price, Decimal("80.00"))
        self.assertEqual(self.balance("2000"), Decimal("8000.00"))
        self.assertEqual(self.balance("1200"), Decimal("18000.00"))

    def test_cash_purchase_is_paid(self):
        bill = record_purchase(self.company, self.l.vendor, [
            {"item": self.item, "quantity": 1, "unit_cost": 50}],
            payment_account=self.l.cash, date=SALE_DAY).document
        self.assertEqual(bill.status, "paid")
        self.assertEqual(self.balance("1000"), Decimal("-50.00"))
        self.assertEqual(self.balance("2000"), Decimal("0.00"))

    def test_expense_line_debits_its_account(self):
        record_purchase(self.company, self.l.vendor, [
            {"account": self.l["5200"], "quantity": 1, "unit_cost": 900}],
            date=SALE_DAY)
        self.assertEqual(self.balance("5200"), Decimal("900.00"))

    def test_supplier_return(self):
        bill = record_purchase(self.company, self.l.vendor, [
            {"item": self.item, "quantity": 100, "unit_cost": 80}],
            date=SALE_DAY).document
        result = return_to_supplier(self.company, bill, self.item, 10,
                                    date=LATER)
        self.assertEqual(result.movements[0].total_cost, Decimal("600.00"))
        bill.refresh_from_db()
        self.assertEqual(bill.amount_returned, Decimal("600.00"))
        self.assertEqual(bill.status, "partial")
        self.assertEqual(self.balance("2000"), Decimal("7400.00"))
        self.assertEqual(self.balance("1200"), Decimal("17400.00"))
        with self.assertRaises(ReturnExceedsOriginal):
            return_to_supplier(self.company, bill, self.item, 91)

    def test_supplier_return_of_item_not_on_bill(self):
        bill = record_purchase(self.company, self.l.vendor, [
            {"account": self.l["5200"], "quantity": 1, "unit_cost": 10}],
            date=SALE_DAY).document
        with self.assertRaises(ValidationError):
            return_to_supplier(self.company, bill, self.item, 1)
        self.assertEqual(Bill.objects.count(), 1)


class StockAdjustmentTests(WorkflowTestCase):

    def test_damage_posts_shrinkage(self):
        result = adjust_stock(self.company, self.item, 5, "DAMAGED",
                              date=SALE_DAY)
        self.assertEqual(result.movements[0].direction, "OUT")
        self.assertEqual(self.balance("5100"), Decimal("250.00"))
        self.assertEqual(self.balance("1200"), Decimal("9750.00"))

    def test_found_stock_posts_gain_at_wac(self):
        adjust_stock(self.company, self.item, 2, "FOUND", date=SALE_DAY)
        self.assertEqual(self.balance("4100"), Decimal("100.00"))
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity_on_hand, Decimal("202"))

    def test_count_adjustment_sign_sets_direction(self):
        result = adjust_stock(self.company, self.item, -3,
                              "COUNT_ADJUSTMENT", date=SALE_DAY)
        self.assertEqual(result.movements[0].direction, "OUT")
        self.assertEqual(self.balance("5100"), Decimal("150.00"))

    def test_configured_count_adjustment_account(self):
        counts = create_account(self.company, code="5300",
                                name="Count Differences", ac_type="expense")
        self.l.config.count_adjustment = counts
        self.l.config.save()
        adjust_stock(self.company, self.item, 4, "COUNT_ADJUSTMENT",
                     date=SALE_DAY)
        self.assertEqual(balance_of(counts), Decimal("-200.00"))

    def test_document_reasons_rejected(self):
        with self.assertRaises(ValidationError):
            adjust_stock(self.company, self.item, 1, "SALE")

    def test_shrinkage_beyond_stock_needs_override(self):
        with self.assertRaises(InsufficientStock):
            adjust_stock(self.company, self.item, 201, "THEFT")
        result = adjust_stock(self.company, self.item, 201, "THEFT",
                              allow_negative=True)
        self.assertTrue(result.movements[0].negative_override)

    """ Restocking after a negative-stock override starts a fresh WAC """
    def test_purchase_after_negative_stock(self):
        adjust_stock(self.company, self.item, 205, "DAMAGED",
                     allow_negative=True, date=SALE_DAY)
        record_purchase(self.company, self.l.vendor, [
            {"item": self.item, "quantity": 10, "unit_cost": 10}],
            date=LATER)
        self.item.refresh_from_db()
        self.assertEqual(self.item.quantity_on_hand, Decimal("5"))
        self.assertEqual(self.item.weighted_average_cost, Decimal("10"))
        record_purchase(self.company, self.l.vendor, [
            {"item": self.item, "quantity": 5, "unit_cost": 20}],
            date=LATER)
        self.item.refresh_from_db()
        self.assertEqual(self.item.weighted_average_cost, Decimal("15"))

    def test_physical_count(self):
        result = physical_count(self.company, self.item, 195,
                                date=SALE_DAY)
        self.assertEqual(result.movements[0].reason, "COUNT_ADJUSTMENT")
        self.assertEqual(self.balance("5100"), Decimal("250.00"))
        unchanged = physical_count(self.company, self.item, 195)
        self.assertEqual(unchanged.journals, [])
        self.assertEqual(StockMovement.objects.filter(
            item=self.item).count(), 2)


class TenantGuardTests(WorkflowTestCase):

    def setUp(self):
        super().setUp()
        self.other = LedgerSetup("globex")

    def test_foreign_customer_rejected(self):
        with self.assertRaises(TenantMismatch):
            self.sell(1, customer=self.other.customer)

    def test_foreign_item_rejected(self):
        foreign = make_item(self.other.company)
        with self.assertRaises(TenantMismatch):
            create_invoice(self.company, self.l.customer, [
                {"item": foreign, "quantity": 1, "unit_price": 1}])

    def test_foreign_payment_account_rejected(self):
        invoice = self.sell(1).document
        with self.assertRaises(TenantMismatch):
            record_invoice_payment(invoice, "10.00", self.other.cash)
