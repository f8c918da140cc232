import logging
from django.core.exceptions import ValidationError
from django.utils import timezone
from ..models import Bill, Invoice, Payment, PostingConfiguration
from ..money import money
from .orchestrator import OperationResult, check_company, ledger_operation
from .posting import credit, debit, post_lines

logger = logging.getLogger(__name__)


def _validate(company, account, amount, balance_due, label):
    check_company(company, account)
    if not account.is_payment_eligible:
        raise ValidationError(
            f"Account {account.code} is not payment eligible")
    amount = money(amount)
    if amount <= 0:
        raise ValidationError("Payment amount must be > 0")
    if amount > balance_due:
        raise ValidationError(
            f"Payment {amount} exceeds {label} balance due {balance_due}")
    return amount


@ledger_operation("record_invoice_payment")
def record_invoice_payment(invoice, amount, payment_account, *, date=None,
                           reference="", idempotency_key=None, user=None):
    """Customer pays an invoice: DR cash/bank / CR Accounts Receivable."""
    company = invoice.company
    config = PostingConfiguration.for_company(company)
    invoice = Invoice.objects.select_for_update().get(pk=invoice.pk)
    amount = _validate(company, payment_account, amount, invoice.balance_due,
                       f"invoice {invoice.invoice_number}")
    date = date or timezone.localdate()

    payment = Payment.objects.create(
        company=company,
        kind="received",
        invoice=invoice,
        account=payment_account,
        amount=amount,
        date=date,
        reference=reference,
        created_by=user,
    )
    memo = f"Payment on {invoice.invoice_number}"
    je = post_lines(
        company, date,
        [debit(payment_account, amount, memo),
         credit(config.account_for("accounts_receivable"), amount, memo)],
        memo=memo,
        source=("payment", payment.pk),
        idempotency_key=idempotency_key,
        user=user,
    )
    payment.journal = je
    payment.save(update_fields=["journal"])

    invoice.amount_paid += amount
    invoice.refresh_status()
    invoice.save(update_fields=["amount_paid", "status"])
    logger.info("Payment %s received on %s, now %s",
                amount, invoice.invoice_number, invoice.status)
    return OperationResult("record_invoice_payment", document=payment,
                           journals=[je])


@ledger_operation("record_bill_payment")
def record_bill_payment(bill, amount, payment_account, *, date=None,
                        reference="", idempotency_key=None, user=None):
    """We pay a vendor bill: DR Accounts Payable / CR cash/bank."""
    company = bill.company
    config = PostingConfiguration.for_company(company)
    bill = Bill.objects.select_for_update().get(pk=bill.pk)
    amount = _validate(company, payment_account, amount,
                       bill.balance_due, f"bill {bill.bill_number}")
    date = date or timezone.localdate()

    payment = Payment.objects.create(
        company=company,
        kind="made",
        bill=bill,
        account=payment_account,
        amount=amount,
        date=date,
        reference=reference,
        created_by=user,
    )
    memo = f"Payment of {bill.bill_number}"
    je = post_lines(
        company, date,
        [debit(config.account_for("accounts_payable"), amount, memo),
         credit(payment_account, amount, memo)],
        memo=memo,
        source=("payment", payment.pk),
        idempotency_key=idempotency_key,
        user=user,
    )
    payment.journal = je
    payment.save(update_fields=["journal"])

    bill.amount_paid += amount
    bill.refresh_status()
    bill.save(update_fields=["amount_paid", "status"])
    logger.info("Payment %s made on %s, now %s",
                amount, bill.bill_number, bill.status)
    return OperationResult("record_bill_payment", document=payment,
                           journals=[je])
