"""
Sales, purchase, return and stock-adjustment workflows.

Each public operation is one atomic unit: costing, posting and the
document status update commit together or not at all. Operations are
wrapped by ``ledger_operation`` which adds bounded retry on transient
database conflicts and idempotency-key replay.

The first positional argument of every operation is the company, or a
document that carries it (invoice, bill).
"""
import functools
import logging
import time
from dataclasses import dataclass, field
from datetime import timedelta
from django.apps import apps
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import OperationalError, transaction
from django.db.models import Sum
from django.utils import timezone
from ..exceptions import (ConcurrentUpdateConflict, ReturnExceedsOriginal,
                          TenantMismatch)
from ..models import (AuditLog, Bill, BillLine, CreditMemo, CreditMemoLine,
                      InventoryItem, Invoice, InvoiceLine, JournalEntry,
                      PostingConfiguration, StockMovement)
from ..models.inventory import IN_REASONS
from ..models.invoice import settlement_status
from ..money import ZERO, money, places_for, to_decimal
from ..money import quantity as to_quantity
from ..money import unit_cost as to_unit_cost
from . import costing
from .audit_helper import log_action
from .posting import (JournalLineSpec, credit, debit, lock_company,
                      next_sequence_number, post_lines)

logger = logging.getLogger(__name__)

PRICE_PLACES = places_for(4)

# Reasons adjust_stock accepts; the rest belong to document workflows
ADJUSTMENT_REASONS = {
    "DAMAGED", "THEFT", "EXPIRED", "LOST", "SAMPLE", "TRANSFER_OUT",
    "FOUND", "TRANSFER_IN", "OPENING_STOCK", "COUNT_ADJUSTMENT",
}


@dataclass
class OperationResult:
    """What an operation produced: the document plus its effects."""
    operation: str
    document: object = None
    journals: list = field(default_factory=list)
    movements: list = field(default_factory=list)
    items: list = field(default_factory=list)
    # True when an idempotency key matched an earlier run
    replayed: bool = False

    def add_movement(self, movement):
        self.movements.append(movement)
        if all(item.pk != movement.item_id for item in self.items):
            self.items.append(movement.item)


# ----------------------------
# Retry & idempotency
# ----------------------------
def _company_of(subject):
    # Company itself, or a document pointing at one
    return getattr(subject, "company", subject)


def _replay(company, operation, key):
    entry = (
        AuditLog.objects.for_company(company)
        .filter(changes__idempotency_key=key)
        .order_by("id")
        .first()
    )
    if entry is None:
        return None
    if entry.action != operation:
        raise ValidationError(
            f"Idempotency key {key} was already used for {entry.action}")

    model = apps.get_model("ledger_core", entry.object_type)
    changes = entry.changes or {}
    movements = list(
        StockMovement.objects.for_company(company)
        .filter(pk__in=changes.get("movements", []))
        .select_related("item")
        .order_by("id")
    )
    result = OperationResult(
        operation,
        document=model.objects.get(pk=entry.object_id),
        journals=list(
            JournalEntry.objects.for_company(company)
            .filter(pk__in=changes.get("journals", []))
            .order_by("id")
        ),
        replayed=True,
    )
    for movement in movements:
        result.add_movement(movement)
    item_ids = changes.get("items", [])
    for item in InventoryItem.objects.filter(pk__in=item_ids):
        if all(known.pk != item.pk for known in result.items):
            result.items.append(item)
    return result


def _record(result, company, key, user):
    log_action(
        action=result.operation,
        instance=result.document,
        user=user,
        company=company,
        changes={
            "idempotency_key": key,
            "journals": [je.pk for je in result.journals],
            "movements": [m.pk for m in result.movements],
            "items": [item.pk for item in result.items],
        },
    )


def ledger_operation(name):
    """
    Run the wrapped operation in one transaction, retrying
    OperationalError (lock timeouts, serialization failures) with
    exponential backoff. A repeated idempotency_key returns the first
    run's result without applying anything.

    Inside a caller's atomic block nothing is retried; the error goes
    to the caller, who owns the transaction.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, idempotency_key=None, **kwargs):
            company = _company_of(args[0])
            retries = getattr(settings, "LEDGER_MAX_RETRIES", 3)
            backoff = getattr(settings, "LEDGER_RETRY_BACKOFF", 0.05)
            nested = transaction.get_connection().in_atomic_block
            attempt = 0
            while True:
                try:
                    with transaction.atomic():
                        if idempotency_key:
                            # same-key callers queue here, so the second
                            # one sees the first one's audit row
                            lock_company(company)
                            prior = _replay(company, name, idempotency_key)
                            if prior is not None:
                                logger.info("%s replayed for key %s",
                                            name, idempotency_key)
                                return prior
                        result = func(
                            *args, idempotency_key=idempotency_key, **kwargs)
                        _record(result, company, idempotency_key,
                                kwargs.get("user"))
                        return result
                except OperationalError as exc:
                    if nested:
                        raise
                    attempt += 1
                    if attempt > retries:
                        logger.warning("%s gave up after %d retries: %s",
                                       name, retries, exc)
                        raise ConcurrentUpdateConflict(
                            f"{name} conflicted with a concurrent update"
                        ) from exc
                    delay = backoff * 2 ** (attempt - 1)
                    logger.warning("%s conflict (%s); retry %d/%d in %.2fs",
                                   name, exc, attempt, retries, delay)
                    time.sleep(delay)
        return wrapper
    return decorator


# ----------------------------
# Helpers
# ----------------------------
def check_company(company, *objs):
    for obj in objs:
        if obj is not None and obj.company_id != company.pk:
            raise TenantMismatch(
                f"{obj.__class__.__name__} {obj} belongs to another company")


def _inventory_account(item, config):
    return item.asset_account or config.account_for("inventory_asset")


def _income_account(item, config):
    return item.income_account or config.account_for("sales_revenue")


def _cogs_account(item, config):
    return item.cogs_account or config.account_for("cost_of_goods_sold")


def _merge(specs):
    """Collapse specs hitting the same account on the same side; drop 0s."""
    merged = {}
    for spec in specs:
        side = "debit" if spec.debit else "credit"
        key = (spec.account.pk, side)
        if key not in merged:
            merged[key] = JournalLineSpec(
                account=spec.account, memo=spec.memo)
        merged[key].debit += spec.debit
        merged[key].credit += spec.credit
    return [s for s in merged.values() if s.debit or s.credit]


def _link(movements, journal):
    for movement in movements:
        movement.journal = journal
        movement.save(update_fields=["journal"])


def _post_movement(company, movement, debit_account, credit_account, date,
                   memo, source, idempotency_key, user):
    """Post the two-line journal for one movement; None when worth 0."""
    if movement.total_cost == 0:
        return None
    je = post_lines(
        company, date,
        [debit(debit_account, movement.total_cost, memo),
         credit(credit_account, movement.total_cost, memo)],
        memo=memo,
        source=source,
        idempotency_key=idempotency_key,
        user=user,
    )
    _link([movement], je)
    return je


def _adjustment_accounts(item, reason, direction, config):
    """(debit account, credit account) for a stock adjustment."""
    inventory = _inventory_account(item, config)
    if reason == "OPENING_STOCK":
        return inventory, config.account_for("opening_balance_equity")
    if reason == "COUNT_ADJUSTMENT" and config.count_adjustment is not None:
        offset = config.count_adjustment
        if direction == "IN":
            return inventory, offset
        return offset, inventory
    if direction == "IN":
        return inventory, config.account_for("inventory_gain")
    return config.account_for("inventory_shrinkage"), inventory


def _prepare_lines(company, lines, price_key):
    if not lines:
        raise ValidationError("At least one line is required")
    prepared = []
    for raw in lines:
        item = raw.get("item")
        account = raw.get("account")
        if item is None and account is None:
            raise ValidationError("Each line needs an item or an account")
        check_company(company, item, account)
        if item is not None and not item.is_active:
            raise ValidationError(f"Item {item.sku} is inactive")
        qty = to_quantity(raw["quantity"])
        if qty <= 0:
            raise ValidationError("Line quantity must be > 0")
        price = to_decimal(raw[price_key])
        if price < 0:
            raise ValidationError(f"{price_key} must be >= 0")
        prepared.append({
            "item": item,
            "account": account,
            "quantity": qty,
            "price": price,
            "description": raw.get("description", ""),
        })
    return prepared


# ----------------------------
# Inventory items
# ----------------------------
@ledger_operation("create_inventory_item")
def create_inventory_item(company, *, sku, name, opening_quantity=0,
                          opening_unit_cost=None, date=None,
                          idempotency_key=None, user=None, **fields):
    """
    Create an item; opening stock is an IN movement posted
    DR Inventory / CR Opening Balance Equity.
    """
    config = PostingConfiguration.for_company(company)
    if InventoryItem.objects.for_company(company).filter(sku=sku).exists():
        raise ValidationError(f"SKU {sku} already exists")
    item = InventoryItem(company=company, sku=sku, name=name, **fields)
    item.save()
    result = OperationResult("create_inventory_item", document=item,
                             items=[item])

    opening_qty = to_quantity(opening_quantity)
    if opening_qty > 0:
        cost = (opening_unit_cost if opening_unit_cost is not None
                else item.cost_price)
        movement = costing.record_movement(
            item, "IN", "OPENING_STOCK", opening_qty,
            unit_cost=cost,
            reference=sku,
            source=("inventory_item", item.pk),
            user=user,
        )
        result.add_movement(movement)
        debit_account, credit_account = _adjustment_accounts(
            item, "OPENING_STOCK", "IN", config)
        je = _post_movement(
            company, movement, debit_account, credit_account,
            date or timezone.localdate(), f"Opening stock {sku}",
            ("stock_movement", movement.pk), idempotency_key, user)
        if je is not None:
            result.journals.append(je)
    logger.info("Created item %s (company=%s, opening qty %s)",
                sku, company.pk, opening_qty)
    return result


# ----------------------------
# Purchases
# ----------------------------
@ledger_operation("record_purchase")
def record_purchase(company, vendor, lines, *, date=None, bill_number=None,
                    due_date=None, payment_account=None, description="",
                    idempotency_key=None, user=None):
    """
    lines: [{"item" | "account", "quantity", "unit_cost", "description"}]

    Goods lines go IN at their purchase cost and debit inventory; other
    lines debit their account. The bill is credited to AP, or to
    payment_account when paid on the spot (bill PAID).
    """
    config = PostingConfiguration.for_company(company)
    check_company(company, vendor, payment_account)
    if payment_account is not None and not payment_account.is_payment_eligible:
        raise ValidationError(f"Account {payment_account.code} cannot pay")
    prepared = _prepare_lines(company, lines, "unit_cost")
    settle_account = (payment_account
                      or config.account_for("accounts_payable"))

    date = date or timezone.localdate()
    if due_date is None and vendor is not None and payment_account is None:
        due_date = date + timedelta(days=vendor.payment_terms_days)
    for line in prepared:
        line["price"] = to_unit_cost(line["price"])
        line["total"] = money(line["quantity"] * line["price"])
    total = sum((line["total"] for line in prepared), ZERO)
    amount_paid = total if payment_account is not None else ZERO

    lock_company(company)
    number = bill_number or next_sequence_number(
        Bill.objects.for_company(company), "bill_number", "BILL")
    bill = Bill.objects.create(
        company=company,
        vendor=vendor,
        bill_number=number,
        date=date,
        due_date=due_date,
        payment_account=payment_account,
        total=total,
        amount_paid=amount_paid,
        status=settlement_status(total, amount_paid),
        description=description,
        created_by=user,
    )
    result = OperationResult("record_purchase", document=bill)

    specs = []
    for line_no, line in enumerate(prepared, start=1):
        item, account = line["item"], line["account"]
        memo = line["description"] or f"Bill {number} line {line_no}"
        movement = None
        if item is not None and item.is_stocked:
            movement = costing.record_movement(
                item, "IN", "PURCHASE", line["quantity"],
                unit_cost=line["price"],
                reference=number,
                source=("bill", bill.pk),
                user=user,
            )
            result.add_movement(movement)
            # last purchase price
            item.cost_price = money(line["price"])
            InventoryItem.objects.filter(pk=item.pk).update(
                cost_price=item.cost_price)
            target = _inventory_account(item, config)
        elif item is not None:
            target = account or _cogs_account(item, config)
        else:
            target = account
        BillLine.objects.create(
            company=company,
            bill=bill,
            line_no=line_no,
            item=item,
            account=account,
            description=line["description"],
            quantity=line["quantity"],
            unit_cost=line["price"],
            stock_movement=movement,
        )
        specs.append(debit(target, line["total"], memo))
    specs.append(credit(settle_account, total, f"Bill {number}"))

    merged = _merge(specs)
    if merged:
        je = post_lines(
            company, date, merged,
            memo=f"Bill {number}",
            source=("bill", bill.pk),
            idempotency_key=idempotency_key,
            user=user,
        )
        _link(result.movements, je)
        result.journals.append(je)
    logger.info("Recorded purchase %s total %s (company=%s)",
                number, total, company.pk)
    return result


@ledger_operation("return_to_supplier")
def return_to_supplier(company, bill, item, quantity, *, date=None, notes="",
                       idempotency_key=None, user=None):
    """OUT SUPPLIER_RETURN at current WAC; DR AP (or the paying account)
    / CR Inventory. Reduces what the bill still owes."""
    config = PostingConfiguration.for_company(company)
    check_company(company, bill, item)
    bill = Bill.objects.select_for_update().get(pk=bill.pk)
    qty = to_quantity(quantity)
    if qty <= 0:
        raise ValidationError("Return quantity must be > 0")

    purchased = bill.lines.filter(item=item).aggregate(
        total=Sum("quantity"))["total"]
    if not purchased:
        raise ValidationError(f"Item {item.sku} is not on bill "
                              f"{bill.bill_number}")
    returned = StockMovement.objects.for_company(company).filter(
        source_type="bill", source_id=bill.pk, item=item,
        reason="SUPPLIER_RETURN",
    ).aggregate(total=Sum("quantity"))["total"] or ZERO
    if qty > purchased - returned:
        raise ReturnExceedsOriginal(
            f"Returning {qty} of {item.sku}; only {purchased - returned} "
            f"left on bill {bill.bill_number}")

    movement = costing.record_movement(
        item, "OUT", "SUPPLIER_RETURN", qty,
        reference=bill.bill_number,
        source=("bill", bill.pk),
        notes=notes,
        user=user,
    )
    value = movement.total_cost
    if value > bill.total - bill.amount_returned:
        raise ValidationError(
            f"Return value {value} exceeds what is left on the bill")
    # beyond the open balance the vendor owes us a refund
    excess = max(value - bill.balance_due, ZERO)
    bill.amount_paid -= excess
    bill.amount_returned += value
    bill.refresh_status()
    bill.save(update_fields=["amount_paid", "amount_returned", "status"])

    settle_account = (bill.payment_account if bill.payment_account_id
                      else config.account_for("accounts_payable"))
    result = OperationResult("return_to_supplier", document=movement)
    result.add_movement(movement)
    je = _post_movement(
        company, movement, settle_account, _inventory_account(item, config),
        date or timezone.localdate(),
        f"Return to supplier, bill {bill.bill_number}",
        ("bill", bill.pk), idempotency_key, user)
    if je is not None:
        result.journals.append(je)
    return result


# ----------------------------
# Sales
# ----------------------------
@ledger_operation("create_invoice")
def create_invoice(company, customer, lines, *, tax=0, discount=0,
                   payment_account=None, date=None, due_date=None,
                   invoice_number=None, description="", idempotency_key=None,
                   user=None):
    """
    lines: [{"item" | "account", "quantity", "unit_price", "description"}]

    Posts two journals in one atomic block:
      (a) DR AR (or payment_account for cash sales) = total,
          CR revenue per income account, CR sales tax, DR discounts
      (b) DR COGS / CR Inventory at the OUT movements' cost
          (skipped when no goods are sold)

    Selling more than is on hand raises InsufficientStock; negative
    stock is only reachable through adjust_stock.
    """
    config = PostingConfiguration.for_company(company)
    check_company(company, customer, payment_account)
    if customer is None and payment_account is None:
        raise ValidationError("Credit sales need a customer")
    if payment_account is not None and not payment_account.is_payment_eligible:
        raise ValidationError(
            f"Account {payment_account.code} cannot receive payments")
    prepared = _prepare_lines(company, lines, "unit_price")
    for line in prepared:
        account = line["account"]
        if line["item"] is None and account.ac_type != "income":
            raise ValidationError(
                f"Account {account.code} is not an income account")
        line["price"] = money(line["price"], PRICE_PLACES)
        line["total"] = money(line["quantity"] * line["price"])

    tax, discount = money(tax), money(discount)
    if tax < 0 or discount < 0:
        raise ValidationError("Tax and discount must be >= 0")
    subtotal = sum((line["total"] for line in prepared), ZERO)
    total = subtotal + tax - discount
    if total < 0:
        raise ValidationError("Discount cannot exceed subtotal + tax")
    tax_account = config.account_for("sales_tax") if tax else None
    discount_account = (config.account_for("sales_discounts")
                        if discount else None)
    receivable = payment_account or config.account_for("accounts_receivable")

    date = date or timezone.localdate()
    if due_date is None and customer is not None and payment_account is None:
        due_date = date + timedelta(days=customer.payment_terms_days)
    amount_paid = total if payment_account is not None else ZERO

    lock_company(company)
    number = invoice_number or next_sequence_number(
        Invoice.objects.for_company(company), "invoice_number", "INV")
    invoice = Invoice.objects.create(
        company=company,
        customer=customer,
        invoice_number=number,
        date=date,
        due_date=due_date,
        payment_account=payment_account,
        subtotal=subtotal,
        tax=tax,
        discount=discount,
        total=total,
        amount_paid=amount_paid,
        status=settlement_status(total, amount_paid),
        description=description,
        created_by=user,
    )
    result = OperationResult("create_invoice", document=invoice)

    revenue_specs = [debit(receivable, total, f"Invoice {number}")]
    cost_specs = []
    for line_no, line in enumerate(prepared, start=1):
        item = line["item"]
        memo = line["description"] or f"Invoice {number} line {line_no}"
        movement = None
        if item is not None and item.is_stocked:
            movement = costing.record_movement(
                item, "OUT", "SALE", line["quantity"],
                reference=number,
                source=("invoice", invoice.pk),
                user=user,
            )
            result.add_movement(movement)
            cost_specs.append(
                debit(_cogs_account(item, config), movement.total_cost, memo))
            cost_specs.append(credit(
                _inventory_account(item, config), movement.total_cost, memo))
        InvoiceLine.objects.create(
            company=company,
            invoice=invoice,
            line_no=line_no,
            item=item,
            account=line["account"],
            description=line["description"],
            quantity=line["quantity"],
            unit_price=line["price"],
            unit_cost=movement.unit_cost if movement else ZERO,
            stock_movement=movement,
        )
        income = (line["account"] if item is None
                  else _income_account(item, config))
        revenue_specs.append(credit(income, line["total"], memo))
    if tax:
        revenue_specs.append(credit(tax_account, tax, "Sales tax"))
    if discount:
        revenue_specs.append(debit(discount_account, discount, "Discount"))

    # (a) revenue leg
    revenue_lines = _merge(revenue_specs)
    if revenue_lines:
        result.journals.append(post_lines(
            company, date, revenue_lines,
            memo=f"Invoice {number}",
            source=("invoice", invoice.pk),
            idempotency_key=idempotency_key,
            user=user,
        ))
    # (b) cost leg
    cost_lines = _merge(cost_specs)
    if cost_lines:
        je = post_lines(
            company, date, cost_lines,
            memo=f"Cost of sales, invoice {number}",
            source=("invoice", invoice.pk),
            idempotency_key=idempotency_key,
            user=user,
        )
        _link(result.movements, je)
        result.journals.append(je)
    logger.info("Created invoice %s total %s (company=%s, journals=%d)",
                number, total, company.pk, len(result.journals))
    return result


@ledger_operation("create_credit_memo")
def create_credit_memo(company, invoice, lines, *, date=None,
                       memo_number=None, reason="", idempotency_key=None,
                       user=None):
    """
    lines: [{"invoice_line", "quantity"}]

    Revenue leg: DR Sales Returns (or the revenue account) and the tax
    share, CR the discount share, CR AR (or the cash account of a cash
    sale). Goods come back IN at the unit cost recorded on the sold
    line, DR Inventory / CR COGS.
    """
    config = PostingConfiguration.for_company(company)
    check_company(company, invoice)
    invoice = Invoice.objects.select_for_update().get(pk=invoice.pk)
    if not lines:
        raise ValidationError("At least one line is required")

    sold = {line.pk: line for line in InvoiceLine.objects.filter(
        invoice=invoice).select_related("item")}
    requested = {}
    for raw in lines:
        inv_line = raw["invoice_line"]
        check_company(company, inv_line)
        if inv_line.pk not in sold:
            raise ValidationError(
                f"Line {inv_line.pk} is not on invoice "
                f"{invoice.invoice_number}")
        qty = to_quantity(raw["quantity"])
        if qty <= 0:
            raise ValidationError("Return quantity must be > 0")
        requested[inv_line.pk] = requested.get(inv_line.pk, ZERO) + qty

    remaining_after = {}
    for pk, line in sold.items():
        returnable = line.quantity - line.quantity_returned
        qty = requested.get(pk, ZERO)
        if qty > returnable:
            raise ReturnExceedsOriginal(
                f"Returning {qty} on line {line.line_no}; "
                f"only {returnable} returnable")
        remaining_after[pk] = returnable - qty

    # per-unit rounding must not drift from the sold line_total
    amounts = {}
    for pk, qty in requested.items():
        line = sold[pk]
        left = line.line_total - (line.returns.aggregate(
            total=Sum("line_total"))["total"] or ZERO)
        if remaining_after[pk] == 0:
            amounts[pk] = left
        else:
            amounts[pk] = min(money(qty * line.unit_price), left)
    subtotal = sum(amounts.values(), ZERO)
    if not any(remaining_after.values()):
        # last return takes whatever tax/discount is left
        prior = invoice.credit_memos.aggregate(
            tax=Sum("tax"), discount=Sum("discount"))
        tax_part = invoice.tax - (prior["tax"] or ZERO)
        discount_part = invoice.discount - (prior["discount"] or ZERO)
    elif invoice.subtotal:
        ratio = subtotal / invoice.subtotal
        tax_part = money(invoice.tax * ratio)
        discount_part = money(invoice.discount * ratio)
    else:
        tax_part = discount_part = ZERO
    total = subtotal + tax_part - discount_part

    refund_account = (invoice.payment_account if invoice.payment_account_id
                      else config.account_for("accounts_receivable"))
    date = date or timezone.localdate()
    lock_company(company)
    number = memo_number or next_sequence_number(
        CreditMemo.objects.for_company(company), "memo_number", "CM")
    memo = CreditMemo.objects.create(
        company=company,
        invoice=invoice,
        memo_number=number,
        date=date,
        subtotal=subtotal,
        tax=tax_part,
        discount=discount_part,
        total=total,
        reason=reason,
        created_by=user,
    )
    result = OperationResult("create_credit_memo", document=memo)

    revenue_specs = []
    cost_specs = []
    for pk, qty in requested.items():
        line = sold[pk]
        item = line.item
        text = f"Return on {invoice.invoice_number} line {line.line_no}"
        movement = None
        if item is not None and line.stock_movement_id:
            movement = costing.record_movement(
                item, "IN", "CUSTOMER_RETURN", qty,
                unit_cost=line.unit_cost,
                reference=number,
                source=("credit_memo", memo.pk),
                user=user,
            )
            result.add_movement(movement)
            cost_specs.append(debit(
                _inventory_account(item, config), movement.total_cost, text))
            cost_specs.append(credit(
                _cogs_account(item, config), movement.total_cost, text))
        CreditMemoLine.objects.create(
            company=company,
            credit_memo=memo,
            invoice_line=line,
            quantity=qty,
            unit_price=line.unit_price,
            line_total=amounts[pk],
            unit_cost=line.unit_cost,
            stock_movement=movement,
        )
        returns_account = config.sales_returns or (
            line.account if item is None else _income_account(item, config))
        revenue_specs.append(debit(returns_account, amounts[pk], text))
    if tax_part:
        revenue_specs.append(
            debit(config.account_for("sales_tax"), tax_part, "Sales tax"))
    if discount_part:
        revenue_specs.append(credit(
            config.account_for("sales_discounts"), discount_part, "Discount"))
    revenue_specs.append(
        credit(refund_account, total, f"Credit memo {number}"))

    memo.cost_total = sum((m.total_cost for m in result.movements), ZERO)
    memo.save(update_fields=["cost_total"])

    # credit beyond the open balance is money going back to the customer
    excess = max(total - invoice.balance_due, ZERO)
    invoice.amount_paid -= excess
    invoice.amount_credited += total
    invoice.refresh_status()
    invoice.save(update_fields=["amount_paid", "amount_credited", "status"])

    revenue_lines = _merge(revenue_specs)
    if revenue_lines:
        result.journals.append(post_lines(
            company, date, revenue_lines,
            memo=f"Credit memo {number}",
            source=("credit_memo", memo.pk),
            idempotency_key=idempotency_key,
            user=user,
        ))
    cost_lines = _merge(cost_specs)
    if cost_lines:
        je = post_lines(
            company, date, cost_lines,
            memo=f"Returned stock, credit memo {number}",
            source=("credit_memo", memo.pk),
            idempotency_key=idempotency_key,
            user=user,
        )
        _link(result.movements, je)
        result.journals.append(je)
    logger.info("Credit memo %s on %s total %s (company=%s)",
                number, invoice.invoice_number, total, company.pk)
    return result


# ----------------------------
# Stock adjustments
# ----------------------------
@ledger_operation("adjust_stock")
def adjust_stock(company, item, quantity, reason, *, notes="",
                 allow_negative=False, unit_cost=None, date=None,
                 reference="", idempotency_key=None, user=None):
    """
    Shrinkage, damage, theft, found stock and count corrections.

    The reason sets the direction; COUNT_ADJUSTMENT takes it from the
    sign of quantity. OUT posts DR Shrinkage / CR Inventory, IN posts
    DR Inventory / CR Inventory Gain (Opening Equity for OPENING_STOCK,
    the count-adjustment account for COUNT_ADJUSTMENT when configured).
    """
    if reason not in ADJUSTMENT_REASONS:
        raise ValidationError(f"{reason} is not a stock adjustment reason")
    config = PostingConfiguration.for_company(company)
    check_company(company, item)

    qty = to_decimal(quantity)
    if reason == "COUNT_ADJUSTMENT":
        direction = "OUT" if qty < 0 else "IN"
        qty = abs(qty)
    elif qty < 0:
        raise ValidationError("Quantity must be positive; "
                              "the reason sets the direction")
    else:
        direction = "IN" if reason in IN_REASONS else "OUT"

    movement = costing.record_movement(
        item, direction, reason, qty,
        unit_cost=unit_cost if direction == "IN" else None,
        allow_negative=allow_negative,
        reference=reference,
        notes=notes,
        user=user,
    )
    result = OperationResult("adjust_stock", document=movement)
    result.add_movement(movement)
    debit_account, credit_account = _adjustment_accounts(
        item, reason, direction, config)
    je = _post_movement(
        company, movement, debit_account, credit_account,
        date or timezone.localdate(),
        notes or f"Stock adjustment {reason} {item.sku}",
        ("stock_movement", movement.pk), idempotency_key, user)
    if je is not None:
        result.journals.append(je)
    return result


@ledger_operation("physical_count")
def physical_count(company, item, counted_quantity, *, notes="", date=None,
                   idempotency_key=None, user=None):
    """Set on-hand to the counted quantity (COUNT_ADJUSTMENT IN or OUT)."""
    config = PostingConfiguration.for_company(company)
    check_company(company, item)
    movement = costing.set_count(item, counted_quantity, notes=notes,
                                 user=user)
    if movement is None:
        return OperationResult("physical_count", document=item, items=[item])

    result = OperationResult("physical_count", document=movement)
    result.add_movement(movement)
    debit_account, credit_account = _adjustment_accounts(
        item, "COUNT_ADJUSTMENT", movement.direction, config)
    je = _post_movement(
        company, movement, debit_account, credit_account,
        date or timezone.localdate(),
        f"Physical count {item.sku}: {movement.quantity_after}",
        ("stock_movement", movement.pk), idempotency_key, user)
    if je is not None:
        result.journals.append(je)
    return result
