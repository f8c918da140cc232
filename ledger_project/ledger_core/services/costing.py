"""
Weighted-average-cost inventory engine.

The only writer of InventoryItem.quantity_on_hand and
weighted_average_cost. Every change locks the item row inside the
caller's transaction, so a WAC is never computed from a stale read.
"""
import logging
from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import transaction
from ..exceptions import InsufficientStock
from ..models import InventoryItem, StockMovement
from ..money import ZERO, money, to_decimal
from ..money import quantity as to_quantity
from ..money import unit_cost as to_unit_cost

logger = logging.getLogger(__name__)


def compute_in(quantity_on_hand, current_wac, quantity, unit_cost):
    """
    New WAC after receiving quantity units at unit_cost:
    (q * wac + quantity * unit_cost) / (q + quantity), held to 6 places.
    When stock on hand is not positive (driven negative by an override)
    the incoming cost becomes the WAC; the shortfall has no cost basis
    to average with.
    """
    q = to_decimal(quantity_on_hand)
    wac = to_decimal(current_wac)
    dq = to_decimal(quantity)
    c = to_decimal(unit_cost)
    new_qty = q + dq
    if q <= 0 or new_qty <= 0:
        return to_unit_cost(c)
    return to_unit_cost((q * wac + dq * c) / new_qty)


def cost_of_out(qty, current_wac):
    """Money value of qty units leaving stock at the current WAC."""
    return money(to_decimal(qty) * to_decimal(current_wac))


@transaction.atomic
def record_movement(item, direction, reason, quantity, unit_cost=None,
                    allow_negative=False, reference="", source=None,
                    notes="", user=None):
    """
    Apply one IN or OUT to item and write its StockMovement.

    IN: unit_cost defaults to the current WAC (e.g. stock found).
    OUT: always valued at the current WAC; the WAC does not change.
    Raises InsufficientStock when an OUT exceeds the quantity on hand
    unless allow_negative is set.
    """
    if direction not in ("IN", "OUT"):
        raise ValidationError(f"Unknown direction {direction}")
    qty = to_quantity(quantity)
    if qty <= 0:
        raise ValidationError("Movement quantity must be > 0")

    # Lock the item row until the caller's transaction finishes
    locked = InventoryItem.objects.select_for_update().get(pk=item.pk)
    if not locked.is_stocked:
        raise ValidationError(f"{locked.sku} is a service, not stock")

    qty_before = locked.quantity_on_hand
    wac_before = locked.weighted_average_cost

    if direction == "IN":
        movement_cost = to_unit_cost(
            wac_before if unit_cost is None else unit_cost)
        if movement_cost < 0:
            raise ValidationError("Unit cost must be >= 0")
        wac_after = compute_in(qty_before, wac_before, qty, movement_cost)
        qty_after = qty_before + qty
        total = money(qty * movement_cost)
    else:
        if qty > qty_before and not allow_negative:
            raise InsufficientStock(
                f"{locked.sku}: {qty} requested, {qty_before} on hand",
                available=qty_before,
                requested=qty,
            )
        movement_cost = wac_before
        wac_after = wac_before
        qty_after = qty_before - qty
        total = cost_of_out(qty, wac_before)

    locked.quantity_on_hand = qty_after
    locked.weighted_average_cost = wac_after
    locked.save(update_fields=["quantity_on_hand", "weighted_average_cost"])

    source_type, source_id = source or ("", None)
    movement = StockMovement.objects.create(
        company_id=locked.company_id,
        item=locked,
        direction=direction,
        reason=reason,
        quantity=qty,
        unit_cost=movement_cost,
        total_cost=total,
        quantity_before=qty_before,
        quantity_after=qty_after,
        wac_before=wac_before,
        wac_after=wac_after,
        negative_override=qty_after < 0,
        reference=reference,
        source_type=source_type,
        source_id=source_id,
        notes=notes,
        created_by=user,
    )

    # keep the caller's instance in step with the row
    item.quantity_on_hand = qty_after
    item.weighted_average_cost = wac_after
    logger.info(
        "Stock %s %s %s x %s @ %s (qty %s -> %s, wac %s -> %s)",
        direction, reason, qty, locked.sku, movement_cost,
        qty_before, qty_after, wac_before, wac_after,
    )
    return movement


@transaction.atomic
def set_count(item, counted_quantity, reference="", source=None, notes="",
              user=None):
    """
    Physical count: move on-hand to counted_quantity with one
    COUNT_ADJUSTMENT movement (IN at current WAC or OUT).
    Returns None when the count matches.
    """
    counted = to_quantity(counted_quantity)
    if counted < 0:
        raise ValidationError("Counted quantity must be >= 0")
    locked = InventoryItem.objects.select_for_update().get(pk=item.pk)
    diff = counted - locked.quantity_on_hand
    if diff == 0:
        return None
    direction = "IN" if diff > 0 else "OUT"
    return record_movement(
        item, direction, "COUNT_ADJUSTMENT", abs(diff),
        reference=reference,
        source=source,
        notes=notes or f"Physical count {counted}",
        user=user,
    )


def inventory_valuation(company):
    """Stock value (qty x WAC), retail value and potential profit."""
    items = InventoryItem.objects.for_company(company).filter(
        item_type="goods").order_by("sku")
    rows = []
    totals = {
        "quantity": Decimal("0"),
        "stock_value": ZERO,
        "retail_value": ZERO,
        "potential_profit": ZERO,
    }
    for item in items:
        if not item.is_active and item.quantity_on_hand == 0:
            continue
        stock_value = money(item.quantity_on_hand * item.weighted_average_cost)
        retail_value = money(item.quantity_on_hand * item.selling_price)
        row = {
            "item_id": item.pk,
            "sku": item.sku,
            "name": item.name,
            "quantity": item.quantity_on_hand,
            "weighted_average_cost": item.weighted_average_cost,
            "stock_value": stock_value,
            "selling_price": item.selling_price,
            "retail_value": retail_value,
            "potential_profit": retail_value - stock_value,
            "below_reorder_level": (
                item.quantity_on_hand <= item.reorder_level),
        }
        rows.append(row)
        for key in totals:
            totals[key] += row[key]
    return {"items": rows, "totals": totals}


def item_history(item):
    return list(
        StockMovement.objects.for_company(item.company_id)
        .filter(item=item)
        .order_by("created_at", "id")
    )
