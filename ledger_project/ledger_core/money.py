"""Fixed-point helpers for money, quantities and unit costs.

Every amount in the ledger is a ``Decimal``. Money is held to the currency's
minor unit (2 places), quantities to 4 places and weighted average costs to 6
places so that repeated WAC recalculation does not drift.
"""
from decimal import ROUND_HALF_UP, Decimal

TWOPLACES = Decimal("0.01")
QTY_PLACES = Decimal("0.0001")
COST_PLACES = Decimal("0.000001")
ZERO = Decimal("0.00")


def to_decimal(value) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # go through str() so 0.1 stays 0.1
        return Decimal(str(value))
    return Decimal(value)


def money(value, places=TWOPLACES) -> Decimal:
    return to_decimal(value).quantize(places, rounding=ROUND_HALF_UP)


def quantity(value) -> Decimal:
    return to_decimal(value).quantize(QTY_PLACES, rounding=ROUND_HALF_UP)


def unit_cost(value) -> Decimal:
    return to_decimal(value).quantize(COST_PLACES, rounding=ROUND_HALF_UP)


def places_for(decimal_places: int) -> Decimal:
    return Decimal(1).scaleb(-decimal_places)


def to_minor_units(value, decimal_places: int = 2) -> int:
    """Integer count of minor units (cents) for exact comparisons."""
    scaled = money(value, places_for(decimal_places)).scaleb(decimal_places)
    return int(scaled.to_integral_value(rounding=ROUND_HALF_UP))


def from_minor_units(units: int, decimal_places: int = 2) -> Decimal:
    return Decimal(units).scaleb(-decimal_places).quantize(places_for(decimal_places))
