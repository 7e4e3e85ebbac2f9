"""Drug pricing: unit cost and the two sale prices derived from a purchase price.

Markups are decimal multipliers (0.25 == 25%), not percentages.
Nothing is rounded here; rounding belongs to display.
"""
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from app.core.exceptions import InvalidInput
from app.services.units import PURCHASE, convert_price


@dataclass(frozen=True)
class PriceBreakdown:
    unit_cost: Decimal
    pos_price: Decimal
    prescription_price: Decimal


def to_decimal(value, field: str) -> Decimal:
    """Decimal(str(x)) so floats like 0.1 keep their printed value."""
    if value is None or isinstance(value, bool):
        raise InvalidInput(f"{field} is required")
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidInput(f"{field} must be a number")
    if not result.is_finite():
        raise InvalidInput(f"{field} must be a finite number")
    return result


def compute_prices(purchase_price, units_per_purchase, pos_markup, prescription_markup) -> PriceBreakdown:
    """
    Derive per-sale-unit prices.

        unit_cost          = purchase_price / units_per_purchase
        pos_price          = unit_cost * (1 + pos_markup)
        prescription_price = unit_cost * (1 + prescription_markup)

    Raises:
        InvalidInput: units_per_purchase <= 0, negative price or markup.
    """
    price = to_decimal(purchase_price, "Purchase price")
    units = to_decimal(units_per_purchase, "Units per purchase")
    pos = to_decimal(pos_markup, "POS markup")
    rx = to_decimal(prescription_markup, "Prescription markup")

    if units <= 0:
        raise InvalidInput("Units per purchase must be greater than zero")
    if price < 0:
        raise InvalidInput("Purchase price cannot be negative")
    if pos < 0 or rx < 0:
        raise InvalidInput("Markups cannot be negative")

    unit_cost = price / units
    return PriceBreakdown(
        unit_cost=unit_cost,
        pos_price=unit_cost * (1 + pos),
        prescription_price=unit_cost * (1 + rx),
    )


def line_prices(price, unit: str, units_per_purchase, pos_markup, prescription_markup, same_form: bool = False):
    """Price a restock line whose price was typed per the line's selected unit.

    Returns (purchase_price, PriceBreakdown) where purchase_price is normalised
    to one purchase unit, the form stored on the drug.
    """
    purchase_price = convert_price(to_decimal(price, "Purchase price"), unit, PURCHASE, units_per_purchase, same_form)
    return purchase_price, compute_prices(purchase_price, units_per_purchase, pos_markup, prescription_markup)
