"""Conversion between purchase-form units (e.g. Box) and sale-form units (e.g. Tablet).

`units_per_purchase` is the fixed ratio: one purchase unit holds that many
sale units. When a drug's purchase and sale forms are the same the ratio is
forced to 1, which makes every conversion a no-op.
"""
import math
from decimal import Decimal

from app.core.exceptions import InvalidInput

PURCHASE = "purchase"
SALE = "sale"
UNITS = (PURCHASE, SALE)


def effective_ratio(units_per_purchase, same_form: bool = False) -> int:
    if same_form:
        return 1
    if isinstance(units_per_purchase, bool) or not isinstance(units_per_purchase, int):
        raise InvalidInput("Units per purchase must be a whole number")
    if units_per_purchase <= 0:
        raise InvalidInput("Units per purchase must be greater than zero")
    return units_per_purchase


def _check(quantity, unit: str) -> None:
    if unit not in UNITS:
        raise InvalidInput(f"Unknown unit '{unit}', expected 'purchase' or 'sale'")
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidInput("Quantity must be a whole number")
    if quantity <= 0:
        raise InvalidInput("Quantity must be greater than zero")


def to_sale_units(quantity: int, unit: str, units_per_purchase: int, same_form: bool = False) -> int:
    _check(quantity, unit)
    ratio = effective_ratio(units_per_purchase, same_form)
    return quantity * ratio if unit == PURCHASE else quantity


def to_purchase_units(quantity: int, unit: str, units_per_purchase: int, same_form: bool = False) -> int:
    """Sale quantities that do not fill a whole purchase unit round up."""
    _check(quantity, unit)
    ratio = effective_ratio(units_per_purchase, same_form)
    return quantity if unit == PURCHASE else math.ceil(quantity / ratio)


def convert_price(price, from_unit: str, to_unit: str, units_per_purchase, same_form: bool = False) -> Decimal:
    """Re-express a per-unit price after switching the selected unit type."""
    if from_unit not in UNITS or to_unit not in UNITS:
        raise InvalidInput("Unit must be 'purchase' or 'sale'")
    price = Decimal(str(price))
    ratio = effective_ratio(units_per_purchase, same_form)
    if from_unit == to_unit:
        return price
    if from_unit == PURCHASE:
        return price / ratio
    return price * ratio
