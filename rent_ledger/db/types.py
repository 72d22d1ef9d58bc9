"""
Module: rent_ledger.db.types
Responsibility: Rounding and minor-unit conversion for monetary amounts.
    Centralizes precision so that the schedule generator, late-fee
    calculator, and order builder use identical rounding.  Monetary columns
    are Numeric(38, 9) (see Base.type_annotation_map).
Architecture position: Ledger > DB.  May be imported by models/, domain/,
    services/, selectors/, and gateway/.

Invariants enforced:
    - round_money() is the ONLY sanctioned rounding function for rent, fees,
      and totals.
    - to_minor_units() is the ONLY conversion from major to minor units
      (e.g. rupees -> paise) for gateway requests.
    - No floats anywhere in the ledger.
"""

from decimal import ROUND_HALF_UP, Decimal

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given number of decimal places.

    Preconditions: value is a finite Decimal.
    Postconditions: Returns value quantized with the given rounding mode.

    Example:
        round_money(Decimal("10.125")) -> Decimal("10.13")
    """
    quantizer = Decimal(10) ** -decimal_places
    return value.quantize(quantizer, rounding=rounding)


def to_minor_units(value: Decimal, decimal_places: int = MONEY_DECIMAL_PLACES) -> int:
    """
    Convert a major-unit amount to integer minor units.

    Example:
        to_minor_units(Decimal("11000.50")) -> 1100050
    """
    return int(round_money(value, decimal_places) * (Decimal(10) ** decimal_places))
