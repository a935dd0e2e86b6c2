"""Fixed-point money arithmetic.

Every monetary field is persisted as a string with exactly two fractional
digits ("12.30"). Values are parsed into ``Decimal`` for arithmetic and
rounded half-up to the cent only where an amount is finalised (a line total,
a discount, a tax amount). Binary floats are accepted at the edges by going
through ``str()`` first, so ``0.1`` becomes ``Decimal("0.1")`` and not
``Decimal("0.1000000000000000055511151231257827...")``.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from protean.exceptions import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def to_decimal(value, field: str = "amount") -> Decimal:
    """Parse a stored or user supplied amount into a Decimal.

    ``None`` and empty strings read as zero. Anything unparseable, infinite
    or NaN raises a ``ValidationError`` keyed by ``field``.
    """
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError({field: [f"'{value}' is not a valid decimal amount"]})
    if not result.is_finite():
        raise ValidationError({field: [f"'{value}' is not a finite amount"]})
    return result


def round_money(value) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def money_str(value) -> str:
    """Canonical string form used for persistence and serialization."""
    return str(round_money(value))


def sum_money(values) -> Decimal:
    total = ZERO
    for value in values:
        total += to_decimal(value)
    return total


def line_total(unit_price, quantity: int) -> Decimal:
    return round_money(to_decimal(unit_price) * quantity)


def percentage_of(amount, percent) -> Decimal:
    """``amount * percent / 100`` rounded half-up to the cent."""
    return round_money(to_decimal(amount) * to_decimal(percent) / HUNDRED)


def validate_non_negative(value, field: str) -> Decimal:
    amount = to_decimal(value, field)
    if amount < 0:
        raise ValidationError({field: ["Amount cannot be negative"]})
    return amount
