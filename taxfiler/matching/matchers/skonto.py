"""Early-payment discount (Skonto) arithmetic."""

from decimal import Context, Decimal, DecimalException, localcontext

_HUNDRED = Decimal(100)

# Wide enough that terminating inputs are never rounded
_SKONTO_CONTEXT = Context(prec=60, Emax=999_999, Emin=-999_999)


def has_valid_skonto(percentage: Decimal | None) -> bool:
    """True when a positive discount percentage is present."""
    return percentage is not None and percentage.is_finite() and percentage > 0


def calculate_discounted_amount(total: Decimal, percentage: Decimal | None) -> Decimal:
    """Apply a Skonto percentage to ``total``.

    - absent, zero or negative percentage: ``total`` unchanged
    - zero or negative ``total``: unchanged
    - above 100: clamped to 100, result 0
    - otherwise ``total - total * percentage / 100``

    Never raises; non-finite inputs or arithmetic failures return ``total``.
    """
    if not has_valid_skonto(percentage):
        return total
    if not total.is_finite() or total <= 0:
        return total

    effective = min(percentage, _HUNDRED)

    try:
        with localcontext(_SKONTO_CONTEXT):
            discount = total * effective / _HUNDRED
            result = total - discount
    except DecimalException:
        return total

    if effective == _HUNDRED:
        return Decimal(0)
    return result
