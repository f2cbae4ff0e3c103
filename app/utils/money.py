"""
app/utils/money.py
──────────────────
Whole-unit Rupiah helpers. Amounts are plain ints (no minor fraction).
"""
from decimal import Decimal, ROUND_HALF_UP


UNIT = Decimal('1')


def to_units(value) -> int:
    """Round any numeric value to whole currency units, half-up."""
    return int(Decimal(str(value)).quantize(UNIT, rounding=ROUND_HALF_UP))


def format_rupiah(amount) -> str:
    """
    Format like id-ID locale: dot as thousands separator.
        format_rupiah(100000) -> 'Rp 100.000'
    """
    units = to_units(amount)
    sign  = '-' if units < 0 else ''
    return f"Rp {sign}{abs(units):,}".replace(',', '.')
