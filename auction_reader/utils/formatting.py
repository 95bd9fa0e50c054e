#!/usr/bin/env python3
"""
Number and address formatting shared by the aggregators.
"""

from decimal import Context, Decimal, InvalidOperation
from typing import Union

# wei amounts routinely exceed the default 28 digits of precision
_CONTEXT = Context(prec=80)

ETHER_DECIMALS = 18


def format_units(value: int, decimals: int = ETHER_DECIMALS) -> str:
    """Render an integer amount of base units as a plain decimal string.

    format_units(1500000000000000000) -> "1.5", format_units(0) -> "0".
    """
    if value == 0:
        return "0"
    scaled = Decimal(int(value)).scaleb(-decimals, _CONTEXT).normalize(_CONTEXT)
    return format(scaled, 'f')


def parse_units(amount: Union[str, int, Decimal], decimals: int = ETHER_DECIMALS) -> int:
    """Inverse of format_units; rejects amounts with more precision than the unit allows"""
    try:
        parsed = Decimal(str(amount).strip())
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {amount!r}")
    if not parsed.is_finite():
        raise ValueError(f"Invalid amount: {amount!r}")
    scaled = parsed.scaleb(decimals, _CONTEXT)
    if scaled != scaled.to_integral_value(context=_CONTEXT):
        raise ValueError(f"Amount {amount!r} has more than {decimals} decimals")
    return int(scaled)


def short_address(address: str) -> str:
    """0x1234..abcd style abbreviation for log lines"""
    if not address or len(address) < 10:
        return address or ""
    return f"{address[:6]}..{address[-4:]}"
