"""
Fixed-point renderers for the metrics response
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

TWO_PLACES = Decimal("0.01")

Number = Union[int, float, Decimal]


def round_half_up(value: Number, places: Decimal = TWO_PLACES) -> Decimal:
    if not isinstance(value, Decimal):
        # repr() keeps 1.005 from turning into 1.00499999...
        value = Decimal(repr(float(value)))
    return value.quantize(places, rounding=ROUND_HALF_UP)


def format_amount(value: Number) -> str:
    """100 -> "100.00" """
    return f"{round_half_up(value)}"


def format_percentage(ratio: Number) -> str:
    """0.1234 -> "12.34%" """
    return f"{round_half_up(ratio * 100)}%"


def format_days(days: Number) -> str:
    """364.6 -> "365 days" """
    return f"{round_half_up(days, Decimal('1'))} days"
