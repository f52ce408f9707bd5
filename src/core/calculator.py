"""Entry expression parsing and the ledger's rounding rules."""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from core.errors import ParseError
from core.models import ParsedExpression

SEPARATOR = "-"
_CENTS = Decimal("0.01")


def round2(value: float) -> float:
    """Round to 2 decimals, half away from zero, on the decimal representation."""

    return float(Decimal(repr(float(value))).quantize(_CENTS, rounding=ROUND_HALF_UP))


def accumulate(terms: Iterable[float]) -> float:
    """Sum terms re-rounding the running total after every step.

    Totals shown in the chat have always been computed this way, so the result
    can differ by a cent from round2(sum(terms)).
    """

    total = 0.0
    for term in terms:
        total = round2(total + term)
    return total


def parse_number(token: str) -> float:
    """Parse a user-typed number, accepting a comma as decimal separator."""

    cleaned = token.strip().replace(",", ".")
    try:
        value = float(cleaned)
    except ValueError as exc:
        raise ParseError(f"malformed number: {token!r}") from exc
    if not math.isfinite(value):
        raise ParseError(f"malformed number: {token!r}")
    return value


def compute_entry(amount: float, percentage: float) -> ParsedExpression:
    """Apply the percentage discount; the rounded net value is what gets stored."""

    discount = amount * percentage / 100
    return ParsedExpression(
        value=amount,
        percentage=percentage,
        net_value=round2(amount - discount),
    )


def parse_expression(expr: str) -> ParsedExpression:
    """Parse "<amount>-<percentage>" into a priced entry."""

    parts = expr.strip().split(SEPARATOR)
    if len(parts) != 2 or not all(part.strip() for part in parts):
        raise ParseError("malformed expression")
    try:
        amount = parse_number(parts[0])
        percentage = parse_number(parts[1])
    except ParseError as exc:
        raise ParseError("malformed expression") from exc

    return compute_entry(amount, percentage)


def format_amount(value: float) -> str:
    """Render a number the way the chat shows it: 90 rather than 90.0."""

    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)
