"""Root message and summary text.

The root message is edited in place after every ledger change, so the same
aggregate must always render to byte-identical text.
"""

from __future__ import annotations

import html
from datetime import date
from typing import Iterable

from core.calculator import format_amount
from core.models import Aggregate, GroupSummary, LineItem

DATE_FORMAT = "%d.%m.%Y"


def format_line_item(item: LineItem) -> str:
    """Return "sum-percentage% = calc_sum" for one entry."""

    return (
        f"{format_amount(item.sum)}-{format_amount(item.percentage)}% = "
        f"{format_amount(item.calc_sum)}"
    )


def format_stat(line_items: Iterable[LineItem]) -> str:
    return "".join(f"\n💰{format_line_item(item)}" for item in line_items)


def render_root_message(group_id: int, day: date, aggregate: Aggregate, currency: str = "$") -> str:
    """Render the pinned message body (HTML parse mode)."""

    return (
        f"Начало работы: {day.strftime(DATE_FORMAT)}\n\n"
        f"📟 <b>Айди чата:</b> <i>{group_id}</i>\n\n\n"
        f"📈 <b>Статистика:</b>\n{format_stat(aggregate.line_items)}\n\n"
        f"📦 <b>Общая сумма:</b> {format_amount(aggregate.full_sum)} \n"
        f"📤 <b>К выплате:</b> {format_amount(aggregate.to_pay_sum)}\n"
        f"💸 <b>Выплачено:</b> <i>{format_amount(aggregate.paid_sum)} {html.escape(currency)}</i>"
    )


def render_summary(summary: GroupSummary, currency: str = "$") -> str:
    """Render the read-only all-time summary reply."""

    return (
        f"📦 <b>Общая сумма:</b> {format_amount(summary.full_sum)}\n"
        f"💸 <b>Выплачено:</b> <i>{format_amount(summary.paid_sum)} {html.escape(currency)}</i>"
    )
