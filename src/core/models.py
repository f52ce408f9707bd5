"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to Telegram or SQLite types.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Group:
    """A Telegram group onboarded with /start."""

    group_id: int
    title: str


@dataclass(frozen=True)
class RootMessage:
    """The pinned daily message; its calendar day is derived from created_at."""

    group_id: int
    external_message_id: int
    text: str
    created_at: datetime


@dataclass(frozen=True)
class StatisticsEntry:
    """One priced ledger line anchored to the chat message that created it."""

    entry_id: int
    group_id: int
    external_message_id: int
    sum: float
    percentage: float
    calc_sum: float
    course: Optional[float]
    is_paid: bool
    created_at: datetime


@dataclass(frozen=True)
class NewEntry:
    """Entry values before the store assigns an id."""

    group_id: int
    external_message_id: int
    sum: float
    percentage: float
    calc_sum: float
    created_at: datetime


@dataclass(frozen=True)
class ParsedExpression:
    value: float
    percentage: float
    net_value: float


@dataclass(frozen=True)
class LineItem:
    sum: float
    percentage: float
    calc_sum: float


@dataclass(frozen=True)
class Aggregate:
    """Per-day totals for one group."""

    full_sum: float
    to_pay_sum: float
    paid_sum: float
    line_items: tuple[LineItem, ...]


@dataclass(frozen=True)
class GroupSummary:
    """All-time totals for one group, used by the read-only summary reply."""

    full_sum: float
    paid_sum: float


@dataclass(frozen=True)
class ActiveMessage:
    message: RootMessage
    is_today: bool


@dataclass(frozen=True)
class InboundMessage:
    """Minimal message context used by the command layer."""

    chat_id: int
    chat_type: str
    chat_title: str
    sender_id: Optional[int]
    message_id: int
    reply_to_message_id: Optional[int]
    text: str
    date: datetime
