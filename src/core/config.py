"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class AccessConfig:
    """Allow-lists built once at startup.

    admin_chat_id is the operator's own chat; it can never be onboarded as a
    ledger group.
    """

    admin_chat_id: Optional[int]
    allowed_users: frozenset[int] = field(default_factory=frozenset)


@dataclass(frozen=True)
class LedgerConfig:
    """Ledger presentation and timing settings."""

    currency: str = "$"
    timezone: str = "UTC"
    request_timeout: float = 10.0
