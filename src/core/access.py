"""Access checks for inbound commands."""

from __future__ import annotations

from typing import Optional

from core.config import AccessConfig


class Authorizer:
    """Answers who may run ledger commands and which chats may be onboarded."""

    def __init__(self, config: AccessConfig) -> None:
        self._config = config

    def is_allowed_user(self, user_id: Optional[int]) -> bool:
        return user_id is not None and user_id in self._config.allowed_users

    def is_admin_chat(self, chat_id: int) -> bool:
        return self._config.admin_chat_id is not None and chat_id == self._config.admin_chat_id
