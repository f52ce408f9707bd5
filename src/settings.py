"""Static configuration for daybook.

Non-secret settings (allow-lists, currency, timezone, logging) live in a
single JSON file; secrets are read from the environment via .env.
"""

import json
import os

from dotenv import load_dotenv

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

load_dotenv(os.path.join(PROJECT_ROOT, ".env"))

# Where to store the SQLite database.
DB_PATH = os.getenv("DB_PATH") or os.path.join(PROJECT_ROOT, "daybook.db")

CONFIG_PATH = os.getenv("DAYBOOK_CONFIG") or os.path.join(PROJECT_ROOT, "config.json")


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _parse_ids(raw) -> frozenset[int]:
    """Accept a JSON list or a comma/space separated string of user ids."""

    if raw is None:
        return frozenset()
    if isinstance(raw, str):
        raw = raw.replace(",", " ").split()
    return frozenset(int(item) for item in raw)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Access control. ALLOWED_CHAT_ID / ALLOWED_USERS in the environment win over
# config.json so existing deployments keep working.
_access = _CONFIG.get("access", {})
_admin_chat = os.getenv("ALLOWED_CHAT_ID") or _access.get("admin_chat_id")
ADMIN_CHAT_ID = int(_admin_chat) if _admin_chat not in (None, "") else None
ALLOWED_USERS = _parse_ids(os.getenv("ALLOWED_USERS") or _access.get("allowed_users"))

# Ledger presentation: currency marker on paid totals and the timezone that
# decides where one day ends and the next begins.
_ledger = _CONFIG.get("ledger", {})
CURRENCY = _ledger.get("currency", "$")
TIMEZONE = _ledger.get("timezone", "UTC")

# Upper bound for every Telegram call.
_telegram = _CONFIG.get("telegram", {})
REQUEST_TIMEOUT = float(_telegram.get("request_timeout", 10))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
