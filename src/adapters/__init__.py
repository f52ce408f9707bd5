"""Adapters binding the core ports to SQLite and Telegram."""
