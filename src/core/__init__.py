"""Core domain package for daybook.

Core contains the ledger, root message lifecycle and rendering without any
Telegram or storage-specific code, keeping the business logic portable.
"""
