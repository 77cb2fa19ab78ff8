"""Telegram intake bot for renovation project submissions."""

__version__ = "1.0.0"
