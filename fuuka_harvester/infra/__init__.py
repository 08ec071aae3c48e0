"""Infra layer utilities (durable progress storage)."""

from .storage import ProgressRecord, ProgressStore, SQLiteManager

__all__ = ["ProgressRecord", "ProgressStore", "SQLiteManager"]
