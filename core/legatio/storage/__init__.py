"""Durable storage for projects, prompts and scrolls."""

from legatio.storage.record_store import FileRecordStore

__all__ = ["FileRecordStore"]
