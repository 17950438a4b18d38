"""Persisted record schemas."""

from legatio.schemas.records import Project, Prompt, RecordState, Scroll

__all__ = ["Project", "Prompt", "RecordState", "Scroll"]
