"""Participant log persistence."""

from .participants import ParticipantLogStore, deep_merge, get_default_db_path

__all__ = ["ParticipantLogStore", "deep_merge", "get_default_db_path"]
