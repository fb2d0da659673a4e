#!/usr/bin/env python3
"""
Participant log store.
One JSON document per participant, updated with last-write-wins merges.
"""

import json
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import get_config_dir

logger = logging.getLogger(__name__)

# Log types that merge into their own section of the document
SECTION_KEYS = {
    'learn': 'learnSession',
    'test': 'testSession',
}


def deep_merge(base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    """Merge `update` into a copy of `base`; nested dicts merge, everything else is replaced"""
    merged = dict(base)
    for key, value in update.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def get_default_db_path() -> str:
    """Default database location in the user's config directory"""
    return str(get_config_dir() / "participants.db")


class ParticipantLogStore:
    """sqlite-backed participant documents"""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or get_default_db_path()
        if self.db_path != ':memory:':
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        # Shared by the service's worker threads; writes are serialized below
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._create_tables()

    def _create_tables(self):
        cursor = self.conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS participant_logs (
                participant_id TEXT PRIMARY KEY,
                data_json TEXT NOT NULL,
                updated_at TIMESTAMP
            )
        """)
        self.conn.commit()

    def get(self, participant_id: str) -> Optional[Dict[str, Any]]:
        """Stored document, or None for an unknown participant"""
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT data_json FROM participant_logs WHERE participant_id = ?",
            (participant_id,)
        )
        row = cursor.fetchone()
        if not row:
            return None
        try:
            return json.loads(row['data_json'])
        except json.JSONDecodeError as e:
            logger.warning("Stored log for %s is not valid JSON: %s", participant_id, e)
            return {}

    def upsert(self, participant_id: str, log_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Merge one log entry into the participant's document and return the result"""
        if not participant_id:
            raise ValueError("participant_id is required")

        now = datetime.now(timezone.utc).isoformat()

        with self._lock:
            current = self.get(participant_id) or {}

            section = SECTION_KEYS.get(log_type)
            if section:
                update = {section: deep_merge(data or {}, {'timestamp': now})}
            else:
                update = data or {}
            merged = deep_merge(current, update)

            self.conn.execute("""
                INSERT OR REPLACE INTO participant_logs (participant_id, data_json, updated_at)
                VALUES (?, ?, ?)
            """, (participant_id, json.dumps(merged), now))
            self.conn.commit()

        logger.debug("Logged %s entry for %s", log_type, participant_id)
        return merged

    def list_participants(self) -> List[str]:
        cursor = self.conn.cursor()
        cursor.execute("SELECT participant_id FROM participant_logs ORDER BY updated_at DESC")
        return [row['participant_id'] for row in cursor.fetchall()]

    def close(self):
        self.conn.close()
