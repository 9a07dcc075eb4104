"""
Session Store

JSON session documents with a sliding TTL: every read refreshes the
session's lifetime.
"""

import glob
import json
import logging
import uuid
from typing import Any, Dict, List, Optional

from ..engine import KVEngine

logger = logging.getLogger(__name__)


class SessionStore:
    """Session documents keyed `session:<user_id>:<session_id>`."""

    prefix = "session:"

    def __init__(self, engine: KVEngine, ttl: float = 1800):
        self.engine = engine
        self.ttl = ttl

    def _key(self, session_id: str) -> str:
        return f"{self.prefix}{session_id}"

    def create(self, user_id: str, data: Dict[str, Any] = None) -> str:
        """Start a session for user_id; returns the session id."""
        session_id = f"{user_id}:{uuid.uuid4().hex}"
        now = self.engine.now()
        session = {
            "userId": user_id,
            "createdAt": now,
            "lastAccessed": now,
            "data": data or {},
        }
        self.engine.strings.set(self._key(session_id), json.dumps(session), ttl=self.ttl)
        logger.debug(f"Session {session_id} created")
        return session_id

    def get(self, session_id: str) -> Optional[Dict[str, Any]]:
        """Load a session and refresh its TTL; None if missing or expired."""
        key = self._key(session_id)
        with self.engine.atomic():
            raw = self.engine.strings.get(key)
            if raw is None:
                return None
            session = json.loads(raw)
            session["lastAccessed"] = self.engine.now()
            self.engine.strings.set(key, json.dumps(session), ttl=self.ttl)
        return session

    def update(self, session_id: str, data: Dict[str, Any]) -> bool:
        """Merge data into the session document."""
        key = self._key(session_id)
        with self.engine.atomic():
            raw = self.engine.strings.get(key)
            if raw is None:
                return False
            session = json.loads(raw)
            session["data"].update(data)
            session["lastAccessed"] = self.engine.now()
            self.engine.strings.set(key, json.dumps(session), ttl=self.ttl)
        return True

    def destroy(self, session_id: str) -> bool:
        return self.engine.delete(self._key(session_id))

    def list_user_sessions(self, user_id: str) -> List[str]:
        owned = f"{self.prefix}{user_id}:"
        keys = self.engine.keyspace.keys(glob.escape(owned) + "*")
        # skip sessions of longer user ids such as "alice:x"
        return [key[len(self.prefix):] for key in keys if ":" not in key[len(owned):]]
