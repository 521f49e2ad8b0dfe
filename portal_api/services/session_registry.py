"""In-process registry of open conversion wizards.

Sessions live only in memory. Closing or expiring a session that already
produced a customer leaves that customer (and its engagement) in place
without a login; the registry logs it so the records can be reconciled.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from portal_api.core.config import settings
from portal_api.core.exceptions import ConversionAlreadyOpen
from portal_api.core.metrics import conversion_sessions_active
from portal_api.services.conversion import ConversionSession

logger = logging.getLogger(__name__)


class ConversionSessionRegistry:

    def __init__(self, ttl_seconds: int = settings.CONVERSION_SESSION_TTL):
        self.ttl = timedelta(seconds=ttl_seconds)
        self._sessions: Dict[str, ConversionSession] = {}
        self._by_lead: Dict[int, str] = {}

    def __len__(self):
        return len(self._sessions)

    def add(self, session: ConversionSession) -> ConversionSession:
        """Register a session. At most one live session exists per lead."""
        existing = self.for_lead(session.lead.id)
        if existing is not None and existing.id != session.id:
            raise ConversionAlreadyOpen(existing)
        self._sessions[session.id] = session
        self._by_lead[session.lead.id] = session.id
        conversion_sessions_active.set(len(self._sessions))
        return session

    def for_lead(self, lead_id: int) -> Optional[ConversionSession]:
        session_id = self._by_lead.get(lead_id)
        return self.get(session_id) if session_id is not None else None

    def get(self, session_id: str) -> Optional[ConversionSession]:
        session = self._sessions.get(session_id)
        if session is not None and self._expired(session, datetime.now(timezone.utc)):
            self.discard(session_id, reason="expired")
            return None
        return session

    def discard(self, session_id: str, reason: str = "closed") -> Optional[ConversionSession]:
        session = self._sessions.pop(session_id, None)
        conversion_sessions_active.set(len(self._sessions))
        if session is None:
            return None
        if self._by_lead.get(session.lead.id) == session_id:
            del self._by_lead[session.lead.id]
        if is_abandoned(session):
            logger.warning(
                f"Conversion {session.id} {reason} before completion: customer {session.customer.id} "
                f"(engagement {session.engagement.id if session.engagement else None}) has no portal login"
            )
        session.issued_secret = None
        return session

    def purge_expired(self, now: Optional[datetime] = None) -> List[ConversionSession]:
        now = now or datetime.now(timezone.utc)
        expired = [sid for sid, s in self._sessions.items() if self._expired(s, now)]
        return [self.discard(sid, reason="expired") for sid in expired]

    def _expired(self, session: ConversionSession, now: datetime) -> bool:
        # a submission in flight keeps its session alive
        return not session.in_flight and now - session.updated_at > self.ttl


def is_abandoned(session: ConversionSession) -> bool:
    return not session.is_completed and session.customer is not None


conversion_sessions = ConversionSessionRegistry()


def get_session_registry() -> ConversionSessionRegistry:
    return conversion_sessions
