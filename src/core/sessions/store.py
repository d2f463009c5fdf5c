"""Session store contract and an in-memory implementation.

The router only reads sessions; creation is delegated to
:meth:`SessionStore.create_session`, whose real implementation belongs to
the session service.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol, runtime_checkable

from src.core.intent.models import Person
from src.core.sessions.models import SessionMember, SessionRecord, SessionStatus
from src.utils.logging import get_logger

logger = get_logger("sessions.store")


@runtime_checkable
class SessionStore(Protocol):
    async def list_open_sessions(
        self, user_id: str, limit: int | None = None
    ) -> list[SessionRecord]:
        """Sessions *user_id* belongs to, excluding terminal statuses, newest first."""
        ...

    async def get_session_for_member(
        self, session_id: str, user_id: str
    ) -> SessionRecord | None:
        """Session by id, only if *user_id* is a member."""
        ...

    async def get_partner(
        self, session_id: str, exclude_user_id: str
    ) -> SessionMember | None:
        ...

    async def create_session(
        self, user_id: str, user_name: str | None, partner: Person, topic: str | None = None
    ) -> SessionRecord:
        ...


class InMemorySessionStore:
    """Dict-backed :class:`SessionStore` (development and tests only)."""

    def __init__(self, sessions: list[SessionRecord] | None = None) -> None:
        self._sessions: dict[str, SessionRecord] = {}
        for session in sessions or []:
            self.add(session)

    def add(self, session: SessionRecord) -> SessionRecord:
        self._sessions[session.id] = session
        return session

    async def list_open_sessions(
        self, user_id: str, limit: int | None = None
    ) -> list[SessionRecord]:
        sessions = [
            s for s in self._sessions.values()
            if s.is_member(user_id) and not s.is_terminal
        ]
        sessions.sort(key=lambda s: s.updated_at, reverse=True)
        return sessions[:limit] if limit is not None else sessions

    async def get_session_for_member(
        self, session_id: str, user_id: str
    ) -> SessionRecord | None:
        session = self._sessions.get(session_id)
        if session is None or not session.is_member(user_id):
            return None
        return session

    async def get_partner(
        self, session_id: str, exclude_user_id: str
    ) -> SessionMember | None:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        return session.partner_of(exclude_user_id)

    async def create_session(
        self, user_id: str, user_name: str | None, partner: Person, topic: str | None = None
    ) -> SessionRecord:
        now = datetime.now(timezone.utc)
        session = SessionRecord(
            status=SessionStatus.INVITED,
            members=[
                SessionMember(user_id=user_id, name=user_name),
                SessionMember(
                    first_name=partner.first_name,
                    name=partner.display_name or None,
                ),
            ],
            topic=topic,
            created_at=now,
            updated_at=now,
        )
        self.add(session)
        logger.info("session_created", session_id=session.id, user_id=user_id)
        return session
