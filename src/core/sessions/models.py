"""Session models as seen by the chat router.

Only the fields the router reads are modelled; persistence schema lives
with the session service.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStatus(str, Enum):
    CREATED = "CREATED"
    INVITED = "INVITED"
    ACTIVE = "ACTIVE"
    WAITING = "WAITING"
    PAUSED = "PAUSED"
    ARCHIVED = "ARCHIVED"
    ABANDONED = "ABANDONED"
    RESOLVED = "RESOLVED"


TERMINAL_STATUSES: frozenset[SessionStatus] = frozenset(
    {SessionStatus.ABANDONED, SessionStatus.RESOLVED}
)


class SessionMember(BaseModel):
    """A participant in a session.

    ``user_id`` is ``None`` for an invitee who has not joined yet.
    """

    user_id: str | None = None
    nickname: str | None = None
    first_name: str | None = None
    name: str | None = None

    @property
    def display_name(self) -> str:
        return self.nickname or self.first_name or self.name or ""


class SessionRecord(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    status: SessionStatus = SessionStatus.CREATED
    members: list[SessionMember] = []
    topic: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def is_member(self, user_id: str) -> bool:
        return any(m.user_id == user_id for m in self.members)

    def partner_of(self, user_id: str) -> SessionMember | None:
        """Return the first member that is not *user_id*."""
        for member in self.members:
            if member.user_id != user_id:
                return member
        return None

    def partner_name(self, user_id: str, default: str = "Unknown") -> str:
        partner = self.partner_of(user_id)
        return (partner.display_name if partner else "") or default

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class SessionSummary(BaseModel):
    """Client-facing summary of a session from one member's point of view."""

    id: str
    partner_name: str
    status: SessionStatus
    topic: str | None = None
    last_activity: datetime

    @classmethod
    def from_record(cls, record: SessionRecord, user_id: str) -> SessionSummary:
        return cls(
            id=record.id,
            partner_name=record.partner_name(user_id, default="your partner"),
            status=record.status,
            topic=record.topic,
            last_activity=record.updated_at,
        )
