"""Outbound side-effect services used by the router.

Invitations and session-change notifications are fire-and-forget from the
chat turn's point of view; see :func:`src.utils.tasks.fire_and_forget`.
The logging implementations are the defaults when no delivery backend is
wired in.
"""

from __future__ import annotations

from typing import Protocol

from src.core.intent.models import Person
from src.core.sessions.models import SessionRecord
from src.utils.logging import get_logger

logger = get_logger("notifications")


class InvitationService(Protocol):
    async def send_invitation(
        self, session: SessionRecord, invitee: Person, inviter_name: str | None
    ) -> None:
        ...


class SessionNotifier(Protocol):
    async def notify_session_change(
        self, user_id: str, change_type: str, session_id: str
    ) -> None:
        ...


class LoggingInvitationService:
    async def send_invitation(
        self, session: SessionRecord, invitee: Person, inviter_name: str | None
    ) -> None:
        contact = invitee.contact_info
        logger.info(
            "invitation_queued",
            session_id=session.id,
            channel=contact.type if contact else None,
            invitee=invitee.first_name,
        )


class LoggingSessionNotifier:
    async def notify_session_change(
        self, user_id: str, change_type: str, session_id: str
    ) -> None:
        logger.info(
            "session_change_published",
            user_id=user_id,
            change_type=change_type,
            session_id=session_id,
        )
