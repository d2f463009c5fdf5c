"""Test doubles for the router's collaborators."""

from datetime import datetime, timedelta, timezone

from src.core.sessions.models import SessionMember, SessionRecord, SessionStatus
from src.core.witnessing.responder import WitnessingResult

USER_ID = "user-1"
NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


class FakeLLM:
    """Stands in for :class:`LLMClient`.

    ``structured`` is returned from every ``complete_structured`` call
    (``None`` simulates an unavailable model); ``text`` from ``complete``.
    """

    def __init__(self, structured=None, text="", error: Exception | None = None):
        self.structured = structured
        self.text = text
        self.error = error
        self.calls: list[dict] = []

    async def complete(self, system, messages, max_tokens=1024):
        self.calls.append({"system": system, "messages": messages})
        if self.error is not None:
            raise self.error
        return self.text

    async def complete_structured(self, system, messages, max_tokens=1024):
        self.calls.append({"system": system, "messages": messages})
        return self.structured


class FakeResponder:
    def __init__(self, result: WitnessingResult | None = None, error: Exception | None = None):
        self.result = result or WitnessingResult(response="That sounds really hard.")
        self.error = error
        self.calls: list[tuple[str, str, str]] = []

    async def respond(self, user_id, user_name, message):
        self.calls.append((user_id, user_name, message))
        if self.error is not None:
            raise self.error
        return self.result


class RecordingInvitations:
    def __init__(self):
        self.sent = []

    async def send_invitation(self, session, invitee, inviter_name):
        self.sent.append((session.id, invitee, inviter_name))


class RecordingNotifier:
    def __init__(self):
        self.changes = []

    async def notify_session_change(self, user_id, change_type, session_id):
        self.changes.append((user_id, change_type, session_id))


class FailingSearch:
    async def find_relevant_sessions(self, user_id, query):
        raise RuntimeError("embedding service down")


def make_session(
    session_id: str,
    partner: str,
    user_id: str = USER_ID,
    status: SessionStatus = SessionStatus.ACTIVE,
    updated_at: datetime | None = None,
) -> SessionRecord:
    updated_at = updated_at or NOW
    return SessionRecord(
        id=session_id,
        status=status,
        members=[
            SessionMember(user_id=user_id, name="Alex"),
            SessionMember(user_id=f"{partner.lower()}-id", first_name=partner),
        ],
        created_at=updated_at - timedelta(days=1),
        updated_at=updated_at,
    )
