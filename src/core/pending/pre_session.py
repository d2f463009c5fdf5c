"""Pre-session message log.

Before a user is in a session, the witnessing conversation is kept here so
it can later be attached to whichever session they start.  Messages are
retained for a fixed window and dropped lazily on access.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Literal

from src.core.intent.models import EmotionalTone
from src.utils.logging import get_logger

logger = get_logger("pending.pre_session")

Role = Literal["USER", "AI"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PreSessionMessage:
    role: Role
    content: str
    created_at: datetime
    emotional_tone: EmotionalTone | None = None
    extracted_person: str | None = None
    extracted_topic: str | None = None


@dataclass
class PreSessionState:
    messages: list[PreSessionMessage] = field(default_factory=list)
    turn_count: int = 0
    last_person_mention: str | None = None


class PreSessionLog:
    def __init__(
        self,
        retention: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.retention = retention
        self._clock = clock
        self._messages: dict[str, list[PreSessionMessage]] = {}

    def _live(self, user_id: str) -> list[PreSessionMessage]:
        cutoff = self._clock() - self.retention
        messages = [m for m in self._messages.get(user_id, []) if m.created_at >= cutoff]
        if messages:
            self._messages[user_id] = messages
        else:
            self._messages.pop(user_id, None)
        return messages

    def store_message(
        self,
        user_id: str,
        role: Role,
        content: str,
        emotional_tone: EmotionalTone | None = None,
        extracted_person: str | None = None,
        extracted_topic: str | None = None,
    ) -> PreSessionMessage:
        message = PreSessionMessage(
            role=role,
            content=content,
            created_at=self._clock(),
            emotional_tone=emotional_tone,
            extracted_person=extracted_person,
            extracted_topic=extracted_topic,
        )
        self._live(user_id)
        self._messages.setdefault(user_id, []).append(message)
        return message

    def get_state(self, user_id: str) -> PreSessionState:
        messages = self._live(user_id)
        last_person = None
        for message in reversed(messages):
            if message.extracted_person:
                last_person = message.extracted_person
                break
        return PreSessionState(
            messages=list(messages),
            turn_count=sum(1 for m in messages if m.role == "USER"),
            last_person_mention=last_person,
        )

    def recent_history(self, user_id: str) -> list[dict[str, str]]:
        """Live messages as ``{"role", "content"}`` dicts for a model call."""
        return [
            {"role": "user" if m.role == "USER" else "assistant", "content": m.content}
            for m in self._live(user_id)
        ]

    def clear(self, user_id: str) -> None:
        if self._messages.pop(user_id, None) is not None:
            logger.debug("pre_session_cleared", user_id=user_id)
