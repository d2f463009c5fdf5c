"""LLM-backed pre-session reflection responder.

The witnessing handler depends only on :class:`PreSessionResponder`; this
module provides the default implementation, which sends the user's recent
pre-session messages (fitted with the token budget calculator) to the main
model and parses a structured reply.
"""

from __future__ import annotations

from typing import Protocol

from pydantic import BaseModel

from src.core.context.budget import build_budgeted_context
from src.core.intent.models import EmotionalTone, map_emotional_tone
from src.core.pending.pre_session import PreSessionLog
from src.core.witnessing.prompts import RETRIEVED_CONTEXT_SECTION, WITNESSING_SYSTEM_PROMPT
from src.utils.exceptions import WitnessingError
from src.utils.logging import get_logger

logger = get_logger("witnessing.responder")


class PersonMention(BaseModel):
    name: str
    relationship: str | None = None


class WitnessingResult(BaseModel):
    response: str
    person_mention: PersonMention | None = None
    topic: str | None = None
    emotional_tone: EmotionalTone = EmotionalTone.NEUTRAL
    suggest_session: bool = False


class PreSessionResponder(Protocol):
    async def respond(self, user_id: str, user_name: str, message: str) -> WitnessingResult:
        ...


class WitnessingResponder:
    """Default :class:`PreSessionResponder`.

    Parameters
    ----------
    llm_client:
        Main-model :class:`~src.core.llm.client.LLMClient`, or ``None`` when
        no model is configured (every call then raises
        :class:`WitnessingError`).
    pre_session_log:
        Source of the user's earlier pre-session messages.
    max_context_tokens:
        Total context budget for the call.
    """

    MAX_TOKENS = 600

    def __init__(
        self,
        llm_client=None,
        pre_session_log: PreSessionLog | None = None,
        max_context_tokens: int = 100_000,
        output_reservation: int = 4_000,
    ):
        self.llm = llm_client
        self.pre_session_log = pre_session_log
        self.max_context_tokens = max_context_tokens
        self.output_reservation = output_reservation

    async def respond(self, user_id: str, user_name: str, message: str) -> WitnessingResult:
        if self.llm is None:
            raise WitnessingError("No language model configured for witnessing")

        history: list[dict[str, str]] = []
        retrieved = ""
        if self.pre_session_log is not None:
            history = self.pre_session_log.recent_history(user_id)
            state = self.pre_session_log.get_state(user_id)
            if state.last_person_mention:
                retrieved = RETRIEVED_CONTEXT_SECTION.format(
                    person=state.last_person_mention,
                    turns=state.turn_count,
                )

        base_system = WITNESSING_SYSTEM_PROMPT.format(user_name=user_name, retrieved_context="")
        budget = build_budgeted_context(
            base_system,
            history,
            retrieved,
            max_total_tokens=self.max_context_tokens,
            output_reservation=self.output_reservation,
        )
        system = WITNESSING_SYSTEM_PROMPT.format(
            user_name=user_name,
            retrieved_context=budget.retrieved_context,
        )
        messages = [*budget.conversation_messages, {"role": "user", "content": message}]

        logger.debug(
            "witnessing_request",
            user_id=user_id,
            history_messages=len(budget.conversation_messages),
            dropped=budget.truncated,
        )

        data = await self.llm.complete_structured(system, messages, self.MAX_TOKENS)
        if data is None:
            raise WitnessingError("Witnessing model unavailable")

        return self._parse(data)

    @staticmethod
    def _parse(data: dict) -> WitnessingResult:
        response = data.get("response")
        if not isinstance(response, str) or not response.strip():
            raise WitnessingError("Witnessing reply had no response text")

        mention = None
        raw_mention = data.get("personMention")
        if isinstance(raw_mention, dict) and isinstance(raw_mention.get("name"), str):
            name = raw_mention["name"].strip()
            if name:
                relationship = raw_mention.get("relationship")
                mention = PersonMention(
                    name=name,
                    relationship=relationship if isinstance(relationship, str) else None,
                )

        topic = data.get("topic")
        return WitnessingResult(
            response=response.strip(),
            person_mention=mention,
            topic=topic if isinstance(topic, str) and topic.strip() else None,
            emotional_tone=map_emotional_tone(data.get("emotionalTone")),
            suggest_session=data.get("suggestSession") is True,
        )
