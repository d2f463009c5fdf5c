"""Chat intent detection.

Classifies an inbound chat message into a :class:`ChatIntent` (or a
plugin-contributed intent) using a fast classification model that returns
strict JSON.  When the model is unavailable -- not configured, timed out,
or returned something unusable -- a deterministic keyword matcher is used
instead, so detection never fails the request.
"""

from __future__ import annotations

import re
from functools import reduce
from typing import TYPE_CHECKING

from src.core.intent.models import (
    ChatIntent,
    Confidence,
    DetectionHint,
    DetectionInput,
    DetectionResult,
    map_confidence,
    map_intent,
    parse_missing_info,
    parse_person,
    parse_session_context,
)
from src.core.intent.prompts.detection import (
    ACTIVE_SESSION_SECTION,
    DETECTION_SYSTEM_PROMPT,
    INTENT_DESCRIPTIONS,
    NO_ACTIVE_SESSION_SECTION,
    PENDING_STATE_SECTION,
    PLUGIN_HINTS_SECTION,
    RECENT_MESSAGES_SECTION,
    SEMANTIC_MATCHES_SECTION,
    USER_SESSIONS_SECTION,
)
from src.utils.logging import get_logger
from src.utils.time_language import recency_phrase

if TYPE_CHECKING:
    from src.handlers.base import IntentDetectionPlugin
    from src.handlers.registry import HandlerRegistry

logger = get_logger("intent.detector")


# ---------------------------------------------------------------------------
# Keyword patterns used by the fallback detector
# ---------------------------------------------------------------------------

_HELP_PATTERNS: list[re.Pattern] = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\bhelp\b",
        r"\bhow (do|does|can) (i|this|it|you)\b",
        r"\bhow to use\b",
        r"\bwhat (is|does) this\b",
        r"\bwhat can you do\b",
        r"\bget started\b",
    )
]

_LIST_PATTERNS: list[re.Pattern] = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\bmy sessions\b",
        r"\b(list|show|see|view)\b.*\bsessions?\b",
        r"\bsessions? list\b",
    )
]

FALLBACK_FOLLOW_UP = (
    "I'm not quite sure what you'd like to do. Would you like to start a "
    "session with someone, see your existing sessions, or learn how this works?"
)

RECENT_MESSAGE_LIMIT = 6


class IntentDetector:
    """Detects the intent behind a chat message.

    Parameters
    ----------
    llm_client:
        An optional fast-model :class:`~src.core.llm.client.LLMClient`.  When
        ``None`` every message goes through the keyword fallback.
    registry:
        Source of plugin hints and post-processors.  Optional.
    max_tokens:
        Output cap for the classification call.
    """

    def __init__(
        self,
        llm_client=None,
        registry: HandlerRegistry | None = None,
        max_tokens: int = 1024,
    ):
        self.llm = llm_client
        self.registry = registry
        self.max_tokens = max_tokens

    async def detect(self, detection_input: DetectionInput) -> DetectionResult:
        """Return exactly one :class:`DetectionResult` for the message."""
        if self.llm is not None:
            try:
                system = self.build_system_prompt(detection_input)
            except Exception as exc:
                logger.error("intent_prompt_build_failed", error=str(exc))
                return self._keyword_fallback(detection_input)
            data = await self.llm.complete_structured(
                system,
                [{"role": "user", "content": detection_input.message}],
                self.max_tokens,
            )
            if isinstance(data, dict):
                result = self._from_model_output(data)
                return self._apply_plugins(result, detection_input)
            logger.warning("intent_model_unavailable_falling_back")

        return self._keyword_fallback(detection_input)

    # ----- Prompt -----------------------------------------------------------

    def _hints(self) -> list[DetectionHint]:
        if self.registry is None:
            return []
        return self.registry.get_detection_hints()

    def _plugins(self) -> list[IntentDetectionPlugin]:
        if self.registry is None:
            return []
        return self.registry.get_plugins()

    def _custom_intents(self) -> list[str]:
        intents = [h.intent for h in self._hints()]
        if self.registry is not None:
            intents.extend(self.registry.custom_intents())
        return intents

    def build_system_prompt(self, detection_input: DetectionInput) -> str:
        """Assemble the classification prompt for *detection_input*."""
        intent_lines = [f"- {name}: {desc}" for name, desc in INTENT_DESCRIPTIONS.items()]

        sections: list[str] = []
        if detection_input.has_active_session:
            sections.append(
                ACTIVE_SESSION_SECTION.format(
                    partner_name=detection_input.active_session_partner_name or "their partner",
                )
            )
        else:
            sections.append(NO_ACTIVE_SESSION_SECTION)

        if detection_input.user_sessions:
            lines = [
                f"- id={s.id} partner={s.partner_name} status={s.status} "
                f"last active {recency_phrase(s.last_activity)}"
                for s in detection_input.user_sessions
            ]
            sections.append(USER_SESSIONS_SECTION.format(sessions="\n".join(lines)))

        if detection_input.semantic_matches:
            lines = [
                f"- id={m.session_id} partner={m.partner_name} similarity={m.similarity:.2f}"
                for m in detection_input.semantic_matches
            ]
            sections.append(SEMANTIC_MATCHES_SECTION.format(matches="\n".join(lines)))

        pending = detection_input.pending_state
        if pending is not None:
            known = pending.person.model_dump(exclude_none=True) or "nothing yet"
            sections.append(
                PENDING_STATE_SECTION.format(
                    state_type=pending.type,
                    step=pending.step.value,
                    known=known,
                )
            )

        if detection_input.recent_messages:
            lines = [
                f"{m.get('role', 'user')}: {m.get('content', '')}"
                for m in detection_input.recent_messages[-RECENT_MESSAGE_LIMIT:]
            ]
            sections.append(RECENT_MESSAGES_SECTION.format(messages="\n".join(lines)))

        hints = self._hints()
        if hints:
            hint_lines = []
            for hint in hints:
                line = f"- {hint.intent}: {hint.description}"
                if hint.keywords:
                    line += f" Keywords: {', '.join(hint.keywords)}."
                if hint.examples:
                    line += f" Examples: {'; '.join(hint.examples)}."
                hint_lines.append(line)
            sections.append(PLUGIN_HINTS_SECTION.format(hints="\n".join(hint_lines)))

        return DETECTION_SYSTEM_PROMPT.format(
            intents="\n".join(intent_lines),
            situation="\n\n".join(sections),
        )

    # ----- Model output -----------------------------------------------------

    def _from_model_output(self, data: dict) -> DetectionResult:
        session_id = data.get("sessionId")
        follow_up = data.get("followUpQuestion")

        return DetectionResult(
            intent=map_intent(data.get("intent"), self._custom_intents()),
            confidence=map_confidence(data.get("confidence")),
            session_id=session_id if isinstance(session_id, str) and session_id else None,
            person=parse_person(data.get("person")),
            session_context=parse_session_context(data.get("sessionContext")),
            missing_info=parse_missing_info(data.get("missingInfo")),
            follow_up_question=follow_up if isinstance(follow_up, str) and follow_up else None,
        )

    def _apply_plugins(
        self,
        result: DetectionResult,
        detection_input: DetectionInput,
    ) -> DetectionResult:
        """Fold every plugin's ``post_process`` over *result* in registration order."""

        def step(current: DetectionResult, plugin: IntentDetectionPlugin) -> DetectionResult:
            try:
                updated = plugin.post_process(current, detection_input)
            except Exception as exc:
                logger.error("plugin_post_process_failed", plugin_id=plugin.id, error=str(exc))
                return current
            if not isinstance(updated, DetectionResult):
                logger.warning("plugin_post_process_invalid_result", plugin_id=plugin.id)
                return current
            return updated

        return reduce(step, self._plugins(), result)

    # ----- Keyword-based fallback -------------------------------------------

    def _keyword_fallback(self, detection_input: DetectionInput) -> DetectionResult:
        """Deterministic detection used when the model is unavailable.

        Confidence is always LOW on this path.
        """
        text = detection_input.message

        if any(p.search(text) for p in _HELP_PATTERNS):
            intent = ChatIntent.HELP
        elif any(p.search(text) for p in _LIST_PATTERNS):
            intent = ChatIntent.LIST_SESSIONS
        elif detection_input.has_active_session:
            intent = ChatIntent.CONTINUE_CONVERSATION
        else:
            return DetectionResult(
                intent=ChatIntent.UNKNOWN.value,
                confidence=Confidence.LOW,
                follow_up_question=FALLBACK_FOLLOW_UP,
            )

        return DetectionResult(intent=intent.value, confidence=Confidence.LOW)
