"""Short conversational messages for router actions.

Router actions such as switching sessions get a one- or two-sentence
message written by the model.  When no model is configured, or the call
fails, the template for the action is used instead.
"""

from __future__ import annotations

from src.utils.logging import get_logger

logger = get_logger("responses")

RESPONSE_SYSTEM_PROMPT: str = """You write short, warm status messages for a guided conversation app.
Write one or two sentences, plain text, no lists, no quotes.
Action: {action}
Details: {details}
"""

_TEMPLATES: dict[str, str] = {
    "session_switched": "Switching to your session with {person_name}.",
    "session_created": (
        "Your session with {person_name} is ready. I've sent them an invitation, "
        "and while we wait, you can start sharing what's on your mind."
    ),
}


class ResponseGenerator:
    MAX_TOKENS = 150

    def __init__(self, llm_client=None):
        self.llm = llm_client

    def template(self, action: str, **details: str) -> str:
        template = _TEMPLATES.get(action)
        if template is None:
            return ""
        try:
            return template.format(**details)
        except KeyError:
            logger.warning("response_template_missing_field", action=action)
            return ""

    async def generate(self, action: str, **details: str) -> str:
        """Return a model-written message, or the template on any failure."""
        if self.llm is not None:
            system = RESPONSE_SYSTEM_PROMPT.format(
                action=action,
                details=", ".join(f"{k}={v}" for k, v in details.items()),
            )
            try:
                text = await self.llm.complete(
                    system,
                    [{"role": "user", "content": "Write the message."}],
                    self.MAX_TOKENS,
                )
                if text.strip():
                    return text.strip()
            except Exception as exc:
                logger.warning("response_generation_failed", action=action, error=str(exc))

        return self.template(action, **details)
