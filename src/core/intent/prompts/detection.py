"""Prompt templates for chat intent detection.

Consumed by :class:`~src.core.intent.detector.IntentDetector`.  The system
prompt is assembled from fixed taxonomy text plus situational sections that
are only included when they carry information.
"""

INTENT_DESCRIPTIONS: dict[str, str] = {
    "CREATE_SESSION": "The user wants to start a new session with a specific person.",
    "CONTINUE_CONVERSATION": "The user is continuing the current conversation or sharing feelings.",
    "LIST_SESSIONS": "The user wants to see their existing sessions.",
    "SWITCH_SESSION": "The user wants to go to an existing session with someone.",
    "HELP": "The user is asking how the app works or what to do.",
    "UNKNOWN": "The message does not clearly match any intent.",
}

DETECTION_SYSTEM_PROMPT: str = """You are the intent router for a guided conversation app that helps two people work through a difficult conversation.
Classify the user's latest message into exactly one of these intents:
{intents}

{situation}

Extraction rules:
- If the user names a person, fill "person" with what you know (firstName, lastName, contactInfo).
- contactInfo.type is "email" or "phone".
- If the user refers to one of their existing sessions, put its id in "sessionId".
- For CREATE_SESSION without contact details, list them in "missingInfo" and ask for them in "followUpQuestion".
- emotionalTone is one of: neutral, upset, hopeful, anxious.
- confidence is one of: high, medium, low.

Return JSON:
{{"intent": "...", "confidence": "high|medium|low", "sessionId": null, "person": {{"firstName": null, "lastName": null, "contactInfo": null}}, "sessionContext": {{"topic": null, "emotionalTone": "neutral"}}, "missingInfo": [{{"field": "...", "required": true, "promptText": "..."}}], "followUpQuestion": null}}
"""

ACTIVE_SESSION_SECTION: str = (
    "The user is currently in a session with {partner_name}. "
    "Messages about feelings or the situation are usually CONTINUE_CONVERSATION."
)

NO_ACTIVE_SESSION_SECTION: str = "The user is not currently in a session."

USER_SESSIONS_SECTION: str = "The user's other open sessions:\n{sessions}"

SEMANTIC_MATCHES_SECTION: str = (
    "Past sessions that look related to this message (similarity 0-1):\n{matches}"
)

PENDING_STATE_SECTION: str = (
    "Pending flow: {state_type} (step: {step}). Known so far: {known}. "
    "If the message supplies the missing details, keep the intent CREATE_SESSION "
    "and return the merged person."
)

RECENT_MESSAGES_SECTION: str = "Recent conversation:\n{messages}"

PLUGIN_HINTS_SECTION: str = "Additional intents:\n{hints}"
