"""Token budget calculator.

Estimates token usage and fits conversation history plus retrieved context
into a bounded model context window.  Estimates are deliberately
conservative: roughly four characters per token, plus a fixed overhead per
message for role framing.

Everything in this module is pure and never raises.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Mapping, Sequence

CHARS_PER_TOKEN = 4
MESSAGE_OVERHEAD_TOKENS = 4

OUTPUT_RESERVATION = 4_000
CONTEXT_BUDGET = 100_000

CONVERSATION_SHARE = 0.7
RETRIEVED_SHARE = 0.3

MIN_MESSAGES = 4

# Retrieved context is a series of sections, each starting with a line
# that begins with "===".
_SECTION_BOUNDARY = re.compile(r"(?m)^(?====)")
_TRUNCATED_SECTION_MARKER = "\n[...truncated for length]"
_TRUNCATED_CONTEXT_MARKER = "\n[...additional context truncated for length]"

Message = Mapping[str, str]


@dataclass
class MessageBudget:
    """How many of the most recent messages fit, and what they cost."""

    included: int
    tokens: int


@dataclass
class BudgetedContext:
    conversation_messages: list[Message] = field(default_factory=list)
    retrieved_context: str = ""
    conversation_tokens: int = 0
    retrieved_tokens: int = 0
    total_tokens: int = 0
    truncated: int = 0


def estimate_tokens(text: str | None) -> int:
    """Conservative token estimate: ``ceil(len(text) / 4)``; ``0`` for empty input."""
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def _message_tokens(message: Message) -> int:
    return estimate_tokens(message.get("content", "")) + MESSAGE_OVERHEAD_TOKENS


def estimate_messages_tokens(messages: Sequence[Message]) -> int:
    """Sum of content estimates plus the per-message role overhead."""
    return sum(_message_tokens(m) for m in messages)


def calculate_message_budget(
    messages: Sequence[Message],
    max_tokens: int,
    min_messages: int = MIN_MESSAGES,
) -> MessageBudget:
    """Walk *messages* from newest to oldest and decide how many to keep.

    The newest *min_messages* are always kept, even over budget.  Older
    messages are added while the running total stays within *max_tokens*;
    the walk stops at the first message that would overflow it.
    """
    tokens = 0
    included = 0

    for message in reversed(messages):
        cost = _message_tokens(message)

        if included < min_messages:
            tokens += cost
            included += 1
            continue

        if tokens + cost > max_tokens:
            break
        tokens += cost
        included += 1

    return MessageBudget(included=included, tokens=tokens)


def truncate_context(context: str, max_chars: int) -> str:
    """Shorten *context* to roughly *max_chars*, dropping whole sections first.

    Sections are kept from the start while they fit.  Only when the very
    first section is already too long is it cut mid-text.
    """
    if len(context) <= max_chars:
        return context

    max_chars = max(0, max_chars)
    sections = [s for s in _SECTION_BOUNDARY.split(context) if s]

    result = ""
    for section in sections:
        if len(result) + len(section) <= max_chars:
            result += section
        elif not result:
            result = section[: max(0, max_chars - 50)] + _TRUNCATED_SECTION_MARKER
            break
        else:
            result += _TRUNCATED_CONTEXT_MARKER
            break

    return result


def build_budgeted_context(
    system_prompt: str,
    conversation_history: Sequence[Message],
    retrieved_context: str,
    max_total_tokens: int = CONTEXT_BUDGET,
    output_reservation: int = OUTPUT_RESERVATION,
) -> BudgetedContext:
    """Fit history and retrieved context into *max_total_tokens*.

    After reserving the system prompt and the output allowance, the rest is
    split 70% conversation / 30% retrieved context.  Recent conversation
    wins over retrieved material.
    """
    system_tokens = estimate_tokens(system_prompt)
    available = max_total_tokens - system_tokens - output_reservation

    conversation_budget = math.floor(available * CONVERSATION_SHARE)
    retrieved_budget = math.floor(available * RETRIEVED_SHARE)

    plan = calculate_message_budget(conversation_history, conversation_budget)
    included = list(conversation_history[len(conversation_history) - plan.included:]) if plan.included else []

    final_retrieved = retrieved_context or ""
    retrieved_tokens = estimate_tokens(final_retrieved)
    if retrieved_tokens > retrieved_budget:
        final_retrieved = truncate_context(final_retrieved, retrieved_budget * CHARS_PER_TOKEN)
        retrieved_tokens = estimate_tokens(final_retrieved)

    return BudgetedContext(
        conversation_messages=included,
        retrieved_context=final_retrieved,
        conversation_tokens=plan.tokens,
        retrieved_tokens=retrieved_tokens,
        total_tokens=system_tokens + plan.tokens + retrieved_tokens,
        truncated=len(conversation_history) - plan.included,
    )
