"""Context-window budgeting for model calls."""

from src.core.context.budget import (
    BudgetedContext,
    MessageBudget,
    build_budgeted_context,
    calculate_message_budget,
    estimate_messages_tokens,
    estimate_tokens,
)

__all__ = [
    "BudgetedContext",
    "MessageBudget",
    "build_budgeted_context",
    "calculate_message_budget",
    "estimate_messages_tokens",
    "estimate_tokens",
]
