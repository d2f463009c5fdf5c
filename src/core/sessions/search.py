"""Semantic session search contract.

The embedding-backed implementation lives with the embedding service.
Callers must treat any failure as "no matches".
"""

from __future__ import annotations

from typing import Protocol

from src.core.intent.models import SemanticMatch


class SessionSearch(Protocol):
    async def find_relevant_sessions(self, user_id: str, query: str) -> list[SemanticMatch]:
        ...


class NullSessionSearch:
    """Search backend used when no embeddings are configured."""

    async def find_relevant_sessions(self, user_id: str, query: str) -> list[SemanticMatch]:
        return []
