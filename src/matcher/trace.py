"""
Append-only audit trail of scoring computations.
"""

from datetime import datetime
from typing import Optional, Protocol

from shared.database import Database
from shared.models import MatchResult, MatchTrace


class MatchTraceWriter(Protocol):
    """Destination of match traces."""

    async def write(self, trace: MatchTrace) -> None: ...


def build_trace(
    result: MatchResult,
    candidate_id: Optional[str],
    offer_id: Optional[str],
    created_at: datetime,
) -> MatchTrace:
    return MatchTrace(
        candidate_id=candidate_id,
        offer_id=offer_id,
        score=result.score,
        explanation=result.explanation,
        inputs_hash=result.inputs_hash,
        matched_skills=[m.slug for m in result.matched_skills],
        missing_skills=[m.slug for m in result.missing_skills],
        created_at=created_at,
    )


class DatabaseTraceWriter:
    """Stores traces in the ``match_traces`` table."""

    def __init__(self, db: Database):
        self.db = db

    async def write(self, trace: MatchTrace) -> None:
        await self.db.insert_match_trace(trace)
