"""
starboard.services.leaderboard_service — Member Ranking
=========================================================

Members ordered by score (highest first), ties broken by name.
"""

from __future__ import annotations

from sqlalchemy import Engine, select

from starboard.database.engine import get_session
from starboard.database.models import Profile

MAX_PAGE_SIZE = 100


def get_leaderboard(engine: Engine, limit: int = 50, offset: int = 0) -> list[dict]:
    """Return one page of the ranking as ``{"rank", "id", "name", "score"}``."""
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    offset = max(0, offset)
    with get_session(engine) as session:
        rows = session.execute(
            select(Profile.id, Profile.name, Profile.score)
            .order_by(Profile.score.desc(), Profile.name.asc())
            .limit(limit)
            .offset(offset)
        ).all()

    return [
        {"rank": offset + i + 1, "id": row.id, "name": row.name, "score": row.score}
        for i, row in enumerate(rows)
    ]
