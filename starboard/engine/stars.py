"""
starboard.engine.stars — Star Toggle Planning
===============================================

Decides what a star toggle does before anything is written: whether the
actor is adding or removing a star, how the item's counter moves, and how
many points move to or from the author.  Rejections are raised here, so a
refused toggle never reaches the store.

The store side, :func:`starboard.services.star_service.toggle_star`,
applies the plan as atomic increments inside one transaction.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

from starboard.database.models import ContentKind
from starboard.errors import StarRejectedError

__all__ = ["StarTogglePlan", "content_noun", "plan_star_toggle"]

_NOUNS: dict[ContentKind, tuple[str, str]] = {
    ContentKind.POST: ("post", "posts"),
    ContentKind.SUBMISSION: ("submission", "submissions"),
}


class StarrableContent(Protocol):
    id: str
    user_id: str
    approved: bool | None
    stars_received: int
    kind: ContentKind


def content_noun(kind: ContentKind, plural: bool = False) -> str:
    singular, many = _NOUNS[ContentKind(kind)]
    return many if plural else singular


@dataclass(frozen=True, slots=True)
class StarTogglePlan:
    """Writes a toggle will perform, derived from the state read beforehand."""

    content_id: str
    kind: ContentKind
    author_id: str
    adding: bool
    count_delta: int
    score_delta: int
    # Counter value implied by the read; the store applies count_delta
    # atomically and may end up elsewhere under concurrent toggles.
    expected_stars_received: int
    starred_after: frozenset[str]


def plan_star_toggle(
    content: StarrableContent,
    actor_id: str,
    starred_ids: Iterable[str],
    points_per_star: int,
) -> StarTogglePlan:
    """Plan one toggle of *actor_id*'s star on *content*.

    Raises
    ------
    StarRejectedError
        When the item is not approved, or the actor is its author.
    """
    kind = ContentKind(content.kind)
    if content.approved is not True:
        raise StarRejectedError(
            f"You can only assign stars to approved {content_noun(kind, plural=True)}."
        )
    if content.user_id == actor_id:
        raise StarRejectedError(
            f"You cannot assign stars to your own {content_noun(kind)}."
        )

    starred = set(starred_ids)
    current = content.stars_received or 0
    adding = content.id not in starred

    if adding:
        starred.add(content.id)
        expected = current + 1
    else:
        starred.discard(content.id)
        expected = max(0, current - 1)

    sign = 1 if adding else -1
    return StarTogglePlan(
        content_id=content.id,
        kind=kind,
        author_id=content.user_id,
        adding=adding,
        count_delta=sign,
        score_delta=sign * points_per_star,
        expected_stars_received=expected,
        starred_after=frozenset(starred),
    )
