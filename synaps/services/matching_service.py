"""Matching Service - Connection suggestions over the profile store.

This module handles:
- Building the candidate pool (with an explicit fallback-profile policy)
- Ranking candidates with the compatibility engine
- Topic / mood filtering and result limiting for the public API

Interface Contract:
- suggest(user_id, *, topic=None) -> list[MatchCandidate]
- find_matches(user_id, *, topic, mood, conversation_type, limit) -> MatchResult
- find_matches raises ProfileNotFoundError if the requester has no profile
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Sequence

from synaps.matching import (
    ScoringPolicy,
    build_candidate_pool,
    filter_by_topic,
    rank,
)
from synaps.matching.engine import last_active_label
from synaps.models import MatchCandidate, MatchResult, Profile
from synaps.services.profile_service import ProfileNotFoundError, ProfileStore

logger = logging.getLogger(__name__)

FALLBACK_RESULT_SIZE = 3
FALLBACK_REASON = "Active user in the Synaps community"


@dataclass
class MatchingOptions:
    """Caller-supplied matching configuration."""
    policy: ScoringPolicy = field(default_factory=ScoringPolicy)
    fallback_profiles: Sequence[Profile] = ()
    default_limit: int = 5


def filter_by_mood(matches: Sequence[MatchCandidate], mood: str | None) -> list[MatchCandidate]:
    """Keep candidates whose mood mentions the requested mood."""
    needle = (mood or "").strip().lower()
    if not needle:
        return list(matches)
    return [m for m in matches if needle in m.profile.mood.lower()]


class MatchingService:
    """Service for ranking connection suggestions."""

    def __init__(
        self,
        store: ProfileStore,
        options: MatchingOptions | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.options = options or MatchingOptions()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def candidate_pool(self, user_id: str) -> list[Profile]:
        real = self.store.list_others(user_id)
        fallback = [p for p in self.options.fallback_profiles if p.id != user_id]
        pool = build_candidate_pool(real, fallback, self.options.policy.min_pool_size)
        if len(pool) > len(real):
            logger.info("[match] pool topped up user=%s real=%d total=%d", user_id, len(real), len(pool))
        return pool

    def suggest(self, user_id: str, *, topic: str | None = None) -> list[MatchCandidate]:
        """Rank every candidate for the in-app suggestions list.

        A user without a profile yet is ranked as an empty profile.
        """
        requester = self.store.get(user_id) or Profile(id=user_id)
        matches = rank(
            requester,
            self.candidate_pool(user_id),
            policy=self.options.policy,
            now=self._clock(),
        )
        logger.info("[match] suggest user=%s candidates=%d", user_id, len(matches))
        return filter_by_topic(matches, topic)

    def find_matches(
        self,
        user_id: str,
        *,
        topic: str | None = None,
        mood: str | None = None,
        conversation_type: str | None = None,
        limit: int | None = None,
    ) -> MatchResult:
        """Search matches for the external assistant API.

        Args:
            user_id: The requesting user
            topic: Optional topic filter
            mood: Optional mood filter
            conversation_type: Echoed back in the search criteria
            limit: Maximum number of matches returned

        Returns:
            MatchResult: Matches, or recently active users in fallback mode

        Raises:
            ProfileNotFoundError: If the requester has no profile
        """
        requester = self.store.get(user_id)
        if requester is None:
            raise ProfileNotFoundError(f"Profile not found: {user_id}")

        limit = limit or self.options.default_limit
        criteria = {"topic": topic, "mood": mood, "conversationType": conversation_type}
        now = self._clock()
        pool = self.candidate_pool(user_id)

        ranked = rank(requester, pool, policy=self.options.policy, now=now)
        matches = filter_by_mood(filter_by_topic(ranked, topic), mood)[:limit]
        logger.info(
            "[match] find user=%s topic=%s mood=%s pool=%d found=%d",
            user_id, topic, mood, len(pool), len(matches),
        )

        if matches:
            plural = "s" if len(matches) > 1 else ""
            return MatchResult(
                matches=matches,
                total_found=len(matches),
                message=f"Found {len(matches)} compatible user{plural}!",
                search_criteria=criteria,
            )

        if pool:
            recent = self._recently_active(pool, now)
            about = f' for "{topic}"' if topic else ""
            return MatchResult(
                matches=recent,
                total_found=len(recent),
                message=f"No perfect matches found{about}, but here are some active users.",
                fallback_mode=True,
                search_criteria=criteria,
            )

        return MatchResult(
            message="Synaps is just starting! Be one of the first users. Create your profile and start chatting.",
            search_criteria=criteria,
        )

    def _recently_active(self, pool: Sequence[Profile], now: datetime) -> list[MatchCandidate]:
        """Most recently updated profiles, unscored."""
        oldest = datetime.min.replace(tzinfo=timezone.utc)
        recent = sorted(pool, key=lambda p: p.updated_at or oldest, reverse=True)
        return [
            MatchCandidate(
                profile=p,
                compatibility_score=self.options.policy.min_score,
                reasoning=FALLBACK_REASON,
                last_active_label=last_active_label(p.updated_at, now),
            )
            for p in recent[:FALLBACK_RESULT_SIZE]
        ]
