"""Compatibility Matching Engine.

Ranks candidate profiles for a requester. Everything here is a pure,
synchronous function of its arguments: no I/O, no module-level mutable
state, safe to call from concurrent requests.

Interface Contract:
- rank(requester, candidates, *, policy, now) -> list[MatchCandidate]
- filter_by_topic(matches, topic) -> list[MatchCandidate]
- build_candidate_pool(real, fallback, min_pool_size) -> list[Profile]
- Only InvalidArgumentError is raised, and only for caller contract violations
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal

from synaps.models import MatchCandidate, Profile
from synaps.models.profile import as_utc


class InvalidArgumentError(Exception):
    """Raised when the engine is called with inputs of the wrong shape."""
    pass


# (connection goal keyword, candidate mood keyword)
MOOD_GOAL_COMPATIBILITY = (
    ("support", "calm"),
    ("energy", "energetic"),
    ("creative", "creative"),
    ("learn", "focused"),
)

DEFAULT_MOOD = "open to chat"
DEFAULT_INTEREST = "good conversation"
DEFAULT_NAME = "Someone new"


@dataclass(frozen=True)
class ScoringPolicy:
    """Scoring constants for one ranking call."""
    mode: Literal["baseline", "promotional"] = "baseline"
    base_score: int = 50
    interest_increment: int = 5
    interest_cap: int = 10
    mood_match_bonus: int = 15
    mood_default_bonus: int = 5
    promotional_base: int = 85
    promotional_spread: int = 10
    promotional_interest_cap: int = 10
    min_score: int = 10
    max_score: int = 99
    min_pool_size: int = 0

    def __post_init__(self):
        if self.mode not in ("baseline", "promotional"):
            raise InvalidArgumentError(f"Unknown scoring mode: {self.mode!r}")
        if self.min_score > self.max_score:
            raise InvalidArgumentError("min_score must not exceed max_score")
        if self.promotional_spread < 1:
            raise InvalidArgumentError("promotional_spread must be at least 1")


DEFAULT_POLICY = ScoringPolicy()


def _overlaps(a: str, b: str) -> bool:
    a, b = a.lower(), b.lower()
    return a in b or b in a


def shared_interests(requester: Profile, candidate: Profile) -> list[str]:
    """Candidate interests that overlap any requester topic or interest."""
    references = requester.last_conversation_topics + requester.interests
    return [
        interest
        for interest in candidate.interests
        if any(_overlaps(interest, ref) for ref in references)
    ]


def mood_bonus(mood: str, connection_goals: str, policy: ScoringPolicy = DEFAULT_POLICY) -> int:
    """Bonus for a candidate mood that suits the requester's connection goals."""
    mood_lower = mood.lower()
    goals_lower = connection_goals.lower()
    for goal_keyword, mood_keyword in MOOD_GOAL_COMPATIBILITY:
        if goal_keyword in goals_lower and mood_keyword in mood_lower:
            return policy.mood_match_bonus
    return policy.mood_default_bonus


def perturbation(candidate_id: str, day: str, spread: int) -> int:
    """Stable pseudo-random offset in [0, spread) keyed by candidate and day."""
    digest = hashlib.sha256(f"{candidate_id}:{day}".encode("utf-8")).hexdigest()
    return int(digest, 16) % spread


def clamp(value: int, policy: ScoringPolicy = DEFAULT_POLICY) -> int:
    return max(policy.min_score, min(policy.max_score, value))


def score(
    requester: Profile,
    candidate: Profile,
    *,
    policy: ScoringPolicy = DEFAULT_POLICY,
    now: datetime | None = None,
) -> int:
    """Compute the compatibility score of one candidate."""
    matched = len(shared_interests(requester, candidate))

    if policy.mode == "promotional":
        now = as_utc(now) if now else datetime.now(timezone.utc)
        day = now.astimezone(timezone.utc).date().isoformat()
        total = policy.promotional_base + perturbation(candidate.id, day, policy.promotional_spread)
        total += min(matched * policy.interest_increment, policy.promotional_interest_cap)
        return clamp(total, policy)

    total = policy.base_score
    total += min(matched * policy.interest_increment, policy.interest_cap)
    total += mood_bonus(candidate.mood, requester.connection_goals, policy)
    return clamp(total, policy)


def _join_words(words: list[str]) -> str:
    if len(words) == 1:
        return words[0]
    return f"{', '.join(words[:-1])} and {words[-1]}"


def generate_reasoning(
    requester: Profile,
    candidate: Profile,
    shared: list[str] | None = None,
) -> str:
    """Explain in one or two sentences why the candidate was suggested."""
    if shared is None:
        shared = shared_interests(requester, candidate)
    name = candidate.display_name or DEFAULT_NAME

    if shared:
        return (
            f"You both care about {_join_words(shared)}! That's a great starting point "
            f"for a conversation. {name} can share their own experience here."
        )

    mood = (candidate.mood or DEFAULT_MOOD).lower()
    first_interest = candidate.interests[0] if candidate.interests else DEFAULT_INTEREST
    return (
        f"{name} is feeling {mood} and loves {first_interest}. "
        f"You could explore it together and discover new perspectives!"
    )


def last_active_label(updated_at: datetime | None, now: datetime | None = None) -> str:
    """Human-readable recency of a profile update."""
    if updated_at is None:
        return "A while ago"
    now = as_utc(now) if now else datetime.now(timezone.utc)
    hours = int((now - as_utc(updated_at)).total_seconds() // 3600)
    if hours < 1:
        return "Just now"
    if hours < 24:
        return f"{hours} hours ago"
    days = hours // 24
    if days < 7:
        return f"{days} days ago"
    return "A while ago"


def _coerce_profile(value: Any, what: str) -> Profile:
    if isinstance(value, Profile):
        return value
    if isinstance(value, Mapping):
        return Profile.from_dict(dict(value))
    raise InvalidArgumentError(f"{what} must be a Profile or mapping, got {type(value).__name__}")


def _recency_key(profile: Profile) -> float:
    if profile.updated_at is None:
        return float("-inf")
    return profile.updated_at.timestamp()


def rank(
    requester: Profile | Mapping[str, Any],
    candidates: Sequence[Profile | Mapping[str, Any]],
    *,
    policy: ScoringPolicy | None = None,
    now: datetime | None = None,
) -> list[MatchCandidate]:
    """Score and order every candidate for the requester.

    Args:
        requester: The requesting user's profile (or its store row)
        candidates: Candidate profiles, in store order
        policy: Scoring constants; baseline policy when omitted
        now: Reference time for recency labels and promotional seeding

    Returns:
        list[MatchCandidate]: One entry per candidate, best first. Ties are
        broken by most recent activity, then by input order.

    Raises:
        InvalidArgumentError: If requester is absent or candidates is not a sequence
    """
    if requester is None:
        raise InvalidArgumentError("requester profile is required")
    if isinstance(candidates, (str, bytes, Mapping)) or not isinstance(candidates, Sequence):
        raise InvalidArgumentError("candidates must be a sequence of profiles")

    policy = policy or DEFAULT_POLICY
    now = as_utc(now) if now else datetime.now(timezone.utc)
    me = _coerce_profile(requester, "requester")

    results = []
    for index, item in enumerate(candidates):
        candidate = _coerce_profile(item, f"candidates[{index}]")
        shared = shared_interests(me, candidate)
        results.append(
            MatchCandidate(
                profile=candidate,
                compatibility_score=score(me, candidate, policy=policy, now=now),
                reasoning=generate_reasoning(me, candidate, shared),
                last_active_label=last_active_label(candidate.updated_at, now),
                shared_interests=shared,
            )
        )

    # sorted() is stable, so equal keys keep input order
    return sorted(
        results,
        key=lambda m: (-m.compatibility_score, -_recency_key(m.profile)),
    )


def filter_by_topic(matches: Sequence[MatchCandidate], topic: str | None) -> list[MatchCandidate]:
    """Keep candidates whose interests or reasoning mention the topic."""
    needle = (topic or "").strip().lower()
    if not needle:
        return list(matches)
    return [
        m
        for m in matches
        if any(needle in interest.lower() for interest in m.profile.interests)
        or needle in m.reasoning.lower()
    ]


def build_candidate_pool(
    real: Sequence[Profile],
    fallback: Sequence[Profile] = (),
    min_pool_size: int = 0,
) -> list[Profile]:
    """Top up a thin candidate pool with fallback profiles.

    Fallback profiles are appended, skipping ids already present, only when
    fewer than ``min_pool_size`` real candidates exist.
    """
    pool = list(real)
    if len(pool) >= min_pool_size:
        return pool
    present = {p.id for p in pool}
    for profile in fallback:
        if profile.id not in present:
            pool.append(profile)
            present.add(profile.id)
    return pool
