"""Compatibility matching - pure scoring and ranking of candidate profiles."""

from .engine import (
    DEFAULT_POLICY,
    InvalidArgumentError,
    ScoringPolicy,
    build_candidate_pool,
    filter_by_topic,
    generate_reasoning,
    last_active_label,
    rank,
    score,
    shared_interests,
)
from .seeds import seed_profiles

__all__ = [
    "DEFAULT_POLICY",
    "InvalidArgumentError",
    "ScoringPolicy",
    "build_candidate_pool",
    "filter_by_topic",
    "generate_reasoning",
    "last_active_label",
    "rank",
    "score",
    "shared_interests",
    "seed_profiles",
]
