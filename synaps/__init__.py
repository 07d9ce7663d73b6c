"""Synaps connection-matching package."""

from .matching import InvalidArgumentError, ScoringPolicy, filter_by_topic, rank
from .models import MatchCandidate, Profile

__all__ = [
    "InvalidArgumentError",
    "ScoringPolicy",
    "filter_by_topic",
    "rank",
    "MatchCandidate",
    "Profile",
]
