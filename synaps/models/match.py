"""Match data models.

Pure data structures for connection suggestions.
Match candidates are built fresh for every ranking call and never stored.
"""

from __future__ import annotations

from dataclasses import dataclass, field as dataclass_field
from typing import Any

from .profile import Profile


@dataclass
class MatchCandidate:
    """A single ranked candidate."""
    profile: Profile
    compatibility_score: int
    reasoning: str
    last_active_label: str
    shared_interests: list[str] = dataclass_field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "userId": self.profile.id,
            "displayName": self.profile.display_name,
            "avatarUrl": self.profile.avatar_url,
            "interests": list(self.profile.interests),
            "currentMood": self.profile.mood or "Open to chat",
            "bio": self.profile.bio,
            "compatibilityScore": self.compatibility_score,
            "reasoning": self.reasoning,
            "sharedInterests": list(self.shared_interests),
            "lastActive": self.last_active_label,
        }


@dataclass
class MatchResult:
    """Result of a match search."""
    matches: list[MatchCandidate] = dataclass_field(default_factory=list)
    total_found: int = 0
    message: str = ""
    fallback_mode: bool = False
    search_criteria: dict[str, Any] = dataclass_field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "matches": [m.to_dict() for m in self.matches],
            "totalFound": self.total_found,
            "message": self.message,
            "fallbackMode": self.fallback_mode,
            "searchCriteria": self.search_criteria,
        }
