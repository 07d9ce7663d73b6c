"""Profile data models.

Pure data structures with no business logic.
Profiles are normalised once, in ``from_dict``, so everything downstream can
rely on well-typed, defaulted fields.
"""

from __future__ import annotations

from dataclasses import dataclass, field as dataclass_field, replace
from datetime import datetime, timezone
from typing import Any, Iterable

MAX_LIST_ITEMS = 50
MAX_ITEM_LENGTH = 100


def normalize_tags(values: Any) -> list[str]:
    """Trim, truncate and case-insensitively dedupe a list of tags."""
    if values is None or isinstance(values, (str, bytes)):
        return []
    if not isinstance(values, Iterable):
        return []

    result: list[str] = []
    seen: set[str] = set()
    for value in values:
        if not isinstance(value, str):
            continue
        tag = value.strip()[:MAX_ITEM_LENGTH].strip()
        if not tag or tag.lower() in seen:
            continue
        seen.add(tag.lower())
        result.append(tag)
        if len(result) >= MAX_LIST_ITEMS:
            break
    return result


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 string or datetime into an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    return as_utc(parsed)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def as_utc(value: datetime) -> datetime:
    """Treat a naive datetime as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _first(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


@dataclass
class Profile:
    """A user profile as held by the profile store."""
    id: str
    display_name: str = ""
    interests: list[str] = dataclass_field(default_factory=list)
    mood: str = ""
    current_intentions: str = ""
    connection_goals: str = ""
    last_conversation_topics: list[str] = dataclass_field(default_factory=list)
    updated_at: datetime | None = None
    bio: str = ""
    avatar_url: str | None = None

    def __post_init__(self):
        self.display_name = _text(self.display_name)
        self.mood = _text(self.mood)
        self.current_intentions = _text(self.current_intentions)
        self.connection_goals = _text(self.connection_goals)
        self.bio = _text(self.bio)
        self.interests = normalize_tags(self.interests)
        self.last_conversation_topics = normalize_tags(self.last_conversation_topics)
        self.updated_at = parse_timestamp(self.updated_at)

    def with_updates(self, **changes: Any) -> "Profile":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a store row (snake_case)."""
        return {
            "id": self.id,
            "display_name": self.display_name,
            "interests": list(self.interests),
            "mood": self.mood,
            "current_intentions": self.current_intentions,
            "connection_goals": self.connection_goals,
            "last_conversation_topics": list(self.last_conversation_topics),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "bio": self.bio,
            "avatar_url": self.avatar_url,
        }

    def to_public_dict(self) -> dict[str, Any]:
        """Convert to the camelCase shape returned by the API."""
        return {
            "userId": self.id,
            "displayName": self.display_name,
            "interests": list(self.interests),
            "currentMood": self.mood,
            "currentIntentions": self.current_intentions,
            "connectionGoals": self.connection_goals,
            "conversationTopics": list(self.last_conversation_topics),
            "bio": self.bio,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Profile":
        """Create from a store row or API payload; missing fields get defaults."""
        return cls(
            id=_text(_first(data, "id", "user_id", "userId")),
            display_name=_text(_first(data, "display_name", "displayName", "name")),
            interests=_first(data, "interests"),
            mood=_text(_first(data, "mood", "currentMood", "current_mood")),
            current_intentions=_text(_first(data, "current_intentions", "currentIntentions")),
            connection_goals=_text(_first(data, "connection_goals", "connectionGoals")),
            last_conversation_topics=_first(
                data,
                "last_conversation_topics",
                "lastConversationTopics",
                "conversation_topics",
                "conversationTopics",
            ),
            updated_at=_first(data, "updated_at", "updatedAt"),
            bio=_text(_first(data, "bio")),
            avatar_url=_first(data, "avatar_url", "avatarUrl"),
        )


@dataclass
class Insights:
    """Structured connection intentions extracted from a chat."""
    current_intentions: str = ""
    connection_goals: str = ""
    conversation_topics: list[str] = dataclass_field(default_factory=list)
    desired_conversation_type: str = ""
    energy_level: int = 5
    personality_traits: list[str] = dataclass_field(default_factory=list)
    mood_score: float = 0.5
    interests: list[str] = dataclass_field(default_factory=list)

    def mood_label(self) -> str:
        """Map the numeric mood score onto the stored mood keyword."""
        if self.mood_score > 0.7:
            return "positive"
        if self.mood_score > 0.4:
            return "neutral"
        return "reflective"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "current_intentions": self.current_intentions,
            "connection_goals": self.connection_goals,
            "conversation_topics": self.conversation_topics,
            "desired_conversation_type": self.desired_conversation_type,
            "energy_level": self.energy_level,
            "personality_traits": self.personality_traits,
            "mood_score": self.mood_score,
            "interests": self.interests,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Insights":
        """Create from dictionary."""
        try:
            energy_level = int(data.get("energy_level") or 5)
        except (TypeError, ValueError):
            energy_level = 5
        try:
            mood_score = float(data.get("mood_score", 0.5))
        except (TypeError, ValueError):
            mood_score = 0.5
        return cls(
            current_intentions=_text(data.get("current_intentions"))[:MAX_ITEM_LENGTH],
            connection_goals=_text(data.get("connection_goals"))[:MAX_ITEM_LENGTH],
            conversation_topics=normalize_tags(data.get("conversation_topics")),
            desired_conversation_type=_text(data.get("desired_conversation_type")),
            energy_level=min(max(energy_level, 1), 10),
            personality_traits=normalize_tags(data.get("personality_traits")),
            mood_score=min(max(mood_score, 0.0), 1.0),
            interests=normalize_tags(data.get("interests")),
        )
