"""Profile Service - Profile storage and insight application.

This module handles:
- Thread-safe profile storage with optional JSON snapshots
- Partial profile updates from the API
- Applying extracted chat insights to a profile
- Importing an external assistant memory summary

Interface Contract:
- ProfileStore.get(id) / save(profile) / update(id, fields) / list_others(id)
- ProfileService.apply_insights(user_id, insights) -> Profile
- ProfileService.import_memory(user_id, memory_text) -> dict
- All methods raise ProfileServiceError on failure
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any

from synaps.models import Insights, Profile
from synaps.models.profile import normalize_tags
from synaps.services.llm_service import strip_code_fences

logger = logging.getLogger(__name__)

# Fields that may be changed through a partial update
UPDATABLE_FIELDS = (
    "display_name",
    "interests",
    "mood",
    "current_intentions",
    "connection_goals",
    "last_conversation_topics",
    "bio",
)

# Public API names for the updatable fields
API_FIELD_NAMES = {
    "displayName": "display_name",
    "interests": "interests",
    "currentMood": "mood",
    "mood": "mood",
    "currentIntentions": "current_intentions",
    "connectionGoals": "connection_goals",
    "conversationTopics": "last_conversation_topics",
    "bio": "bio",
}

DEFAULT_COMMUNICATION_STYLE = "conversational"
DEFAULT_INTENTIONS = "Build meaningful connections"


class ProfileServiceError(Exception):
    """Raised when a profile operation fails."""
    pass


class ProfileNotFoundError(ProfileServiceError):
    """Raised when a profile does not exist."""
    pass


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ProfileStore:
    """In-memory profile store, optionally snapshotted to a JSON file."""

    def __init__(self, path: Path | None = None):
        self._profiles: dict[str, Profile] = {}
        self._lock = Lock()
        self._path = path
        if path is not None and path.exists():
            self._load()

    def _load(self) -> None:
        with open(self._path, encoding="utf-8") as f:
            rows = json.load(f)
        for row in rows:
            profile = Profile.from_dict(row)
            if profile.id:
                self._profiles[profile.id] = profile
        logger.info("[profiles] loaded=%d path=%s", len(self._profiles), self._path)

    def _persist(self) -> None:
        """Write a snapshot; caller holds the lock."""
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        rows = [p.to_dict() for p in self._profiles.values()]
        with open(self._path, "w", encoding="utf-8") as f:
            json.dump(rows, f, ensure_ascii=False, indent=2)

    def get(self, profile_id: str) -> Profile | None:
        with self._lock:
            return self._profiles.get(profile_id)

    def save(self, profile: Profile, *, touch: bool = True) -> Profile:
        """Insert or replace a profile; ``touch`` stamps it as updated now."""
        if not profile.id:
            raise ProfileServiceError("Profile id is required")
        if touch:
            profile = profile.with_updates(updated_at=utc_now())
        with self._lock:
            self._profiles[profile.id] = profile
            self._persist()
        return profile

    def update(self, profile_id: str, fields: dict[str, Any]) -> Profile:
        """Apply a partial update of the allowed fields."""
        changes = {k: v for k, v in fields.items() if k in UPDATABLE_FIELDS}
        if not changes:
            raise ProfileServiceError("No fields to update")
        with self._lock:
            current = self._profiles.get(profile_id)
            if current is None:
                raise ProfileNotFoundError(f"Profile not found: {profile_id}")
            updated = current.with_updates(**changes, updated_at=utc_now())
            self._profiles[profile_id] = updated
            self._persist()
        return updated

    def list_others(self, profile_id: str) -> list[Profile]:
        """Every named profile except the given one, in insertion order."""
        with self._lock:
            return [
                p for p in self._profiles.values()
                if p.id != profile_id and p.display_name
            ]


class ProfileService:
    """Service for profile reads, updates and insight application."""

    def __init__(self, store: ProfileStore | None = None, llm_service=None):
        """Initialize with optional dependencies.

        Args:
            store: Profile store. If None, an empty in-memory store is used.
            llm_service: LLM service for memory import. If None, uses default.
        """
        self.store = store or ProfileStore()
        self._llm = llm_service

    @property
    def llm(self):
        """Lazy load LLM service."""
        if self._llm is None:
            from synaps.services.llm_service import LLMService
            self._llm = LLMService.get_instance()
        return self._llm

    def get_profile(self, user_id: str) -> Profile:
        profile = self.store.get(user_id)
        if profile is None:
            raise ProfileNotFoundError(f"Profile not found: {user_id}")
        return profile

    def get_or_create(self, user_id: str) -> Profile:
        profile = self.store.get(user_id)
        if profile is None:
            profile = self.store.save(Profile(id=user_id))
        return profile

    def update_profile(self, user_id: str, payload: dict[str, Any]) -> Profile:
        """Apply an API payload (camelCase or snake_case keys)."""
        fields = {}
        for key, value in payload.items():
            name = API_FIELD_NAMES.get(key, key)
            if name in UPDATABLE_FIELDS:
                fields[name] = value
        profile = self.store.update(user_id, fields)
        logger.info("[profile] updated user=%s fields=%s", user_id, sorted(fields))
        return profile

    def apply_insights(self, user_id: str, insights: Insights) -> Profile:
        """Overwrite a profile's matching inputs with freshly extracted insights."""
        current = self.get_or_create(user_id)
        updated = current.with_updates(
            mood=insights.mood_label(),
            interests=insights.interests,
            current_intentions=insights.current_intentions,
            connection_goals=insights.connection_goals,
            last_conversation_topics=insights.conversation_topics,
        )
        return self.store.save(updated)

    def import_memory(self, user_id: str, memory_text: str) -> dict[str, Any]:
        """Summarise an exported assistant memory into the user's profile.

        Args:
            user_id: Profile to update
            memory_text: Free text exported from another assistant

        Returns:
            dict: The parsed summary that was applied

        Raises:
            ProfileServiceError: If the memory is empty or the LLM call fails
        """
        if not memory_text or not memory_text.strip():
            raise ProfileServiceError("Memory text is required")

        prompt = self._build_memory_prompt(memory_text)
        try:
            response = self.llm.call(prompt, json_mode=True)
        except Exception as e:
            raise ProfileServiceError(f"Memory import failed: {e}") from e

        summary = self._parse_memory_response(response)
        current = self.get_or_create(user_id)
        self.store.save(
            current.with_updates(
                interests=summary["interests"],
                current_intentions=summary["communication_style"] or DEFAULT_INTENTIONS,
                last_conversation_topics=summary["frequent_topics"],
            )
        )
        logger.info("[profile] memory imported user=%s interests=%d", user_id, len(summary["interests"]))
        return summary

    def _build_memory_prompt(self, memory_text: str) -> str:
        """Build prompt for memory summarisation."""
        return f'''Extract and summarize the user's interests, preferences, communication style,
and topics they frequently discuss from the following exported assistant memory.

Return a JSON object with these fields:
- interests: array of strings
- preferences: array of strings
- communication_style: string
- frequent_topics: array of strings

MEMORY:
{memory_text}

Return ONLY the JSON object, no additional text.'''

    def _parse_memory_response(self, response: str) -> dict[str, Any]:
        """Parse the summary, degrading to empty defaults on bad JSON."""
        try:
            data = json.loads(strip_code_fences(response))
        except json.JSONDecodeError:
            logger.warning("[profile] memory summary was not valid JSON")
            data = {"communication_style": DEFAULT_COMMUNICATION_STYLE}
        if not isinstance(data, dict):
            data = {"communication_style": DEFAULT_COMMUNICATION_STYLE}
        style = data.get("communication_style")
        return {
            "interests": normalize_tags(data.get("interests")),
            "preferences": normalize_tags(data.get("preferences")),
            "communication_style": style.strip() if isinstance(style, str) else "",
            "frequent_topics": normalize_tags(data.get("frequent_topics")),
        }
