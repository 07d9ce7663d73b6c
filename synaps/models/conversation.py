"""Conversation data models."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field as dataclass_field
from datetime import datetime, timezone
from typing import Any


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Conversation:
    """A direct conversation between two users."""
    user1_id: str
    user2_id: str
    id: str = dataclass_field(default_factory=new_id)
    created_at: datetime = dataclass_field(default_factory=utc_now)
    last_message_at: datetime = dataclass_field(default_factory=utc_now)

    def involves(self, user_id: str) -> bool:
        return user_id in (self.user1_id, self.user2_id)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "user1_id": self.user1_id,
            "user2_id": self.user2_id,
            "created_at": self.created_at.isoformat(),
            "last_message_at": self.last_message_at.isoformat(),
        }


@dataclass
class Message:
    """A single message within a conversation."""
    conversation_id: str
    sender_id: str
    content: str
    id: str = dataclass_field(default_factory=new_id)
    created_at: datetime = dataclass_field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "conversation_id": self.conversation_id,
            "sender_id": self.sender_id,
            "content": self.content,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class ChatTurn:
    """One exchange with the AI facilitator."""
    response: str
    timestamp: datetime = dataclass_field(default_factory=utc_now)
    insights: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "response": self.response,
            "timestamp": self.timestamp.isoformat(),
        }
