"""Connection Service - Opening conversations between matched users.

This module handles:
- Conversation and message storage
- Idempotent creation of a direct conversation for a user pair
- The AI introduction message posted into a new conversation

Interface Contract:
- connect(user_id, target_id, *, reasoning, intro_message) -> ConnectionResult
- messages(conversation_id) -> list[Message]
- history(user_id) -> list[ConversationSummary]
- All methods raise ConnectionServiceError on failure
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from threading import Lock

from synaps.matching import last_active_label
from synaps.models import Conversation, Message, Profile
from synaps.services.profile_service import ProfileNotFoundError, ProfileStore

logger = logging.getLogger(__name__)

AI_SENDER_ID = "ai-assistant"


class ConnectionServiceError(Exception):
    """Raised when a connection cannot be made."""
    pass


@dataclass
class ConnectionResult:
    """Result of a connect call."""
    conversation: Conversation
    target: Profile
    is_new: bool

    def to_dict(self) -> dict:
        return {
            "success": True,
            "conversationId": self.conversation.id,
            "targetUser": {
                "userId": self.target.id,
                "displayName": self.target.display_name,
            },
            "isNewConversation": self.is_new,
        }


@dataclass
class ConversationSummary:
    """One row of a user's conversation history."""
    conversation: Conversation
    other: Profile
    last_message: Message | None
    last_active: str

    def to_dict(self) -> dict:
        return {
            "conversationId": self.conversation.id,
            "otherUser": {
                "userId": self.other.id,
                "displayName": self.other.display_name,
                "avatarUrl": self.other.avatar_url,
                "currentMood": self.other.mood or "Open to chat",
            },
            "lastMessage": self.last_message.content if self.last_message else None,
            "lastMessageAt": self.conversation.last_message_at.isoformat(),
            "lastActive": self.last_active,
        }


class ConversationStore:
    """Thread-safe in-memory conversations and messages."""

    def __init__(self):
        self._conversations: dict[str, Conversation] = {}
        self._messages: dict[str, list[Message]] = {}
        self._lock = Lock()

    def _find_between(self, user_a: str, user_b: str) -> Conversation | None:
        """Find the conversation for a pair, in either order; caller holds the lock."""
        pair = {user_a, user_b}
        for conversation in self._conversations.values():
            if {conversation.user1_id, conversation.user2_id} == pair:
                return conversation
        return None

    def get(self, conversation_id: str) -> Conversation | None:
        with self._lock:
            return self._conversations.get(conversation_id)

    def get_or_create_between(self, user1_id: str, user2_id: str) -> tuple[Conversation, bool]:
        """Return the pair's conversation and whether it was created by this call."""
        with self._lock:
            existing = self._find_between(user1_id, user2_id)
            if existing is not None:
                return existing, False
            conversation = Conversation(user1_id=user1_id, user2_id=user2_id)
            self._conversations[conversation.id] = conversation
            self._messages[conversation.id] = []
        return conversation, True

    def add_message(self, conversation_id: str, sender_id: str, content: str) -> Message:
        message = Message(conversation_id=conversation_id, sender_id=sender_id, content=content)
        with self._lock:
            conversation = self._conversations.get(conversation_id)
            if conversation is None:
                raise ConnectionServiceError(f"Conversation not found: {conversation_id}")
            self._messages[conversation_id].append(message)
            conversation.last_message_at = message.created_at
        return message

    def messages(self, conversation_id: str) -> list[Message]:
        with self._lock:
            return list(self._messages.get(conversation_id, []))

    def for_user(self, user_id: str) -> list[Conversation]:
        with self._lock:
            found = [c for c in self._conversations.values() if c.involves(user_id)]
        return sorted(found, key=lambda c: c.last_message_at, reverse=True)


class ConnectionService:
    """Service for connecting a user with a suggested candidate."""

    def __init__(self, profile_store: ProfileStore, conversations: ConversationStore | None = None):
        self.profiles = profile_store
        self.conversations = conversations or ConversationStore()

    def connect(
        self,
        user_id: str,
        target_id: str,
        *,
        reasoning: str | None = None,
        intro_message: str | None = None,
        sender_id: str = AI_SENDER_ID,
    ) -> ConnectionResult:
        """Open (or reuse) the conversation between two users.

        Args:
            user_id: The requesting user
            target_id: The selected candidate
            reasoning: Match reasoning quoted in the introduction
            intro_message: Full introduction text, overrides the generated one
            sender_id: Author id of the introduction message

        Returns:
            ConnectionResult: The conversation and whether it was created now

        Raises:
            ConnectionServiceError: If no target is given or it is the user
            ProfileNotFoundError: If the target has no profile
        """
        if not target_id:
            raise ConnectionServiceError("targetUserId is required")
        if target_id == user_id:
            raise ConnectionServiceError("Cannot connect a user with themselves")
        target = self.profiles.get(target_id)
        if target is None:
            raise ProfileNotFoundError(f"Target user not found: {target_id}")

        conversation, created = self.conversations.get_or_create_between(user_id, target_id)
        if not created:
            logger.info("[connect] reuse conversation=%s", conversation.id)
            return ConnectionResult(conversation=conversation, target=target, is_new=False)

        text = intro_message or self._introduction(target, reasoning)
        self.conversations.add_message(conversation.id, sender_id, text)
        logger.info("[connect] created conversation=%s user=%s target=%s", conversation.id, user_id, target_id)
        return ConnectionResult(conversation=conversation, target=target, is_new=True)

    def messages(self, conversation_id: str) -> list[Message]:
        if self.conversations.get(conversation_id) is None:
            raise ConnectionServiceError(f"Conversation not found: {conversation_id}")
        return self.conversations.messages(conversation_id)

    def history(self, user_id: str, now: datetime | None = None) -> list[ConversationSummary]:
        """The user's conversations, most recent message first."""
        summaries = []
        for conversation in self.conversations.for_user(user_id):
            other_id = conversation.user2_id if conversation.user1_id == user_id else conversation.user1_id
            other = self.profiles.get(other_id) or Profile(id=other_id)
            messages = self.conversations.messages(conversation.id)
            summaries.append(
                ConversationSummary(
                    conversation=conversation,
                    other=other,
                    last_message=messages[-1] if messages else None,
                    last_active=last_active_label(conversation.last_message_at, now),
                )
            )
        return summaries

    def _introduction(self, target: Profile, reasoning: str | None) -> str:
        name = target.display_name or "someone new"
        if reasoning:
            return f"Hi! I'm connecting you with {name} because I see common ground. {reasoning} Have a great conversation!"
        return f"Hi! I'm connecting you with {name} based on your conversation interests. Have a great conversation!"
