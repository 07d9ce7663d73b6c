"""Data models - Pure data structures with no business logic."""

from .profile import Insights, Profile
from .match import MatchCandidate, MatchResult
from .conversation import ChatTurn, Conversation, Message

__all__ = [
    "Profile",
    "Insights",
    "MatchCandidate",
    "MatchResult",
    "Conversation",
    "Message",
    "ChatTurn",
]
