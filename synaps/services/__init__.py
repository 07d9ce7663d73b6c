"""Service layer - Business logic modules.

Each service module has a clear interface and can be developed/tested independently.
"""

from .llm_service import LLMService
from .profile_service import ProfileService, ProfileStore
from .conversation_service import ConversationService
from .matching_service import MatchingOptions, MatchingService
from .connection_service import ConnectionService, ConversationStore
from .token_service import TokenStore

__all__ = [
    "LLMService",
    "ProfileService",
    "ProfileStore",
    "ConversationService",
    "MatchingOptions",
    "MatchingService",
    "ConnectionService",
    "ConversationStore",
    "TokenStore",
]
