"""Conversation Service - AI facilitator chat and insight extraction.

This module handles:
- Sending a chat turn (with history) to the LLM facilitator
- Extracting structured connection insights from the exchange
- Feeding those insights back into the user's profile

Interface Contract:
- send(user_id, message, history) -> ChatTurn
- extract_insights(history, message, reply) -> Insights | None
- send raises ConversationServiceError when the reply cannot be produced;
  insight extraction failures are logged and never fail the turn
"""

from __future__ import annotations

import json
import logging
from typing import Any

from synaps.models import ChatTurn, Insights
from synaps.services.llm_service import strip_code_fences

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 4000
MAX_HISTORY_TURNS = 40

SYSTEM_PROMPT = """You are a smart connection facilitator who helps users find the right people to talk to. Your goal is to understand WHO they want to connect with today and WHAT they want to discuss, then help them achieve that connection quickly.

Key guidelines:
- Focus on immediate connection goals: "Who do you want to talk to today?"
- Identify specific topics, interests, or problems they want to discuss
- Be direct and action-oriented - get to the point quickly
- Ask about their current mood, interests, and what kind of conversation they're seeking
- Help them clarify their intentions so you can match them with the right person
- Be helpful and efficient, not overly emotional or therapeutic"""


class ConversationServiceError(Exception):
    """Raised when a chat turn fails."""
    pass


class ConversationService:
    """Service for facilitator chat turns."""

    def __init__(self, profile_service, llm_service=None):
        """Initialize with dependencies.

        Args:
            profile_service: ProfileService that receives extracted insights
            llm_service: LLM service for chat. If None, uses default.
        """
        self.profiles = profile_service
        self._llm = llm_service

    @property
    def llm(self):
        """Lazy load LLM service."""
        if self._llm is None:
            from synaps.services.llm_service import LLMService
            self._llm = LLMService.get_instance()
        return self._llm

    def send(
        self,
        user_id: str,
        message: str,
        history: list[dict[str, Any]] | None = None,
    ) -> ChatTurn:
        """Send one user message to the facilitator.

        Args:
            user_id: The chatting user
            message: The new user message
            history: Prior turns as {"role", "content"} dicts

        Returns:
            ChatTurn: The facilitator reply and any extracted insights

        Raises:
            ConversationServiceError: If the message is empty or the reply fails
        """
        if not isinstance(message, str) or not message.strip():
            raise ConversationServiceError("Message is required")
        message = message.strip()[:MAX_MESSAGE_LENGTH]
        turns = self._clean_history(history)

        try:
            reply = self.llm.chat(
                turns + [{"role": "user", "content": message}],
                system=SYSTEM_PROMPT,
                temperature=0.7,
                max_tokens=500,
            )
        except Exception as e:
            raise ConversationServiceError(f"Chat failed: {e}") from e

        insights = self.extract_insights(turns, message, reply)
        if insights is not None:
            self.profiles.apply_insights(user_id, insights)
            logger.info(
                "[chat] insights user=%s topics=%d interests=%d",
                user_id,
                len(insights.conversation_topics),
                len(insights.interests),
            )
        return ChatTurn(response=reply, insights=insights.to_dict() if insights else None)

    def extract_insights(
        self,
        history: list[dict[str, str]],
        message: str,
        reply: str,
    ) -> Insights | None:
        """Ask the LLM for a structured reading of the conversation."""
        prompt = self._build_insight_prompt(history, message, reply)
        try:
            response = self.llm.call(prompt, json_mode=True)
        except Exception as e:
            logger.warning("[chat] insight extraction failed: %s", e)
            return None
        return self._parse_insights(response)

    def _clean_history(self, history: list[dict[str, Any]] | None) -> list[dict[str, str]]:
        """Keep well-formed user/assistant turns, most recent last."""
        turns = []
        for item in history or []:
            if not isinstance(item, dict):
                continue
            role = item.get("role")
            content = item.get("content")
            if role in ("user", "assistant") and isinstance(content, str) and content.strip():
                turns.append({"role": role, "content": content[:MAX_MESSAGE_LENGTH]})
        return turns[-MAX_HISTORY_TURNS:]

    def _build_insight_prompt(
        self,
        history: list[dict[str, str]],
        message: str,
        reply: str,
    ) -> str:
        """Build prompt for insight extraction."""
        transcript = "\n".join(f"{t['role']}: {t['content']}" for t in history)
        return f'''Based on this conversation, extract the user's current connection intentions and provide a JSON analysis:
{{
  "current_intentions": "What they want to discuss today (max 100 chars)",
  "connection_goals": "Type of person they want to connect with (max 100 chars)",
  "conversation_topics": ["topic1", "topic2", "topic3"],
  "desired_conversation_type": "advice/brainstorming/venting/learning/social",
  "energy_level": 7,
  "personality_traits": ["trait1", "trait2", "trait3"],
  "mood_score": 0.8,
  "interests": ["interest1", "interest2", "interest3"]
}}

Conversation:
{transcript}
user: {message}
assistant: {reply}

Return only valid JSON without markdown formatting or code blocks.'''

    def _parse_insights(self, response: str) -> Insights | None:
        """Parse LLM response into Insights; None when unusable."""
        try:
            data = json.loads(strip_code_fences(response))
        except json.JSONDecodeError:
            logger.warning("[chat] insight JSON could not be parsed: %.200s", response)
            return None
        if not isinstance(data, dict):
            logger.warning("[chat] insight payload is not an object")
            return None
        return Insights.from_dict(data)
