"""LLM Service - Abstraction layer for AI model calls.

This module provides a unified interface for calling different LLM providers
(OpenAI, Gemini) with consistent error handling and response formatting.

Interface Contract:
- call(prompt) -> str (single prompt, optionally JSON mode)
- chat(messages, system=...) -> str (multi-turn conversation)
- All methods raise LLMServiceError on failure
- Callers should not depend on specific LLM provider details
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod

import google.generativeai as genai
from openai import OpenAI

from config import CHAT_MODEL, DEFAULT_MODEL, LLM_PROVIDER

logger = logging.getLogger(__name__)


class LLMServiceError(Exception):
    """Raised when LLM call fails."""
    pass


class BaseLLMService(ABC):
    """Abstract base class for LLM services."""

    @abstractmethod
    def call(self, prompt: str, *, json_mode: bool = False) -> str:
        """Call the LLM with a single prompt.

        Args:
            prompt: The prompt to send to the LLM
            json_mode: If True, expect JSON response

        Returns:
            str: The LLM response text

        Raises:
            LLMServiceError: If the call fails
        """
        pass

    @abstractmethod
    def chat(
        self,
        messages: list[dict[str, str]],
        *,
        system: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 500,
    ) -> str:
        """Continue a conversation.

        Args:
            messages: Prior turns as {"role": "user"|"assistant", "content": str}
            system: Optional system instruction
            temperature: Sampling temperature
            max_tokens: Upper bound on reply length

        Returns:
            str: The assistant reply

        Raises:
            LLMServiceError: If the call fails
        """
        pass


class OpenAIService(BaseLLMService):
    """OpenAI LLM service implementation."""

    def __init__(self, model: str = CHAT_MODEL):
        self.model = model
        self._client: OpenAI | None = None

    def _get_client(self) -> OpenAI:
        """Get or create OpenAI client (lazy initialization)."""
        if self._client is None:
            api_key = os.environ.get("OPENAI_API_KEY")
            if not api_key:
                raise LLMServiceError("OPENAI_API_KEY environment variable not set")
            self._client = OpenAI(api_key=api_key)
        return self._client

    def call(self, prompt: str, *, json_mode: bool = False) -> str:
        """Call OpenAI model."""
        client = self._get_client()
        try:
            kwargs = {}
            if json_mode:
                kwargs["response_format"] = {"type": "json_object"}
            response = client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=0.3,
                **kwargs,
            )
            return response.choices[0].message.content or ""
        except Exception as e:
            raise LLMServiceError(f"OpenAI call failed: {e}") from e

    def chat(
        self,
        messages: list[dict[str, str]],
        *,
        system: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 500,
    ) -> str:
        """Call OpenAI chat completions with the full history."""
        client = self._get_client()
        payload = [{"role": "system", "content": system}] if system else []
        payload.extend(messages)
        try:
            response = client.chat.completions.create(
                model=self.model,
                messages=payload,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except Exception as e:
            raise LLMServiceError(f"OpenAI chat failed: {e}") from e
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise LLMServiceError("Invalid response from OpenAI")
        return content


class GeminiService(BaseLLMService):
    """Google Gemini LLM service implementation."""

    def __init__(self, model: str = DEFAULT_MODEL):
        self.model = model
        self._configured = False

    def _configure(self) -> None:
        """Configure Gemini API (lazy initialization)."""
        if self._configured:
            return
        api_key = os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")
        if not api_key:
            raise LLMServiceError("GEMINI_API_KEY or GOOGLE_API_KEY environment variable not set")
        genai.configure(api_key=api_key)
        self._configured = True

    def call(self, prompt: str, *, json_mode: bool = False) -> str:
        """Call Gemini model."""
        self._configure()
        try:
            gen_config = None
            if json_mode:
                gen_config = genai.GenerationConfig(
                    response_mime_type="application/json"
                )
            model = genai.GenerativeModel(self.model)
            response = model.generate_content(prompt, generation_config=gen_config)
            return response.text
        except Exception as e:
            raise LLMServiceError(f"Gemini call failed: {e}") from e

    def chat(
        self,
        messages: list[dict[str, str]],
        *,
        system: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 500,
    ) -> str:
        """Call Gemini with the history mapped onto its user/model roles."""
        self._configure()
        contents = [
            {
                "role": "model" if m.get("role") == "assistant" else "user",
                "parts": [m.get("content", "")],
            }
            for m in messages
        ]
        try:
            model = genai.GenerativeModel(self.model, system_instruction=system)
            response = model.generate_content(
                contents,
                generation_config=genai.GenerationConfig(
                    temperature=temperature,
                    max_output_tokens=max_tokens,
                ),
            )
            return response.text
        except Exception as e:
            raise LLMServiceError(f"Gemini chat failed: {e}") from e


class LLMService:
    """Facade for LLM services with provider switching."""

    _instance: BaseLLMService | None = None

    @classmethod
    def get_instance(cls) -> BaseLLMService:
        """Get the configured LLM service instance."""
        if cls._instance is None:
            if LLM_PROVIDER == "gemini":
                cls._instance = GeminiService()
            else:
                cls._instance = OpenAIService()
            logger.info("[llm] provider=%s", type(cls._instance).__name__)
        return cls._instance

    @classmethod
    def set_instance(cls, service: BaseLLMService) -> None:
        """Set a custom LLM service (useful for testing)."""
        cls._instance = service

    @classmethod
    def reset(cls) -> None:
        """Reset to default service."""
        cls._instance = None


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code block from a model reply."""
    content = text.strip()
    if content.startswith("```"):
        first_newline = content.find("\n")
        content = content[first_newline + 1:] if first_newline != -1 else content[3:]
        if content.rstrip().endswith("```"):
            content = content.rstrip()[:-3]
    return content.strip()
