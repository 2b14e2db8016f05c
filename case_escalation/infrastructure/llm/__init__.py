"""
LLM Client Infrastructure
==========================

Wrapper for OpenAI-compatible providers providing a clean interface for
chat completions.

This module abstracts the LLM client implementation following the
Dependency Inversion Principle - the inference gateway depends on the
ILLMClient abstraction, not on a concrete SDK.
"""

import json
import time
from abc import ABC, abstractmethod
from typing import List, Optional

from openai import AsyncOpenAI

from case_escalation.config import settings
from case_escalation.core import ConfigurationException, LLMException


class ChatCompletionResult:
    """Result of a chat completion."""

    def __init__(
        self,
        content: str,
        model: str,
        prompt_tokens: int,
        completion_tokens: int,
        latency_ms: int
    ):
        self.content = content
        self.model = model
        self.prompt_tokens = prompt_tokens
        self.completion_tokens = completion_tokens
        self.total_tokens = prompt_tokens + completion_tokens
        self.latency_ms = latency_ms


class ILLMClient(ABC):
    """
    Interface for LLM client operations.

    Only the operation the engine needs is defined.
    """

    model: str

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.2,
        max_tokens: int = 1000,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        """Generate chat completion."""


class OpenAILLMClient(ILLMClient):
    """
    OpenAI client implementation.

    Provides async wrapper around OpenAI SDK operations.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None
    ):
        self._api_key = api_key or settings.openai_api_key
        if not self._api_key:
            raise ConfigurationException("OpenAI API key not configured")

        self._client = AsyncOpenAI(
            api_key=self._api_key,
            base_url=base_url or settings.openai_base_url,
            timeout=timeout or settings.llm_timeout_seconds,
            max_retries=0,
        )
        self.model = model or settings.llm_model

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.2,
        max_tokens: int = 1000,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        """
        Generate chat completion.

        Args:
            messages: List of message dicts with 'role' and 'content'
            temperature: Sampling temperature (0-1)
            max_tokens: Maximum tokens to generate
            operation: Operation type for logging (classification, escalation)

        Returns:
            ChatCompletionResult with generated text

        Raises:
            LLMException: If completion fails
        """
        start_time = time.perf_counter()

        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens
            )
        except Exception as e:
            raise LLMException(f"Chat completion failed: {str(e)}", {"operation": operation})

        latency_ms = int((time.perf_counter() - start_time) * 1000)

        content = response.choices[0].message.content if response.choices else None
        usage = response.usage

        return ChatCompletionResult(
            content=content or "",
            model=response.model or self.model,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            latency_ms=latency_ms
        )


class MockLLMClient(ILLMClient):
    """
    Mock LLM client for testing and offline development.

    Returns predictable responses without calling external APIs.
    """

    model = "mock-model"

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.2,
        max_tokens: int = 1000,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        """Return mock response based on operation type."""
        if operation == "escalation":
            mock_response = {
                "shouldEscalate": True,
                "confidence": 0.75,
                "reasons": ["Mock: ongoing risk to the reporting party"],
                "suggestedPriority": "High",
                "urgencyScore": 7,
                "riskFactors": ["Mock: possible evidence loss"],
                "recommendation": "Mock: escalate for senior review."
            }
            content = f"```json\n{json.dumps(mock_response, indent=2)}\n```"
        elif operation == "classification":
            mock_response = {
                "category": "Corruption - Police",
                "escalationTier": "Priority",
                "confidence": 0.9,
                "urgencyScore": 7,
                "suggestedActions": ["Mock: preserve evidence", "Mock: contact oversight body"],
                "reasoning": "Mock: report describes police misconduct."
            }
            content = f"```json\n{json.dumps(mock_response, indent=2)}\n```"
        else:
            content = "This is a mock LLM response for testing purposes."

        return ChatCompletionResult(
            content=content,
            model=self.model,
            prompt_tokens=100,
            completion_tokens=len(content.split()),
            latency_ms=100
        )


def create_llm_client() -> ILLMClient:
    """Build the configured LLM client (mock when MOCK_LLM is set)."""
    if settings.mock_llm:
        return MockLLMClient()
    return OpenAILLMClient()
