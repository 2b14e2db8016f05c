"""
Inference Gateway
=================

Single bounded call to the inference service returning one parsed JSON
object, or plain text for case summaries.

Every failure mode (timeout, provider error, empty completion, non-JSON,
non-object JSON) surfaces as ClassificationUnavailable so callers can
substitute their fallback value. No retries.
"""

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from case_escalation.config import DecisionKind, settings
from case_escalation.core import ClassificationUnavailable, LLMException
from case_escalation.escalation.domain import (
    Case,
    CaseSnapshot,
    CaseSummaryPromptBuilder,
    EscalationPromptBuilder,
)
from case_escalation.infrastructure.llm import ChatCompletionResult, ILLMClient
from case_escalation.shared.infrastructure.logging import get_logger
from case_escalation.triage.domain import ClassificationPromptBuilder

logger = get_logger(__name__)


@dataclass(frozen=True)
class InferenceResponse:
    """Parsed completion plus the model that produced it."""
    data: Dict[str, Any]
    model: str
    latency_ms: int


@dataclass(frozen=True)
class TextResponse:
    """Plain-text completion plus the model that produced it."""
    text: str
    model: str
    latency_ms: int


def extract_json_text(content: str) -> str:
    """Strip a surrounding markdown code fence, if present."""
    text = content.strip()
    if "```json" in text:
        text = text.split("```json", 1)[1].split("```", 1)[0]
    elif text.startswith("```"):
        text = text[3:].split("```", 1)[0]
    return text.strip()


class InferenceGateway:
    """
    Wraps the LLM client with timeout handling and JSON extraction.

    The timeout applies to the whole call; the default comes from settings and
    can be overridden per call.
    """

    def __init__(self, llm_client: ILLMClient, timeout: Optional[float] = None):
        self._client = llm_client
        self._timeout = timeout or settings.llm_timeout_seconds

    @property
    def model(self) -> str:
        return getattr(self._client, "model", settings.llm_model)

    async def _complete(
        self,
        messages: List[dict],
        operation: str,
        temperature: float,
        max_tokens: int,
        timeout: Optional[float]
    ) -> Tuple[ChatCompletionResult, int]:
        """One bounded chat completion with non-empty content, plus its latency."""
        timeout = timeout or self._timeout
        start = time.perf_counter()

        try:
            result = await asyncio.wait_for(
                self._client.chat_completion(
                    messages,
                    temperature=temperature,
                    max_tokens=max_tokens,
                    operation=operation,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Inference call timed out",
                extra={"operation": operation, "timeout_seconds": timeout}
            )
            raise ClassificationUnavailable(
                f"Inference timed out after {timeout}s", {"operation": operation}
            )
        except LLMException as e:
            logger.warning(
                "Inference call failed",
                extra={"operation": operation, "error": e.message}
            )
            raise ClassificationUnavailable(e.message, {"operation": operation})

        latency_ms = int((time.perf_counter() - start) * 1000)

        if not result.content or not result.content.strip():
            raise ClassificationUnavailable("Empty completion", {"operation": operation})

        return result, latency_ms

    async def complete_json(
        self,
        messages: List[dict],
        operation: str,
        temperature: float,
        timeout: Optional[float] = None
    ) -> InferenceResponse:
        """
        Run one chat completion and parse it as a JSON object.

        Raises:
            ClassificationUnavailable: on any inference or parse failure
        """
        result, latency_ms = await self._complete(
            messages, operation, temperature, settings.llm_max_tokens, timeout
        )

        try:
            data = json.loads(extract_json_text(result.content))
        except json.JSONDecodeError as e:
            logger.warning(
                "Inference output is not valid JSON",
                extra={"operation": operation, "error": str(e)}
            )
            raise ClassificationUnavailable(
                "Inference output is not valid JSON", {"operation": operation}
            )

        if not isinstance(data, dict):
            raise ClassificationUnavailable(
                "Inference output is not a JSON object",
                {"operation": operation, "received_type": type(data).__name__}
            )

        logger.info(
            "Inference call completed",
            extra={
                "operation": operation,
                "model": result.model,
                "latency_ms": latency_ms,
                "total_tokens": result.total_tokens,
            }
        )

        return InferenceResponse(data=data, model=result.model or self.model, latency_ms=latency_ms)

    async def classify(
        self,
        text: str,
        context: Optional[dict] = None,
        timeout: Optional[float] = None
    ) -> InferenceResponse:
        """Request a classification for incident text."""
        return await self.complete_json(
            ClassificationPromptBuilder.build_messages(text, context),
            operation=DecisionKind.CLASSIFICATION.value,
            temperature=settings.llm_temperature,
            timeout=timeout,
        )

    async def analyze_escalation(
        self,
        snapshot: CaseSnapshot,
        timeout: Optional[float] = None
    ) -> InferenceResponse:
        """Request an escalation analysis for a case snapshot."""
        return await self.complete_json(
            EscalationPromptBuilder.build_messages(snapshot),
            operation=DecisionKind.ESCALATION.value,
            temperature=settings.escalation_temperature,
            timeout=timeout,
        )

    async def complete_text(
        self,
        messages: List[dict],
        operation: str,
        temperature: float,
        max_tokens: int,
        timeout: Optional[float] = None
    ) -> TextResponse:
        """
        Run one chat completion and return its text as-is.

        Raises:
            ClassificationUnavailable: on timeout, provider error or empty completion
        """
        result, latency_ms = await self._complete(
            messages, operation, temperature, max_tokens, timeout
        )

        logger.info(
            "Inference call completed",
            extra={
                "operation": operation,
                "model": result.model,
                "latency_ms": latency_ms,
                "total_tokens": result.total_tokens,
            }
        )

        return TextResponse(
            text=result.content.strip(),
            model=result.model or self.model,
            latency_ms=latency_ms,
        )

    async def summarize_case(self, case: Case, timeout: Optional[float] = None) -> TextResponse:
        """Request a short professional summary of a case."""
        return await self.complete_text(
            CaseSummaryPromptBuilder.build_messages(case),
            operation="summary",
            temperature=settings.summary_temperature,
            max_tokens=settings.summary_max_tokens,
            timeout=timeout,
        )
