"""
Triage Application DTOs
========================

Data Transfer Objects for Triage API layer.

Pydantic models for request/response validation.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from case_escalation.config import settings


# ========== Request DTOs ==========

class ClassifyRequest(BaseModel):
    """Request model for text classification."""
    text: str = Field(
        ...,
        min_length=settings.min_text_length,
        max_length=settings.max_text_length,
        description="Incident report text"
    )
    context: Optional[Dict[str, Any]] = Field(None, description="Additional context for the prompt")
    case_id: Optional[str] = Field(None, description="Case the classification belongs to")


class ReclassifyRequest(BaseModel):
    """Request model for reclassifying an existing case."""
    text: str = Field(
        ...,
        min_length=settings.min_text_length,
        max_length=settings.max_text_length,
    )
    context: Optional[Dict[str, Any]] = None


# ========== Response DTOs ==========

class ClassificationInfo(BaseModel):
    """Classification result information."""
    category: str
    escalationTier: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    urgencyScore: int = Field(..., ge=1, le=10)
    suggestedActions: List[str]
    reasoning: Optional[str] = None


class ClassificationResponse(BaseModel):
    """Response model for text classification."""
    classification: ClassificationInfo
    fallback: bool
    model: str
    processing_time_ms: int
    case_id: Optional[str] = None


class HistoryEntry(BaseModel):
    """One classification decision, input truncated."""
    id: str
    caseId: Optional[str] = None
    kind: str
    inputText: str
    output: Dict[str, Any]
    confidence: float
    modelUsed: str
    actor: Optional[str] = None
    createdAt: str


class HistoryResponse(BaseModel):
    """Paginated classification history."""
    classifications: List[HistoryEntry]
    total: int
    page: int
    limit: int


class StatsResponse(BaseModel):
    """Response model for classification statistics."""
    timeframe: str
    total_classifications: int
    avg_confidence: float
    avg_urgency_score: float
    avg_processing_time_ms: float
    fallback_count: int
    tier_distribution: Dict[str, int]
    category_distribution: Dict[str, int]


class CaseSummaryResponse(BaseModel):
    """Plain-text case summary."""
    caseId: str
    summary: str
    fallback: bool
    model: str
    generatedAt: str
