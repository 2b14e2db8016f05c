"""
Escalation Application DTOs
===========================

Data Transfer Objects for the case API layer.

Pydantic models for request/response validation.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from case_escalation.config import settings


# ========== Type Aliases for Literals ==========
PriorityStr = Literal["Low", "Normal", "High", "Critical"]


# ========== Request DTOs ==========

class CreateCaseRequest(BaseModel):
    """Request model for case intake."""
    title: str = Field(..., min_length=1, max_length=500, description="Case title")
    description: str = Field(
        ...,
        min_length=settings.min_text_length,
        max_length=settings.max_text_length,
        description="Free-text incident report"
    )
    jurisdiction: Optional[str] = Field(None, max_length=255)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class EscalateCaseRequest(BaseModel):
    """Request model for escalating a case."""
    reason: str = Field(..., min_length=1, max_length=2000, description="Why the case needs escalation")
    priority: Optional[PriorityStr] = Field(
        None, description="Requested priority; the AI may override it"
    )


# ========== Response DTOs ==========

class CaseResponse(BaseModel):
    """Case representation returned by the API."""
    id: str
    title: str
    description: str
    jurisdiction: Optional[str] = None
    ownerId: Optional[str] = None
    status: str
    priority: str
    escalationLevel: str
    issueCategory: str
    aiConfidence: float
    urgencyScore: int
    suggestedActions: List[str]
    metadata: Dict[str, Any]
    escalatedBy: Optional[str] = None
    escalatedAt: Optional[str] = None
    submissionDate: str
    updatedAt: str
    version: int


class EscalationAnalysisInfo(BaseModel):
    """AI escalation analysis."""
    shouldEscalate: bool
    confidence: float = Field(..., ge=0.0, le=1.0)
    reasons: List[str]
    suggestedPriority: str
    urgencyScore: int = Field(..., ge=1, le=10)
    riskFactors: List[str]
    recommendation: str


class EscalationResponse(BaseModel):
    """Response model for a successful escalation."""
    case: CaseResponse
    aiAnalysis: EscalationAnalysisInfo
    approved: bool
    verdict: Optional[str] = None
