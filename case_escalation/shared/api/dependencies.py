"""
Shared API Dependencies
=======================

FastAPI dependencies used by more than one router.
"""

from typing import Optional

from fastapi import Header, HTTPException, Request

from case_escalation.config import MAX_ACTOR_ID_LENGTH
from case_escalation.infrastructure.llm.gateway import InferenceGateway


def get_gateway(request: Request) -> InferenceGateway:
    """Inference gateway created during application startup."""
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        raise HTTPException(
            status_code=503,
            detail="Inference service not available - LLM not configured"
        )
    return gateway


def check_actor_length(actor: str) -> str:
    if len(actor) > MAX_ACTOR_ID_LENGTH:
        raise HTTPException(
            status_code=422,
            detail=f"X-Actor-ID must be at most {MAX_ACTOR_ID_LENGTH} characters"
        )
    return actor


def get_actor(x_actor_id: Optional[str] = Header(None, alias="X-Actor-ID")) -> Optional[str]:
    """Identity of the caller, supplied by the upstream auth layer."""
    if x_actor_id is None:
        return None
    return check_actor_length(x_actor_id)


def require_actor(x_actor_id: Optional[str] = Header(None, alias="X-Actor-ID")) -> str:
    if not x_actor_id:
        raise HTTPException(status_code=401, detail="X-Actor-ID header is required")
    return check_actor_length(x_actor_id)
