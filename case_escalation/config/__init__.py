"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from enum import Enum
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="case-escalation", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/cases",
        description="PostgreSQL connection URL (async)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== Inference Service (OpenAI compatible) ==========
    openai_api_key: Optional[str] = Field(
        default=None,
        description="API key for the inference service"
    )
    openai_base_url: Optional[str] = Field(
        default=None,
        description="Override base URL for OpenAI-compatible providers"
    )
    mock_llm: bool = Field(
        default=False,
        description="Use mock LLM responses for testing (no API calls)"
    )

    # ========== LLM Settings ==========
    llm_model: str = Field(
        default="gpt-4o",
        description="Model used for classification and escalation analysis"
    )
    llm_temperature: float = Field(
        default=0.2,
        description="Temperature for classification prompts",
        ge=0.0,
        le=1.0
    )
    escalation_temperature: float = Field(
        default=0.3,
        description="Temperature for escalation analysis prompts",
        ge=0.0,
        le=1.0
    )
    llm_max_tokens: int = Field(
        default=1000,
        description="Max output tokens per inference call",
        ge=1,
        le=8000
    )
    summary_temperature: float = Field(
        default=0.3,
        description="Temperature for case summary prompts",
        ge=0.0,
        le=1.0
    )
    summary_max_tokens: int = Field(
        default=300,
        description="Max output tokens for a case summary",
        ge=1,
        le=8000
    )
    llm_timeout_seconds: float = Field(
        default=30.0,
        description="Upper bound for a single inference call",
        gt=0,
        le=300
    )

    # ========== Intake ==========
    min_text_length: int = Field(default=10, description="Minimum incident text length", ge=1)
    max_text_length: int = Field(default=10000, description="Maximum incident text length", ge=1)

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class IssueCategory(str, Enum):
    """Issue categories for incident classification."""
    CORRUPTION_POLICE = "Corruption - Police"
    CORRUPTION_GOVERNMENT = "Corruption - Government"
    CORRUPTION_JUDICIAL = "Corruption - Judicial"
    CRIMINAL_ASSAULT = "Criminal - Assault"
    CRIMINAL_FRAUD = "Criminal - Fraud"
    CRIMINAL_HARASSMENT = "Criminal - Harassment"
    CRIMINAL_MURDER = "Criminal - Murder"
    LEGAL_CIVIL_RIGHTS = "Legal - Civil Rights"
    LEGAL_EMPLOYMENT = "Legal - Employment"
    LEGAL_HOUSING = "Legal - Housing"
    LEGAL_IMMIGRATION = "Legal - Immigration"
    OTHER = "Other"


class EscalationTier(str, Enum):
    """Escalation tiers (stored as the case's escalation level)."""
    BASIC = "Basic"
    PRIORITY = "Priority"
    URGENT = "Urgent"


class CasePriority(str, Enum):
    """Case priority levels."""
    LOW = "Low"
    NORMAL = "Normal"
    HIGH = "High"
    CRITICAL = "Critical"


class CaseStatus(str, Enum):
    """Case lifecycle statuses."""
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    ESCALATED = "Escalated"
    CLOSED = "Closed"


class DecisionKind(str, Enum):
    """Kinds of audited engine decisions."""
    CLASSIFICATION = "classification"
    ESCALATION = "escalation"


# ========== Lists for validation ==========

ISSUE_CATEGORIES = [c.value for c in IssueCategory]
ESCALATION_TIERS = [t.value for t in EscalationTier]
VALID_PRIORITIES = [p.value for p in CasePriority]
SUGGESTED_PRIORITIES = [
    CasePriority.NORMAL.value, CasePriority.HIGH.value, CasePriority.CRITICAL.value
]
VALID_STATUSES = [s.value for s in CaseStatus]
TERMINAL_STATUSES = [CaseStatus.CLOSED.value, CaseStatus.COMPLETED.value]

# Width of the owner, escalated-by and actor columns
MAX_ACTOR_ID_LENGTH = 255
