"""
Triage Domain Entities
======================

Domain entities for incident classification.

Contains pure Python business objects: the Classification value, the
fixed fallback substituted on inference failure, the prompt builder and
the validator enforcing the classification output contract.
"""

import json
import math
from dataclasses import dataclass, field
from typing import Any, List, Optional

from case_escalation.config import (
    IssueCategory, EscalationTier, ISSUE_CATEGORIES, ESCALATION_TIERS
)
from case_escalation.core import ClassificationValidationFailed
from case_escalation.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

MIN_URGENCY = 1
MAX_URGENCY = 10
DEFAULT_URGENCY = 5
DEFAULT_SUGGESTED_ACTIONS = ["Manual review required"]


@dataclass(frozen=True)
class Classification:
    """
    Structured classification of an incident report.

    Immutable once produced; reclassification produces a new value.
    """
    category: IssueCategory
    escalation_tier: EscalationTier
    confidence: float  # 0.0 to 1.0
    urgency_score: int  # 1 to 10
    suggested_actions: List[str] = field(default_factory=list)
    reasoning: Optional[str] = None
    is_fallback: bool = False

    def __post_init__(self):
        """Validate classification result."""
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError("Confidence must be between 0 and 1")
        if not MIN_URGENCY <= self.urgency_score <= MAX_URGENCY:
            raise ValueError("Urgency score must be between 1 and 10")

    def to_dict(self) -> dict:
        """Wire/snapshot representation (same keys the model is asked for)."""
        data = {
            "category": self.category.value,
            "escalationTier": self.escalation_tier.value,
            "confidence": self.confidence,
            "urgencyScore": self.urgency_score,
            "suggestedActions": list(self.suggested_actions),
        }
        if self.reasoning is not None:
            data["reasoning"] = self.reasoning
        return data


FALLBACK_CLASSIFICATION = Classification(
    category=IssueCategory.OTHER,
    # Priority rather than Basic: a failed classification must not under-escalate
    escalation_tier=EscalationTier.PRIORITY,
    confidence=0.1,
    urgency_score=6,
    suggested_actions=[
        "Manual review required due to AI classification failure",
        "Contact support team immediately",
        "Document all evidence carefully",
    ],
    is_fallback=True,
)


# ========== Coercion helpers (shared with escalation analysis) ==========

def is_number(value: Any) -> bool:
    """True for real, finite numbers; bools are not numbers here."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def clamp_confidence(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def clamp_urgency(value: float) -> int:
    return max(MIN_URGENCY, min(MAX_URGENCY, math.floor(value)))


def coerce_string_list(value: Any, default: List[str]) -> List[str]:
    """Lists are kept (items stringified), a scalar string is wrapped."""
    if isinstance(value, list):
        return [item if isinstance(item, str) else json.dumps(item) for item in value]
    if isinstance(value, str) and value.strip():
        return [value]
    return list(default)


class ClassificationValidator:
    """
    Enforces the classification output contract.

    Unknown categories map to Other; anything fundamentally missing yields
    FALLBACK_CLASSIFICATION.
    """

    _CATEGORY_LOOKUP = {c.lower(): IssueCategory(c) for c in ISSUE_CATEGORIES}
    _TIER_LOOKUP = {t.lower(): EscalationTier(t) for t in ESCALATION_TIERS}

    @classmethod
    def validate(cls, raw: Any) -> Classification:
        """Return a valid Classification, substituting the fallback on failure."""
        try:
            return cls.validate_strict(raw)
        except ClassificationValidationFailed as e:
            logger.warning(
                "Classification output rejected, using fallback",
                extra={"reason": e.message, **e.details}
            )
            return FALLBACK_CLASSIFICATION

    @classmethod
    def validate_strict(cls, raw: Any) -> Classification:
        """
        Validate and coerce raw inference output.

        Raises:
            ClassificationValidationFailed: if category, tier or confidence
                is missing or unusable
        """
        if not isinstance(raw, dict):
            raise ClassificationValidationFailed(
                "Classification output is not an object",
                {"received_type": type(raw).__name__}
            )

        category_raw = cls._first_present(raw, "category", "issueCategory")
        tier_raw = cls._first_present(raw, "escalationTier", "escalationLevel")
        confidence_raw = raw.get("confidence")

        if not isinstance(category_raw, str) or not category_raw.strip():
            raise ClassificationValidationFailed("Missing category", {"field": "category"})
        if not isinstance(tier_raw, str) or not tier_raw.strip():
            raise ClassificationValidationFailed("Missing escalation tier", {"field": "escalationTier"})
        if not is_number(confidence_raw):
            raise ClassificationValidationFailed("Confidence is not numeric", {"field": "confidence"})

        tier = cls._TIER_LOOKUP.get(tier_raw.strip().lower())
        if tier is None:
            raise ClassificationValidationFailed(
                "Unknown escalation tier",
                {"field": "escalationTier", "value": tier_raw}
            )

        category = cls._CATEGORY_LOOKUP.get(category_raw.strip().lower())
        if category is None:
            logger.info("Unknown category mapped to Other", extra={"category": category_raw})
            category = IssueCategory.OTHER

        urgency_raw = raw.get("urgencyScore")
        urgency = clamp_urgency(urgency_raw) if is_number(urgency_raw) else DEFAULT_URGENCY

        reasoning = raw.get("reasoning")

        return Classification(
            category=category,
            escalation_tier=tier,
            confidence=clamp_confidence(confidence_raw),
            urgency_score=urgency,
            suggested_actions=coerce_string_list(
                raw.get("suggestedActions"), DEFAULT_SUGGESTED_ACTIONS
            ),
            reasoning=reasoning if isinstance(reasoning, str) else None,
        )

    @staticmethod
    def _first_present(raw: dict, *keys: str) -> Any:
        for key in keys:
            if raw.get(key) is not None:
                return raw[key]
        return None


class ClassificationPromptBuilder:
    """
    Builds prompts for incident classification.

    All prompt text for classification lives here.
    """

    SYSTEM_PROMPT = """You are an AI legal triage assistant for a crime reporting platform that combats systematic corruption.

The platform helps victims of police misconduct and corruption, government corruption and abuse of power, judicial misconduct, state violence and illegal imprisonment, and systematic oppression and cover-ups.

Classify each case description.

1. Issue Category, one of:
   - Corruption - Police (bribes, refusing to investigate, abuse of power)
   - Corruption - Government (officials taking bribes, misuse of public funds, cover-ups)
   - Corruption - Judicial (judges taking bribes, unfair trials, judicial bias)
   - Criminal - Assault (physical violence, battery, threats)
   - Criminal - Fraud (financial fraud, scams, embezzlement)
   - Criminal - Harassment (stalking, intimidation, threats)
   - Criminal - Murder (suspicious deaths, state killings, cover-ups)
   - Legal - Civil Rights (discrimination, violation of basic rights)
   - Legal - Employment (workplace violations, wrongful termination)
   - Legal - Housing (evictions, housing discrimination)
   - Legal - Immigration (visa issues, deportation, asylum)
   - Other

2. Escalation Tier:
   - Basic: standard processing, no immediate danger
   - Priority: attention within 24-48 hours, potential ongoing harm
   - Urgent: immediate action required, life-threatening, active persecution

3. Confidence: 0.0 to 1.0
4. Urgency Score: 1-10 (10 = life-threatening)
5. Suggested Actions: 2-4 immediate actions

Be especially sensitive to police refusing to investigate crimes, officials covering up wrongdoing, judicial bias, retaliation against whistleblowers, patterns of systematic abuse, and imprisonment without trial.

Respond ONLY in JSON format:
{
    "category": "...",
    "escalationTier": "...",
    "confidence": 0.0,
    "urgencyScore": 0,
    "suggestedActions": ["...", "..."],
    "reasoning": "brief explanation"
}"""

    @classmethod
    def build_prompt(cls, text: str, context: Optional[dict] = None) -> str:
        """Build classification prompt from the incident text."""
        prompt = f'Case Description:\n"""{text}"""\n'
        if context:
            prompt += f"\nAdditional Context: {json.dumps(context, sort_keys=True, default=str)}\n"
        prompt += "\nClassify this case (respond with JSON only):"
        return prompt

    @classmethod
    def get_system_prompt(cls) -> str:
        """Get the system prompt for classification."""
        return cls.SYSTEM_PROMPT

    @classmethod
    def build_messages(cls, text: str, context: Optional[dict] = None) -> List[dict]:
        return [
            {"role": "system", "content": cls.get_system_prompt()},
            {"role": "user", "content": cls.build_prompt(text, context)},
        ]
