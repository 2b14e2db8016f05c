"""
Triage Domain Layer
===================

Domain layer for incident classification.

Contains:
- Entities: Classification, FALLBACK_CLASSIFICATION
- Services: ClassificationValidator, ClassificationPromptBuilder

This layer is framework-agnostic and contains pure business logic.
"""

from case_escalation.triage.domain.entities import (
    Classification,
    FALLBACK_CLASSIFICATION,
    ClassificationValidator,
    ClassificationPromptBuilder,
    clamp_confidence,
    clamp_urgency,
    coerce_string_list,
    is_number,
)

__all__ = [
    "Classification",
    "FALLBACK_CLASSIFICATION",
    "ClassificationValidator",
    "ClassificationPromptBuilder",
    "clamp_confidence",
    "clamp_urgency",
    "coerce_string_list",
    "is_number",
]
