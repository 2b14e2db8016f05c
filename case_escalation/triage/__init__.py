"""
Triage Module
=============

Bounded Context for incident classification.

Responsibilities:
- Classify free-text incident reports by category, tier and urgency
- Validate inference output and substitute a fallback on failure
- Reclassify existing cases
- Record every classification decision for audit
"""

__version__ = "1.0.0"
