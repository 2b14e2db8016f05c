"""
Audit Module
============

Bounded Context for the decision audit trail.

Responsibilities:
- Append one decision record per classification and per escalation decision
- Serve classification history and statistics from the recorded decisions
"""

__version__ = "1.0.0"
