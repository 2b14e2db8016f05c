"""
Triage Interfaces Layer
========================

Interface adapters (controllers) for the incident triage module.

Contains:
- Controllers: FastAPI route handlers
"""

from case_escalation.triage.interfaces.controllers import triage_router

__all__ = ["triage_router"]
