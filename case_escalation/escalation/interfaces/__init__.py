"""
Escalation Interfaces Layer
===========================

Interface adapters (controllers) for case intake and escalation.

Contains:
- Controllers: FastAPI route handlers
"""

from case_escalation.escalation.interfaces.controllers import cases_router

__all__ = ["cases_router"]
