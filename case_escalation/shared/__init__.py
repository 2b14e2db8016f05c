"""
Shared Kernel Module
====================

This module contains shared infrastructure used across all bounded contexts
(Triage, Escalation and Audit).

Architecture Pattern: Modular Monolith
- Each module (triage, escalation, audit) is a bounded context
- Shared kernel contains only generic infrastructure

DO NOT add classification or escalation business logic to the shared kernel.
"""

__version__ = "1.0.0"
