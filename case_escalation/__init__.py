"""
Case Escalation Engine
======================

Classification and escalation decision engine for incident cases.
"""

__version__ = "1.0.0"
