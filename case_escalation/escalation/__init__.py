"""
Escalation Module
=================

Bounded Context for case intake and policy-gated escalation.

Responsibilities:
- Create cases classified from their description
- Analyze escalation requests with the inference service
- Apply the escalation policy and transition the case atomically
- Merge the escalation record into case metadata without clobbering
"""

__version__ = "1.0.0"
