"""
Core Module
============

Shared core utilities and abstractions used across the application.

This module contains framework-agnostic code that defines the fundamental
building blocks of the system.
"""

from case_escalation.core.exceptions import (
    ApplicationException,
    DomainException,
    RepositoryException,
    ValidationException,
    ResourceNotFoundException,
    ConfigurationException,
    ExternalServiceException,
    LLMException,
    ClassificationUnavailable,
    ClassificationValidationFailed,
    CaseNotFoundException,
    AlreadyEscalatedException,
    InvalidCaseStateException,
    ConcurrentCaseUpdateException,
    EscalationDeniedException,
    AuditWriteFailedException,
)

__all__ = [
    "ApplicationException",
    "DomainException",
    "RepositoryException",
    "ValidationException",
    "ResourceNotFoundException",
    "ConfigurationException",
    "ExternalServiceException",
    "LLMException",
    "ClassificationUnavailable",
    "ClassificationValidationFailed",
    "CaseNotFoundException",
    "AlreadyEscalatedException",
    "InvalidCaseStateException",
    "ConcurrentCaseUpdateException",
    "EscalationDeniedException",
    "AuditWriteFailedException",
]
