"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ValidationException(ApplicationException):
    """Exception for validation errors."""


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class ExternalServiceException(ApplicationException):
    """Base exception for external service failures."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class LLMException(ExternalServiceException):
    """Exception for LLM API failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("LLM Service", message, details)


# ========== Classification Conditions (recovered locally) ==========

class ClassificationUnavailable(LLMException):
    """
    Inference call failed, timed out, or returned an unparsable body.

    Never reaches API callers: services substitute a fallback value.
    """


class ClassificationValidationFailed(ValidationException):
    """Inference output parsed but does not satisfy the output contract."""


# ========== Case / Escalation Conditions (surfaced) ==========

class CaseNotFoundException(ResourceNotFoundException):
    """Raised when a case does not exist (or is outside the lookup filters)."""

    def __init__(self, case_id: str):
        super().__init__("Case", case_id)


class AlreadyEscalatedException(DomainException):
    """Raised when escalating a case that is already escalated."""

    def __init__(self, case_id: str):
        self.case_id = case_id
        super().__init__("Case is already escalated", {"case_id": case_id})


class InvalidCaseStateException(DomainException):
    """Raised when the case status does not allow the requested transition."""

    def __init__(self, case_id: str, status: str):
        self.case_id = case_id
        self.status = status
        super().__init__(
            "Cannot escalate closed or completed case",
            {"case_id": case_id, "status": status}
        )


class ConcurrentCaseUpdateException(DomainException):
    """Raised when a conditional case write loses against a concurrent writer."""

    def __init__(self, case_id: str):
        self.case_id = case_id
        super().__init__(
            "Case was modified concurrently, retry the escalation",
            {"case_id": case_id}
        )


class EscalationDeniedException(DomainException):
    """Raised when the escalation policy rejects an escalation request."""

    def __init__(self, case_id: str, recommendation: str, confidence: float):
        self.case_id = case_id
        self.recommendation = recommendation
        self.confidence = confidence
        self.confidence_percent = f"{confidence * 100:.1f}%"
        super().__init__(
            f"AI analysis advises against escalation: {recommendation}. "
            f"Confidence: {self.confidence_percent}",
            {
                "case_id": case_id,
                "recommendation": recommendation,
                "confidence": confidence,
                "confidence_percent": self.confidence_percent,
            }
        )


class AuditWriteFailedException(RepositoryException):
    """Raised when a decision record cannot be written."""

    def __init__(self, kind: str, case_id: Optional[str], error: str):
        self.kind = kind
        self.case_id = case_id
        super().__init__(
            f"Failed to write {kind} decision record: {error}",
            {"kind": kind, "case_id": case_id}
        )
