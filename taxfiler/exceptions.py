"""Exception hierarchy for TaxFiler.

Every error raised by the package derives from :class:`TaxFilerError` and
carries a structured ``context`` dict so it can be logged with structlog
without string parsing.

Expected matching outcomes (no candidate, duplicate attachment, score below
threshold) are returned as values, not raised. Exceptions are reserved for
invalid configuration and storage failures.

Usage:
    from taxfiler.exceptions import ConfigurationError, DatabaseError

    try:
        config.validate_or_raise()
    except ConfigurationError as e:
        logger.error("invalid_matching_config", error=str(e), context=e.context)
"""

from __future__ import annotations

from typing import Any


class TaxFilerError(Exception):
    """Base exception for all TaxFiler errors.

    Attributes:
        message: Human-readable error message
        context: Additional context for debugging (dict)
        original_error: Original exception if wrapped
    """

    def __init__(
        self,
        message: str,
        *,
        context: dict[str, Any] | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.original_error = original_error

    def __str__(self) -> str:
        """Format exception with context for logging."""
        base = self.message
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base = f"{base} ({ctx_str})"
        if self.original_error:
            base = f"{base} [caused by: {type(self.original_error).__name__}]"
        return base

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, context={self.context!r})"


# =============================================================================
# Validation & Configuration
# =============================================================================


class ValidationError(TaxFilerError):
    """Raised when an input value violates a constraint."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        constraint: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if field:
            context["field"] = field
        if value is not None:
            context["value"] = str(value)[:100]
        if constraint:
            context["constraint"] = constraint
        kwargs["context"] = context
        super().__init__(message, **kwargs)


class ConfigurationError(TaxFilerError):
    """Raised when the matching configuration is invalid.

    ``violations`` holds every message produced by the validation pass, so a
    caller can show all problems at once instead of fixing them one by one.
    """

    def __init__(
        self,
        message: str,
        *,
        setting: str | None = None,
        expected: str | None = None,
        violations: list[str] | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if setting:
            context["setting"] = setting
        if expected:
            context["expected"] = expected
        if violations:
            context["violation_count"] = len(violations)
        kwargs["context"] = context
        super().__init__(message, **kwargs)
        self.violations = list(violations or [])


# =============================================================================
# Database & Persistence
# =============================================================================


class DatabaseError(TaxFilerError):
    """Base class for storage-related errors."""


class RecordNotFoundError(DatabaseError):
    """Raised when a transaction or document cannot be found."""

    def __init__(
        self,
        message: str,
        *,
        entity_type: str | None = None,
        entity_id: int | str | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if entity_type:
            context["entity_type"] = entity_type
        if entity_id:
            context["entity_id"] = str(entity_id)
        kwargs["context"] = context
        super().__init__(message, **kwargs)


class DatabaseIntegrityError(DatabaseError):
    """Raised when database integrity constraints are violated."""


# =============================================================================
# Business Logic
# =============================================================================


class BusinessLogicError(TaxFilerError):
    """Base class for business rule violations."""


class AttachmentError(BusinessLogicError):
    """Raised when an attachment operation cannot be carried out."""

    def __init__(
        self,
        message: str,
        *,
        transaction_id: int | None = None,
        document_id: int | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if transaction_id is not None:
            context["transaction_id"] = transaction_id
        if document_id is not None:
            context["document_id"] = document_id
        kwargs["context"] = context
        super().__init__(message, **kwargs)


class DuplicateAttachmentError(AttachmentError):
    """Raised by strict callers when a (transaction, document) pair already exists.

    The attachment store itself reports duplicates as an ``AttachResult`` with
    status ``DUPLICATE``; this exception exists for callers that want to turn
    that signal into a hard failure via ``AttachResult.raise_for_status()``.
    """


# =============================================================================
# Utility Functions
# =============================================================================


def wrap_exception(
    error: Exception,
    message: str,
    *,
    exception_class: type[TaxFilerError] = TaxFilerError,
    **context: Any,
) -> TaxFilerError:
    """Wrap a third-party exception in the TaxFiler hierarchy.

    Args:
        error: Original exception to wrap
        message: Human-readable description
        exception_class: Which TaxFiler exception to use
        **context: Additional context to attach

    Returns:
        Wrapped exception with original error preserved

    Example:
        try:
            session.commit()
        except IntegrityError as e:
            raise wrap_exception(
                e,
                "Failed to attach document",
                exception_class=DatabaseIntegrityError,
                transaction_id=42,
            )
    """
    return exception_class(
        message,
        context=context,
        original_error=error,
    )


__all__ = [
    "TaxFilerError",
    "ValidationError",
    "ConfigurationError",
    "DatabaseError",
    "RecordNotFoundError",
    "DatabaseIntegrityError",
    "BusinessLogicError",
    "AttachmentError",
    "DuplicateAttachmentError",
    "wrap_exception",
]
