"""Business logic services for document matching."""

__all__ = ["DocumentMatchingService"]

from .matching_service import DocumentMatchingService
