"""Base classes for domain errors.

Services raise subclasses of these; the API layer maps them to HTTP
statuses (404, 422, 409).
"""

from __future__ import annotations


class NotFoundError(LookupError):
    """A referenced record does not exist."""


class DomainValidationError(ValueError):
    """Input was rejected before any record was created or changed."""


class ConflictError(Exception):
    """The request is well-formed but conflicts with the current state."""
