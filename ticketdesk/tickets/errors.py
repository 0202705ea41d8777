from __future__ import annotations


class TicketServiceError(RuntimeError):
    """Base error for ticket service issues."""


class TicketValidationError(TicketServiceError):
    """Raised when a request carries missing or conflicting values."""


class TicketNotFoundError(TicketServiceError):
    """Raised when a ticket could not be located."""


class InvalidTicketTransitionError(TicketServiceError):
    """Raised when attempting to transition to an invalid state."""


class NothingToCancelError(TicketServiceError):
    """Raised when a bulk cancel finds no ticket in progress."""
