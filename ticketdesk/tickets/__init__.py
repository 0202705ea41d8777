"""Ticket domain models and services."""

from .errors import (
    InvalidTicketTransitionError,
    NothingToCancelError,
    TicketNotFoundError,
    TicketServiceError,
    TicketValidationError,
)
from .filters import CreatedAtBounds, TicketListFilters, resolve_created_at_bounds
from .models import Ticket
from .repository import TicketRepository
from .service import TicketService
from .state import TicketStateMachine, TicketStatus

__all__ = [
    "CreatedAtBounds",
    "InvalidTicketTransitionError",
    "NothingToCancelError",
    "Ticket",
    "TicketListFilters",
    "TicketNotFoundError",
    "TicketRepository",
    "TicketService",
    "TicketServiceError",
    "TicketStateMachine",
    "TicketStatus",
    "TicketValidationError",
    "resolve_created_at_bounds",
]
