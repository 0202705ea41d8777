from __future__ import annotations

from enum import Enum

from .errors import InvalidTicketTransitionError


class TicketStatus(str, Enum):
    """Supported states for a ticket's lifecycle."""

    NEW = "NEW"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class TicketStateMachine:
    """Validate ticket lifecycle transitions.

    ``CANCELLED`` is reachable from every state, terminal ones included, since
    cancelling a ticket carries no status precondition.
    """

    _TRANSITIONS: dict[TicketStatus, set[TicketStatus]] = {
        TicketStatus.NEW: {TicketStatus.IN_PROGRESS, TicketStatus.CANCELLED},
        TicketStatus.IN_PROGRESS: {TicketStatus.COMPLETED, TicketStatus.CANCELLED},
        TicketStatus.COMPLETED: {TicketStatus.CANCELLED},
        TicketStatus.CANCELLED: {TicketStatus.CANCELLED},
    }

    _TERMINAL: frozenset[TicketStatus] = frozenset({TicketStatus.COMPLETED, TicketStatus.CANCELLED})

    @classmethod
    def initial_state(cls) -> TicketStatus:
        return TicketStatus.NEW

    @classmethod
    def is_terminal(cls, status: TicketStatus) -> bool:
        return status in cls._TERMINAL

    @classmethod
    def can_transition(cls, current: TicketStatus, new: TicketStatus) -> bool:
        return new in cls._TRANSITIONS.get(current, set())

    @classmethod
    def assert_transition(cls, current: TicketStatus, new: TicketStatus) -> None:
        if not cls.can_transition(current, new):
            raise InvalidTicketTransitionError(f"Cannot move ticket from {current.value} to {new.value}")
