from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from .state import TicketStatus


@dataclass(slots=True)
class Ticket:
    """Aggregate representing a tracked ticket."""

    id: UUID
    title: str
    content: str
    status: TicketStatus
    created_at: datetime
    updated_at: datetime
    comment: str | None = None
