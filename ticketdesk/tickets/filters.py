"""List filters for ticket queries.

A :class:`TicketListFilters` instance holds at most one temporal filter mode:
either a single calendar ``date`` or a ``start_date``/``end_date`` range.
:func:`resolve_created_at_bounds` maps it to a half-open ``created_at``
window ``[lower, upper)`` expressed as timezone-aware datetimes.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass

from .errors import TicketValidationError
from .state import TicketStatus

DEFAULT_LIMIT = 10
DEFAULT_OFFSET = 0


@dataclass(slots=True, frozen=True)
class CreatedAtBounds:
    """Half-open ``created_at`` window; ``None`` means unbounded."""

    lower: dt.datetime | None = None
    upper: dt.datetime | None = None

    def contains(self, value: dt.datetime) -> bool:
        if self.lower is not None and value < self.lower:
            return False
        if self.upper is not None and value >= self.upper:
            return False
        return True


@dataclass(slots=True, frozen=True)
class TicketListFilters:
    """Pagination and optional filters accepted by the list operation."""

    limit: int = DEFAULT_LIMIT
    offset: int = DEFAULT_OFFSET
    date: dt.date | None = None
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    status: TicketStatus | None = None

    def validate(self) -> None:
        if self.limit < 1:
            raise TicketValidationError("limit must be a positive integer")
        if self.offset < 0:
            raise TicketValidationError("offset must not be negative")
        if self.date is not None and (self.start_date is not None or self.end_date is not None):
            raise TicketValidationError("date cannot be combined with startDate or endDate")


def start_of_day(day: dt.date, tz: dt.tzinfo | None = None) -> dt.datetime:
    """Return local midnight of ``day``.

    Without ``tz`` the server's local timezone is used.
    """

    midnight = dt.datetime.combine(day, dt.time.min)
    if tz is None:
        return midnight.astimezone()
    return midnight.replace(tzinfo=tz)


def resolve_created_at_bounds(filters: TicketListFilters, tz: dt.tzinfo | None = None) -> CreatedAtBounds:
    # Calendar days are added on the date, not as 24 hours, so DST shifts keep
    # the window aligned on midnights.
    if filters.date is not None:
        return CreatedAtBounds(
            lower=start_of_day(filters.date, tz),
            upper=start_of_day(filters.date + dt.timedelta(days=1), tz),
        )

    lower = start_of_day(filters.start_date, tz) if filters.start_date is not None else None
    upper = start_of_day(filters.end_date + dt.timedelta(days=1), tz) if filters.end_date is not None else None
    return CreatedAtBounds(lower=lower, upper=upper)
