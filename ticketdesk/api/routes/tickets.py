from __future__ import annotations

import datetime as dt
from typing import Annotated, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ticketdesk.core.config import Settings, get_settings
from ticketdesk.dependencies.tickets import get_ticket_service
from ticketdesk.tickets.filters import DEFAULT_OFFSET, TicketListFilters
from ticketdesk.tickets.models import Ticket
from ticketdesk.tickets.service import (
    InvalidTicketTransitionError,
    NothingToCancelError,
    TicketNotFoundError,
    TicketService,
    TicketValidationError,
)
from ticketdesk.tickets.state import TicketStatus

router = APIRouter(prefix="/api/tickets", tags=["tickets"])


class TicketCreateRequest(BaseModel):
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)


class TicketCommentRequest(BaseModel):
    comment: str = Field(..., min_length=1)


class TicketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: UUID
    title: str
    content: str
    comment: str | None
    status: TicketStatus
    created_at: dt.datetime
    updated_at: dt.datetime


class TicketEnvelope(BaseModel):
    status: Literal["success"] = "success"
    data: TicketResponse


class TicketListEnvelope(BaseModel):
    status: Literal["success"] = "success"
    data: list[TicketResponse]


class MessageEnvelope(BaseModel):
    status: Literal["success"] = "success"
    message: str


TicketServiceDep = Annotated[TicketService, Depends(get_ticket_service)]


def _to_response(ticket: Ticket) -> TicketResponse:
    return TicketResponse.model_validate(ticket)


def _parse_ticket_id(raw: str) -> UUID:
    try:
        return UUID(raw)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=f"Ticket {raw} not found") from exc


@router.post("", response_model=TicketEnvelope, status_code=status.HTTP_201_CREATED)
async def create_ticket(payload: TicketCreateRequest, service: TicketServiceDep) -> TicketEnvelope:
    ticket = await service.create_ticket(title=payload.title, content=payload.content)
    return TicketEnvelope(data=_to_response(ticket))


@router.get("", response_model=TicketListEnvelope)
async def list_tickets(
    service: TicketServiceDep,
    settings: Annotated[Settings, Depends(get_settings)],
    limit: int | None = Query(default=None, ge=1),
    offset: int = Query(default=DEFAULT_OFFSET, ge=0),
    date: dt.date | None = Query(default=None),
    start_date: dt.date | None = Query(default=None, alias="startDate"),
    end_date: dt.date | None = Query(default=None, alias="endDate"),
    status_filter: TicketStatus | None = Query(default=None, alias="status"),
) -> TicketListEnvelope:
    filters = TicketListFilters(
        limit=settings.default_page_size if limit is None else limit,
        offset=offset,
        date=date,
        start_date=start_date,
        end_date=end_date,
        status=status_filter,
    )
    try:
        filters.validate()
    except TicketValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    tickets = await service.list_tickets(filters)
    return TicketListEnvelope(data=[_to_response(ticket) for ticket in tickets])


@router.put("/cancel-all", response_model=MessageEnvelope)
async def cancel_all_tickets(payload: TicketCommentRequest, service: TicketServiceDep) -> MessageEnvelope:
    try:
        cancelled = await service.cancel_all_in_progress(comment=payload.comment)
    except NothingToCancelError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return MessageEnvelope(message=f"Cancelled tickets: {cancelled}")


@router.put("/start/{ticket_id}", response_model=TicketEnvelope)
async def start_ticket(ticket_id: str, service: TicketServiceDep) -> TicketEnvelope:
    try:
        ticket = await service.start_ticket(_parse_ticket_id(ticket_id))
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except InvalidTicketTransitionError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return TicketEnvelope(data=_to_response(ticket))


@router.put("/complete/{ticket_id}", response_model=TicketEnvelope)
async def complete_ticket(ticket_id: str, payload: TicketCommentRequest, service: TicketServiceDep) -> TicketEnvelope:
    try:
        ticket = await service.complete_ticket(_parse_ticket_id(ticket_id), comment=payload.comment)
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except InvalidTicketTransitionError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return TicketEnvelope(data=_to_response(ticket))


@router.put("/cancel/{ticket_id}", response_model=TicketEnvelope)
async def cancel_ticket(ticket_id: str, payload: TicketCommentRequest, service: TicketServiceDep) -> TicketEnvelope:
    try:
        ticket = await service.cancel_ticket(_parse_ticket_id(ticket_id), comment=payload.comment)
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return TicketEnvelope(data=_to_response(ticket))


@router.get("/{ticket_id}", response_model=TicketEnvelope)
async def get_ticket(ticket_id: str, service: TicketServiceDep) -> TicketEnvelope:
    try:
        ticket = await service.get_ticket(_parse_ticket_id(ticket_id))
    except TicketNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return TicketEnvelope(data=_to_response(ticket))
