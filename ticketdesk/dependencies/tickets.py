from __future__ import annotations

from fastapi import HTTPException, Request

from ticketdesk.services.postgres import PostgresDatabase
from ticketdesk.tickets.service import TicketService


async def get_ticket_service(request: Request) -> TicketService:
    service = getattr(request.app.state, "ticket_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Ticket service is not configured")
    return service


async def get_database(request: Request) -> PostgresDatabase:
    database = getattr(request.app.state, "database", None)
    if database is None:
        raise HTTPException(status_code=503, detail="Database is not configured")
    return database
