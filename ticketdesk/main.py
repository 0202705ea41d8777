from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from ticketdesk.api.errors import register_exception_handlers
from ticketdesk.api.routes import ping, tickets
from ticketdesk.core.config import get_settings
from ticketdesk.core.logging import configure_logging, init_tracer, shutdown_tracer
from ticketdesk.services.postgres import PostgresDatabase
from ticketdesk.tickets.repository import TicketRepository
from ticketdesk.tickets.service import TicketService


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings = get_settings()
    logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)

    database = PostgresDatabase(
        dsn=settings.postgres_dsn,
        min_size=settings.postgres_pool_min_size,
        max_size=settings.postgres_pool_max_size,
    )
    app.state.logger = logger
    app.state.tracer_provider = tracer_provider
    app.state.database = database
    app.state.ticket_service = None
    try:
        pool = await database.connect()
        service = TicketService(TicketRepository(pool), timezone=settings.ticket_tzinfo())
        await service.ensure_schema()
        app.state.ticket_service = service
        logger.info("Ticket service ready")
    except Exception:  # service initialisation is best effort; routes answer 503
        logger.exception("Ticket service initialisation failed")
        await database.close()
    try:
        yield
    finally:
        await database.close()
        shutdown_tracer(tracer_provider)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    register_exception_handlers(app)
    app.include_router(ping.root_router)
    app.include_router(ping.router)
    app.include_router(tickets.router)
    return app


app = create_app()


def run() -> None:  # pragma: no cover - process entry point
    settings = get_settings()
    uvicorn.run(app, host="0.0.0.0", port=settings.app_port)


if __name__ == "__main__":  # pragma: no cover
    run()
