from __future__ import annotations

import logging
from typing import Annotated

import asyncpg
from fastapi import APIRouter, Depends, HTTPException

from ticketdesk.core.config import Settings, get_settings
from ticketdesk.dependencies.tickets import get_database
from ticketdesk.services.postgres import PostgresDatabase

logger = logging.getLogger(__name__)

root_router = APIRouter(tags=["health"])
router = APIRouter(prefix="/ping", tags=["health"])


@root_router.get("/", summary="Service greeting")
async def root(settings: Annotated[Settings, Depends(get_settings)]) -> dict[str, str]:
    return {"status": "success", "message": f"{settings.app_name} {settings.app_version}"}


@router.get("", summary="Public liveness check")
async def ping() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/database", summary="Database readiness check")
async def ping_database(database: Annotated[PostgresDatabase, Depends(get_database)]) -> dict[str, str]:
    try:
        await database.test_connection()
    except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as exc:
        logger.warning("Database connection check failed: %s", exc)
        raise HTTPException(status_code=503, detail="Database is unavailable") from exc
    return {"status": "ok"}
