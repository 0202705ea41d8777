"""Logging and tracing setup for the Ticket Desk API.

Application modules log under the ``ticketdesk`` hierarchy
(``ticketdesk.tickets.service``, ``ticketdesk.api.errors``...). The root
level comes from ``LOG_LEVEL``; ``LOG_LEVELS`` overrides single loggers,
including third-party ones such as ``asyncpg`` or ``uvicorn.access``.
"""

from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from ticketdesk.core.config import Settings

APP_LOGGER = "ticketdesk"

_TRACER_INITIALISED = False


def _level(name: str, default: int = logging.INFO) -> int:
    value = logging.getLevelName(name.strip().upper())
    return value if isinstance(value, int) else default


def build_logging_config(settings: Settings) -> dict[str, Any]:
    """Return the ``dictConfig`` mapping for the service loggers."""

    root_level = _level(settings.log_level)
    loggers: dict[str, dict[str, Any]] = {
        APP_LOGGER: {"level": root_level},
    }
    for name, level in settings.log_levels.items():
        loggers[name] = {"level": _level(level, root_level)}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": settings.log_format},
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
            }
        },
        "loggers": loggers,
        "root": {
            "handlers": ["default"],
            "level": root_level,
        },
    }


def configure_logging(settings: Settings) -> logging.Logger:
    """Configure logging and return the ``ticketdesk`` application logger."""

    dictConfig(build_logging_config(settings))
    logger = logging.getLogger(APP_LOGGER)
    logger.debug("Logging configured for %s (%s)", settings.app_name, settings.environment)
    return logger


def _parse_headers(header_string: str | None) -> dict[str, str]:
    headers: dict[str, str] = {}
    for item in (header_string or "").split(","):
        key, sep, value = item.partition("=")
        if sep and key.strip():
            headers[key.strip()] = value.strip()
    return headers


def build_resource(settings: Settings) -> Resource:
    """Describe this service for exported spans."""

    return Resource.create(
        {
            "service.name": settings.otel_service_name,
            "service.version": settings.app_version,
            "deployment.environment": settings.environment,
        }
    )


def init_tracer(settings: Settings) -> TracerProvider | None:
    """Install an OTLP exporting tracer provider when ``OTEL_ENABLED`` is set.

    Spans opened by ``TicketService`` go nowhere until this runs.
    """

    global _TRACER_INITIALISED

    if _TRACER_INITIALISED or not settings.otel_enabled:
        return None

    exporter_kwargs: dict[str, Any] = {}
    if settings.otel_exporter_otlp_endpoint:
        exporter_kwargs["endpoint"] = settings.otel_exporter_otlp_endpoint
    headers = _parse_headers(settings.otel_exporter_otlp_headers)
    if headers:
        exporter_kwargs["headers"] = headers

    provider = TracerProvider(resource=build_resource(settings))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(**exporter_kwargs)))
    trace.set_tracer_provider(provider)
    _TRACER_INITIALISED = True
    logging.getLogger(APP_LOGGER).info("Tracing enabled for %s", settings.otel_service_name)
    return provider


def shutdown_tracer(provider: TracerProvider | None) -> None:
    global _TRACER_INITIALISED

    if provider is None:
        return
    provider.shutdown()
    _TRACER_INITIALISED = False
