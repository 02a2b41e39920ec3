"""Logging and tracing setup for the support API."""

from __future__ import annotations

import logging
from logging.config import dictConfig

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from app.core.config import Settings

# Driver loggers that flood the stream at INFO.
_QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "asyncio")


def parse_pairs(raw: str | None) -> dict[str, str]:
    """Split ``"a=1,b=2"`` into a dict, skipping entries without a key."""

    pairs: dict[str, str] = {}
    for item in (raw or "").split(","):
        key, sep, value = item.partition("=")
        if sep and key.strip():
            pairs[key.strip()] = value.strip()
    return pairs


def _level(name: str, default: int) -> int:
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else default


def logger_levels(settings: Settings) -> dict[str, int]:
    """Per-logger levels: quiet drivers first, then ``settings.log_levels`` overrides."""

    root = _level(settings.log_level, logging.INFO)
    quiet = root if root <= logging.DEBUG else max(root, logging.WARNING)
    levels = dict.fromkeys(_QUIET_LOGGERS, quiet)
    for name, value in parse_pairs(settings.log_levels).items():
        levels[name] = _level(value, root)
    return levels


def configure_logging(settings: Settings) -> logging.Logger:
    root = _level(settings.log_level, logging.INFO)
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": {"format": settings.log_format}},
            "handlers": {
                "default": {"class": "logging.StreamHandler", "formatter": "default"},
            },
            "loggers": {name: {"level": level} for name, level in logger_levels(settings).items()},
            "root": {"handlers": ["default"], "level": root},
        }
    )
    return logging.getLogger(settings.app_name)


def init_tracer(settings: Settings) -> TracerProvider | None:
    """Install an OTLP-exporting tracer provider when tracing is enabled.

    OpenTelemetry accepts a global provider only once per process, so a second
    call while an SDK provider is installed is a no-op.
    """

    if not settings.otel_enabled or isinstance(trace.get_tracer_provider(), TracerProvider):
        return None

    provider = TracerProvider(
        resource=Resource(
            attributes={
                "service.name": settings.otel_service_name,
                "deployment.environment": settings.environment,
            }
        )
    )
    exporter = OTLPSpanExporter(
        endpoint=settings.otel_exporter_otlp_endpoint or None,
        headers=parse_pairs(settings.otel_exporter_otlp_headers) or None,
    )
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    return provider


def shutdown_tracer(provider: TracerProvider | None) -> None:
    if provider is not None:
        provider.shutdown()
