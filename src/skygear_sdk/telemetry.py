"""Tracing and structured logging for the Skygear SDK.

Every public client operation runs in a ``skygear.<operation>`` span and
every physical exchange in a child ``http_request`` span. SDK log events
are rendered as JSON by structlog and emitted through the stdlib logger
named after the service, so applications route them with ordinary
``logging`` configuration. The global structlog configuration is left
untouched.
"""

from __future__ import annotations

import functools
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Awaitable, Callable, ParamSpec, TypeVar

import structlog
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from .errors import SkygearError

if TYPE_CHECKING:
    from collections.abc import Generator

    from structlog.typing import FilteringBoundLogger

    from .config import TelemetryConfig

P = ParamSpec("P")
T = TypeVar("T")

INSTRUMENTATION_NAME = "skygear-sdk"
INSTRUMENTATION_VERSION = "0.1.0"

_tracer: trace.Tracer | None = None
_logger: FilteringBoundLogger | None = None
_applied: TelemetryConfig | None = None


def _build_logger(service_name: str, level: int) -> FilteringBoundLogger:
    return structlog.wrap_logger(
        logging.getLogger(service_name),
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
    ).bind(service=service_name)


def get_tracer() -> trace.Tracer:
    """Tracer in effect, created from the global provider on first use."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer(INSTRUMENTATION_NAME, INSTRUMENTATION_VERSION)
    return _tracer


def get_logger() -> FilteringBoundLogger:
    """SDK logger in effect; INFO and above until configured."""
    global _logger
    if _logger is None:
        _logger = _build_logger(INSTRUMENTATION_NAME, logging.INFO)
    return _logger


def configure_telemetry(config: TelemetryConfig) -> None:
    """Apply a telemetry configuration.

    ``SkygearClient`` applies ``ClientConfig.telemetry`` on construction;
    applying the configuration already in effect is a no-op. Disabled
    telemetry installs a no-op tracer and keeps only CRITICAL log events,
    which the SDK never emits.

    Args:
        config: Telemetry configuration.
    """
    global _tracer, _logger, _applied

    if config == _applied:
        return
    _applied = config

    if not config.enabled:
        _tracer = trace.NoOpTracer()
        _logger = _build_logger(config.service_name, logging.CRITICAL)
        return

    _tracer = trace.get_tracer(config.service_name, INSTRUMENTATION_VERSION)
    _logger = _build_logger(config.service_name, logging.getLevelName(config.log_level))


@contextmanager
def trace_operation(
    name: str,
    *,
    attributes: dict[str, Any] | None = None,
) -> Generator[trace.Span, None, None]:
    """Run a block inside a span.

    A ``SkygearError`` escaping the block also sets ``skygear.error.kind``
    and ``skygear.error.name`` on the span.
    """
    with get_tracer().start_as_current_span(name, attributes=attributes) as span:
        try:
            yield span
        except Exception as e:
            if isinstance(e, SkygearError):
                span.set_attribute("skygear.error.kind", e.kind)
                span.set_attribute("skygear.error.name", e.name)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise


def traced_async(
    name: str | None = None,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Decorator to trace an async function.

    Arguments are never recorded: auth operations receive passwords,
    codes and tokens.

    Args:
        name: Optional span name (defaults to ``skygear.<function name>``).

    Returns:
        Decorated async function.
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        span_name = name or f"skygear.{func.__name__}"

        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            with trace_operation(span_name):
                return await func(*args, **kwargs)

        return wrapper

    return decorator
