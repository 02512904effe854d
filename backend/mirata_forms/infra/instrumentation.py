"""Logfire and OpenTelemetry instrumentation for mirata-forms.

Service calls, syncs and submissions are recorded as logfire spans and
events. Image payloads and service credentials are scrubbed before export.

(c) Mike Casale 2025.
Licensed under the MIT License.
"""

from __future__ import annotations as _annotations

# Standard library (alphabetical)
import asyncio
import os
from contextlib import contextmanager
from functools import wraps
from typing import TYPE_CHECKING, Any, Final, Literal, ParamSpec, TypeVar, cast

# Third-party (alphabetical)
import logfire
from opentelemetry import trace
from opentelemetry.trace import Span, Status, StatusCode

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterator

P = ParamSpec("P")
"""Parameters of a traced callable."""

R = TypeVar("R")
"""Return type of a traced callable."""

__all__ = ("configure_instrumentation", "get_logger", "traced", "operation_span", "Metrics")

# Attribute names whose values never leave the device
_SCRUBBED: Final[tuple[str, ...]] = ("dataURL", "image", "password")
_MAX_ATTRIBUTE: Final[int] = 500


class Metrics:
    """Domain events recorded as logfire info logs."""

    @staticmethod
    def record_action(action: str, entity_set: str, duration_ms: float, success: bool) -> None:
        """Record one action sent to the remote service."""
        logfire.info("odata_action", action=action, entity_set=entity_set, duration_ms=duration_ms, success=success)

    @staticmethod
    def record_submission(submission_id: str, version: int, created: bool, image_count: int) -> None:
        logfire.info("submission", submission_id=submission_id, version=version, created=created, images=image_count)

    @staticmethod
    def record_sync(mode: str, uploaded: int, downloaded: int, duration_ms: float) -> None:
        logfire.info("forms_sync", mode=mode, uploaded=uploaded, downloaded=downloaded, duration_ms=duration_ms)


def configure_instrumentation(
    *,
    service_name: str = "mirata-forms",
    environment: str | None = None,
    send_to_logfire: bool | Literal["if-token-present"] | None = "if-token-present",
) -> None:
    """Configure logfire once per process.

    Args:
        service_name: Service name attached to every span.
        environment: Deployment environment; defaults to ``$ENVIRONMENT``.
        send_to_logfire: Whether to export to the Logfire backend.
    """
    logfire.configure(
        service_name=service_name,
        environment=environment or os.getenv("ENVIRONMENT", "development"),
        send_to_logfire=send_to_logfire,
        scrubbing=logfire.ScrubbingOptions(extra_patterns=list(_SCRUBBED)),
    )
    logfire.instrument_httpx()
    logfire.instrument_pydantic()


def get_logger(name: str) -> logfire.Logfire:
    """Logfire instance tagged with ``component:<name>``.

    Args:
        name: Dotted component name, e.g. ``'services.sync'``.
    """
    return logfire.with_settings(tags=[f"component:{name}"])


# =============================================================================
# Span Helpers
# =============================================================================
def traced(
    name: str | None = None, *, record_args: bool = True, record_result: bool = True
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Wrap a function or coroutine function in a logfire span.

    Failures are recorded on the span and re-raised.

    Example:
        >>> @traced('data_tables.row', record_result=False)
        ... async def get_row(table_name: str, key: str) -> dict | None: ...
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        span_name = name or f"{func.__module__}.{func.__qualname__}"

        @contextmanager
        def span_for(args: tuple[Any, ...], kwargs: dict[str, Any]) -> Iterator[logfire.LogfireSpan]:
            attributes = {"args": _describe_call(args, kwargs)} if record_args else {}
            with logfire.span(span_name, **attributes) as span:
                try:
                    yield span
                except Exception as exc:
                    span.set_attribute("error_type", type(exc).__name__)
                    span.set_attribute("error", _truncate(str(exc)))
                    raise

        if asyncio.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
                with span_for(args, kwargs) as span:
                    result = await cast("Callable[P, Awaitable[R]]", func)(*args, **kwargs)
                    if record_result:
                        span.set_attribute("result", _truncate(repr(result)))
                    return result

            return cast("Callable[P, R]", async_wrapper)

        @wraps(func)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            with span_for(args, kwargs) as span:
                result = func(*args, **kwargs)
                if record_result:
                    span.set_attribute("result", _truncate(repr(result)))
                return result

        return sync_wrapper

    return decorator


@contextmanager
def operation_span(name: str, **attributes: Any) -> Iterator[Span]:
    """OpenTelemetry span whose status reflects the outcome of the block.

    Example:
        >>> with operation_span('offline.upload', pending=3) as span:
        ...     span.set_attribute('uploaded', 3)
    """
    tracer = trace.get_tracer("mirata-forms")
    with tracer.start_as_current_span(name) as span:
        span.set_attributes({key: _attribute(value) for key, value in attributes.items()})
        try:
            yield span
        except Exception as exc:
            span.set_status(Status(StatusCode.ERROR, str(exc)))
            span.record_exception(exc)
            raise
        span.set_status(Status(StatusCode.OK))


def _describe_call(args: tuple[Any, ...], kwargs: dict[str, Any]) -> str:
    # Bound methods carry self first; it adds nothing to the span
    shown = args[1:] if args and hasattr(args[0], "__dict__") else args
    parts = [repr(arg)[:100] for arg in shown]
    parts.extend(f"{key}={value!r}"[:100] for key, value in kwargs.items())
    return _truncate(", ".join(parts))


def _truncate(text: str) -> str:
    return text[:_MAX_ATTRIBUTE]


def _attribute(value: Any) -> str | int | float | bool:
    if isinstance(value, (str, int, float, bool)):
        return value
    return _truncate(str(value))
