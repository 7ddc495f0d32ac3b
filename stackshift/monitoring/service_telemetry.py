"""OpenTelemetry instrumentation for job and conversion operations."""

import asyncio
import functools
import inspect
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Span, Status, StatusCode

from stackshift.logging import get_logger

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

# Parameter names mapped to OTEL attribute names
ATTRIBUTE_MAPPING = {
    "job_id": "job.id",
    "project_id": "project.id",
    "plan_id": "plan.id",
    "task_id": "task.id",
    "batch_index": "conversion.batch_index",
    "batch_size": "conversion.batch_size",
    "task_count": "conversion.task_count",
}


def _set_attributes(span: Span, attributes: dict[str, Any], mapped_only: bool) -> None:
    for name, value in attributes.items():
        if value is None:
            continue
        if name in ATTRIBUTE_MAPPING:
            span.set_attribute(ATTRIBUTE_MAPPING[name], str(value))
        elif not mapped_only:
            span.set_attribute(name, str(value))


def _bound_arguments(func: Callable[..., Any], args: tuple, kwargs: dict) -> dict[str, Any]:
    try:
        bound = inspect.signature(func).bind_partial(*args, **kwargs)
    except TypeError:
        return dict(kwargs)
    return dict(bound.arguments)


def trace_service_method(span_name: str) -> Callable[[F], F]:
    """
    Decorator to add OpenTelemetry tracing to service methods.

    Known parameter names (job_id, project_id, ...) are recorded as span
    attributes whether passed positionally or by keyword.

    Example:
        @trace_service_method("job.start")
        async def start(self, job_id: str) -> Job:
            ...
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            tracer = trace.get_tracer(__name__)
            with tracer.start_as_current_span(span_name) as span:
                span.set_attribute("service.method", span_name)
                _set_attributes(span, _bound_arguments(func, args, kwargs), mapped_only=True)
                try:
                    result = func(*args, **kwargs)
                    span.set_status(Status(StatusCode.OK))
                    return result
                except Exception as e:
                    span.record_exception(e)
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    raise

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            tracer = trace.get_tracer(__name__)
            with tracer.start_as_current_span(span_name) as span:
                span.set_attribute("service.method", span_name)
                _set_attributes(span, _bound_arguments(func, args, kwargs), mapped_only=True)
                try:
                    result = await func(*args, **kwargs)
                    span.set_status(Status(StatusCode.OK))
                    return result
                except Exception as e:
                    span.record_exception(e)
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    raise

        if asyncio.iscoroutinefunction(func):
            return async_wrapper  # type: ignore
        return sync_wrapper  # type: ignore

    return decorator


@contextmanager
def create_service_span(span_name: str, **attributes: Any) -> Iterator[Optional[Span]]:
    """
    Context manager for phase-level spans inside a service method.

    Example:
        with create_service_span("conversion.batch", job_id=job_id, batch_index=2):
            await run_batch(batch)
    """
    tracer = trace.get_tracer(__name__)
    with tracer.start_as_current_span(span_name) as span:
        _set_attributes(span, attributes, mapped_only=False)
        try:
            yield span
            span.set_status(Status(StatusCode.OK))
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            raise
