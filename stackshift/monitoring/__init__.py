"""Telemetry helpers for stackshift."""

from stackshift.monitoring.service_telemetry import (
    create_service_span,
    trace_service_method,
)

__all__ = ["create_service_span", "trace_service_method"]
