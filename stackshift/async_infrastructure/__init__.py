"""Async coordination primitives for stackshift."""

from stackshift.async_infrastructure.gate import ExecutionGate

__all__ = ["ExecutionGate"]
