from __future__ import annotations

from enum import Enum

from ..schema import Method


class CallShape(Enum):
    """How a method travels over HTTP."""

    UNARY_IDEMPOTENT = "unary_idempotent"
    UNARY_MUTATING = "unary_mutating"
    STREAMING = "streaming"

    @property
    def entry_point(self) -> str:
        """Name of the runtime method a generated stub delegates to."""
        if self is CallShape.UNARY_IDEMPOTENT:
            return "call_unary_get"
        if self is CallShape.UNARY_MUTATING:
            return "call_unary_post"
        return "call_streaming"

    @property
    def is_streaming(self) -> bool:
        return self is CallShape.STREAMING


def classify(method: Method) -> CallShape:
    """Derive the call shape of a method.

    Server streaming takes precedence over the idempotency annotation.
    """
    if method.is_streaming:
        return CallShape.STREAMING
    if method.is_idempotent:
        return CallShape.UNARY_IDEMPOTENT
    return CallShape.UNARY_MUTATING
