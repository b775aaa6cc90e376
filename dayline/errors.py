"""
Error types for synthesis.

Only malformed input is raised. Missing evidence, ambiguous places and
missing history are resolved locally and recorded as flags on the output.
"""

from __future__ import annotations

from typing import Any


class MalformedInputError(ValueError):
    """Input violates the ordering/duration contract; the whole batch is rejected."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        return {"error": str(self), "type": "malformed_input", "context": self.context}
