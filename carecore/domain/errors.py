"""
Exception hierarchy for the point-of-care engine.

Every fault carries a machine-readable code and structured details so the
presentation shell can render it without parsing messages.
"""

from typing import Any


class CareCoreError(Exception):
    """Base exception for all engine faults."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for the presentation shell."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class InvalidInputError(CareCoreError, ValueError):
    """Malformed or out-of-domain input handed to a pure function."""

    def __init__(self, message: str, field: str = "unknown", value: Any = None) -> None:
        super().__init__(
            message=message,
            code="INVALID_INPUT",
            details={"field": field, "value": value},
        )
        self.field = field
        self.value = value


class CriticalValueError(CareCoreError):
    """A vital sign breached a safety bound. Blocks the encounter until acknowledged."""

    def __init__(self, resident_id: str, violations: list[Any]) -> None:
        summary = "; ".join(str(v) for v in violations)
        super().__init__(
            message=f"Critical vital sign for resident {resident_id}: {summary}",
            code="CRITICAL_VALUE",
            details={
                "resident_id": resident_id,
                "violations": [
                    v.model_dump() if hasattr(v, "model_dump") else str(v) for v in violations
                ],
            },
        )
        self.resident_id = resident_id
        self.violations = violations


class SignalLostError(CareCoreError):
    """The sensor reported no perfusion; the reading cannot be used."""

    def __init__(self, resident_id: str) -> None:
        super().__init__(
            message=f"No finger detected for resident {resident_id}; check the clip and re-measure",
            code="SIGNAL_LOST",
            details={"resident_id": resident_id},
        )
        self.resident_id = resident_id


class WorkflowStateError(CareCoreError, RuntimeError):
    """An operation was requested in a state that does not allow it."""

    def __init__(self, operation: str, state: str, reason: str | None = None) -> None:
        message = f"Cannot {operation} while workflow is {state}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message=message,
            code="WORKFLOW_STATE",
            details={"operation": operation, "state": state},
        )
        self.operation = operation
        self.state = state


class ResidentNotFoundError(CareCoreError, LookupError):
    """The repository has no resident with the given id."""

    def __init__(self, resident_id: str) -> None:
        super().__init__(
            message=f"Unknown resident: {resident_id}",
            code="RESIDENT_NOT_FOUND",
            details={"resident_id": resident_id},
        )
        self.resident_id = resident_id
