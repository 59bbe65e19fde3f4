"""Planner exception hierarchy."""
from __future__ import annotations


class PlannerError(Exception):
    """Base class for failures raised inside the planner."""


class NoSlotAvailableError(PlannerError):
    """Working hours were exhausted before a free slot of the requested length was found."""

    def __init__(self, duration_minutes: int, message: str | None = None) -> None:
        super().__init__(message or f"No free {duration_minutes}-minute slot left in working hours")
        self.duration_minutes = duration_minutes


class CalendarGatewayError(PlannerError):
    """A calendar create/list/delete call failed."""

    def __init__(self, operation: str, cause: BaseException | None = None) -> None:
        detail = f": {cause}" if cause else ""
        super().__init__(f"Calendar {operation} failed{detail}")
        self.operation = operation
        self.cause = cause


class ConflictDetectedLateError(PlannerError):
    """A slot that was free at search time conflicts by the time it is committed."""

    def __init__(self, conflicts: tuple[str, ...]) -> None:
        super().__init__(f"Slot now conflicts with {', '.join(conflicts)}")
        self.conflicts = conflicts


class ConfigurationError(PlannerError):
    """Preferences could not be turned into a valid planner configuration."""
