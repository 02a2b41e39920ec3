from __future__ import annotations

from enum import Enum

from app.errors import ConflictError


class TicketStatus(str, Enum):
    """Supported states for a ticket's lifecycle."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class TicketStateMachine:
    """Validate ticket lifecycle transitions.

    Tickets are never reopened and must be started before they can be
    resolved. RESOLVED only moves on to CLOSED; CLOSED and CANCELLED are
    final.
    """

    _TRANSITIONS: dict[TicketStatus, frozenset[TicketStatus]] = {
        TicketStatus.OPEN: frozenset({TicketStatus.IN_PROGRESS, TicketStatus.CANCELLED}),
        TicketStatus.IN_PROGRESS: frozenset({TicketStatus.RESOLVED, TicketStatus.CANCELLED}),
        TicketStatus.RESOLVED: frozenset({TicketStatus.CLOSED}),
        TicketStatus.CLOSED: frozenset(),
        TicketStatus.CANCELLED: frozenset(),
    }

    # Statuses the lifecycle operations (start/close/cancel) can no longer touch.
    _SETTLED: frozenset[TicketStatus] = frozenset(
        {TicketStatus.RESOLVED, TicketStatus.CLOSED, TicketStatus.CANCELLED}
    )

    @classmethod
    def initial_state(cls) -> TicketStatus:
        return TicketStatus.OPEN

    @classmethod
    def can_transition(cls, current: TicketStatus, new: TicketStatus) -> bool:
        return new in cls._TRANSITIONS.get(current, frozenset())

    @classmethod
    def assert_transition(cls, current: TicketStatus, new: TicketStatus) -> None:
        if not cls.can_transition(current, new):
            raise ConflictError(f"Invalid ticket status transition: {current.value} -> {new.value}")

    @classmethod
    def is_settled(cls, status: TicketStatus) -> bool:
        return status in cls._SETTLED

    @classmethod
    def sources_for(cls, target: TicketStatus) -> frozenset[TicketStatus]:
        """Statuses from which ``target`` is reachable in one step."""

        return frozenset(source for source, targets in cls._TRANSITIONS.items() if target in targets)
