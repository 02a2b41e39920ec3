"""Ticket lifecycle domain models and services."""

from .catalog import ErrorCatalog, ErrorCategory, ErrorType
from .models import Ticket, TicketImage, TicketPriority, coerce_repair_cost
from .repository import TicketRepository
from .service import TicketLifecycleManager
from .state import TicketStateMachine, TicketStatus

__all__ = [
    "ErrorCatalog",
    "ErrorCategory",
    "ErrorType",
    "Ticket",
    "TicketImage",
    "TicketLifecycleManager",
    "TicketPriority",
    "TicketRepository",
    "TicketStateMachine",
    "TicketStatus",
    "coerce_repair_cost",
]
