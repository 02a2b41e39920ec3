from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from .state import TicketStatus

logger = logging.getLogger(__name__)

_COST_QUANTUM = Decimal("0.01")
# Fits NUMERIC(18, 2).
_MAX_COST_EXPONENT = 16
ZERO_COST = Decimal("0.00")


class TicketPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(slots=True)
class Ticket:
    """Aggregate representing a support ticket.

    Related entities are referenced by id only.
    """

    id: int
    ticket_code: str | None
    subject: str
    description: str
    priority: TicketPriority
    status: TicketStatus
    created_at: datetime
    created_by_id: int
    category_id: int
    type_id: int
    branch_id: int | None = None
    assigned_admin_id: int | None = None
    asset_id: int | None = None
    resolved_at: datetime | None = None
    closed_at: datetime | None = None


@dataclass(slots=True)
class TicketImage:
    id: int
    ticket_id: int
    data: str


def coerce_repair_cost(raw: Any) -> Decimal:
    """Turn a loosely typed cost into a non-negative two-place Decimal.

    Missing values are zero. Malformed, non-finite or negative values are
    logged and treated as zero so that a bad cost never blocks a close.
    """

    if raw is None:
        return ZERO_COST
    if isinstance(raw, bool):
        logger.warning("Ignoring boolean repair cost %r; using 0", raw)
        return ZERO_COST
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return ZERO_COST
    try:
        value = Decimal(str(raw))
        if value.is_finite() and value >= 0 and value.adjusted() < _MAX_COST_EXPONENT:
            value = value.quantize(_COST_QUANTUM)
            if value.adjusted() < _MAX_COST_EXPONENT:
                return value
    except (InvalidOperation, ValueError, TypeError):
        logger.warning("Malformed repair cost %r; using 0", raw)
        return ZERO_COST
    logger.warning("Out of range repair cost %r; using 0", raw)
    return ZERO_COST
