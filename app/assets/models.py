from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum


class AssetStatus(str, Enum):
    """Operational state of a piece of equipment."""

    ACTIVE = "active"
    REPAIR = "repair"
    DISPOSED = "disposed"


@dataclass(slots=True)
class Asset:
    """Equipment record; only ``status`` and ``repair_count`` change via tickets."""

    id: int
    code: str
    branch_id: int
    status: AssetStatus
    repair_count: int
    brand: str | None = None
    model: str | None = None
    device_type: str | None = None
    serial_number: str | None = None
    purchase_date: date | None = None
    warranty_expiry: date | None = None


@dataclass(slots=True, frozen=True)
class RepairRecord:
    """Immutable ledger entry describing a repair action."""

    id: int
    asset_id: int
    ticket_id: int | None
    action_taken: str
    repair_date: date
    cost: Decimal


@dataclass(slots=True)
class AssetDetails:
    """Administrator-editable asset fields; lifecycle fields are excluded."""

    code: str
    branch_id: int
    brand: str | None = None
    model: str | None = None
    device_type: str | None = None
    serial_number: str | None = None
    purchase_date: date | None = None
    warranty_expiry: date | None = None
