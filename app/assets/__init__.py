"""Asset registry and repair ledger."""

from .ledger import RepairLedger
from .models import Asset, AssetDetails, AssetStatus, RepairRecord
from .registry import AssetRegistry

__all__ = ["Asset", "AssetDetails", "AssetRegistry", "AssetStatus", "RepairLedger", "RepairRecord"]
