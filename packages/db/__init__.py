"""Database models and utilities."""

from .models import (
    AssetTable,
    BranchTable,
    CommentTable,
    ErrorCategoryTable,
    ErrorTypeTable,
    NotificationTable,
    RepairRecordTable,
    TicketImageTable,
    TicketTable,
    UserTable,
)

__all__ = [
    "AssetTable",
    "BranchTable",
    "CommentTable",
    "ErrorCategoryTable",
    "ErrorTypeTable",
    "NotificationTable",
    "RepairRecordTable",
    "TicketImageTable",
    "TicketTable",
    "UserTable",
]
