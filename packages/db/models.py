"""SQLModel table definitions for the support service data layer."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    """Return a timezone aware UTC timestamp."""

    return datetime.now(timezone.utc)


class BranchTable(SQLModel, table=True):
    """Branch locations owning users, assets and tickets."""

    __tablename__ = "branches"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(sa_column=Column(String(255), nullable=False, unique=True))
    code: str = Field(sa_column=Column(String(50), nullable=False, unique=True))
    location: str | None = Field(default=None, sa_column=Column(String(255), nullable=True))


class UserTable(SQLModel, table=True):
    """Application user accounts; the role drives admin fan-out."""

    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    username: str = Field(sa_column=Column(String(150), nullable=False, unique=True))
    full_name: str = Field(sa_column=Column(String(255), nullable=False))
    email: str | None = Field(default=None, sa_column=Column(String(255), nullable=True, unique=True))
    role: str = Field(sa_column=Column(String(50), nullable=False, index=True))
    branch_id: int | None = Field(
        default=None, sa_column=Column(Integer, ForeignKey("branches.id"), nullable=True)
    )
    is_active: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))


class ErrorCategoryTable(SQLModel, table=True):
    """Top level fault categories (Hardware, Network, ...)."""

    __tablename__ = "error_categories"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(sa_column=Column(String(255), nullable=False, unique=True))


class ErrorTypeTable(SQLModel, table=True):
    """Concrete fault types belonging to a category."""

    __tablename__ = "error_types"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(sa_column=Column(String(255), nullable=False))
    category_id: int = Field(
        sa_column=Column(Integer, ForeignKey("error_categories.id"), nullable=False)
    )


class AssetTable(SQLModel, table=True):
    """Physical equipment tracked per branch."""

    __tablename__ = "assets"

    id: int | None = Field(default=None, primary_key=True)
    code: str = Field(sa_column=Column(String(100), nullable=False, unique=True))
    brand: str | None = Field(default=None, sa_column=Column(String(255), nullable=True))
    model: str | None = Field(default=None, sa_column=Column(String(255), nullable=True))
    device_type: str | None = Field(default=None, sa_column=Column(String(255), nullable=True))
    serial_number: str | None = Field(default=None, sa_column=Column(String(255), nullable=True))
    purchase_date: date | None = Field(default=None, sa_column=Column(Date, nullable=True))
    warranty_expiry: date | None = Field(default=None, sa_column=Column(Date, nullable=True))
    status: str = Field(default="active", sa_column=Column(String(50), nullable=False))
    repair_count: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    branch_id: int = Field(sa_column=Column(Integer, ForeignKey("branches.id"), nullable=False))


class TicketTable(SQLModel, table=True):
    """Support incidents and their lifecycle state."""

    __tablename__ = "tickets"

    id: int | None = Field(default=None, primary_key=True)
    ticket_code: str | None = Field(default=None, sa_column=Column(String(50), nullable=True, unique=True))
    subject: str = Field(sa_column=Column(String(255), nullable=False))
    description: str = Field(sa_column=Column(Text, nullable=False))
    priority: str = Field(sa_column=Column(String(50), nullable=False))
    status: str = Field(sa_column=Column(String(50), nullable=False, index=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    resolved_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    closed_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    created_by_id: int = Field(sa_column=Column(Integer, ForeignKey("users.id"), nullable=False))
    assigned_admin_id: int | None = Field(
        default=None, sa_column=Column(Integer, ForeignKey("users.id"), nullable=True)
    )
    branch_id: int | None = Field(
        default=None, sa_column=Column(Integer, ForeignKey("branches.id"), nullable=True)
    )
    category_id: int = Field(sa_column=Column(Integer, ForeignKey("error_categories.id"), nullable=False))
    type_id: int = Field(sa_column=Column(Integer, ForeignKey("error_types.id"), nullable=False))
    asset_id: int | None = Field(
        default=None, sa_column=Column(Integer, ForeignKey("assets.id"), nullable=True)
    )


class TicketImageTable(SQLModel, table=True):
    """Opaque image payloads attached when a ticket is raised."""

    __tablename__ = "ticket_images"

    id: int | None = Field(default=None, primary_key=True)
    ticket_id: int = Field(
        sa_column=Column(Integer, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    data: str = Field(sa_column=Column(Text, nullable=False))


class CommentTable(SQLModel, table=True):
    """Replies exchanged between the ticket creator and administrators."""

    __tablename__ = "comments"

    id: int | None = Field(default=None, primary_key=True)
    ticket_id: int = Field(
        sa_column=Column(Integer, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    author_id: int = Field(sa_column=Column(Integer, ForeignKey("users.id"), nullable=False))
    text: str = Field(sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class RepairRecordTable(SQLModel, table=True):
    """Append-only ledger of repair actions per asset."""

    __tablename__ = "repair_records"

    id: int | None = Field(default=None, primary_key=True)
    asset_id: int = Field(
        sa_column=Column(Integer, ForeignKey("assets.id"), nullable=False, index=True)
    )
    ticket_id: int | None = Field(
        default=None, sa_column=Column(Integer, ForeignKey("tickets.id"), nullable=True)
    )
    action_taken: str = Field(sa_column=Column(String(500), nullable=False))
    repair_date: date = Field(sa_column=Column(Date, nullable=False))
    cost: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(18, 2), nullable=False))


class NotificationTable(SQLModel, table=True):
    """Persisted notifications; the durable record behind real-time pushes."""

    __tablename__ = "notifications"

    id: int | None = Field(default=None, primary_key=True)
    recipient_id: int = Field(
        sa_column=Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    )
    title: str = Field(sa_column=Column(String(255), nullable=False))
    message: str = Field(sa_column=Column(Text, nullable=False))
    category: str = Field(sa_column=Column(String(50), nullable=False))
    is_read: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
