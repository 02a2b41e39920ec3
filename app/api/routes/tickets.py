from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.api.errors import to_http_exception
from app.dependencies.auth import AdminUser, CurrentUser
from app.dependencies.services import CommentServiceDep, TicketServiceDep
from app.errors import SupportError
from app.tickets.models import ZERO_COST, Ticket, TicketPriority, coerce_repair_cost
from app.tickets.state import TicketStatus
from app.users.models import Role, User

router = APIRouter(prefix="/tickets", tags=["tickets"])


class TicketCreateRequest(BaseModel):
    category_id: int
    type_id: int
    priority: TicketPriority = TicketPriority.MEDIUM
    description: str = Field(default="", max_length=5000)
    asset_id: int | None = None
    images: list[str] = Field(default_factory=list)


class TicketCloseRequest(BaseModel):
    resolution: str = Field(default="", max_length=500)
    dispose_asset: bool = False
    cost: Decimal = ZERO_COST

    @field_validator("cost", mode="before")
    @classmethod
    def _coerce_cost(cls, value: Any) -> Decimal:
        return coerce_repair_cost(value)


class TicketStatusChangeRequest(BaseModel):
    status: TicketStatus


class CommentCreateRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=5000)


class TicketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

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
    branch_id: int | None
    assigned_admin_id: int | None
    asset_id: int | None
    resolved_at: datetime | None
    closed_at: datetime | None


class TicketImageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    ticket_id: int
    data: str


class CommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    ticket_id: int
    author_id: int
    text: str
    created_at: datetime


def _to_response(ticket: Ticket) -> TicketResponse:
    return TicketResponse.model_validate(ticket)


def _ensure_visible(ticket: Ticket, user: User) -> None:
    if user.has_role(Role.ADMIN) or ticket.created_by_id == user.id:
        return
    if ticket.branch_id is not None and ticket.branch_id == user.branch_id:
        return
    raise HTTPException(status_code=403, detail="Insufficient permissions")


async def _visible_ticket(service: TicketServiceDep, ticket_id: int, user: User) -> Ticket:
    try:
        ticket = await service.get(ticket_id)
    except SupportError as exc:
        raise to_http_exception(exc) from exc
    _ensure_visible(ticket, user)
    return ticket


@router.post("", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
async def create_ticket(payload: TicketCreateRequest, service: TicketServiceDep, user: CurrentUser) -> TicketResponse:
    try:
        ticket = await service.create(
            user,
            category_id=payload.category_id,
            type_id=payload.type_id,
            priority=payload.priority,
            description=payload.description,
            asset_id=payload.asset_id,
            images=payload.images,
        )
    except SupportError as exc:
        raise to_http_exception(exc) from exc
    return _to_response(ticket)


async def _own_and_branch_tickets(service: TicketServiceDep, user: User) -> list[Ticket]:
    merged = {ticket.id: ticket for ticket in await service.list_created_by(user.id)}
    if user.branch_id is not None:
        for ticket in await service.list_for_branch(user.branch_id):
            merged.setdefault(ticket.id, ticket)
    return sorted(merged.values(), key=lambda ticket: (ticket.created_at, ticket.id), reverse=True)


@router.get("", response_model=list[TicketResponse])
async def list_tickets(
    service: TicketServiceDep,
    user: CurrentUser,
    status_filter: TicketStatus | None = Query(default=None, alias="status"),
    branch_id: int | None = Query(default=None),
) -> list[TicketResponse]:
    if user.has_role(Role.ADMIN):
        if branch_id is not None:
            tickets = await service.list_for_branch(branch_id)
        else:
            tickets = await service.list_tickets(status=status_filter)
    else:
        if branch_id is not None and branch_id != user.branch_id:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        tickets = await _own_and_branch_tickets(service, user)

    if status_filter is not None:
        tickets = [ticket for ticket in tickets if ticket.status == status_filter]
    return [_to_response(ticket) for ticket in tickets]


@router.get("/assigned", response_model=list[TicketResponse])
async def list_assigned_tickets(service: TicketServiceDep, user: AdminUser) -> list[TicketResponse]:
    tickets = await service.list_assigned_to(user.id)
    return [_to_response(ticket) for ticket in tickets]


@router.get("/{ticket_id}", response_model=TicketResponse)
async def get_ticket(ticket_id: int, service: TicketServiceDep, user: CurrentUser) -> TicketResponse:
    return _to_response(await _visible_ticket(service, ticket_id, user))


@router.get("/{ticket_id}/images", response_model=list[TicketImageResponse])
async def get_ticket_images(
    ticket_id: int, service: TicketServiceDep, user: CurrentUser
) -> list[TicketImageResponse]:
    await _visible_ticket(service, ticket_id, user)
    images = await service.images(ticket_id)
    return [TicketImageResponse.model_validate(image) for image in images]


@router.post("/{ticket_id}/start", response_model=TicketResponse)
async def start_ticket(ticket_id: int, service: TicketServiceDep, user: AdminUser) -> TicketResponse:
    try:
        ticket = await service.start(ticket_id, user)
    except SupportError as exc:
        raise to_http_exception(exc) from exc
    return _to_response(ticket)


@router.post("/{ticket_id}/close", response_model=TicketResponse)
async def close_ticket(
    ticket_id: int,
    payload: TicketCloseRequest,
    service: TicketServiceDep,
    user: AdminUser,
) -> TicketResponse:
    try:
        ticket = await service.close(
            ticket_id,
            resolution=payload.resolution,
            dispose_asset=payload.dispose_asset,
            cost=payload.cost,
            actor=user,
        )
    except SupportError as exc:
        raise to_http_exception(exc) from exc
    return _to_response(ticket)


@router.post("/{ticket_id}/cancel", response_model=TicketResponse)
async def cancel_ticket(ticket_id: int, service: TicketServiceDep, user: CurrentUser) -> TicketResponse:
    try:
        ticket = await service.cancel(ticket_id, user)
    except SupportError as exc:
        raise to_http_exception(exc) from exc
    return _to_response(ticket)


@router.post("/{ticket_id}/status", response_model=TicketResponse)
async def change_ticket_status(
    ticket_id: int,
    payload: TicketStatusChangeRequest,
    service: TicketServiceDep,
    user: AdminUser,
) -> TicketResponse:
    try:
        ticket = await service.update_status(ticket_id, payload.status, actor=user)
    except SupportError as exc:
        raise to_http_exception(exc) from exc
    return _to_response(ticket)


@router.get("/{ticket_id}/comments", response_model=list[CommentResponse])
async def list_comments(
    ticket_id: int,
    service: TicketServiceDep,
    comments: CommentServiceDep,
    user: CurrentUser,
) -> list[CommentResponse]:
    await _visible_ticket(service, ticket_id, user)
    try:
        entries = await comments.list_comments(ticket_id)
    except SupportError as exc:
        raise to_http_exception(exc) from exc
    return [CommentResponse.model_validate(entry) for entry in entries]


@router.post("/{ticket_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def add_comment(
    ticket_id: int,
    payload: CommentCreateRequest,
    service: TicketServiceDep,
    comments: CommentServiceDep,
    user: CurrentUser,
) -> CommentResponse:
    await _visible_ticket(service, ticket_id, user)
    try:
        comment = await comments.add_comment(ticket_id, user, payload.text)
    except SupportError as exc:
        raise to_http_exception(exc) from exc
    return CommentResponse.model_validate(comment)
