from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from app.comments.models import Comment
from app.dependencies import auth as auth_deps
from app.dependencies import services as service_deps
from app.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.main import create_app
from app.tickets.models import Ticket, TicketPriority
from app.tickets.state import TicketStatus
from app.users.models import Role, User

ADMIN = User(id=1, username="ayse", full_name="Ayse Admin", role=Role.ADMIN, branch_id=10)
CREATOR = User(id=2, username="deniz", full_name="Deniz Yilmaz", role=Role.USER, branch_id=10)
STRANGER = User(id=3, username="can", full_name="Can Demir", role=Role.USER, branch_id=20)


def _make_ticket(*, status: TicketStatus = TicketStatus.OPEN, ticket_id: int = 5) -> Ticket:
    return Ticket(
        id=ticket_id,
        ticket_code=f"TKT-{ticket_id}",
        subject="Hardware - Printer Jam",
        description="Paper stuck",
        priority=TicketPriority.HIGH,
        status=status,
        created_at=datetime.now(timezone.utc),
        created_by_id=CREATOR.id,
        category_id=1,
        type_id=1,
        branch_id=10,
    )


@pytest.fixture
def ticket_client():
    app = create_app()
    service = AsyncMock()
    comments = AsyncMock()
    current = {"user": ADMIN}

    async def override_service():
        return service

    async def override_comments():
        return comments

    app.dependency_overrides[service_deps.get_ticket_service] = override_service
    app.dependency_overrides[service_deps.get_comment_service] = override_comments
    app.dependency_overrides[auth_deps.get_current_user] = lambda: current["user"]

    client = TestClient(app)
    try:
        yield client, service, comments, current
    finally:
        app.dependency_overrides.clear()


def test_create_ticket_endpoint_returns_created(ticket_client):
    client, service, _, current = ticket_client
    current["user"] = CREATOR
    ticket = _make_ticket()
    service.create = AsyncMock(return_value=ticket)

    response = client.post(
        "/tickets",
        json={"category_id": 1, "type_id": 1, "priority": "high", "description": "Paper stuck"},
    )

    assert response.status_code == 201
    assert response.json()["ticket_code"] == "TKT-5"
    service.create.assert_awaited()
    assert service.create.await_args.args[0] == CREATOR


def test_create_ticket_maps_validation_error(ticket_client):
    client, service, _, _ = ticket_client
    service.create = AsyncMock(side_effect=ValidationError("At most 5 images can be attached to a ticket"))

    response = client.post("/tickets", json={"category_id": 1, "type_id": 1, "images": ["a"] * 6})

    assert response.status_code == 422
    assert "images" in response.json()["detail"]


def test_list_tickets_for_admin_filters_by_status(ticket_client):
    client, service, _, _ = ticket_client
    service.list_tickets = AsyncMock(return_value=[_make_ticket(status=TicketStatus.RESOLVED)])

    response = client.get("/tickets", params={"status": TicketStatus.RESOLVED.value})

    assert response.status_code == 200
    assert response.json()[0]["status"] == "resolved"
    service.list_tickets.assert_awaited_with(status=TicketStatus.RESOLVED)


def test_list_tickets_for_user_merges_own_and_branch_tickets(ticket_client):
    client, service, _, current = ticket_client
    current["user"] = CREATOR
    own = _make_ticket(ticket_id=5)
    neighbour = _make_ticket(ticket_id=6)
    neighbour.created_by_id = ADMIN.id
    neighbour.created_at = own.created_at + timedelta(minutes=5)
    service.list_created_by = AsyncMock(return_value=[own])
    service.list_for_branch = AsyncMock(return_value=[neighbour, own])

    response = client.get("/tickets")

    assert response.status_code == 200
    assert [ticket["id"] for ticket in response.json()] == [6, 5]
    service.list_created_by.assert_awaited_with(CREATOR.id)
    service.list_for_branch.assert_awaited_with(10)


def test_list_tickets_for_user_rejects_other_branch(ticket_client):
    client, service, _, current = ticket_client
    current["user"] = CREATOR

    response = client.get("/tickets", params={"branch_id": 20})

    assert response.status_code == 403
    service.list_for_branch.assert_not_awaited()


def test_start_requires_admin(ticket_client):
    client, service, _, current = ticket_client
    current["user"] = CREATOR
    service.start = AsyncMock()

    response = client.post("/tickets/5/start")

    assert response.status_code == 403
    service.start.assert_not_awaited()


def test_start_conflict_is_409(ticket_client):
    client, service, _, _ = ticket_client
    service.start = AsyncMock(side_effect=ConflictError("Ticket already taken"))

    response = client.post("/tickets/5/start")

    assert response.status_code == 409
    assert response.json()["detail"] == "Ticket already taken"


def test_close_coerces_malformed_cost(ticket_client):
    client, service, _, _ = ticket_client
    service.close = AsyncMock(return_value=_make_ticket(status=TicketStatus.RESOLVED))

    response = client.post("/tickets/5/close", json={"resolution": "Replaced fuser", "cost": "abc"})

    assert response.status_code == 200
    kwargs = service.close.await_args.kwargs
    assert str(kwargs["cost"]) == "0.00"
    assert kwargs["resolution"] == "Replaced fuser"
    assert kwargs["actor"] == ADMIN


@pytest.mark.parametrize("cost", ["1e30", "1e16", 1e30])
def test_close_zeroes_oversized_cost(ticket_client, cost):
    client, service, _, _ = ticket_client
    service.close = AsyncMock(return_value=_make_ticket(status=TicketStatus.RESOLVED))

    response = client.post("/tickets/5/close", json={"resolution": "Replaced fuser", "cost": cost})

    assert response.status_code == 200
    assert str(service.close.await_args.kwargs["cost"]) == "0.00"


def test_cancel_by_non_creator_is_403(ticket_client):
    client, service, _, current = ticket_client
    current["user"] = STRANGER
    service.cancel = AsyncMock(side_effect=AuthorizationError("Only the ticket creator can cancel this ticket"))

    response = client.post("/tickets/5/cancel")

    assert response.status_code == 403


def test_unknown_ticket_is_404(ticket_client):
    client, service, _, _ = ticket_client
    service.get = AsyncMock(side_effect=NotFoundError("Ticket 99 not found"))

    response = client.get("/tickets/99")

    assert response.status_code == 404


def test_ticket_hidden_from_other_branch(ticket_client):
    client, service, _, current = ticket_client
    current["user"] = STRANGER
    service.get = AsyncMock(return_value=_make_ticket())

    response = client.get("/tickets/5")

    assert response.status_code == 403


def test_status_change_returns_conflict_on_invalid_transition(ticket_client):
    client, service, _, _ = ticket_client
    service.update_status = AsyncMock(side_effect=ConflictError("nope"))

    response = client.post("/tickets/5/status", json={"status": TicketStatus.CLOSED.value})

    assert response.status_code == 409


def test_comments_round_trip_through_service(ticket_client):
    client, service, comments, current = ticket_client
    current["user"] = CREATOR
    service.get = AsyncMock(return_value=_make_ticket())
    comment = Comment(id=1, ticket_id=5, author_id=CREATOR.id, text="Still broken", created_at=datetime.now(timezone.utc))
    comments.add_comment = AsyncMock(return_value=comment)
    comments.list_comments = AsyncMock(return_value=[comment])

    created = client.post("/tickets/5/comments", json={"text": "Still broken"})
    listed = client.get("/tickets/5/comments")

    assert created.status_code == 201
    comments.add_comment.assert_awaited_with(5, CREATOR, "Still broken")
    assert listed.json()[0]["text"] == "Still broken"


def test_missing_service_is_503():
    app = create_app()
    app.dependency_overrides[auth_deps.get_current_user] = lambda: ADMIN
    client = TestClient(app)

    response = client.get("/tickets")

    assert response.status_code == 503
