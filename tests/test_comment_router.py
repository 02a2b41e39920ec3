from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from app.comments.router import ReplyRouter, preview_text
from app.errors import NotFoundError, ValidationError
from app.notifications.models import NotificationCategory
from app.tickets.models import Ticket, TicketPriority
from app.tickets.state import TicketStatus
from app.users.models import Role, User

CREATOR = User(id=1, username="deniz", full_name="Deniz Yilmaz", role=Role.USER)
ADMIN = User(id=2, username="ayse", full_name="Ayse Admin", role=Role.ADMIN)


def _ticket(*, assigned_admin_id=None) -> Ticket:
    return Ticket(
        id=7,
        ticket_code="TKT-7",
        subject="Hardware - Printer Jam",
        description="",
        priority=TicketPriority.MEDIUM,
        status=TicketStatus.IN_PROGRESS,
        created_at=datetime.now(timezone.utc),
        created_by_id=CREATOR.id,
        category_id=1,
        type_id=1,
        assigned_admin_id=assigned_admin_id,
    )


def _router():
    dispatcher = AsyncMock()
    users = AsyncMock()
    users.get_user = AsyncMock(side_effect=lambda user_id: {CREATOR.id: CREATOR, ADMIN.id: ADMIN}.get(user_id))
    return ReplyRouter(dispatcher, users), dispatcher


def test_preview_text_truncates_long_messages():
    assert preview_text("short") == "short"
    assert preview_text("x" * 50) == "x" * 50
    long_preview = preview_text("y" * 51)
    assert long_preview == "y" * 47 + "..."
    assert len(long_preview) == 50


@pytest.mark.asyncio
async def test_creator_reply_goes_to_assigned_admin():
    router, dispatcher = _router()

    await router.route(_ticket(assigned_admin_id=ADMIN.id), CREATOR, "Still broken")

    dispatcher.send_to.assert_awaited_once_with(
        ADMIN, "New Reply on Ticket #7", "Deniz Yilmaz: Still broken", NotificationCategory.INFO
    )
    dispatcher.send_to_role.assert_not_awaited()


@pytest.mark.asyncio
async def test_creator_reply_on_unassigned_ticket_goes_to_admins():
    router, dispatcher = _router()

    await router.route(_ticket(), CREATOR, "Anyone?")

    dispatcher.send_to_role.assert_awaited_once_with(
        Role.ADMIN, "New Reply on Ticket #7", "Deniz Yilmaz: Anyone?", NotificationCategory.INFO
    )
    dispatcher.send_to.assert_not_awaited()


@pytest.mark.asyncio
async def test_admin_reply_goes_to_creator_with_preview():
    router, dispatcher = _router()
    text = "Please restart the printer and check the tray sensor before lunch."

    await router.route(_ticket(assigned_admin_id=ADMIN.id), ADMIN, text)

    args = dispatcher.send_to.await_args.args
    assert args[0] == CREATOR
    assert args[2] == f"Ayse Admin: {text[:47]}..."


@pytest.mark.asyncio
async def test_add_comment_persists_then_notifies(services, seed):
    ticket = await services.tickets.create(seed.user, category_id=seed.category_id, type_id=seed.type_id)
    await services.tickets.start(ticket.id, seed.admin)
    await services.notifier.drain()

    comment = await services.comments.add_comment(ticket.id, seed.user, "  Still jams on page two  ")
    await services.comments.add_comment(ticket.id, seed.admin, "On my way")
    await services.notifier.drain()

    assert comment.text == "Still jams on page two"
    listed = await services.comments.list_comments(ticket.id)
    assert [entry.text for entry in listed] == ["Still jams on page two", "On my way"]

    admin_inbox = await services.notifications.list_for_user(seed.admin.id)
    assert admin_inbox[0].title == f"New Reply on Ticket #{ticket.id}"
    assert admin_inbox[0].message == "Deniz Yilmaz: Still jams on page two"
    creator_inbox = await services.notifications.list_for_user(seed.user.id)
    assert creator_inbox[0].message == "Ayse Admin: On my way"
    second_admin_titles = [item.title for item in await services.notifications.list_for_user(seed.second_admin.id)]
    assert f"New Reply on Ticket #{ticket.id}" not in second_admin_titles


@pytest.mark.asyncio
async def test_add_comment_validation(services, seed):
    with pytest.raises(ValidationError):
        await services.comments.add_comment(1, seed.user, "   ")
    with pytest.raises(NotFoundError):
        await services.comments.add_comment(9999, seed.user, "hello")
    with pytest.raises(NotFoundError):
        await services.comments.list_comments(9999)
