"""Pick the counter-party of a ticket reply and notify them."""

from __future__ import annotations

import logging

from app.notifications.dispatcher import NotificationDispatcher
from app.notifications.models import NotificationCategory
from app.tickets.models import Ticket
from app.users.models import Role, User, UserDirectory

logger = logging.getLogger(__name__)

_ELLIPSIS = "..."


def preview_text(text: str, limit: int = 50) -> str:
    """Return ``text`` unchanged up to ``limit`` characters, else cut it and append an ellipsis."""

    if len(text) <= limit:
        return text
    return text[: limit - len(_ELLIPSIS)] + _ELLIPSIS


class ReplyRouter:
    """Route reply notifications between a ticket's creator and its admin.

    A reply from the creator goes to the assigned admin, or to every admin
    while the ticket is unassigned. Any other sender's reply goes to the
    creator.
    """

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        users: UserDirectory,
        *,
        preview_length: int = 50,
    ) -> None:
        self._dispatcher = dispatcher
        self._users = users
        self._preview_length = preview_length

    async def route(self, ticket: Ticket, sender: User, text: str) -> None:
        title = f"New Reply on Ticket #{ticket.id}"
        message = f"{sender.display_name}: {preview_text(text, self._preview_length)}"

        if sender.id != ticket.created_by_id:
            creator = await self._users.get_user(ticket.created_by_id)
            await self._dispatcher.send_to(creator, title, message, NotificationCategory.INFO)
            return

        if ticket.assigned_admin_id is None:
            logger.debug("Ticket %s is unassigned; broadcasting reply to admins", ticket.ticket_code)
            await self._dispatcher.send_to_role(Role.ADMIN, title, message, NotificationCategory.INFO)
            return

        admin = await self._users.get_user(ticket.assigned_admin_id)
        await self._dispatcher.send_to(admin, title, message, NotificationCategory.INFO)
