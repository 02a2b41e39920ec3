from __future__ import annotations

import logging
from datetime import datetime, timezone

from app.errors import NotFoundError, ValidationError
from app.notifications.background import BackgroundNotifier
from app.tickets.repository import TicketRepository
from app.users.models import User

from .models import Comment
from .repository import CommentRepository
from .router import ReplyRouter

logger = logging.getLogger(__name__)


class CommentService:
    """Persist replies first, then route their notification in the background."""

    def __init__(
        self,
        comments: CommentRepository,
        tickets: TicketRepository,
        *,
        router: ReplyRouter,
        notifier: BackgroundNotifier,
    ) -> None:
        self._comments = comments
        self._tickets = tickets
        self._router = router
        self._notifier = notifier

    async def add_comment(self, ticket_id: int, sender: User, text: str) -> Comment:
        text = (text or "").strip()
        if not text:
            raise ValidationError("Reply text must not be empty")

        ticket = await self._tickets.get_ticket(ticket_id)
        if ticket is None:
            raise NotFoundError(f"Ticket {ticket_id} not found")

        comment = await self._comments.add_comment(
            ticket_id=ticket.id,
            author_id=sender.id,
            text=text,
            created_at=datetime.now(timezone.utc),
        )

        try:
            self._notifier.submit(self._router.route, ticket, sender, text)
        except Exception:
            logger.exception("Failed to hand off reply notification for ticket %s", ticket.ticket_code)
        return comment

    async def list_comments(self, ticket_id: int) -> list[Comment]:
        if await self._tickets.get_ticket(ticket_id) is None:
            raise NotFoundError(f"Ticket {ticket_id} not found")
        return await self._comments.list_for_ticket(ticket_id)
