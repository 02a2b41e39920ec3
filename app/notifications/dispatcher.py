from __future__ import annotations

import logging

from app.errors import NotificationDeliveryError
from app.users.models import Role, User, UserDirectory

from .models import Notification, NotificationCategory
from .push import PushChannel
from .repository import NotificationRepository

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Persist a notification, then push it best-effort.

    Neither method raises: callers must not depend on notifications
    succeeding.
    """

    def __init__(
        self,
        repository: NotificationRepository,
        users: UserDirectory,
        *,
        push_channel: PushChannel | None = None,
    ) -> None:
        self._repository = repository
        self._users = users
        self._push_channel = push_channel

    async def send_to(
        self,
        user: User | None,
        title: str,
        message: str,
        category: NotificationCategory = NotificationCategory.INFO,
    ) -> Notification | None:
        if user is None:
            logger.error("Dropping notification %r: recipient is missing", title)
            return None

        try:
            notification = await self._repository.add(
                recipient_id=user.id,
                title=title,
                message=message,
                category=category,
            )
        except Exception:
            logger.exception("Failed to persist notification %r for user %s", title, user.username)
            return None

        logger.info("Saved notification %s for %s", notification.id, user.username)
        await self._push(user, notification)
        return notification

    async def send_to_role(
        self,
        role: Role,
        title: str,
        message: str,
        category: NotificationCategory = NotificationCategory.INFO,
    ) -> list[Notification]:
        try:
            recipients = list(await self._users.list_users_by_role(role))
        except Exception:
            logger.exception("Failed to resolve recipients for role %s", role.value)
            return []

        if not recipients:
            logger.warning("No users with role %s to notify", role.value)
            return []

        delivered: list[Notification] = []
        for recipient in recipients:
            notification = await self.send_to(recipient, title, message, category)
            if notification is not None:
                delivered.append(notification)
        return delivered

    async def _push(self, user: User, notification: Notification) -> None:
        if self._push_channel is None:
            return
        try:
            pushed = await self._push_channel.push(user.id, notification.to_push_payload())
        except NotificationDeliveryError as exc:
            logger.warning("Push delivery failed for %s: %s", user.username, exc)
            return
        except Exception:
            logger.exception("Push channel error for %s", user.username)
            return
        if not pushed:
            logger.debug("User %s has no live connection; notification %s kept for polling", user.username, notification.id)
