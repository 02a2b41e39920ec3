from __future__ import annotations

import functools
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Awaitable, Callable, Sequence, TypeVar

from opentelemetry import trace
from sqlalchemy.ext.asyncio import AsyncSession

from app.assets.ledger import RepairLedger
from app.assets.models import AssetStatus
from app.assets.registry import AssetRegistry
from app.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.notifications.background import BackgroundNotifier
from app.notifications.dispatcher import NotificationDispatcher
from app.notifications.models import NotificationCategory
from app.users.models import Role, User, UserDirectory

from .catalog import ErrorCatalog
from .models import ZERO_COST, Ticket, TicketImage, TicketPriority
from .repository import TicketRepository
from .state import TicketStateMachine, TicketStatus

logger = logging.getLogger(__name__)
_tracer = trace.get_tracer(__name__)

DISPOSAL_PREFIX = "ASSET DISPOSED: "

_T = TypeVar("_T")


def _traced(name: str) -> Callable[[Callable[..., Awaitable[_T]]], Callable[..., Awaitable[_T]]]:
    def decorator(func: Callable[..., Awaitable[_T]]) -> Callable[..., Awaitable[_T]]:
        @functools.wraps(func)
        async def wrapper(self: Any, ticket_id: int, *args: Any, **kwargs: Any) -> _T:
            with _tracer.start_as_current_span(name) as span:
                span.set_attribute("ticket.id", ticket_id)
                return await func(self, ticket_id, *args, **kwargs)

        return wrapper

    return decorator


class TicketLifecycleManager:
    """Owns the ticket state machine and its side effects.

    Every transition commits ticket and asset state in one transaction and
    only then hands notifications to the background notifier, so a failing
    notification can neither block nor undo a transition.
    """

    def __init__(
        self,
        tickets: TicketRepository,
        *,
        catalog: ErrorCatalog,
        assets: AssetRegistry,
        ledger: RepairLedger,
        users: UserDirectory,
        dispatcher: NotificationDispatcher,
        notifier: BackgroundNotifier,
        ticket_code_prefix: str = "TKT-",
        max_images: int = 5,
    ) -> None:
        self._tickets = tickets
        self._catalog = catalog
        self._assets = assets
        self._ledger = ledger
        self._users = users
        self._dispatcher = dispatcher
        self._notifier = notifier
        self._ticket_code_prefix = ticket_code_prefix
        self._max_images = max_images

    async def create(
        self,
        creator: User,
        *,
        category_id: int,
        type_id: int,
        priority: TicketPriority = TicketPriority.MEDIUM,
        description: str = "",
        asset_id: int | None = None,
        images: Sequence[str] = (),
    ) -> Ticket:
        with _tracer.start_as_current_span("tickets.create"):
            if len(images) > self._max_images:
                raise ValidationError(f"At most {self._max_images} images can be attached to a ticket")

            category = await self._catalog.get_category(category_id)
            if category is None:
                raise ValidationError(f"Unknown error category {category_id}")
            error_type = await self._catalog.get_type(type_id)
            if error_type is None or error_type.category_id != category.id:
                raise ValidationError(f"Unknown error type {type_id} for category {category_id}")

            branch_id = creator.branch_id
            if asset_id is not None:
                asset = await self._assets.find_by_id(asset_id)
                if asset is None:
                    raise ValidationError(f"Unknown asset {asset_id}")
                branch_id = asset.branch_id

            ticket = await self._tickets.create_ticket(
                subject=f"{category.name} - {error_type.name}",
                description=description.strip(),
                priority=priority,
                created_by_id=creator.id,
                category_id=category.id,
                type_id=error_type.id,
                branch_id=branch_id,
                asset_id=asset_id,
                created_at=_utcnow(),
                code_prefix=self._ticket_code_prefix,
                images=list(images),
            )

        logger.info("Ticket %s created by %s", ticket.ticket_code, creator.username)
        self._notify(
            self._dispatcher.send_to_role,
            Role.ADMIN,
            "New Ticket",
            f"{creator.display_name} raised {ticket.ticket_code}: {ticket.subject}",
            NotificationCategory.WARNING,
        )
        return ticket

    @_traced("tickets.start")
    async def start(self, ticket_id: int, admin: User) -> Ticket:
        async with self._tickets.begin() as session:
            taken = await self._tickets.compare_and_set_status(
                ticket_id,
                expected=(TicketStatus.OPEN,),
                new_status=TicketStatus.IN_PROGRESS,
                session=session,
                assigned_admin_id=admin.id,
            )
            ticket = await self._tickets.get_ticket(ticket_id, session=session)
            if ticket is None:
                raise NotFoundError(f"Ticket {ticket_id} not found")
            if not taken:
                if ticket.status == TicketStatus.IN_PROGRESS:
                    raise ConflictError("Ticket already taken")
                raise ConflictError(f"Cannot start a ticket that is {ticket.status.value}")

            if ticket.asset_id is not None:
                asset = await self._assets.find_by_id(ticket.asset_id, session=session)
                if asset is None:
                    logger.warning("Ticket %s links missing asset %s", ticket.ticket_code, ticket.asset_id)
                elif asset.status == AssetStatus.DISPOSED:
                    logger.info("Asset %s is disposed; not moving it to repair", asset.code)
                else:
                    await self._assets.set_status(asset.id, AssetStatus.REPAIR, session=session)

        logger.info("Ticket %s started by %s", ticket.ticket_code, admin.username)
        self._notify(
            self._send_to_user_id,
            ticket.created_by_id,
            "Ticket In Progress",
            f"{ticket.ticket_code} is now being handled by {admin.display_name}.",
            NotificationCategory.INFO,
        )
        return ticket

    @_traced("tickets.close")
    async def close(
        self,
        ticket_id: int,
        *,
        resolution: str = "",
        dispose_asset: bool = False,
        cost: Decimal = ZERO_COST,
        actor: User | None = None,
    ) -> Ticket:
        if not cost.is_finite() or cost.adjusted() >= 16:
            raise ValidationError("Repair cost is out of range")
        if cost < 0:
            raise ValidationError("Repair cost must be non-negative")
        resolution = (resolution or "").strip()
        now = _utcnow()

        async with self._tickets.begin() as session:
            resolved = await self._tickets.compare_and_set_status(
                ticket_id,
                expected=(TicketStatus.IN_PROGRESS,),
                new_status=TicketStatus.RESOLVED,
                session=session,
                resolved_at=now,
            )
            ticket = await self._tickets.get_ticket(ticket_id, session=session)
            if ticket is None:
                raise NotFoundError(f"Ticket {ticket_id} not found")
            if not resolved:
                raise ConflictError(f"Cannot close a ticket that is {ticket.status.value}")

            if ticket.asset_id is not None:
                await self._settle_asset(
                    ticket,
                    session=session,
                    resolution=resolution,
                    dispose_asset=dispose_asset,
                    cost=cost,
                    repair_date=now.date(),
                )

        logger.info(
            "Ticket %s resolved%s", ticket.ticket_code, f" by {actor.username}" if actor is not None else ""
        )
        message = f"{ticket.ticket_code} has been resolved."
        if resolution:
            message = f"{message} Resolution: {resolution}"
        self._notify(
            self._send_to_user_id,
            ticket.created_by_id,
            "Ticket Resolved",
            message,
            NotificationCategory.SUCCESS,
        )
        return ticket

    @_traced("tickets.cancel")
    async def cancel(self, ticket_id: int, actor: User) -> Ticket:
        current = await self._require(ticket_id)
        if current.created_by_id != actor.id:
            raise AuthorizationError("Only the ticket creator can cancel this ticket")

        async with self._tickets.begin() as session:
            cancelled = await self._tickets.compare_and_set_status(
                ticket_id,
                expected=TicketStateMachine.sources_for(TicketStatus.CANCELLED),
                new_status=TicketStatus.CANCELLED,
                session=session,
                closed_at=_utcnow(),
            )
            ticket = await self._tickets.get_ticket(ticket_id, session=session)
            if ticket is None:
                raise NotFoundError(f"Ticket {ticket_id} not found")
            if not cancelled:
                raise ConflictError(f"Cannot cancel a ticket that is {ticket.status.value}")

        logger.info("Ticket %s cancelled by %s", ticket.ticket_code, actor.username)
        if ticket.assigned_admin_id is not None:
            self._notify(
                self._send_to_user_id,
                ticket.assigned_admin_id,
                "Ticket Cancelled",
                f"{ticket.ticket_code} was cancelled by {actor.display_name}.",
                NotificationCategory.WARNING,
            )
        return ticket

    @_traced("tickets.update_status")
    async def update_status(
        self,
        ticket_id: int,
        new_status: TicketStatus,
        *,
        actor: User | None = None,
    ) -> Ticket:
        """Administrative override that settles a ticket directly.

        Only settling statuses are accepted, and only along a legal edge.
        """

        if not TicketStateMachine.is_settled(new_status):
            raise ValidationError(f"Status {new_status.value} cannot be applied directly")

        current = await self._require(ticket_id)
        TicketStateMachine.assert_transition(current.status, new_status)

        now = _utcnow()
        values: dict[str, Any] = {"closed_at": now}
        if new_status == TicketStatus.RESOLVED:
            values["resolved_at"] = now

        async with self._tickets.begin() as session:
            applied = await self._tickets.compare_and_set_status(
                ticket_id,
                expected=(current.status,),
                new_status=new_status,
                session=session,
                **values,
            )
            if not applied:
                raise ConflictError(f"Ticket {ticket_id} changed while updating its status")
            ticket = await self._tickets.get_ticket(ticket_id, session=session)
            if ticket is None:
                raise NotFoundError(f"Ticket {ticket_id} not found")

        logger.info(
            "Ticket %s moved %s -> %s%s",
            ticket.ticket_code,
            current.status.value,
            new_status.value,
            f" by {actor.username}" if actor is not None else "",
        )
        self._notify(
            self._send_to_user_id,
            ticket.created_by_id,
            "Ticket Updated",
            f"{ticket.ticket_code} is now {new_status.value.replace('_', ' ')}.",
            NotificationCategory.INFO,
        )
        return ticket

    async def get(self, ticket_id: int) -> Ticket:
        return await self._require(ticket_id)

    async def list_tickets(self, *, status: TicketStatus | None = None) -> list[Ticket]:
        return await self._tickets.list_tickets(status=status)

    async def list_for_branch(self, branch_id: int) -> list[Ticket]:
        return await self._tickets.list_for_branch(branch_id)

    async def list_created_by(self, user_id: int) -> list[Ticket]:
        return await self._tickets.list_created_by(user_id)

    async def list_assigned_to(self, user_id: int) -> list[Ticket]:
        return await self._tickets.list_assigned_to(user_id)

    async def images(self, ticket_id: int) -> list[TicketImage]:
        await self._require(ticket_id)
        return await self._tickets.list_images(ticket_id)

    async def _settle_asset(
        self,
        ticket: Ticket,
        *,
        session: AsyncSession,
        resolution: str,
        dispose_asset: bool,
        cost: Decimal,
        repair_date: date,
    ) -> None:
        asset = await self._assets.find_by_id(ticket.asset_id, session=session)
        if asset is None:
            logger.warning("Ticket %s links missing asset %s", ticket.ticket_code, ticket.asset_id)
            return
        if asset.status == AssetStatus.DISPOSED:
            logger.info("Asset %s already disposed; skipping repair accounting", asset.code)
            return

        if dispose_asset:
            await self._assets.set_status(asset.id, AssetStatus.DISPOSED, session=session)
            await self._ledger.record(
                asset.id, ticket.id, f"{DISPOSAL_PREFIX}{resolution}", repair_date, cost, session=session
            )
            logger.info("Asset %s disposed via %s", asset.code, ticket.ticket_code)
            return

        await self._assets.set_status(asset.id, AssetStatus.ACTIVE, session=session)
        if not resolution:
            return
        await self._assets.increment_repair_count(asset.id, session=session)
        await self._ledger.record(asset.id, ticket.id, resolution, repair_date, cost, session=session)

    async def _require(self, ticket_id: int) -> Ticket:
        ticket = await self._tickets.get_ticket(ticket_id)
        if ticket is None:
            raise NotFoundError(f"Ticket {ticket_id} not found")
        return ticket

    async def _send_to_user_id(
        self, user_id: int, title: str, message: str, category: NotificationCategory
    ) -> None:
        user = await self._users.get_user(user_id)
        await self._dispatcher.send_to(user, title, message, category)

    def _notify(self, job: Callable[..., Awaitable[Any]], *args: Any) -> None:
        try:
            self._notifier.submit(job, *args)
        except Exception:
            logger.exception("Failed to hand off notification job %s", getattr(job, "__qualname__", job))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)
