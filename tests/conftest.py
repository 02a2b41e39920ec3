from __future__ import annotations

from dataclasses import dataclass
from datetime import date

import pytest_asyncio

from app.assets.ledger import RepairLedger
from app.assets.registry import AssetRegistry
from app.comments.repository import CommentRepository
from app.comments.router import ReplyRouter
from app.comments.service import CommentService
from app.db.session import create_engine, create_session_factory, ensure_schema
from app.notifications.background import BackgroundNotifier
from app.notifications.dispatcher import NotificationDispatcher
from app.notifications.repository import NotificationRepository
from app.tickets.catalog import ErrorCatalog
from app.tickets.repository import TicketRepository
from app.tickets.service import TicketLifecycleManager
from app.users.models import User
from app.users.repository import UserRepository
from packages.db.models import (
    AssetTable,
    BranchTable,
    ErrorCategoryTable,
    ErrorTypeTable,
    UserTable,
)


@dataclass
class Seed:
    branch_id: int
    other_branch_id: int
    admin: User
    second_admin: User
    user: User
    other_user: User
    category_id: int
    type_id: int
    foreign_type_id: int
    asset_id: int
    disposed_asset_id: int


@dataclass
class Services:
    tickets: TicketLifecycleManager
    ticket_repository: TicketRepository
    comments: CommentService
    assets: AssetRegistry
    ledger: RepairLedger
    notifications: NotificationRepository
    dispatcher: NotificationDispatcher
    notifier: BackgroundNotifier
    users: UserRepository
    catalog: ErrorCatalog


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'support.db'}")
    await ensure_schema(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def seed(session_factory) -> Seed:
    async with session_factory() as session:
        async with session.begin():
            branch = BranchTable(name="Kadikoy", code="KDK")
            other_branch = BranchTable(name="Besiktas", code="BJK")
            session.add_all([branch, other_branch])
            await session.flush()

            admin = UserTable(username="ayse", full_name="Ayse Admin", role="admin", branch_id=branch.id)
            second_admin = UserTable(username="mert", full_name="Mert Admin", role="admin")
            user = UserTable(username="deniz", full_name="Deniz Yilmaz", role="user", branch_id=branch.id)
            other_user = UserTable(username="can", full_name="Can Demir", role="user", branch_id=other_branch.id)
            session.add_all([admin, second_admin, user, other_user])

            hardware = ErrorCategoryTable(name="Hardware")
            network = ErrorCategoryTable(name="Network")
            session.add_all([hardware, network])
            await session.flush()

            printer_jam = ErrorTypeTable(name="Printer Jam", category_id=hardware.id)
            vpn_down = ErrorTypeTable(name="VPN Down", category_id=network.id)
            session.add_all([printer_jam, vpn_down])

            asset = AssetTable(
                code="PRN-001",
                brand="HP",
                model="LaserJet",
                device_type="printer",
                purchase_date=date(2022, 3, 1),
                status="active",
                repair_count=0,
                branch_id=branch.id,
            )
            disposed = AssetTable(code="PRN-000", status="disposed", repair_count=3, branch_id=branch.id)
            session.add_all([asset, disposed])
            await session.flush()

            ids = {
                "branch": branch.id,
                "other_branch": other_branch.id,
                "admin": admin.id,
                "second_admin": second_admin.id,
                "user": user.id,
                "other_user": other_user.id,
                "category": hardware.id,
                "type": printer_jam.id,
                "foreign_type": vpn_down.id,
                "asset": asset.id,
                "disposed": disposed.id,
            }

    users = UserRepository(session_factory)
    return Seed(
        branch_id=ids["branch"],
        other_branch_id=ids["other_branch"],
        admin=await users.get_user(ids["admin"]),
        second_admin=await users.get_user(ids["second_admin"]),
        user=await users.get_user(ids["user"]),
        other_user=await users.get_user(ids["other_user"]),
        category_id=ids["category"],
        type_id=ids["type"],
        foreign_type_id=ids["foreign_type"],
        asset_id=ids["asset"],
        disposed_asset_id=ids["disposed"],
    )


@pytest_asyncio.fixture
async def services(session_factory, seed) -> Services:
    users = UserRepository(session_factory)
    ledger = RepairLedger(session_factory)
    assets = AssetRegistry(session_factory, ledger=ledger)
    ticket_repository = TicketRepository(session_factory)
    notifications = NotificationRepository(session_factory)
    notifier = BackgroundNotifier()
    dispatcher = NotificationDispatcher(notifications, users)
    catalog = ErrorCatalog(session_factory)

    tickets = TicketLifecycleManager(
        ticket_repository,
        catalog=catalog,
        assets=assets,
        ledger=ledger,
        users=users,
        dispatcher=dispatcher,
        notifier=notifier,
    )
    comments = CommentService(
        CommentRepository(session_factory),
        ticket_repository,
        router=ReplyRouter(dispatcher, users),
        notifier=notifier,
    )
    services = Services(
        tickets=tickets,
        ticket_repository=ticket_repository,
        comments=comments,
        assets=assets,
        ledger=ledger,
        notifications=notifications,
        dispatcher=dispatcher,
        notifier=notifier,
        users=users,
        catalog=catalog,
    )
    try:
        yield services
    finally:
        await notifier.drain()
