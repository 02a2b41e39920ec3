from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.routes import assets, notifications, ping, tickets
from app.assets.ledger import RepairLedger
from app.assets.registry import AssetRegistry
from app.comments.repository import CommentRepository
from app.comments.router import ReplyRouter
from app.comments.service import CommentService
from app.core.config import Settings, get_settings
from app.core.logging import configure_logging, init_tracer, shutdown_tracer
from app.db.session import create_engine, create_session_factory, ensure_schema
from app.notifications.background import BackgroundNotifier
from app.notifications.dispatcher import NotificationDispatcher
from app.notifications.push import ConnectionManager
from app.notifications.repository import NotificationRepository
from app.tickets.catalog import ErrorCatalog
from app.tickets.repository import TicketRepository
from app.tickets.service import TicketLifecycleManager
from app.users.repository import UserRepository


def build_services(app: FastAPI, settings: Settings, session_factory) -> BackgroundNotifier:
    """Wire repositories and services onto ``app.state``."""

    users = UserRepository(session_factory)
    ledger = RepairLedger(session_factory)
    assets_registry = AssetRegistry(session_factory, ledger=ledger)
    ticket_repository = TicketRepository(session_factory)
    notification_repository = NotificationRepository(session_factory)
    connection_manager = ConnectionManager()
    notifier = BackgroundNotifier()
    dispatcher = NotificationDispatcher(notification_repository, users, push_channel=connection_manager)

    app.state.user_directory = users
    app.state.asset_registry = assets_registry
    app.state.notification_repository = notification_repository
    app.state.connection_manager = connection_manager
    app.state.notifier = notifier
    app.state.ticket_service = TicketLifecycleManager(
        ticket_repository,
        catalog=ErrorCatalog(session_factory),
        assets=assets_registry,
        ledger=ledger,
        users=users,
        dispatcher=dispatcher,
        notifier=notifier,
        ticket_code_prefix=settings.ticket_code_prefix,
        max_images=settings.max_ticket_images,
    )
    app.state.comment_service = CommentService(
        CommentRepository(session_factory),
        ticket_repository,
        router=ReplyRouter(dispatcher, users, preview_length=settings.comment_preview_length),
        notifier=notifier,
    )
    return notifier


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings = get_settings()
    logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)

    app.state.logger = logger
    app.state.tracer_provider = tracer_provider

    db_engine = create_engine(settings.database_url)
    if settings.auto_create_schema:
        await ensure_schema(db_engine)
    app.state.db_engine = db_engine
    notifier = build_services(app, settings, create_session_factory(db_engine))
    logger.info("%s started (%s)", settings.app_name, settings.environment)
    try:
        yield
    finally:
        await notifier.drain()
        await db_engine.dispose()
        shutdown_tracer(tracer_provider)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.include_router(ping.router)
    app.include_router(tickets.router)
    app.include_router(assets.router)
    app.include_router(notifications.router)
    return app


app = create_app()
