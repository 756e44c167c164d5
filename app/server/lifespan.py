from contextlib import asynccontextmanager
import sys
import threading
from typing import AsyncIterator, Optional, Tuple

from fastapi import FastAPI
from slack_bolt import App
from slack_bolt.adapter.socket_mode import SocketModeHandler
from structlog.stdlib import BoundLogger

from core.config import Settings, settings as app_settings
from core.logging import configure_logging
from infrastructure.conversations import CommandRegistry, MessageRouter
from integrations.slack import handlers as slack_handlers
from modules import expenses


def _is_test_environment() -> bool:
    """Detect if running in a test environment."""
    return "pytest" in sys.modules


def _get_logger(settings: Settings) -> BoundLogger:
    return configure_logging(
        log_level=settings.LOG_LEVEL, is_production=settings.is_production
    )


def _list_configs(settings: Settings, logger: BoundLogger) -> None:
    config_settings: dict[str, list[object]] = {"settings": []}

    for key, value in settings.model_dump().items():
        if isinstance(value, dict):
            config_settings[key] = list(value.keys())
        else:
            config_settings["settings"].append({key: value})

    logger.info("configuration_initialized", base_settings=config_settings["settings"])
    for key, value in config_settings.items():
        if key != "settings":
            logger.info("configuration_loaded", config_setting=key, keys=value)


def _build_conversations(
    settings: Settings, logger: BoundLogger
) -> Tuple[CommandRegistry, MessageRouter]:
    """Create the command registry, fill it and wrap it in a router."""
    registry = CommandRegistry()
    directory = expenses.get_ledger_directory()
    expenses.register(registry, directory)

    router = MessageRouter(
        registry,
        store_resolver=directory,
        menu_provider=expenses.expense_menu,
        labels=settings.conversation,
        address_suffixes=settings.address_suffixes,
    )
    logger.info(
        "conversations_ready",
        commands=len(registry),
        store_backend=settings.store.BACKEND,
    )
    return registry, router


def _start_socket_mode(
    bot: App, app_token: str, logger: BoundLogger
) -> tuple[SocketModeHandler, threading.Thread]:
    handler = SocketModeHandler(bot, app_token)
    thread = threading.Thread(
        target=handler.connect,
        daemon=True,
        name="slack-socket-mode",
    )
    thread.start()
    logger.info("socket_mode_started")
    return handler, thread


def _get_bot(settings: Settings) -> Optional[App]:
    """Create Slack App instance if token available and not in test environment."""
    if _is_test_environment():
        return None

    slack_token = settings.slack.SLACK_TOKEN
    if not bool(slack_token):
        return None

    return App(token=slack_token)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = app_settings
    logger = _get_logger(settings)

    app.state.settings = settings
    app.state.logger = logger

    logger.info("application_startup")
    _list_configs(settings, logger)

    registry, router = _build_conversations(settings, logger)
    app.state.registry = registry
    app.state.router = router

    bot = _get_bot(settings)
    app.state.bot = bot

    socket_mode_handler = None

    if bot is not None:
        slack_handlers.register(bot, router, registry)
        socket_mode_handler, socket_mode_thread = _start_socket_mode(
            bot,
            settings.slack.APP_TOKEN,
            logger,
        )
        app.state.socket_mode_thread = socket_mode_thread
    else:
        logger.info("slack_disabled", reason="no_token_or_test_environment")

    app.state.socket_mode_handler = socket_mode_handler

    yield

    logger.info("application_shutdown")

    if app.state.socket_mode_handler is not None:
        app.state.socket_mode_handler.close()
        logger.info("socket_mode_stopped")
