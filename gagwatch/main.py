"""
Main application entry point for GAG Drop Watch.
"""
import asyncio
import logging
import sys
import signal
import os
from dataclasses import dataclass
from pathlib import Path

from .config.environment import Environment
from .config.config_manager import config, ConfigManager
from .database.connection import db, DatabaseConnection
from .database.user_repository import UserRepository
from .discord_bot.client import DiscordBotClient
from .services.clock import Clock
from .services.command_handler import CommandHandler
from .services.dispatcher import Dispatcher
from .services.error_handler import error_handler
from .services.feed_client import FeedClient
from .services.health_check import HealthCheckServer
from .services.matching_engine import MatchingEngine
from .services.preference_service import PreferenceService
from .services.prompt_throttle import RegistrationPromptThrottle
from .services.scheduler import NotificationScheduler
from .services.snapshot_store import SnapshotStore
from .services.stock_query import StockQueryService
from .services.supervisor import Supervisor


@dataclass
class Application:
    """Wired application components."""
    discord_client: DiscordBotClient
    snapshot_store: SnapshotStore
    user_repository: UserRepository
    feed_client: FeedClient
    matching_engine: MatchingEngine
    dispatcher: Dispatcher
    scheduler: NotificationScheduler
    supervisor: Supervisor
    command_handler: CommandHandler
    preference_service: PreferenceService
    stock_query: StockQueryService


def setup_logging():
    """Set up logging configuration."""
    from .config.logging_config import configure_logging
    return configure_logging()


def setup_signal_handlers(loop, shutdown_event: asyncio.Event):
    """Set up signal handlers for graceful shutdown."""
    def signal_handler():
        logger = logging.getLogger(__name__)
        logger.info("Shutdown signal received, closing application...")
        shutdown_event.set()

    # Register signal handlers (skip on Windows as it's not supported)
    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, signal_handler)
    else:
        def windows_signal_handler(signum, frame):
            loop.call_soon_threadsafe(signal_handler)

        signal.signal(signal.SIGINT, windows_signal_handler)
        if hasattr(signal, 'SIGTERM'):
            signal.signal(signal.SIGTERM, windows_signal_handler)


def load_configuration(config_manager: ConfigManager = config) -> bool:
    """Load configuration from files and environment variables."""
    logger = logging.getLogger(__name__)

    config_dir = Environment.get_config_dir()
    default_config_path = config_dir / "config.yaml"
    env = Environment.get_env()
    env_config_path = config_dir / f"config.{env}.yaml"

    if default_config_path.exists():
        try:
            logger.info(f"Loading default configuration from {default_config_path}")
            config_manager.load_config(str(default_config_path))
        except RuntimeError as e:
            logger.error(f"Error loading default configuration: {e}")

    if env_config_path.exists():
        try:
            logger.info(f"Loading {env} configuration from {env_config_path}")
            config_manager.load_config(str(env_config_path))
        except RuntimeError as e:
            logger.error(f"Error loading {env} configuration: {e}")

    custom_config_path = os.getenv('CONFIG_FILE')
    if custom_config_path and Path(custom_config_path).exists():
        try:
            logger.info(f"Loading custom configuration from {custom_config_path}")
            config_manager.load_config(custom_config_path)
        except RuntimeError as e:
            logger.error(f"Error loading custom configuration: {e}")

    health_check_config = Environment.get_health_check_config()
    for key, value in health_check_config.items():
        config_manager.set(f'health_check.{key}', value)

    for key, value in Environment.get_notification_config().items():
        config_manager.set(f'notifications.{key}', value)

    discord_token = config_manager.get('discord.token') or Environment.get_discord_token()
    if discord_token:
        config_manager.set('discord.token', discord_token)

    try:
        config_manager.validate_config()
        logger.info("Configuration validated successfully")
    except ValueError as e:
        logger.error(f"Configuration validation failed: {e}")
        return False

    return True


def build_application(config_manager: ConfigManager, database: DatabaseConnection) -> Application:
    """Create and wire every component."""
    notification_config = config_manager.get_notification_config()
    brand_name = notification_config.get('brand_name', 'GAG DROP WATCH')

    clock = Clock(notification_config.get('timezone', 'Asia/Manila'))
    snapshot_store = SnapshotStore()
    user_repository = UserRepository(database)
    throttle = RegistrationPromptThrottle(clock, notification_config.get('registration_cooldown', 300))

    discord_client = DiscordBotClient(config_manager)
    dispatcher = Dispatcher(discord_client, timeout=notification_config.get('send_timeout', 5.0))

    feed_client = FeedClient.from_config(snapshot_store, config_manager)
    matching_engine = MatchingEngine(
        snapshot_store, user_repository, clock,
        cooldown_hours=notification_config.get('cooldown_hours', 24),
        brand_name=brand_name
    )
    scheduler = NotificationScheduler(
        matching_engine, dispatcher, clock,
        interval_minutes=notification_config.get('interval_minutes', 5)
    )
    supervisor = Supervisor(feed_client, scheduler)

    stock_query = StockQueryService(snapshot_store, clock, brand_name)
    command_handler = CommandHandler(
        user_repository, dispatcher, stock_query, throttle,
        admin_id=config_manager.get('discord.admin_id'),
        interface_url=config_manager.get('web.interface_url'),
        brand_name=brand_name
    )
    preference_service = PreferenceService(user_repository, throttle, dispatcher, brand_name)

    discord_client.set_command_handler(command_handler)
    discord_client.set_preference_service(preference_service)
    discord_client.set_stock_query(stock_query)

    return Application(
        discord_client=discord_client,
        snapshot_store=snapshot_store,
        user_repository=user_repository,
        feed_client=feed_client,
        matching_engine=matching_engine,
        dispatcher=dispatcher,
        scheduler=scheduler,
        supervisor=supervisor,
        command_handler=command_handler,
        preference_service=preference_service,
        stock_query=stock_query
    )


async def shutdown_services(app: Application = None, health_server: HealthCheckServer = None):
    """Gracefully shut down all services."""
    logger = logging.getLogger(__name__)
    logger.info("Shutting down services...")

    if app is not None:
        try:
            logger.info("Stopping background tasks...")
            await app.supervisor.stop()
        except Exception as e:
            logger.error(f"Error stopping background tasks: {e}")

        try:
            if not app.discord_client.is_closed():
                logger.info("Closing Discord client...")
                await app.discord_client.close()
        except Exception as e:
            logger.error(f"Error closing Discord client: {e}")

    if health_server is not None:
        try:
            logger.info("Stopping health check server...")
            await health_server.stop()
        except Exception as e:
            logger.error(f"Error stopping health check server: {e}")

    try:
        logger.info("Closing database connection...")
        db.close()
    except Exception as e:
        logger.error(f"Error closing database connection: {e}")

    logger.info("All services shut down")


async def main():
    """Main application entry point."""
    Environment.setup_basic_logging()
    logger = logging.getLogger(__name__)
    logger.info(f"Starting GAG Drop Watch in {Environment.get_env()} mode")

    shutdown_event = asyncio.Event()
    setup_signal_handlers(asyncio.get_running_loop(), shutdown_event)

    app = None
    health_server = None
    try:
        logger.info("Loading configuration")
        if not load_configuration():
            logger.error("Failed to load valid configuration. Exiting.")
            return

        logger = setup_logging()

        logger.info("Initializing database")
        db.database_path = config.get_database_path()
        db._ensure_directory_exists()
        db.create_tables()
        migration_version = db.run_migrations()
        logger.info(f"Database migrated to version {migration_version}")

        logger.info("Initializing services")
        app = build_application(config, db)

        if config.get('health_check.enabled', True):
            health_server = HealthCheckServer(
                host=config.get('health_check.host', '127.0.0.1'),
                port=int(os.getenv('PORT', config.get('health_check.port', 8080)))
            )
            health_server.attach(
                feed_client=app.feed_client,
                snapshot_store=app.snapshot_store,
                scheduler=app.scheduler,
                user_repository=app.user_repository
            )
            await health_server.start()
        else:
            logger.info("Health check server disabled by configuration")

        await app.supervisor.start()

        logger.info("Starting Discord client")
        discord_task = asyncio.create_task(app.discord_client.start(config.get('discord.token')))
        shutdown_task = asyncio.create_task(shutdown_event.wait())
        done, _ = await asyncio.wait({discord_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED)

        shutdown_task.cancel()
        if discord_task in done and discord_task.exception() is not None:
            raise discord_task.exception()

    except Exception as e:
        await error_handler.handle_error(e, {"context": "application_startup"})
        logger.exception(f"Error running application: {e}")
        await shutdown_services(app, health_server)
        sys.exit(1)

    await shutdown_services(app, health_server)


def run():
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
