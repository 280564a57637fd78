"""Main application entry point."""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

import uvicorn
from fastapi import FastAPI

from .api.router import init_router, router
from .broadcast.broadcaster import Broadcaster
from .config import AppConfig, NotificationConfig, load_config_or_default
from .notifications.dispatcher import NotificationDispatcher
from .notifications.sender import LogEmailSender, SmtpEmailSender
from .state.expiry import ExpiryScheduler
from .state.ingestor import UpdateIngestor
from .state.registry import SpotRegistry
from .state.reservations import ReservationManager

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def build_sender(config: NotificationConfig):
    """Create the email sender for the notification configuration."""
    if not config.smtp_host:
        logger.warning("No SMTP host configured - notifications will only be logged")
        return LogEmailSender()

    return SmtpEmailSender(
        host=config.smtp_host,
        port=config.smtp_port,
        username=config.smtp_username,
        password=config.smtp_password,
        sender=config.sender,
        use_tls=config.smtp_use_tls,
    )


def create_app(config: Optional[AppConfig] = None, sender=None) -> FastAPI:
    """
    Build the application and wire its components together.

    Args:
        config: Application configuration, loaded from disk when omitted
        sender: Email sender override

    Returns:
        Configured FastAPI application
    """
    if config is None:
        config = load_config_or_default()

    registry = SpotRegistry(spot_count=config.spots.count)
    reservations = ReservationManager(
        registry,
        ttl=timedelta(minutes=config.reservations.ttl_minutes),
    )
    broadcaster = Broadcaster(
        registry,
        queue_size=config.broadcast.queue_size,
        send_timeout=config.broadcast.send_timeout_seconds,
    )
    registry.add_listener(broadcaster.publish)

    dispatcher = NotificationDispatcher(
        sender or build_sender(config.notifications),
        queue_size=config.notifications.queue_size,
    )
    ingestor = UpdateIngestor(
        registry,
        reservations,
        alerter=dispatcher,
        alert_recipient=config.notifications.alert_recipient,
        occupied_threshold_cm=config.sensor.occupied_threshold_cm,
    )
    scheduler = ExpiryScheduler(
        reservations,
        interval_seconds=config.reservations.sweep_interval_seconds,
    )

    init_router(registry, reservations, ingestor, broadcaster, dispatcher, scheduler)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info("Starting Parking Live...")

        dispatcher.start()
        scheduler.start()
        logger.info(
            f"Reservation expiry loop started "
            f"(TTL: {config.reservations.ttl_minutes} min, "
            f"interval: {config.reservations.sweep_interval_seconds}s)"
        )

        logger.info(f"Parking Live ready on http://{config.api.host}:{config.api.port}")

        yield  # Application runs here

        # Shutdown
        logger.info("Shutting down...")
        await scheduler.stop()
        await dispatcher.stop()
        logger.info("Shutdown complete")

    app = FastAPI(
        title="Parking Live",
        description="Live parking spot occupancy, reservations and updates",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.include_router(router, prefix="/api/v1")

    app.state.config = config
    app.state.registry = registry
    app.state.reservations = reservations
    app.state.ingestor = ingestor
    app.state.broadcaster = broadcaster
    app.state.dispatcher = dispatcher
    app.state.scheduler = scheduler

    return app


def main():
    """Run the application."""
    config = load_config_or_default()
    app = create_app(config)

    uvicorn.run(
        app,
        host=config.api.host,
        port=config.api.port,
    )


if __name__ == "__main__":
    main()
