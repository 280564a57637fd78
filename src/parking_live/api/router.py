"""FastAPI route definitions."""

import asyncio
import logging
from datetime import datetime
from typing import NoReturn, Optional

from fastapi import APIRouter, HTTPException, Response, WebSocket

from ..broadcast.broadcaster import Broadcaster, Subscriber
from ..metrics import get_metrics, increment_dropped_subscribers
from ..notifications.dispatcher import NotificationDispatcher
from ..state.exceptions import NotificationFailure, ParkingError
from ..state.expiry import ExpiryScheduler
from ..state.ingestor import UpdateIngestor
from ..state.models import ParkingSpot
from ..state.registry import SpotRegistry
from ..state.reservations import ReservationManager
from .schemas import (
    CancelResponse,
    ErrorResponse,
    HealthResponse,
    NotificationRequest,
    NotificationResponse,
    ReportRequest,
    ReportResponse,
    ReservationResponse,
    ReservationsResponse,
    ReserveRequest,
    SpotReservationResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES = {
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}

# Dependencies injected at startup
_registry: Optional[SpotRegistry] = None
_reservations: Optional[ReservationManager] = None
_ingestor: Optional[UpdateIngestor] = None
_broadcaster: Optional[Broadcaster] = None
_dispatcher: Optional[NotificationDispatcher] = None
_scheduler: Optional[ExpiryScheduler] = None
_start_time: datetime = datetime.now()


def init_router(
    registry: SpotRegistry,
    reservations: ReservationManager,
    ingestor: UpdateIngestor,
    broadcaster: Broadcaster,
    dispatcher: NotificationDispatcher,
    scheduler: ExpiryScheduler,
) -> None:
    """
    Initialize router with dependencies.

    Args:
        registry: Spot state registry
        reservations: Reservation manager
        ingestor: Report ingestor
        broadcaster: Live update broadcaster
        dispatcher: Notification dispatcher
        scheduler: Reservation expiry scheduler
    """
    global _registry, _reservations, _ingestor, _broadcaster, _dispatcher, _scheduler
    global _start_time

    _registry = registry
    _reservations = reservations
    _ingestor = ingestor
    _broadcaster = broadcaster
    _dispatcher = dispatcher
    _scheduler = scheduler
    _start_time = datetime.now()

    logger.info("API router initialized")


def _require_initialized() -> None:
    if _registry is None:
        raise HTTPException(status_code=503, detail="Service not initialized")


def _raise_http(error: ParkingError) -> NoReturn:
    raise HTTPException(
        status_code=error.status_code,
        detail={"error": error.code, "message": str(error)},
    )


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Health check endpoint.

    Returns spot counts per status, active reservations and subscribers.
    """
    _require_initialized()

    return HealthResponse(
        status="healthy",
        uptime_seconds=(datetime.now() - _start_time).total_seconds(),
        spots=_registry.counts(),
        active_reservations=len(_reservations.active()),
        subscribers=_broadcaster.subscriber_count,
        expiry_running=_scheduler.running,
    )


@router.get("/spots", response_model=list[ParkingSpot])
async def list_spots() -> list[ParkingSpot]:
    """Get all parking spots ordered by id."""
    _require_initialized()
    return _registry.get_all()


@router.get("/spots/{spot_id}", response_model=ParkingSpot, responses=ERROR_RESPONSES)
async def get_spot(spot_id: int) -> ParkingSpot:
    """
    Get status for a specific parking spot.

    Args:
        spot_id: The ID of the parking spot to query
    """
    _require_initialized()
    try:
        return _registry.get(spot_id)
    except ParkingError as e:
        _raise_http(e)


@router.post("/spots/{spot_id}/report", response_model=ReportResponse, responses=ERROR_RESPONSES)
async def report_status(spot_id: int, report: ReportRequest) -> ReportResponse:
    """
    Apply a sensor or manual status report.

    A distance reading takes precedence over a raw status. Reports for
    reserved spots are accepted but ignored, which the response flags.
    """
    _require_initialized()
    try:
        result = _ingestor.apply_report(spot_id, report.status, report.distance)
    except ParkingError as e:
        logger.warning(f"Report for spot {spot_id} rejected: {e}")
        _raise_http(e)

    return ReportResponse(ignored=result.ignored, spot=result.spot)


@router.get("/reservations", response_model=ReservationsResponse)
async def list_reservations() -> ReservationsResponse:
    """List active reservations."""
    _require_initialized()
    return ReservationsResponse(reservations=_reservations.active())


@router.get(
    "/reservations/{spot_id}",
    response_model=SpotReservationResponse,
    responses=ERROR_RESPONSES,
)
async def get_reservation(spot_id: int) -> SpotReservationResponse:
    """Get the reservation on a spot; null when the spot is not reserved."""
    _require_initialized()
    try:
        reservation = _reservations.get(spot_id)
    except ParkingError as e:
        _raise_http(e)

    return SpotReservationResponse(spot_id=spot_id, reservation=reservation)


@router.post("/reservations", response_model=ReservationResponse, responses=ERROR_RESPONSES)
async def reserve_spot(request: ReserveRequest) -> ReservationResponse:
    """Reserve a free spot for a limited time."""
    _require_initialized()
    try:
        reservation = _reservations.reserve(request.id)
        spot = _registry.get(request.id)
    except ParkingError as e:
        logger.info(f"Reservation of spot {request.id} refused: {e}")
        _raise_http(e)

    return ReservationResponse(reservation=reservation, spot=spot)


@router.post(
    "/reservations/{spot_id}/cancel",
    response_model=CancelResponse,
    responses=ERROR_RESPONSES,
)
async def cancel_reservation(spot_id: int) -> CancelResponse:
    """Cancel the reservation on a spot."""
    _require_initialized()
    try:
        _reservations.cancel(spot_id)
        spot = _registry.get(spot_id)
    except ParkingError as e:
        _raise_http(e)

    return CancelResponse(spot=spot)


@router.post(
    "/notifications",
    response_model=NotificationResponse,
    responses={502: {"model": ErrorResponse}},
)
async def send_notification(request: NotificationRequest) -> NotificationResponse:
    """Send a notification through the alert sender and report the outcome."""
    if _dispatcher is None:
        raise HTTPException(status_code=503, detail="Notifications not configured")

    sent = await _dispatcher.send(request.destination, "Parking notification", request.message)
    if not sent:
        _raise_http(NotificationFailure(f"Failed to send notification to {request.destination}"))

    return NotificationResponse(success=True)


@router.websocket("/ws")
async def live_updates(websocket: WebSocket) -> None:
    """
    Live update channel.

    Sends INITIAL_STATE with every spot once, then an UPDATE for each spot
    change. Incoming messages, text or binary, are ignored. A viewer that
    falls too far behind, or whose socket stalls on a send, is disconnected.
    """
    if _broadcaster is None:
        await websocket.close(code=1011)
        return

    await websocket.accept()
    subscriber = _broadcaster.subscribe()
    logger.info(f"WebSocket connected: {websocket.client}")

    sender = asyncio.create_task(_pump(websocket, subscriber, _broadcaster.send_timeout))
    receiver = asyncio.create_task(_drain_incoming(websocket))

    try:
        done, pending = await asyncio.wait(
            {sender, receiver},
            return_when=asyncio.FIRST_COMPLETED,
        )
        for task in pending:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        for task in done:
            if task.exception() is not None:
                logger.warning(f"WebSocket error: {task.exception()}")

        if sender in done and subscriber.closed:
            # Dropped as unresponsive
            await asyncio.wait_for(websocket.close(code=1013), timeout=_broadcaster.send_timeout)
    except asyncio.TimeoutError:
        logger.warning(f"WebSocket close timed out: {websocket.client}")
    except RuntimeError as e:
        logger.debug(f"WebSocket already closed: {e}")
    finally:
        _broadcaster.unsubscribe(subscriber)
        logger.info(f"WebSocket disconnected: {websocket.client}")


async def _pump(websocket: WebSocket, subscriber: Subscriber, send_timeout: float) -> None:
    while True:
        message = await subscriber.next_message()
        if message is None:
            return
        try:
            await asyncio.wait_for(websocket.send_json(message), timeout=send_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"WebSocket send stalled for {send_timeout}s, dropping subscriber")
            increment_dropped_subscribers()
            subscriber.close()
            return


async def _drain_incoming(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return
        logger.debug(f"WebSocket message ignored: {message.get('text', message.get('bytes'))!r}")


@router.get("/metrics")
async def prometheus_metrics() -> Response:
    """
    Prometheus metrics endpoint.

    Returns metrics in Prometheus text format including:
    - parking_spot_updates_total: Counter of status updates by spot and status
    - parking_spots: Gauge of spots per status
    - parking_reservation_events_total: Reservations created, cancelled and expired
    - parking_reports_total: Reports applied, ignored and rejected
    - parking_subscribers_active: Connected live-update subscribers
    - parking_notifications_total: Notifications sent, failed and dropped
    """
    return Response(
        content=get_metrics(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
