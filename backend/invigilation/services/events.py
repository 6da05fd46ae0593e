from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
import logging
from typing import Any, Protocol

from anyio import from_thread

from invigilation.services.notification_hub import STAFF_CHANNEL, notification_hub, user_channel

logger = logging.getLogger(__name__)


class AllocationEvent(str, Enum):
    allocation_complete = "allocation-complete"
    new_allocation = "new-allocation"
    faculty_unavailable = "faculty-unavailable"
    live_status_updated = "live-status-updated"
    faculty_unable_to_reach = "faculty-unable-to-reach"
    faculty_replaced = "faculty-replaced"
    allocation_cancelled = "allocation-cancelled"


class EventSink(Protocol):
    def publish(self, event: AllocationEvent, payload: dict[str, Any]) -> None: ...


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.isoformat()
        return value.astimezone(timezone.utc).isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(item) for item in value]
    return value


class HubEventSink:
    """Pushes events to staff subscribers and to the faculty member they concern.

    Delivery is best effort: a failed push is logged and never reaches the caller.
    """

    def publish(self, event: AllocationEvent, payload: dict[str, Any]) -> None:
        message = {"event": event.value, "data": _jsonable(payload)}
        channels = [STAFF_CHANNEL]
        faculty_id = payload.get("faculty_id")
        if faculty_id:
            channels.append(user_channel(faculty_id))
        for channel in channels:
            try:
                from_thread.run(notification_hub.publish, channel, message)
            except Exception:  # pragma: no cover - runtime environment dependent
                logger.debug("Unable to push %s event to %s", event.value, channel, exc_info=True)


class NullEventSink:
    def publish(self, event: AllocationEvent, payload: dict[str, Any]) -> None:
        logger.debug("Dropping %s event", event.value)


def emit(sink: EventSink | None, event: AllocationEvent, payload: dict[str, Any]) -> None:
    if sink is None:
        return
    try:
        sink.publish(event, payload)
    except Exception:
        logger.warning("Event sink failed to publish %s", event.value, exc_info=True)
