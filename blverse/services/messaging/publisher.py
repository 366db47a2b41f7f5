# blverse/services/messaging/publisher.py
"""
Best-effort publishing of realtime events.

Services decide *what* happened and *who* should hear about it, and wrap
that in a ``Delivery``. Publishing happens after the store transaction has
committed and never raises: a broadcast failure is logged and the request
that caused it still succeeds.
"""

from dataclasses import dataclass, field
import logging
from typing import Optional, Tuple

from .connection_directory import ConnectionDirectory, DeliveryReport
from .events import RealtimeEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Delivery:
    """
    One event and its audience.

    ``conversation_id`` selects the conversation room on the room channel;
    ``user_ids`` select personal rooms and SSE streams. Typing indicators
    leave ``conversation_id`` unset so the typist does not hear their own
    echo.
    """

    event: RealtimeEvent
    conversation_id: Optional[str] = None
    user_ids: Tuple[str, ...] = field(default_factory=tuple)


async def publish(directory: ConnectionDirectory, delivery: Optional[Delivery]) -> Optional[DeliveryReport]:
    if delivery is None:
        return None
    try:
        report = await directory.broadcast(
            delivery.event,
            conversation_id=delivery.conversation_id,
            user_ids=delivery.user_ids,
        )
    except Exception as e:
        logger.error(
            f"[BROADCAST] Failed to publish {delivery.event.event_type.value}: {e}",
            extra={"conversation_id": delivery.conversation_id},
        )
        return None
    if report.failed:
        logger.info(
            "[BROADCAST] Partial delivery",
            extra={
                "event": report.event,
                "delivered": report.delivered,
                "failed": report.failed,
            },
        )
    return report
