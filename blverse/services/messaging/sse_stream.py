# blverse/services/messaging/sse_stream.py
"""
Per-user Server-Sent Events stream.

The generator registers a stream in the connection directory, announces
itself with a ``ready`` event, then relays whatever the directory pushes
into its queue. A heartbeat is emitted whenever nothing arrived for
``sse_heartbeat_interval`` seconds. The stream is removed from the
directory as soon as the client disconnects or the app shuts down.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import json
import logging
from typing import Any, AsyncGenerator, Dict, Optional

from ...core.config import settings
from .connection_directory import ConnectionDirectory

logger = logging.getLogger(__name__)

READY_EVENT = "ready"
HEARTBEAT_EVENT = "heartbeat"


def format_sse(event_name: str, payload: Dict[str, Any]) -> Dict[str, str]:
    """Shape a directory frame the way sse-starlette expects it."""
    return {"event": event_name, "data": json.dumps(payload, default=str)}


async def create_sse_stream(
    directory: ConnectionDirectory,
    user_id: str,
    heartbeat_interval: Optional[float] = None,
) -> AsyncGenerator[Dict[str, str], None]:
    interval = heartbeat_interval if heartbeat_interval is not None else settings.sse_heartbeat_interval
    connection = directory.open_stream(user_id)
    logger.info(
        "[SSE] Stream opened",
        extra={"user_id": user_id, "connection_id": connection.connection_id},
    )
    try:
        yield format_sse(READY_EVENT, {"ok": True, "userId": user_id})

        while True:
            try:
                frame = await asyncio.wait_for(connection.queue.get(), timeout=interval)
            except asyncio.TimeoutError:
                if connection.closed:
                    break
                yield format_sse(
                    HEARTBEAT_EVENT, {"ts": datetime.now(timezone.utc).isoformat()}
                )
                continue

            if frame is None:
                # Directory closed this stream
                break
            yield format_sse(frame["event"], frame["data"])
    except asyncio.CancelledError:
        logger.info("[SSE] Stream cancelled by client disconnect", extra={"user_id": user_id})
        raise
    finally:
        directory.detach_stream(connection)
