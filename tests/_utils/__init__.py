"""Test doubles for realtime connections."""

from typing import Any, Dict, List, Tuple

import ulid

from blverse.services.messaging.connection_directory import ConnectionClosedError


class RecordingConnection:
    """Keeps every frame it is sent."""

    def __init__(self, user_id: str):
        self.connection_id = str(ulid.ULID())
        self.user_id = user_id
        self.frames: List[Tuple[str, Dict[str, Any]]] = []
        self.closed = False

    async def send(self, event_name: str, payload: Dict[str, Any]) -> None:
        self.frames.append((event_name, payload))

    def close(self) -> None:
        self.closed = True

    def events(self, name: str) -> List[Dict[str, Any]]:
        return [payload for event, payload in self.frames if event == name]

    @property
    def event_names(self) -> List[str]:
        return [event for event, _ in self.frames]


class BrokenConnection(RecordingConnection):
    """Fails every write, like a client whose socket went away."""

    async def send(self, event_name: str, payload: Dict[str, Any]) -> None:
        raise ConnectionClosedError("peer went away")
