import json
import logging
from typing import Any, Callable, Dict, List, Optional

from fastapi import WebSocket, WebSocketDisconnect

from sshmount.core.events.event_bus import DomainEventBus
from sshmount.core.events.mount_events import MountEvent
from sshmount.core.host_repository import HostRepository
from sshmount.models import MountStateInfo


class WebSocketManager:
    """
    Pushes every orchestrator event to connected clients.

    Messages look like `{"type": "<EventClassName>", "data": {...}}`. A new
    client first receives an `initial_state` message with the hosts and the
    current mount state.
    """

    def __init__(
        self,
        host_repository: HostRepository,
        event_bus: DomainEventBus,
        state_provider: Optional[Callable[[], MountStateInfo]] = None,
    ):
        self._host_repository = host_repository
        self._event_bus = event_bus
        self._state_provider = state_provider
        self._connections: List[WebSocket] = []

        self._event_bus.subscribe(MountEvent, self.handle_mount_event)
        logging.info("Subscribed to DomainEventBus for mount events")

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections.append(websocket)

        await self._send_initial_state(websocket)

        logging.info(
            f"WebSocket client connected. Total connections: {len(self._connections)}"
        )

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self._connections:
            self._connections.remove(websocket)

        logging.info(
            f"WebSocket client disconnected. Total connections: {len(self._connections)}"
        )

    async def _send_initial_state(self, websocket: WebSocket) -> None:
        try:
            hosts = await self._host_repository.get_all()
            state = self._state_provider() if self._state_provider else None

            initial_data = {
                "type": "initial_state",
                "data": {
                    "hosts": [h.model_dump(mode="json", by_alias=True) for h in hosts],
                    "mount": state.model_dump(mode="json", by_alias=True) if state else None,
                },
            }
            await websocket.send_text(json.dumps(initial_data))

        except Exception as e:
            logging.error(f"Error sending initial state: {e}")

    async def handle_mount_event(self, event: MountEvent) -> None:
        if not self._connections:
            return

        message_data = {
            "type": event.event_type,
            "data": {
                **event.to_payload(),
                "timestamp": event.timestamp.isoformat(),
            },
        }
        await self._broadcast_message(message_data)
        logging.debug(f"Broadcasted {event.event_type} to {len(self._connections)} client(s)")

    async def _broadcast_message(self, message_data: Dict[str, Any]) -> None:
        if not self._connections:
            return

        message_json = json.dumps(message_data)
        disconnected_clients = []

        for websocket in list(self._connections):
            try:
                await websocket.send_text(message_json)

            except WebSocketDisconnect:
                disconnected_clients.append(websocket)
                logging.debug("Client disconnected during broadcast")

            except Exception as e:
                disconnected_clients.append(websocket)
                logging.warning(f"Error sending to client: {e}")

        for websocket in disconnected_clients:
            self.disconnect(websocket)
