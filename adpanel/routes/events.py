"""
Advertising Panel Real-time Events
Per-user pub/sub for playback screens, over WebSocket and SSE
"""
from fastapi import APIRouter, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import StreamingResponse
from typing import AsyncGenerator, Dict, Iterable, Optional, Set
import asyncio
import json
from datetime import datetime, timezone
from dataclasses import dataclass
import uuid

from ..logging_config import realtime_logger

router = APIRouter(tags=["events"])

MEDIA_UPDATED = "media_updated"


def user_topic(user_id) -> str:
    return f"user_{user_id}"


# ============================================================
# EVENT TYPES
# ============================================================

@dataclass
class Event:
    """Event pushed to connected viewers"""
    type: str
    data: Dict
    id: str = ""
    timestamp: str = ""

    def __post_init__(self):
        if not self.id:
            self.id = f"evt_{uuid.uuid4().hex[:8]}"
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + "Z"

    def to_message(self) -> Dict:
        return {
            "event": self.type,
            "data": self.data,
            "id": self.id,
            "timestamp": self.timestamp,
        }

    def to_sse(self) -> str:
        """Format as SSE message"""
        return f"id: {self.id}\nevent: {self.type}\ndata: {json.dumps(self.to_message())}\n\n"


# ============================================================
# EVENT MANAGER (Pub/Sub)
# ============================================================

class EventManager:
    """Tracks connected viewers and the topics they joined.

    Delivery is best effort while connected; nothing is replayed, so a
    reconnecting viewer re-fetches its playlist.
    """

    def __init__(self):
        self._clients: Dict[str, asyncio.Queue] = {}
        self._topics: Dict[str, Set[str]] = {}  # topic -> client_ids

    def connect(self, client_id: str) -> asyncio.Queue:
        """Register a new client with no topics"""
        queue = asyncio.Queue()
        self._clients[client_id] = queue
        return queue

    def subscribe(self, client_id: str, topics: Iterable[str]):
        for topic in topics:
            self._topics.setdefault(topic, set()).add(client_id)

    def disconnect(self, client_id: str):
        """Remove a client"""
        self._clients.pop(client_id, None)

        for topic, members in list(self._topics.items()):
            members.discard(client_id)
            if not members:
                del self._topics[topic]

    async def broadcast(self, event: Event, topic: str) -> int:
        """Send event to all clients subscribed to topic; returns the fan-out"""
        delivered = 0
        for client_id in list(self._topics.get(topic, ())):
            queue = self._clients.get(client_id)
            if queue is not None:
                await queue.put(event)
                delivered += 1
        return delivered

    def subscribers(self, topic: str) -> int:
        return len(self._topics.get(topic, ()))

    @property
    def client_count(self) -> int:
        return len(self._clients)


# Global event manager
event_manager = EventManager()


# ============================================================
# HELPER FUNCTIONS (use from other routes)
# ============================================================

async def emit_media_updated(user_id: int, group_id: Optional[int]) -> int:
    """Tell every screen showing ``user_id``'s content that a group changed"""
    delivered = await event_manager.broadcast(
        Event(type=MEDIA_UPDATED, data={"group_id": group_id}),
        topic=user_topic(user_id),
    )
    realtime_logger.debug("media_updated published", user_id=user_id, group_id=group_id, delivered=delivered)
    return delivered


# ============================================================
# WEBSOCKET
# ============================================================

async def _pump(websocket: WebSocket, queue: asyncio.Queue):
    while True:
        event = await queue.get()
        await websocket.send_json(event.to_message())


async def _listen(websocket: WebSocket, client_id: str):
    while True:
        try:
            message = await websocket.receive_json()
        except ValueError:
            await websocket.send_json({"event": "error", "data": {"message": "Invalid JSON"}})
            continue
        if not isinstance(message, dict) or message.get("event") != "join":
            await websocket.send_json({"event": "error", "data": {"message": "Unknown message"}})
            continue

        user_id = message.get("user_id", message.get("userId"))
        try:
            user_id = int(user_id)
        except (TypeError, ValueError):
            await websocket.send_json({"event": "error", "data": {"message": "user_id is required"}})
            continue

        event_manager.subscribe(client_id, [user_topic(user_id)])
        await websocket.send_json({"event": "joined", "data": {"user_id": user_id}})


@router.websocket("/ws")
async def viewer_socket(websocket: WebSocket):
    """
    Persistent viewer connection.

    Send ``{"event": "join", "user_id": 7}`` to receive
    ``{"event": "media_updated", "data": {"group_id": 3}}`` pushes.
    """
    await websocket.accept()
    client_id = f"ws_{uuid.uuid4().hex[:8]}"
    queue = event_manager.connect(client_id)
    realtime_logger.info("Client connected", client_id=client_id)

    pump = asyncio.create_task(_pump(websocket, queue))
    listen = asyncio.create_task(_listen(websocket, client_id))
    try:
        done, _ = await asyncio.wait({pump, listen}, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                realtime_logger.warning("Viewer socket closed with error", client_id=client_id, error_message=str(exc))
    finally:
        pump.cancel()
        listen.cancel()
        event_manager.disconnect(client_id)
        realtime_logger.info("Client disconnected", client_id=client_id)


# ============================================================
# SSE ROUTES
# ============================================================

async def event_stream(request: Request, client_id: str, topic: str) -> AsyncGenerator:
    """Generator for SSE stream"""
    queue = event_manager.connect(client_id)
    event_manager.subscribe(client_id, [topic])
    yield Event(type="joined", data={"topic": topic}).to_sse()

    try:
        while True:
            if await request.is_disconnected():
                break

            try:
                # Wait for events with timeout (for keepalive)
                event = await asyncio.wait_for(queue.get(), timeout=30.0)
                yield event.to_sse()
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"

    finally:
        event_manager.disconnect(client_id)


@router.get("/api/events/stream")
async def sse_stream(request: Request, user_id: int):
    """SSE alternative to ``/ws`` for screens that cannot hold a WebSocket."""
    client_id = f"sse_{uuid.uuid4().hex[:8]}"

    return StreamingResponse(
        event_stream(request, client_id, user_topic(user_id)),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        }
    )


@router.get("/api/events/status")
async def events_status():
    """Get current event system status"""
    return {
        "ok": True,
        "connected_clients": event_manager.client_count,
    }
