"""Push delivery over WebSocket.

One connection subscribes to one vehicle. The first message is a snapshot
of the latest update (or ``no_data``), followed by every accepted update,
overflow signals, and keepalives during quiet periods.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from vanzentrale.core.errors import NotFoundError, SubscriptionClosed

if TYPE_CHECKING:
    from vanzentrale.dispatch.dispatcher import Dispatcher
    from vanzentrale.dispatch.subscription import Subscription

router = APIRouter(prefix="/api/v1")


async def _unsubscribe_on_disconnect(websocket: WebSocket, dispatcher: Dispatcher,
                                     sub: Subscription) -> None:
    """Read until the client goes away, then release the subscription."""
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    finally:
        dispatcher.unsubscribe(sub)


@router.websocket("/vehicles/{vehicle_id}/stream")
async def stream_vehicle(websocket: WebSocket, vehicle_id: str) -> None:
    from vanzentrale.main import get_config, get_dispatcher

    dispatcher = get_dispatcher()
    keepalive = get_config().dispatch.keepalive_seconds

    await websocket.accept()
    # Subscribe before the snapshot so no update falls between the two.
    sub = dispatcher.subscribe(vehicle_id)
    watcher = asyncio.create_task(_unsubscribe_on_disconnect(websocket, dispatcher, sub))
    try:
        try:
            await websocket.send_json(dispatcher.pull(vehicle_id).to_dict())
        except NotFoundError:
            await websocket.send_json({"type": "no_data", "vehicle_id": vehicle_id})

        while True:
            try:
                event = await sub.get(timeout=keepalive)
            except TimeoutError:
                await websocket.send_json({"type": "keepalive"})
                continue
            await websocket.send_json(event.to_dict())
    except (WebSocketDisconnect, SubscriptionClosed):
        pass
    finally:
        watcher.cancel()
        dispatcher.unsubscribe(sub)
