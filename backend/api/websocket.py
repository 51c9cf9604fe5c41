import json

from fastapi import WebSocket, WebSocketDisconnect

from services.broadcaster import Broadcaster
from utils.logger import get_logger

logger = get_logger("websocket")


async def handle_websocket(websocket: WebSocket, broadcaster: Broadcaster):
    """Main WebSocket handler"""
    if not await broadcaster.connect(websocket):
        return

    try:
        while True:
            # Wait for messages from client
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except ValueError:
                continue
            if not isinstance(message, dict):
                continue

            if message.get("type") == "ping":
                await broadcaster.send_personal(websocket, "pong")

    except WebSocketDisconnect:
        broadcaster.disconnect(websocket)
    except Exception as e:
        logger.warning("WebSocket error", error=str(e))
        broadcaster.disconnect(websocket)
