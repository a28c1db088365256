from __future__ import annotations

import json
import logging
import uuid

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..game_logic import handle_disconnect, handle_ws_message
from ..table import Table

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["ws"])


@router.websocket("/ws")
async def table_ws_endpoint(ws: WebSocket):
    await ws.accept()
    table: Table = ws.app.state.table
    connection_id = uuid.uuid4().hex
    table.connections[connection_id] = ws
    logger.debug("Socket %s connected", connection_id)

    try:
        while True:
            raw = await ws.receive_text()
            try:
                data = json.loads(raw)
            except ValueError:
                logger.debug("Dropping malformed frame from %s", connection_id)
                continue
            if not isinstance(data, dict):
                logger.debug("Dropping non-object frame from %s", connection_id)
                continue
            await handle_ws_message(table, connection_id, data)
    except WebSocketDisconnect:
        await handle_disconnect(table, connection_id)
    except Exception:
        logger.exception("WebSocket error on %s", connection_id)
        await handle_disconnect(table, connection_id)
