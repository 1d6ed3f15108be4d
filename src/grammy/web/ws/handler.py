"""WebSocket endpoint handler: one live editing session per connection."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from starlette.websockets import WebSocket, WebSocketDisconnect

from grammy.checker.base import Checker
from grammy.drafts import DraftStore
from grammy.engine.session import EditorSession
from grammy.web.config import Config
from grammy.web.ws.protocol import (
    AcceptMessage,
    CaretMessage,
    EditMessage,
    HoverMessage,
    RecheckMessage,
    error_message,
    parse_client_message,
    preview_message,
    status_message,
    suggestions_message,
)
from grammy.web.ws.surface import WebSocketSurface

logger = logging.getLogger(__name__)


async def _writer(websocket: WebSocket, outbox: asyncio.Queue[dict[str, Any]]) -> None:
    """Drain the outbox in order. Stops quietly once the socket is gone."""
    while True:
        data = await outbox.get()
        try:
            await websocket.send_json(data)
        except Exception:
            logger.debug("WebSocket closed; dropping outgoing %s message", data.get("type"))
            return


async def websocket_handler(
    websocket: WebSocket,
    checker: Checker,
    config: Config,
    drafts: DraftStore | None = None,
) -> None:
    """Main WebSocket handler - one per client connection."""
    await websocket.accept()

    outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
    send = outbox.put_nowait

    surface = WebSocketSurface(send, config.units)
    if drafts is not None:
        surface.load(await asyncio.to_thread(drafts.load))

    session = EditorSession(
        surface,
        checker,
        units=config.units,
        debounce_ms=config.debounce_ms,
    )
    session.status.subscribe(lambda text: send(status_message(text)))
    session.on_suggestions(lambda items: send(suggestions_message(items)))
    session.on_preview(lambda suggestion: send(preview_message(suggestion)))

    writer = asyncio.create_task(_writer(websocket, outbox))
    send(status_message(session.status.text))
    session.start()

    async def save_draft() -> None:
        if drafts is not None:
            await asyncio.to_thread(drafts.save, surface.get_text())

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                send(error_message("Invalid JSON"))
                continue

            msg = parse_client_message(data) if isinstance(data, dict) else None
            if msg is None:
                kind = data.get("type") if isinstance(data, dict) else None
                send(error_message(f"Invalid message: {kind!r}"))
                continue

            match msg:
                case EditMessage():
                    surface.apply_edit(msg.text, msg.caret)
                    await save_draft()

                case CaretMessage():
                    surface.move_caret(msg.offset)

                case AcceptMessage():
                    if session.accept(msg.id) is not None:
                        await save_draft()

                case HoverMessage():
                    surface.hover(msg.id)

                case RecheckMessage():
                    session.recheck()

    except WebSocketDisconnect:
        logger.info("WebSocket disconnected")
    except Exception:
        logger.exception("WebSocket error")
    finally:
        session.close()
        writer.cancel()
        try:
            await writer
        except asyncio.CancelledError:
            pass
