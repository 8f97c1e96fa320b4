"""/ws/measure -- WebSocket handler for live field edits.

Connection lifecycle:
1. Client opens ws://host:8000/ws/measure
2. Server sends the initial snapshot (nominal dimensions, no readings)
3. Client sends one edit per message: {"name": "wffl", "value": "10"}
   or a command: {"type": "reset"} / {"type": "clear", "name": "wffl"}
4. Server replies with a snapshot frame after each accepted edit, or an
   error frame naming the rejected field (no snapshot is sent for it)
5. On disconnect the connection's engine is dropped

Concurrency model:
- Each connection owns exactly one GeometryEngine; nothing is shared.
- A task group runs two concurrent tasks: a reader and a renderer.
- The reader is the single writer: it applies edits to the engine in
  arrival order and posts a render tick to a memory channel.
- The renderer drains pending ticks (last-write-wins) and sends one
  snapshot of the engine's current state.
- A lock protects ws.send_text to prevent interleaved frames.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import anyio
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from alignment.display import build_result
from alignment.geometry.engine import GeometryEngine, ParseError, UnknownQuantityError
from alignment.models import InputEdit

logger = logging.getLogger("alignment.ws")

router = APIRouter()

# Maximum accepted WebSocket message size (bytes).  A single field edit is a
# few dozen bytes; anything larger is rejected with an error frame.
MAX_MESSAGE_SIZE = 4 * 1024  # 4 KB


def _build_error_frame(error: str, detail: str = "", field: str = "") -> str:
    """Build an error frame; ``field`` names the input the UI should mark invalid."""
    payload: dict[str, str] = {"type": "error", "error": error}
    if detail:
        payload["detail"] = detail
    if field:
        payload["field"] = field
    return json.dumps(payload)


def _build_snapshot_frame(engine: GeometryEngine, blank_unresolved: bool = False) -> str:
    """Serialize the engine's current inputs and derived values.

    Uses Pydantic alias_generator (by_alias=True) for snake_case -> camelCase
    conversion of the frame fields -- see models.py CamelModel base class.
    """
    result = build_result(engine, blank_unresolved=blank_unresolved)
    frame: dict[str, Any] = {"type": "snapshot", **result.model_dump(by_alias=True)}
    return json.dumps(frame)


def _apply_message(engine: GeometryEngine, data: Any) -> str | None:
    """Apply one decoded client message to *engine*.

    Returns None when the engine changed (a snapshot is due), otherwise an
    error frame for the client.
    """
    if not isinstance(data, dict):
        return _build_error_frame(
            error="Invalid message format",
            detail="Expected a JSON object",
        )

    kind = data.get("type", "edit")
    if kind == "reset":
        engine.reset()
        return None
    if kind == "clear":
        name = data.get("name")
        if not isinstance(name, str):
            return _build_error_frame(error="Validation error", detail="name: field required")
        try:
            engine.clear_input(name)
        except UnknownQuantityError as exc:
            return _build_error_frame(error="Unknown input", detail=str(exc), field=name)
        return None
    if kind != "edit":
        return _build_error_frame(error="Unknown message type", detail=str(kind))

    try:
        edit = InputEdit(**{k: v for k, v in data.items() if k != "type"})
    except ValidationError as exc:
        logger.warning("Pydantic validation error: %s", exc)
        detail_parts = []
        for err in exc.errors()[:5]:  # limit to 5 errors
            loc = ".".join(str(part) for part in err["loc"])
            detail_parts.append(f"{loc}: {err['msg']}")
        name = data.get("name")
        return _build_error_frame(
            error="Validation error",
            detail="; ".join(detail_parts),
            field=name if isinstance(name, str) else "",
        )

    try:
        engine.set_input(edit.name, edit.value)
    except UnknownQuantityError as exc:
        logger.warning("Edit for unknown input %r", edit.name)
        return _build_error_frame(error="Unknown input", detail=str(exc), field=edit.name)
    except ParseError as exc:
        return _build_error_frame(error="Invalid number", detail=str(exc), field=edit.name)
    return None


@router.websocket("/ws/measure")
async def measure_websocket(ws: WebSocket, blank_unresolved: bool = False) -> None:
    """Handle a single WebSocket connection for live measurement entry.

    Uses a task group with two concurrent tasks:
    - **reader**: receives WebSocket messages, applies them to the
      connection's engine and posts a render tick into a memory channel.
    - **renderer**: consumes ticks, collapses bursts into one, and sends the
      engine's snapshot back.

    A shared lock protects all ws.send_text calls to prevent interleaved
    frames from the two tasks.
    """
    await ws.accept()
    logger.info("WebSocket client connected")

    engine = GeometryEngine()

    # Memory channel -- reader posts render ticks, renderer consumes.
    send_ch, recv_ch = anyio.create_memory_object_stream[None](max_buffer_size=16)

    # Lock protecting ws.send_text -- both tasks may send frames.
    ws_lock = anyio.Lock()

    async def _send_frame(frame: str) -> None:
        """Send a text frame to the WebSocket, protected by lock."""
        async with ws_lock:
            await ws.send_text(frame)

    async def reader_task() -> None:
        """Read messages from the WebSocket and apply them to the engine."""
        try:
            while True:
                try:
                    raw = await ws.receive()
                except WebSocketDisconnect:
                    return
                if raw.get("type") == "websocket.disconnect":
                    return

                text = raw.get("text")
                if text is None:
                    if raw.get("bytes") is None:
                        continue
                    try:
                        text = raw["bytes"].decode("utf-8")
                    except UnicodeDecodeError:
                        logger.warning("Received non-UTF-8 binary frame, ignoring")
                        await _send_frame(_build_error_frame(
                            error="Invalid message format",
                            detail="Expected UTF-8 encoded JSON text",
                        ))
                        continue

                if len(text.encode("utf-8", errors="replace")) > MAX_MESSAGE_SIZE:
                    await _send_frame(_build_error_frame(
                        error="Message too large",
                        detail=f"Maximum message size is {MAX_MESSAGE_SIZE} bytes",
                    ))
                    continue

                try:
                    data = json.loads(text)
                except json.JSONDecodeError as exc:
                    logger.warning("Malformed JSON from WebSocket client: %s", exc)
                    await _send_frame(_build_error_frame(error="Invalid JSON", detail=str(exc)))
                    continue

                error_frame = _apply_message(engine, data)
                if error_frame is not None:
                    await _send_frame(error_frame)
                    continue

                # Post a render tick (non-blocking send)
                try:
                    send_ch.send_nowait(None)
                except anyio.WouldBlock:
                    # Renderer is behind; the pending ticks already cover this edit
                    pass
        finally:
            send_ch.close()

    async def renderer_task() -> None:
        """Consume render ticks and send the engine's current snapshot."""
        async for _ in recv_ch:
            # Drain channel: one snapshot covers every pending edit
            while True:
                try:
                    recv_ch.receive_nowait()
                except (anyio.WouldBlock, anyio.EndOfStream):
                    break
            try:
                await _send_frame(_build_snapshot_frame(engine, blank_unresolved))
            except Exception:
                return

    try:
        await _send_frame(_build_snapshot_frame(engine, blank_unresolved))
        async with anyio.create_task_group() as tg:
            tg.start_soon(reader_task)
            tg.start_soon(renderer_task)
    except WebSocketDisconnect:
        logger.info("WebSocket client disconnected")
    except Exception:
        logger.exception("WebSocket error")
    else:
        logger.info("WebSocket client disconnected")
