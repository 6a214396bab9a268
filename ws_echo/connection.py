"""ws_echo/connection.py

Per-connection echo loop.

The websockets server has already completed the opening handshake when the
loop starts, and it answers pings and close frames on its own. The loop only
sees data messages:
- str   -> text message, sent back as text
- bytes -> binary message, sent back as binary

Reading message N+1 never starts before the echo of message N was written.
"""

import asyncio
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from websockets.exceptions import ConnectionClosed, ConnectionClosedOK

Message = Union[str, bytes]

IDLE_CLOSE_CODE = 1000
IDLE_CLOSE_REASON = "idle timeout"

_ids = itertools.count(1)


@dataclass
class Connection:
    peer: Any
    id: int = field(default_factory=lambda: next(_ids))
    opened_at: float = field(default_factory=time.monotonic)
    handshake_done: bool = True  # created by the server after a successful upgrade

    messages_echoed: int = 0
    bytes_echoed: int = 0

    close_code: Optional[int] = None
    close_reason: str = ""

    @property
    def age_s(self) -> float:
        return time.monotonic() - self.opened_at

    def record(self, message: Message) -> None:
        self.messages_echoed += 1
        if isinstance(message, str):
            self.bytes_echoed += len(message.encode("utf-8"))
        else:
            self.bytes_echoed += len(message)


def message_kind(message: Message) -> str:
    return "text" if isinstance(message, str) else "binary"


async def _next_message(websocket, idle_timeout_s: Optional[float]) -> Message:
    if idle_timeout_s is None:
        return await websocket.recv()
    return await asyncio.wait_for(websocket.recv(), timeout=idle_timeout_s)


async def echo_loop(
    websocket,
    connection: Connection,
    idle_timeout_s: Optional[float] = None,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Echo every data message back on the same websocket until it closes.

    Never raises for connection level failures: a closed peer, a protocol
    error, a failed write or an idle timeout all end the loop. The outcome is
    stored on ``connection`` (close_code / close_reason).
    """
    log = logger or logging.getLogger("ws_echo.connection")
    peer = connection.peer

    try:
        while True:
            try:
                msg = await _next_message(websocket, idle_timeout_s)
            except asyncio.TimeoutError:
                log.info(f"Connection from {peer} idle for {idle_timeout_s:.1f}s, closing")
                await websocket.close(code=IDLE_CLOSE_CODE, reason=IDLE_CLOSE_REASON)
                connection.close_code = IDLE_CLOSE_CODE
                connection.close_reason = IDLE_CLOSE_REASON
                return

            log.debug(f"WS IN [{connection.id}]: {message_kind(msg)} ({len(msg)})")

            # a failed send raises ConnectionClosed just like a failed recv
            await websocket.send(msg)
            connection.record(msg)

    except ConnectionClosedOK as e:
        _store_close(connection, e)
        log.info(f"Connection closed from {peer} (code={connection.close_code})")
    except ConnectionClosed as e:
        _store_close(connection, e)
        log.warning(
            f"Connection closed with error from {peer} "
            f"(code={connection.close_code} reason={connection.close_reason!r})"
        )


def _store_close(connection: Connection, exc: ConnectionClosed) -> None:
    # rcvd is None when the TCP connection dropped without a close frame
    frame = exc.rcvd if exc.rcvd is not None else exc.sent
    if frame is None:
        connection.close_code = 1006
        connection.close_reason = ""
    else:
        connection.close_code = frame.code
        connection.close_reason = frame.reason
