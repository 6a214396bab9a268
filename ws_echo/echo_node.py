#!/usr/bin/env python3
"""ws_echo/echo_node.py

WebSocket echo server node.

Listener:
- Binds one address (EchoParams.host / EchoParams.port); bind failure is fatal
- Every accepted connection runs in its own asyncio task, so a live
  connection never blocks the accept loop
- Handshake failures are answered and logged by websockets itself and never
  reach the node

Per connection:
- Runs ws_echo.connection.echo_loop until the peer closes, an error occurs or
  the optional idle timeout fires
- Logs "Connection from <peer>" / "Connection closed from <peer>"

Shutdown:
- stop() may be called from any thread; SIGINT / SIGTERM call it in main()
- Open connections are closed with 1001 (going away)
"""

import asyncio
import logging
import signal
import sys
import threading
from typing import Dict, Optional, Sequence

import websockets

from ws_echo.config import EchoParams, params_from_args
from ws_echo.connection import Connection, echo_loop

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class EchoServerNode:
    def __init__(self, params: Optional[EchoParams] = None) -> None:
        self.params = params or EchoParams()
        self.logger = logging.getLogger("ws_echo.node")

        self.open_connections: Dict[int, Connection] = {}
        self.connections_served = 0

        self._server = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._stop_evt: Optional[asyncio.Event] = None

        # survives a stop() that arrives before start() has a loop to wake
        self._shutdown_evt = threading.Event()

    # ---------------- Listener ----------------

    @property
    def port(self) -> Optional[int]:
        """Bound port, known once start() returned."""
        if self._server is None:
            return None
        for sock in self._server.sockets:
            return sock.getsockname()[1]
        return None

    @property
    def url(self) -> str:
        return f"ws://{self.params.host}:{self.port}"

    async def start(self) -> None:
        """Bind and start accepting. Raises OSError if the address is unusable."""
        p = self.params
        self._stop_evt = asyncio.Event()
        self._loop = asyncio.get_running_loop()
        if self._shutdown_evt.is_set():
            self._stop_evt.set()

        self._server = await websockets.serve(
            self._handle,
            p.host,
            p.port,
            ping_interval=p.ping_interval,
            ping_timeout=p.ping_timeout,
            close_timeout=p.close_timeout,
            max_size=p.max_size,
            compression=None,
        )
        self.logger.info(f"Listening on {self.url}")

    def stop(self) -> None:
        """Ask run() to return. Safe to call from any thread or a signal handler,
        also before start() has finished."""
        self._shutdown_evt.set()
        loop = self._loop
        if loop is not None:
            loop.call_soon_threadsafe(self._stop_evt.set)

    async def shutdown(self) -> None:
        if self._server is None:
            return
        self.logger.info(f"Shutting down ({len(self.open_connections)} open connections)")
        self._server.close()
        await self._server.wait_closed()
        self._server = None

    async def run(self) -> None:
        """start(), then serve until stop() is called."""
        await self.start()
        await self.serve_until_stopped()

    async def serve_until_stopped(self) -> None:
        try:
            await self._stop_evt.wait()
        finally:
            await self.shutdown()
        self.logger.info(f"Echo node exiting ({self.connections_served} connections served)")

    # ---------------- Connection handler ----------------

    async def _handle(self, websocket) -> None:
        conn = Connection(peer=websocket.remote_address)
        self.open_connections[conn.id] = conn
        self.connections_served += 1
        self.logger.info(f"Connection from {conn.peer}")

        try:
            await echo_loop(
                websocket,
                conn,
                idle_timeout_s=self.params.idle_timeout_s,
                logger=logging.getLogger("ws_echo.connection"),
            )
        except Exception:
            self.logger.exception(f"Echo loop failed for {conn.peer}")
            await websocket.close(code=1011, reason="internal error")
        finally:
            self.open_connections.pop(conn.id, None)
            self.logger.info(
                f"Connection {conn.id} from {conn.peer} done: "
                f"{conn.messages_echoed} messages, {conn.bytes_echoed} bytes in {conn.age_s:.1f}s"
            )


async def _serve(node: EchoServerNode) -> int:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, node.stop)
        except NotImplementedError:
            # no signal handlers on this platform / outside the main thread
            pass

    try:
        await node.start()
    except OSError as e:
        node.logger.error(f"Failed to bind {node.params.host}:{node.params.port}: {e}")
        return 1

    await node.serve_until_stopped()
    return 0


def main(argv: Optional[Sequence[str]] = None) -> None:
    params = params_from_args(argv)
    logging.basicConfig(level=params.log_level, format=LOG_FORMAT)

    node = EchoServerNode(params)
    try:
        code = asyncio.run(_serve(node))
    except KeyboardInterrupt:
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    main()
