# src/testrelay/server/result_server.py

"""
Loopback TCP server receiving outcome frames from the test launcher.

Decoded frames are published as typed events on `ResultServer.events`, an
asyncio.Queue consumed by the run orchestrator. `None` on the queue marks the
end of the stream after `stop()`.
"""

import asyncio

import structlog

from testrelay.exceptions import BindError, ProtocolError
from testrelay.server.events import ConnectEvent, DisconnectEvent, ErrorEvent, ServerEvent
from testrelay.server.framing import DEFAULT_MAX_FRAME_SIZE, DEFAULT_MAX_PENDING_READS, FrameDecoder
from testrelay.telemetry import StructLogger

log: StructLogger = structlog.get_logger("server.result_server")

DEFAULT_HOST = "127.0.0.1"
READ_CHUNK_SIZE = 64 * 1024


class ResultServer:
    """
    Accepts one active launcher connection at a time.

    A connection that arrives while another is active is closed at once and
    reported with an ErrorEvent; once the active client disconnects the next
    connection is accepted, so sequential launcher invocations can share the
    same port.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = 0,
        max_frame_size: int = DEFAULT_MAX_FRAME_SIZE,
        max_pending_reads: int = DEFAULT_MAX_PENDING_READS,
    ):
        self.host = host
        self.requested_port = port
        self.max_frame_size = max_frame_size
        self.max_pending_reads = max_pending_reads
        self.events: asyncio.Queue[ServerEvent | None] = asyncio.Queue()
        self.port: int | None = None
        self._server: asyncio.Server | None = None
        self._active_peer: str | None = None
        self._handlers: set[asyncio.Task] = set()
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def is_serving(self) -> bool:
        return self._server is not None and self._server.is_serving()

    async def start(self) -> int:
        """Binds the listener and returns the port it was given."""
        try:
            self._server = await asyncio.start_server(self._handle_client, self.host, self.requested_port)
        except OSError as e:
            log.error("Failed to bind result server", host=self.host, port=self.requested_port, error=str(e))
            raise BindError(f"Could not listen on port {self.requested_port}", host=self.host, details=e) from e

        self.port = self._server.sockets[0].getsockname()[1]
        log.info("Result server listening", host=self.host, port=self.port, emoji_key="server")
        return self.port

    async def wait_idle(self, timeout: float) -> bool:
        """Waits until no client is connected. Returns False on timeout."""
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=timeout)
            return True
        except TimeoutError:
            log.warning("Launcher connection still open after timeout", peer=self._active_peer, timeout=timeout)
            return False

    async def stop(self) -> None:
        """
        Closes the listener and ends the event stream.

        A launcher still connected is cut off; whatever it had sent is
        published, followed by its DisconnectEvent, before the `None` sentinel.
        """
        if self._server is not None:
            server, self._server = self._server, None
            server.close()
            handlers = list(self._handlers)
            for task in handlers:
                task.cancel()
            await asyncio.gather(*handlers, return_exceptions=True)
            await server.wait_closed()
            log.debug("Result server closed", port=self.port, cut_off=len(handlers))
        self.events.put_nowait(None)

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        peer = self._format_peer(writer)
        if self._active_peer is not None:
            log.warning("Rejecting extra launcher connection", peer=peer, active_peer=self._active_peer)
            self.events.put_nowait(ErrorEvent(message=f"Rejected connection from {peer}: {self._active_peer} is active"))
            writer.close()
            return

        self._active_peer = peer
        self._idle.clear()
        handler = asyncio.current_task()
        self._handlers.add(handler)
        client_log = log.bind(peer=peer)
        client_log.debug("Launcher connected", emoji_key="server")
        self.events.put_nowait(ConnectEvent(peer=peer))

        decoder = FrameDecoder(self.max_frame_size, self.max_pending_reads)
        try:
            while data := await reader.read(READ_CHUNK_SIZE):
                self._publish(decoder.feed(data))
        except (ConnectionResetError, BrokenPipeError) as e:
            client_log.warning("Launcher connection dropped", error=str(e))
        finally:
            self._publish(decoder.close())
            self.events.put_nowait(DisconnectEvent(peer=peer))
            writer.close()
            self._active_peer = None
            self._idle.set()
            self._handlers.discard(handler)
            client_log.debug("Launcher disconnected")

    def _publish(self, items: list[ServerEvent | ProtocolError]) -> None:
        for item in items:
            if isinstance(item, ProtocolError):
                self.events.put_nowait(ErrorEvent(message=f"Protocol error: {item}"))
            else:
                self.events.put_nowait(item)

    @staticmethod
    def _format_peer(writer: asyncio.StreamWriter) -> str:
        peername = writer.get_extra_info("peername")
        if isinstance(peername, tuple) and len(peername) >= 2:
            return f"{peername[0]}:{peername[1]}"
        return str(peername)

    async def __aenter__(self) -> "ResultServer":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

# 🔼⚙️
