import asyncio
import logging
import socket

from cuberoot.core.errors import ConnectionClosed, ReadTimeout, TransportError
from cuberoot.core.models.state import ConnectionState, ServerState
from cuberoot.core.ports.processor import Processor
from cuberoot.core.transport.addr import format_addr, get_remote_addr
from cuberoot.core.transport.codec import FrameCodec


class ConnectionHandler:
    """
    Owns one accepted socket for its whole lifetime and serves it until it
    ends.

    The handler runs a strict request/response loop: read one message, let
    the Processor compute the answer, write it back, then read the next one.
    There is no pipelining: a response is always fully written before the next
    request is read, so responses come back in request order.

    Before every read, the deadline is pushed to `now + idle_timeout`. A
    client that does not deliver a complete message within that window is
    disconnected without a response.

    The loop stops on the first transport failure:
    - peer closed its side       -> closed_by_peer (normal termination)
    - read deadline exceeded     -> closed_by_timeout
    - any other read/write error -> closed_by_error
    - server shutdown            -> closed_by_shutdown
    Writes are never retried: the codec has no resumption point inside a
    frame and a failed write usually means the connection is broken.

    `shutdown()` marks the handler as closing. An idle handler, waiting for
    the next request, is cancelled at once; a busy one finishes writing its
    current response and stops before the next read.

    Whatever the exit path, the socket is closed exactly once and the
    handler removes itself from the server state.
    """
    def __init__(
        self,
        sock: socket.socket,
        codec: FrameCodec,
        processor: Processor,
        idle_timeout: float,
        server_state: ServerState | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._sock = sock
        self._sock.setblocking(False)
        self._codec = codec
        self._processor = processor
        self._idle_timeout = idle_timeout
        self._server_state = server_state
        self._loop = loop or asyncio.get_event_loop()
        self._task: asyncio.Task | None = None
        self._closing = False
        self._released = False

        self.state = ConnectionState.reading
        self.peer = get_remote_addr(sock)
        self._who = format_addr(self.peer)
        self._logger = logging.getLogger("core.transport.handler")

        # Registered before the task starts so that shutdown can reach it.
        if self._server_state is not None:
            self._server_state.connections.add(self)

    @property
    def idle(self) -> bool:
        """True while waiting for the next request."""
        return self.state == ConnectionState.reading

    @property
    def closing(self) -> bool:
        return self._closing

    async def run(self) -> ConnectionState:
        self._task = asyncio.current_task()
        self._logger.debug(f"{self._who} - Connection made")

        try:
            await self._serve()
        except asyncio.CancelledError:
            self.state = ConnectionState.closed_by_shutdown
            self._logger.info(f"{self._who} - Connection closed by server shutdown")
            raise
        except Exception:
            self.state = ConnectionState.closed_by_error
            raise
        finally:
            self._release()

        return self.state

    def shutdown(self) -> None:
        """Stop serving after the response in flight; cancel at once if idle."""
        self._closing = True
        if self.idle and self._task is not None and not self._task.done():
            self._task.cancel("Connection closed by server shutdown")

    async def _serve(self) -> None:
        while True:
            if self._closing:
                self.state = ConnectionState.closed_by_shutdown
                self._logger.info(f"{self._who} - Connection closed by server shutdown")
                return

            self.state = ConnectionState.reading
            deadline = self._loop.time() + self._idle_timeout

            try:
                request = await self._codec.read_message(self._sock, deadline)
            except ConnectionClosed:
                self.state = ConnectionState.closed_by_peer
                self._logger.info(f"{self._who} - The connection is closed by another side")
                return
            except ReadTimeout:
                self.state = ConnectionState.closed_by_timeout
                self._logger.info(
                    f"{self._who} - Idle for {self._idle_timeout}s, closing connection"
                )
                return
            except TransportError as exc:
                self.state = ConnectionState.closed_by_error
                self._logger.warning(f"{self._who} - Read error: {exc}")
                return

            self._logger.debug(f"{self._who} - Received request: {request}")

            self.state = ConnectionState.processing
            response = self._processor.handle(request)

            self.state = ConnectionState.writing
            try:
                written = await self._codec.write_message(self._sock, response)
            except TransportError as exc:
                self.state = ConnectionState.closed_by_error
                self._logger.warning(f"{self._who} - Write error: {exc}")
                return

            self._logger.debug(
                f"{self._who} - Sent response (written {written} bytes): {response}"
            )

    def _release(self) -> None:
        if self._released:
            return
        self._released = True

        if self._server_state is not None:
            self._server_state.connections.discard(self)

        self._sock.close()
        self._logger.debug(f"{self._who} - Connection released ({self.state})")
