import asyncio
import logging
import socket

from cuberoot.core.errors import BindError
from cuberoot.core.helpers.spawn import TaskSpawner
from cuberoot.core.models.config import ServerConfig
from cuberoot.core.models.state import ServerState
from cuberoot.core.ports.processor import Processor
from cuberoot.core.throttling.backoff import ExponentialBackoff
from cuberoot.core.transport.addr import format_addr, get_local_addr, get_remote_addr
from cuberoot.core.transport.codec import FrameCodec
from cuberoot.core.transport.handler import ConnectionHandler


class MessageServer:
    """
    Owns the listening socket, accepts client connections and hands each
    one to its own ConnectionHandler task.

    `start()` binds a non-blocking TCP socket on the configured host and port
    and launches the accept loop. A bind failure raises BindError and nothing
    is served.

    The accept loop is a single task that never waits on a connection: each
    accepted socket is passed to a new ConnectionHandler spawned through the
    ServerState spawner, and the server keeps no other reference to it. An
    error from `accept` is logged and the loop goes on after a short
    exponential backoff; transient accept failures never stop the server.

    When `limit_concurrency` is set, the loop waits for a free slot before
    accepting the next connection, leaving further clients in the listen
    backlog.

    On shutdown, MessageServer stops the accept loop, closes the listening
    socket and asks every connection to close: idle ones are cancelled at
    once, busy ones finish writing their current response first. It then
    waits for all of them to finish. If the graceful shutdown timeout is
    exceeded, every remaining task is cancelled and awaited, and an error is
    logged.
    """
    def __init__(
        self,
        config: ServerConfig,
        processor: Processor,
        loop: asyncio.AbstractEventLoop | None = None,
        backoff: ExponentialBackoff | None = None,
        codec: FrameCodec | None = None,
    ) -> None:
        self._config = config
        self._processor = processor
        self._loop = loop or asyncio.get_event_loop()
        self._backoff = backoff or ExponentialBackoff()
        self._codec = codec or FrameCodec(
            delimiter=config.delimiter,
            max_message_size=config.max_message_size,
        )
        self.state = ServerState(spawner=TaskSpawner(loop=self._loop))
        self._logger = logging.getLogger("core.transport.server")

        self._listener: socket.socket | None = None
        self._accept_task: asyncio.Task | None = None
        self._slots: asyncio.Semaphore | None = None
        if config.limit_concurrency is not None:
            self._slots = asyncio.Semaphore(config.limit_concurrency)

    @property
    def running(self) -> bool:
        return self._accept_task is not None and not self._accept_task.done()

    @property
    def listen(self) -> tuple[str, int]:
        """Address the server is bound to, with the actual port if 0 was asked."""
        if self._listener is not None and (addr := get_local_addr(self._listener)):
            return addr
        return self._config.host, self._config.port

    async def start(self) -> None:
        self._listener = self._bind()
        self._accept_task = self._loop.create_task(
            self._accept_loop(self._listener), name="accept-loop"
        )
        self._accept_task.add_done_callback(self._on_accept_loop_done)
        self._logger.info(
            f"Got listener for the server (local address: {format_addr(self.listen)})"
        )

    async def serve(self, stop_event: asyncio.Event) -> None:
        """Serve until `stop_event` is set, then shut down gracefully."""
        await self.start()
        try:
            await stop_event.wait()
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        accept_task, self._accept_task = self._accept_task, None
        if accept_task is not None:
            accept_task.cancel()
            await asyncio.wait([accept_task])

        if self._listener is not None:
            self._listener.close()
            self._listener = None

        for connection in self.state.connections.copy():
            connection.shutdown()

        spawner = self.state.spawner
        if spawner.remaining_tasks:
            self._logger.info(
                f"Waiting for {spawner.remaining_tasks} client connection(s) to close."
            )

        try:
            await asyncio.wait_for(
                spawner.wait_idle(),
                timeout=self._config.timeout_graceful_shutdown
            )
        except asyncio.TimeoutError:
            self._logger.error(
                f"Cancel {spawner.remaining_tasks} running task(s), "
                f"timeout graceful shutdown: {spawner.tasks}"
            )
            spawner.cancel_all("Task cancelled, timeout graceful shutdown exceeded")
            await spawner.wait_idle()

    def _bind(self) -> socket.socket:
        config = self._config
        try:
            infos = socket.getaddrinfo(
                config.host, config.port,
                type=socket.SOCK_STREAM, flags=socket.AI_PASSIVE
            )
            family, socktype, proto, _, address = infos[0]
            listener = socket.socket(family, socktype, proto)
        except OSError as exc:
            raise BindError(f"cannot resolve {config.host}:{config.port}: {exc}") from exc

        try:
            listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            listener.bind(address)
            listener.listen(config.backlog)
            listener.setblocking(False)
        except OSError as exc:
            listener.close()
            raise BindError(f"cannot listen on {config.host}:{config.port}: {exc}") from exc

        return listener

    async def _accept_loop(self, listener: socket.socket) -> None:
        while True:
            if self._slots is not None:
                await self._slots.acquire()

            try:
                conn, _ = await self._loop.sock_accept(listener)
            except OSError as exc:
                self._release_slot()
                delay = self._backoff.next_delay()
                self._logger.error(f"Accept error: {exc}, retrying in {delay:.3f}s")
                await asyncio.sleep(delay)
                continue
            except BaseException:
                self._release_slot()
                raise

            self._backoff.reset()
            try:
                self._dispatch(conn)
            except BaseException:
                conn.close()
                self._release_slot()
                raise

    def _on_accept_loop_done(self, task: asyncio.Task) -> None:
        if not task.cancelled() and (exc := task.exception()):
            self._logger.error(f"Accept loop stopped: {exc}", exc_info=exc)

    def _dispatch(self, conn: socket.socket) -> None:
        self._logger.info(
            f"Established a connection with a client application "
            f"(remote address: {format_addr(get_remote_addr(conn))})"
        )
        handler = ConnectionHandler(
            sock=conn,
            codec=self._codec,
            processor=self._processor,
            idle_timeout=self._config.idle_timeout,
            server_state=self.state,
            loop=self._loop,
        )
        task = self.state.spawner.spawn(handler.run())
        task.add_done_callback(lambda _: self._release_slot())

    def _release_slot(self) -> None:
        if self._slots is not None:
            self._slots.release()
