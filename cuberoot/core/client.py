import asyncio
import logging
import socket

from cuberoot.core.errors import TransportError
from cuberoot.core.transport.codec import FrameCodec


class CubeRootClient:
    """
    Asyncio client for a cuberoot server.

    It speaks the same framing as the server, through its own FrameCodec on a
    raw non-blocking socket: every request is the decimal text of an integer
    followed by the delimiter, every response is read up to the next delimiter.

    Requests may be sent in a batch before reading the responses: the server
    answers them one by one, in order.

    `deadline`, when given, is an absolute loop time applied to every read of
    the connection, in the manner of a socket deadline.
    """
    def __init__(
        self,
        host: str,
        port: int,
        codec: FrameCodec | None = None,
        connect_timeout: float = 2.0,
    ) -> None:
        self._host = host
        self._port = port
        self._codec = codec or FrameCodec()
        self._connect_timeout = connect_timeout
        self._sock: socket.socket | None = None
        self.deadline: float | None = None
        self._logger = logging.getLogger("core.client")

    @property
    def connected(self) -> bool:
        return self._sock is not None

    @property
    def local_addr(self) -> tuple[str, int] | None:
        return self._sock.getsockname()[:2] if self._sock else None

    async def connect(self) -> None:
        if self.connected:
            return

        loop = asyncio.get_running_loop()
        infos = await loop.getaddrinfo(self._host, self._port, type=socket.SOCK_STREAM)
        family, socktype, proto, _, address = infos[0]

        sock = socket.socket(family, socktype, proto)
        sock.setblocking(False)
        try:
            async with asyncio.timeout(self._connect_timeout):
                await loop.sock_connect(sock, address)
        except (OSError, TimeoutError) as exc:
            sock.close()
            raise TransportError(f"cannot connect to {self._host}:{self._port}: {exc}") from exc

        self._sock = sock
        self._logger.debug(f"Connected to {self._host}:{self._port}")

    def close(self) -> None:
        if self._sock:
            try:
                self._sock.close()
            finally:
                self._sock = None

    async def send(self, payload: str | int) -> int:
        await self.connect()
        return await self._codec.write_message(self._sock, str(payload))

    async def receive(self) -> str:
        await self.connect()
        return await self._codec.read_message(self._sock, self.deadline)

    async def request(self, payload: str | int) -> str:
        await self.send(payload)
        return await self.receive()

    async def __aenter__(self) -> "CubeRootClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()
