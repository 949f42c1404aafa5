import asyncio
import socket
from dataclasses import replace

from cuberoot.core.models.config import ServerConfig
from cuberoot.core.transport.server import MessageServer
from cuberoot.infra.cbrt_processor import CubeRootProcessor


class CountingSocket(socket.socket):
    """A real socket that records how many times close() was called."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.close_calls = 0

    def close(self) -> None:
        self.close_calls += 1
        super().close()


def counting(sock: socket.socket) -> CountingSocket:
    return CountingSocket(sock.family, sock.type, sock.proto, fileno=sock.detach())


async def start_server(config: ServerConfig, **overrides) -> MessageServer:
    server = MessageServer(
        config=replace(config, **overrides),
        processor=CubeRootProcessor(),
        loop=asyncio.get_running_loop(),
    )
    await server.start()
    return server


async def exchange(
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    payload: bytes,
    delimiter: bytes = b"\t",
) -> bytes:
    writer.write(payload + delimiter)
    await writer.drain()
    frame = await asyncio.wait_for(reader.readuntil(delimiter), timeout=2.0)
    return frame[:-1]


def unused_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]
