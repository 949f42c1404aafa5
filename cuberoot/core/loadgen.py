import asyncio
import logging
import random
from dataclasses import dataclass, field

from cuberoot.core.client import CubeRootClient
from cuberoot.core.errors import ConnectionClosed, TransportError
from cuberoot.core.transport.addr import format_addr
from cuberoot.core.transport.codec import FrameCodec

INT31_MAX = 2 ** 31 - 1


@dataclass
class ClientReport:
    """Outcome of one generated client session."""
    client_id: int

    sent: list[int] = field(default_factory=list)
    """Requests successfully written, in send order."""

    responses: list[str] = field(default_factory=list)
    """Responses received, in arrival order."""

    error: str | None = None
    """Transport failure that ended the session early, if any."""

    @property
    def complete(self) -> bool:
        return self.error is None and len(self.responses) == len(self.sent)


@dataclass
class LoadGenerator:
    """
    Drives concurrent client sessions against a server.

    Each session opens its own connection, writes `requests` random
    non-negative 32-bit integers back to back, then reads as many responses.
    The whole session (writes and reads) must fit within `timeout` seconds.
    """
    host: str
    port: int
    clients: int = 1
    requests: int = 5
    timeout: float = 5.0
    connect_timeout: float = 2.0
    delimiter: bytes = b"\t"
    rng: random.Random = field(default_factory=random.Random)

    def __post_init__(self) -> None:
        self._codec = FrameCodec(delimiter=self.delimiter)
        self._logger = logging.getLogger("core.loadgen")

    async def run(self) -> list[ClientReport]:
        return list(await asyncio.gather(
            *(self.run_client(i) for i in range(1, self.clients + 1))
        ))

    async def run_client(self, client_id: int) -> ClientReport:
        report = ClientReport(client_id=client_id)
        client = CubeRootClient(
            self.host, self.port,
            codec=self._codec,
            connect_timeout=self.connect_timeout,
        )

        try:
            await client.connect()
        except TransportError as exc:
            report.error = str(exc)
            self._logger.error(f"Client[{client_id}]: Dial error: {exc}")
            return report

        self._logger.info(
            f"Client[{client_id}]: Connected to server "
            f"(remote address: {self.host}:{self.port}, "
            f"local address: {format_addr(client.local_addr)})"
        )

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout
        client.deadline = deadline

        try:
            async with asyncio.timeout_at(deadline):
                for _ in range(self.requests):
                    value = self.rng.randint(0, INT31_MAX)
                    written = await client.send(value)
                    report.sent.append(value)
                    self._logger.debug(
                        f"Client[{client_id}]: Sent request (written {written} bytes): {value}"
                    )

            for _ in report.sent:
                response = await client.receive()
                report.responses.append(response)
                self._logger.info(f"Client[{client_id}]: Received response: {response}")
        except ConnectionClosed:
            report.error = "connection closed by server"
            self._logger.warning(f"Client[{client_id}]: The connection is closed by another side")
        except TimeoutError:
            report.error = "write deadline exceeded"
            self._logger.warning(f"Client[{client_id}]: Write deadline exceeded")
        except TransportError as exc:
            report.error = str(exc)
            self._logger.warning(f"Client[{client_id}]: {exc}")
        finally:
            client.close()

        return report
