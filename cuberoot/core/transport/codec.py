import asyncio
import socket

from cuberoot.core.errors import ConnectionClosed, FrameTooLarge, ReadTimeout, TransportError

DEFAULT_DELIMITER = b"\t"


class FrameCodec:
    """
    Reads and writes delimiter-terminated text messages on a raw stream socket.

    A frame on the wire is the UTF-8 payload followed by exactly one delimiter
    byte. The delimiter is never escaped: payloads must not contain it.

    Reading is done one byte per `recv` call. The codec never holds a read
    buffer between calls, so a socket can be read by any number of sequential
    `read_message` calls without losing or reordering bytes of the next
    message. The flip side is that nothing else may read the same socket
    through its own buffer while this codec is in use on it: the two readers
    would race for bytes.

    The codec is stateless and can be shared by every connection of a server.
    Sockets passed to it must be in non-blocking mode, as required by the
    event loop `sock_*` methods.
    """
    def __init__(
        self,
        delimiter: bytes = DEFAULT_DELIMITER,
        max_message_size: int | None = None,
    ) -> None:
        if len(delimiter) != 1:
            raise ValueError(f"delimiter must be a single byte, got {delimiter!r}")

        self.delimiter = delimiter
        self.max_message_size = max_message_size

    def encode(self, content: str) -> bytes:
        return content.encode("utf-8") + self.delimiter

    def decode(self, frame: bytes) -> str:
        """Decode a frame, with or without its trailing delimiter."""
        if frame.endswith(self.delimiter):
            frame = frame[:-1]
        return frame.decode("utf-8", errors="replace")

    async def read_message(self, sock: socket.socket, deadline: float | None = None) -> str:
        """
        Read the next message from `sock`.

        `deadline` is an absolute time on the running loop clock
        (`loop.time()`); the whole message must arrive before it.
        `None` waits forever.

        Raises ConnectionClosed if the peer closes before the delimiter,
        ReadTimeout if the deadline elapses, FrameTooLarge if the payload
        grows beyond `max_message_size`, and TransportError on any other
        socket failure.
        """
        loop = asyncio.get_running_loop()
        buffer = bytearray()

        try:
            async with asyncio.timeout_at(deadline):
                while True:
                    # One byte at a time: never consume bytes of the next message.
                    data = await loop.sock_recv(sock, 1)
                    if not data:
                        raise ConnectionClosed(
                            f"connection closed after {len(buffer)} byte(s) without delimiter"
                        )
                    if data == self.delimiter:
                        break

                    buffer += data
                    if self.max_message_size is not None and len(buffer) > self.max_message_size:
                        raise FrameTooLarge(self.max_message_size)
        except TimeoutError as exc:
            raise ReadTimeout(
                f"read deadline exceeded after {len(buffer)} byte(s)"
            ) from exc
        except OSError as exc:
            raise TransportError(f"read failed: {exc}") from exc

        return self.decode(bytes(buffer))

    async def write_message(self, sock: socket.socket, content: str) -> int:
        """
        Write `content` followed by the delimiter in a single send.

        Returns the number of bytes written, that is the encoded payload
        length plus one.
        """
        loop = asyncio.get_running_loop()
        frame = self.encode(content)

        try:
            await loop.sock_sendall(sock, frame)
        except OSError as exc:
            raise TransportError(f"write failed: {exc}") from exc

        return len(frame)
