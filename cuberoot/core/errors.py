class CubeRootError(Exception):
    """Base class for every error raised by cuberoot."""


class TransportError(CubeRootError):
    """
    A failure of the underlying stream socket.

    Every transport error is terminal for the connection it happened on,
    and never for the server or the other connections.
    """


class ConnectionClosed(TransportError):
    """The peer closed its side before a delimiter was received."""


class ReadTimeout(TransportError):
    """The read deadline elapsed before a full message was received."""


class FrameTooLarge(TransportError):
    """More payload bytes accumulated than the configured maximum."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"message exceeds {limit} bytes without delimiter")
        self.limit = limit


class BindError(TransportError):
    """The listening socket could not be bound. Fatal for the server."""


class RequestError(CubeRootError, ValueError):
    """
    A request payload failed validation.

    The message of the exception is the diagnostic text sent back to the
    client in place of a computed result.
    """


class NotInteger(RequestError):
    def __init__(self, text: str) -> None:
        super().__init__(f'"{text}" is not integer')
        self.text = text


class OutOfRange(RequestError):
    def __init__(self, value: int | str) -> None:
        super().__init__(f"{value} is not 32-bit integer")
        self.value = value
