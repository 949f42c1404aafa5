from typing import Protocol


class Processor(Protocol):
    """
    Computes the response message for one request message.

    Implementations must be pure and must not raise for malformed input:
    every failure is encoded in the returned text, because the wire protocol
    has no separate error channel. A client can only tell an error response
    from a result by inspecting the string.
    """

    def handle(self, message: str) -> str:
        """Return the response payload for `message`."""
