class EchoProcessor:
    """Answers every request with its own text and records it."""

    def __init__(self) -> None:
        self.requests: list[str] = []

    def handle(self, message: str) -> str:
        self.requests.append(message)
        return message


class FailingProcessor:
    """Breaks the never-raise contract, to exercise unexpected failures."""

    def handle(self, message: str) -> str:
        raise RuntimeError(f"cannot process {message!r}")
