from dataclasses import dataclass


@dataclass
class ServerConfig:
    """
    Static configuration for a cuberoot MessageServer.

    This structure defines all parameters required to start a server:
    networking, framing, idle timeout, admission limit, and graceful shutdown
    behavior.
    """
    host: str
    """
    IP address or hostname on which the server listens.
    """

    port: int
    """
    TCP port to bind. If set to 0, the OS selects an available port.
    """

    backlog: int = 128
    """
    Maximum number of pending TCP connections waiting for accept().
    """

    delimiter: bytes = b"\t"
    """
    Single byte terminating every message, in both directions.
    """

    idle_timeout: float = 10.0
    """
    Seconds a connection may take to deliver its next full message.
    The deadline is reset before every read.
    """

    max_message_size: int | None = 64 * 1024
    """
    Maximum payload length accepted before a delimiter. None disables the check.
    """

    limit_concurrency: int | None = None
    """
    Maximum number of connections served at once. When reached, the server
    stops accepting until a connection ends. None means unbounded.
    """

    timeout_graceful_shutdown: float = 5.0
    """
    Maximum time (in seconds) allowed for graceful shutdown. After this
    timeout, remaining connection tasks are cancelled.
    """
