from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from cuberoot.core.helpers.spawn import TaskSpawner

if TYPE_CHECKING:
    from cuberoot.core.transport.handler import ConnectionHandler


class ConnectionState(StrEnum):
    """
    Lifecycle of a single connection handler.
    A handler loops reading -> processing -> writing until it reaches one of
    the closed_* states, after which its socket has been released.
    """
    reading = "reading"
    processing = "processing"
    writing = "writing"

    closed_by_peer = "closed_by_peer"
    closed_by_timeout = "closed_by_timeout"
    closed_by_error = "closed_by_error"
    closed_by_shutdown = "closed_by_shutdown"

    @property
    def terminal(self) -> bool:
        return self.value.startswith("closed_")


@dataclass
class ServerState:
    """
    Shared runtime state for a MessageServer.

    This is the only state shared between the accept loop and the connection
    tasks, and it is only read for shutdown:
    - ConnectionHandler: adds/removes itself from `connections`
    - MessageServer: spawns one task per connection through `spawner`
    - MessageServer.shutdown(): waits for the spawner to drain
    """
    spawner: TaskSpawner
    """
    Tracks every running connection task. A task is counted from its spawn
    until it completes, whatever the reason.
    """

    connections: set["ConnectionHandler"] = field(default_factory=set)
    """
    Set of live ConnectionHandler instances, one per accepted socket.
    """
