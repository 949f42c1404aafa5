import socket

import pytest
import yaml

from cuberoot.core.models.config import ServerConfig
from cuberoot.core.transport.codec import FrameCodec
from cuberoot.infra.cbrt_processor import CubeRootProcessor


@pytest.fixture
def codec():
    return FrameCodec()


@pytest.fixture
def processor():
    return CubeRootProcessor()


@pytest.fixture
def socket_pair():
    """Two connected non-blocking stream sockets: (client side, server side)."""
    a, b = socket.socketpair()
    a.setblocking(False)
    b.setblocking(False)
    try:
        yield a, b
    finally:
        a.close()
        b.close()


@pytest.fixture
def server_config():
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        backlog=16,
        idle_timeout=1.0,
        timeout_graceful_shutdown=1.0,
    )


@pytest.fixture
def config_file(tmp_path):
    file = tmp_path / "cuberoot.yaml"

    data = {
        "server": {
            "host": "127.0.0.1",
            "port": 9100,
            "backlog": 10,
            "delimiter": "\n",
            "idle_timeout": 2.5,
            "max_message_size": 1024,
            "limit_concurrency": 8,
            "timeout_graceful_shutdown": 1,
        },
        "loadgen": {
            "clients": 3,
            "requests": 7,
            "timeout": 1.5,
        }
    }

    file.write_text(yaml.dump(data))
    return file
