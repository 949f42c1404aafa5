import asyncio
import math
import random

import pytest

from cuberoot.bootstrap import loadgen as loadgen_cli
from cuberoot.core.client import CubeRootClient
from cuberoot.core.errors import ConnectionClosed, TransportError
from cuberoot.core.loadgen import INT31_MAX, LoadGenerator
from tests.helpers import start_server, unused_port


@pytest.mark.it
@pytest.mark.asyncio
async def test_sessions_receive_responses_in_order(server_config):
    server = await start_server(server_config)
    host, port = server.listen

    generator = LoadGenerator(
        host=host, port=port, clients=4, requests=6, rng=random.Random(42)
    )

    try:
        reports = await generator.run()
    finally:
        await server.shutdown()

    assert [r.client_id for r in reports] == [1, 2, 3, 4]
    for report in reports:
        assert report.complete
        assert len(report.sent) == 6
        assert all(0 <= v <= INT31_MAX for v in report.sent)
        assert report.responses == [
            f"The cube root of {v} is {math.cbrt(v):f}." for v in report.sent
        ]


@pytest.mark.it
@pytest.mark.asyncio
async def test_session_with_unreachable_server():
    generator = LoadGenerator(host="127.0.0.1", port=unused_port(), connect_timeout=0.5)

    report = await generator.run_client(1)

    assert not report.complete
    assert report.sent == []
    assert "cannot connect" in report.error


@pytest.mark.it
@pytest.mark.asyncio
async def test_session_cut_by_server_idle_timeout(server_config):
    server = await start_server(server_config, idle_timeout=0.1)
    host, port = server.listen

    try:
        async with CubeRootClient(host, port) as client:
            await asyncio.sleep(0.3)
            with pytest.raises((ConnectionClosed, TransportError)):
                await client.request(8)
    finally:
        await server.shutdown()


@pytest.mark.it
@pytest.mark.asyncio
async def test_client_deadline(server_config):
    server = await start_server(server_config)
    host, port = server.listen
    loop = asyncio.get_running_loop()

    try:
        async with CubeRootClient(host, port) as client:
            client.deadline = loop.time() + 0.1
            # No request sent: nothing will ever come back.
            with pytest.raises(TransportError):
                await client.receive()
    finally:
        await server.shutdown()


@pytest.mark.it
def test_cli_reports_failed_sessions(tmp_path, capsys):
    file = tmp_path / "cuberoot.yaml"
    file.write_text(f"server:\n  port: {unused_port()}\nloadgen:\n  connect_timeout: 0.5\n")

    try:
        code = loadgen_cli.main(["-c", str(file), "--clients", "2", "--seed", "1"])
    finally:
        asyncio.set_event_loop(None)

    assert code == 1
    assert capsys.readouterr().err.count("incomplete") == 2


@pytest.mark.it
@pytest.mark.asyncio
async def test_client_connects_once(server_config):
    server = await start_server(server_config)
    client = CubeRootClient(*server.listen)

    try:
        assert not client.connected
        assert client.local_addr is None

        await client.connect()
        assert client.connected
        local_addr = client.local_addr

        await client.connect()
        assert client.local_addr == local_addr
        assert await client.request(27) == "The cube root of 27 is 3.000000."

        client.close()
        assert not client.connected
    finally:
        client.close()
        await server.shutdown()
