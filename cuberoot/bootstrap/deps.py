import asyncio
import json
from pathlib import Path

import yaml
from pydantic import ValidationError

from cuberoot.bootstrap.config.settings import CubeRootConfig
from cuberoot.core.loadgen import LoadGenerator
from cuberoot.core.transport.server import MessageServer
from cuberoot.infra.cbrt_processor import CubeRootProcessor


def get_config(file: Path | None) -> CubeRootConfig:
    try:
        return CubeRootConfig.from_file(file)
    except ValidationError as ex:
        msg = ["Configuration validation failed:"]
        errs = json.loads(ex.json())
        for err in errs:
            msg.append(f"  {'.'.join(map(str, err['loc']))}: {err['msg']}")
        raise SystemExit("\n".join(msg))
    except (OSError, ValueError, yaml.YAMLError) as ex:
        raise SystemExit(f"[config] Cannot load configuration: {ex}")


def get_server(config: CubeRootConfig, loop: asyncio.AbstractEventLoop) -> MessageServer:
    return MessageServer(
        config=config.server.to_server_config(),
        processor=CubeRootProcessor(),
        loop=loop,
    )


def get_load_generator(config: CubeRootConfig) -> LoadGenerator:
    server = config.server
    loadgen = config.loadgen
    return LoadGenerator(
        host=server.host,
        port=server.port,
        clients=loadgen.clients,
        requests=loadgen.requests,
        timeout=loadgen.timeout,
        connect_timeout=loadgen.connect_timeout,
        delimiter=server.delimiter.encode("utf-8"),
    )


def create_event_loop() -> asyncio.AbstractEventLoop:
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    return loop
