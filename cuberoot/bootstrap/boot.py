import logging

from cuberoot.bootstrap.config.loader import get_cli_args, resolve_configfile
from cuberoot.bootstrap.deps import create_event_loop, get_config, get_server
from cuberoot.core.errors import BindError
from cuberoot.core.helpers.utils import setup_logging, setup_signal_handler


def main():
    cli = get_cli_args()
    setup_logging(cli.log_level)

    config = get_config(resolve_configfile(cli.config))
    loop = create_event_loop()
    server = get_server(config, loop)

    try:
        with setup_signal_handler(loop) as stop_event:
            loop.run_until_complete(server.serve(stop_event))
    except BindError as ex:
        logging.getLogger("cuberoot.boot").error(f"Listen error: {ex}")
        raise SystemExit(1)
    except KeyboardInterrupt:
        pass
    finally:
        try:
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.run_until_complete(loop.shutdown_default_executor())
        finally:
            loop.close()


if __name__ == "__main__":
    main()
