import argparse
import os
from functools import lru_cache
from pathlib import Path

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-c", "--config",
        type=str,
        help="Path to a cuberoot configuration file"
    )

    parser.add_argument(
        "-l", "--log-level",
        type=str,
        default="INFO",
        choices=LOG_LEVELS,
        help=(
            "Logging verbosity.\n"
            "Choose among: DEBUG, INFO, WARNING, ERROR, CRITICAL.\n\n"
            "DEBUG    → every request and response is logged.\n"
            "INFO     → connection lifecycle (default).\n"
            "WARNING  → only warnings and errors.\n"
            "ERROR    → only errors.\n"
            "CRITICAL → only critical failures.\n\n"
            "Example:\n"
            "  --log-level DEBUG"
        ),
    )


def build_server_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cuberoot-server",
        description=(
            "Start a cuberoot server.\n\n"
            "Clients send integers as delimiter-terminated text messages; the\n"
            "server answers each one with the description of its cube root."
        ),
        formatter_class=argparse.RawTextHelpFormatter
    )
    add_common_arguments(parser)
    return parser


@lru_cache
def get_cli_args() -> argparse.Namespace:
    return build_server_parser().parse_args()


def resolve_configfile(raw: str | None) -> Path | None:
    """
    Locate the YAML configuration file.

    Priority: CLI > ENV > default file in current working directory.
    An explicit path that does not exist is fatal; a missing default file
    only means that defaults and environment variables apply.
    """
    raw = raw or os.getenv("CUBEROOTCONFIG")

    if raw is None:
        file = Path.cwd() / "cuberoot.yaml"
        return file if file.is_file() else None

    file = Path(raw)
    if not file.is_file():
        raise SystemExit(
            f"[config] Configuration file not found: '{file}'.\n"
            "  - Use --config <file.yaml>\n"
            "  - Or set the CUBEROOTCONFIG environment variable\n"
            "  - Or place a 'cuberoot.yaml' file in the current working directory."
        )

    return file
