import argparse
import sys

from cuberoot.bootstrap.config.loader import add_common_arguments, resolve_configfile
from cuberoot.bootstrap.deps import create_event_loop, get_config, get_load_generator
from cuberoot.core.helpers.utils import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cuberoot-loadgen",
        description=(
            "Exercise a cuberoot server.\n\n"
            "Each client session writes a batch of random integers, then reads\n"
            "the responses. Server address and framing come from the\n"
            "configuration file."
        ),
        formatter_class=argparse.RawTextHelpFormatter
    )
    add_common_arguments(parser)
    parser.add_argument("--clients", type=int, help="Number of concurrent sessions")
    parser.add_argument("--requests", type=int, help="Requests per session")
    parser.add_argument("--timeout", type=float, help="Seconds allowed per session")
    parser.add_argument("--seed", type=int, help="Seed of the request generator")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    generator = get_load_generator(get_config(resolve_configfile(args.config)))
    if args.clients is not None:
        generator.clients = args.clients
    if args.requests is not None:
        generator.requests = args.requests
    if args.timeout is not None:
        generator.timeout = args.timeout
    if args.seed is not None:
        generator.rng.seed(args.seed)

    loop = create_event_loop()
    try:
        reports = loop.run_until_complete(generator.run())
    finally:
        loop.close()

    failed = 0
    for report in reports:
        for value, response in zip(report.sent, report.responses):
            print(f"[{report.client_id}] {value} -> {response}")
        if not report.complete:
            failed += 1
            print(f"[{report.client_id}] incomplete: {report.error}", file=sys.stderr)

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
