"""Main CLI entry point for buildgate."""

from __future__ import annotations

import argparse
import logging
import sys

from buildgate import __version__
from buildgate.cli.commands import check_env, list_steps, run
from buildgate.tracing import configure_tracing


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="buildgate",
        description="buildgate - fail-fast build verification pipeline",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # run command
    run_parser = subparsers.add_parser("run", help="Run the pipeline against a working tree")
    _add_common(run_parser)
    run_parser.add_argument(
        "--event",
        help="Triggering event (push or pull_request; default: $GITHUB_EVENT_NAME)",
    )
    run_parser.add_argument(
        "--step",
        action="append",
        dest="steps",
        metavar="NAME",
        help="Only run the named step (repeatable; declaration order is kept)",
    )
    run_parser.add_argument(
        "--timeout",
        type=float,
        help="Default per-step timeout in seconds",
    )
    run_parser.add_argument(
        "--log-file",
        help="Append step output to this file instead of stdout",
    )
    run_parser.add_argument(
        "--no-provision-check",
        action="store_true",
        help="Skip verifying that the declared native packages are installed",
    )
    run_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the pipeline result as JSON",
    )

    # steps command
    steps_parser = subparsers.add_parser("steps", help="List the resolved steps in order")
    _add_common(steps_parser)

    # check-env command
    env_parser = subparsers.add_parser(
        "check-env",
        help="Verify provisioning and required bindings without running any step",
    )
    _add_common(env_parser)

    return parser


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        help="Pipeline file (default: $BUILDGATE_CONFIG, then buildgate.yaml in the tree)",
    )
    parser.add_argument(
        "--tree",
        default=".",
        help="Working tree to operate on (default: current directory)",
    )


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    if args.command == "run":
        configure_tracing(service_version=__version__)
        code = run(
            args.config,
            args.tree,
            event=args.event,
            step_names=args.steps,
            timeout=args.timeout,
            log_file=args.log_file,
            provision_check=not args.no_provision_check,
            as_json=args.json,
        )
    elif args.command == "steps":
        code = list_steps(args.config, args.tree)
    elif args.command == "check-env":
        code = check_env(args.config, args.tree)
    else:
        parser.print_help()
        code = 1

    sys.exit(code)


if __name__ == "__main__":
    main()
