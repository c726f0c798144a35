from __future__ import annotations

import argparse
import json
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from masterdata.app import run_operation, run_resync, run_service
from masterdata.config import ConfigurationError, configure_logging, level_from_env

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

ELEMENT_COMMANDS = ("query", "generate", "ensure", "update")


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Master data registry for trading partners")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("serve", help="Watch the list and process queued jobs")

    for command in ELEMENT_COMMANDS:
        sub = subparsers.add_parser(command, help=f"Run a single {command} operation")
        sub.add_argument(
            "--element",
            type=str,
            required=True,
            help="Candidate record as a JSON object",
        )

    merge = subparsers.add_parser("merge", help="Merge one entity into another")
    merge.add_argument("--from", dest="from_id", required=True, help="masterid to merge away")
    merge.add_argument("--to", dest="to_id", required=True, help="masterid that survives")
    merge.add_argument(
        "--external-id",
        dest="external_ids",
        action="append",
        default=[],
        help="External ID to attach to the surviving entity (repeatable)",
    )

    resolve = subparsers.add_parser("resolve", help="Follow merge redirects for a masterid")
    resolve.add_argument("--masterid", required=True, help="masterid to resolve")

    subparsers.add_parser("resync", help="Rebuild the expand index from the canonical list")

    return parser.parse_args(list(argv))


def _parse_element(value: str) -> dict[str, object]:
    try:
        element = json.loads(value)
    except json.JSONDecodeError as exc:
        raise ValueError(f"--element is not valid JSON: {exc}") from exc
    if not isinstance(element, dict):
        raise ValueError("--element must be a JSON object")
    return element  # pyright: ignore[reportUnknownVariableType]


def _build_job(args: argparse.Namespace) -> dict[str, object]:
    if args.command in ELEMENT_COMMANDS:
        return {"config": {"element": _parse_element(args.element)}}
    if args.command == "merge":
        return {
            "config": {"from": args.from_id, "to": args.to_id, "externalIds": args.external_ids}
        }
    if args.command == "resolve":
        return {"config": {"masterid": args.masterid}}
    return {}


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        configure_logging(level=level_from_env())
        parsed_args = _parse_args(args_list)
        job = _build_job(parsed_args)
    except (ValueError, ConfigurationError):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "serve":
            run_service()
        elif parsed_args.command == "resync":
            replayed = run_resync()
            log.info("Expand index rebuilt with %s entries", replayed)
        else:
            outcome = run_operation(parsed_args.command, job)
            if not outcome.succeeded:
                log.error("%s failed: %s", parsed_args.command, outcome.error)
                sys.exit(1)
            print(json.dumps(outcome.result, indent=2, default=str))  # noqa: T201
    except ConfigurationError:
        log.exception("Configuration error")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error in %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
