"""
Job store operator CLI.

Inspects the shared document store that clustered scheduler nodes use,
and releases triggers left ACQUIRED by a node that died between
acquisition and firing.

Connection settings come from JOBSTORE_* environment variables (a .env
file is honoured).
"""

import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from src.infra.logging_config import LOGGER_NAME, setup_logging
from src.jobstore import (
    JobStore,
    JobStoreError,
    StoreConfig,
    TransitionOutcome,
    TriggerKey,
)
from src.api.schemas.triggers import release_message, trigger_to_response


# Child of the package logger so CLI messages reach the configured handlers
logger = logging.getLogger(f"{LOGGER_NAME}.cli")


def create_store() -> JobStore:
    """Build a JobStore from the environment."""
    store = JobStore.create(StoreConfig.from_env())
    store.initialize()
    return store


def _print_json(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def cmd_stats(store: JobStore, args: argparse.Namespace) -> int:
    _print_json({
        "job_count": store.get_number_of_jobs(),
        "trigger_count": store.get_number_of_triggers(),
    })
    return 0


def cmd_trigger(store: JobStore, args: argparse.Namespace) -> int:
    trigger = store.retrieve_trigger(TriggerKey(args.name, args.group))
    if trigger is None:
        logger.error(f"Trigger not found: {args.group}.{args.name}")
        return 1

    _print_json(trigger_to_response(trigger).model_dump())
    return 0


def cmd_release(store: JobStore, args: argparse.Namespace) -> int:
    key = TriggerKey(args.name, args.group)
    result = store.release_trigger(key)

    if result.outcome == TransitionOutcome.NOT_FOUND:
        logger.error(f"Trigger not found: {key}")
        return 1

    if result.applied:
        logger.info(f"Trigger {key} released")
        return 0

    logger.warning(f"Trigger {key} not released: {release_message(result)}")
    return 2


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("src.api.main:app", host=args.host, port=args.port)
    return 0


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Clustered job store - operator commands",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Document counts
  python main.py stats

  # Inspect a trigger (state, version, fire times)
  python main.py trigger Group1 Trigger1

  # Return a stuck ACQUIRED trigger to WAITING
  python main.py release Group1 Trigger1

  # Run the operator HTTP API
  python main.py serve --port 8000
        """
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        help="Logging level (default: LOG_LEVEL env or INFO)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("stats", help="Count stored jobs and triggers")

    trigger_parser = subparsers.add_parser("trigger", help="Show one trigger")
    trigger_parser.add_argument("group", help="Trigger group")
    trigger_parser.add_argument("name", help="Trigger name")

    release_parser = subparsers.add_parser("release", help="Release an ACQUIRED trigger")
    release_parser.add_argument("group", help="Trigger group")
    release_parser.add_argument("name", help="Trigger name")

    serve_parser = subparsers.add_parser("serve", help="Run the operator HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")

    return parser.parse_args(argv)


_STORE_COMMANDS = {
    "stats": cmd_stats,
    "trigger": cmd_trigger,
    "release": cmd_release,
}


def main(argv: Optional[list] = None) -> int:
    """
    Run one operator command.

    Returns:
        Process exit code: 0 success, 1 not found or store error,
        2 trigger not releasable
    """
    load_dotenv()
    args = parse_args(argv)
    setup_logging(args.log_level)

    if args.command == "serve":
        return cmd_serve(args)

    try:
        store = create_store()
    except JobStoreError as e:
        logger.error(f"Cannot open job store: {e}")
        return 1

    try:
        return _STORE_COMMANDS[args.command](store, args)
    except JobStoreError as e:
        logger.error(f"Command '{args.command}' failed: {e}")
        return 1
    finally:
        store.shutdown()


if __name__ == "__main__":
    sys.exit(main())
