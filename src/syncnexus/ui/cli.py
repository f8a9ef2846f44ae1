from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from signal import SIGINT, signal
from typing import TYPE_CHECKING

import uvicorn
from dotenv import load_dotenv

from syncnexus.api import create_app
from syncnexus.app import (
    build_runtime,
    full_sync,
    harvest_messages,
    rescue_group,
    sync_groups,
    verify,
)
from syncnexus.config import configure_logging, get_sync_config

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from syncnexus.app import Runtime
    from syncnexus.domain.ports import GatewayGroup

log = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


def _add_instance_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--instance",
        type=str,
        help="Gateway instance name (defaults to EVOLUTION_INSTANCE_NAME)",
    )


def _add_group_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--group",
        type=str,
        required=True,
        help="Group identifier, e.g. 120363000000000000@g.us",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile WhatsApp gateway data")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", type=str, default=DEFAULT_HOST, help="Bind address")
    serve.add_argument("--port", type=int, default=DEFAULT_PORT, help="Bind port")

    groups = subparsers.add_parser("sync-groups", help="Sync group metadata for an instance")
    _add_instance_argument(groups)

    rescue = subparsers.add_parser("rescue", help="Deep-sync the participants of one group")
    _add_group_argument(rescue)
    _add_instance_argument(rescue)

    full = subparsers.add_parser(
        "full-sync", help="Sync metadata, then participants of every group (foreground)"
    )
    _add_instance_argument(full)
    full.add_argument(
        "--pacing",
        type=float,
        help="Seconds to wait between groups (defaults to SYNC_GROUP_PACING_SECONDS)",
    )

    harvest = subparsers.add_parser("harvest", help="Harvest stored messages for one group")
    _add_group_argument(harvest)
    _add_instance_argument(harvest)
    harvest.add_argument("--limit", type=int, help="Messages per page (defaults to config)")
    harvest.add_argument("--offset", type=int, default=0, help="Messages to skip")

    verify_parser = subparsers.add_parser(
        "verify", help="Compare gateway and stored participant counts for one group"
    )
    _add_group_argument(verify_parser)
    _add_instance_argument(verify_parser)

    return parser.parse_args(list(argv))


def _validate(args: argparse.Namespace) -> None:
    if args.command == "serve" and not 0 < args.port < 65536:
        raise ValueError(f"Invalid port: {args.port}")
    if args.command == "full-sync" and args.pacing is not None and args.pacing < 0:
        raise ValueError("Pacing must be non-negative")
    if args.command == "harvest":
        if args.limit is not None and args.limit <= 0:
            raise ValueError("Limit must be positive")
        if args.offset < 0:
            raise ValueError("Offset must be non-negative")


def _log_progress(index: int, total: int, group: GatewayGroup) -> None:
    log.info(f"Progress {index}/{total}: {group.name or group.external_id}")


async def _dispatch(runtime: Runtime, args: argparse.Namespace) -> None:
    if args.command == "sync-groups":
        result = await sync_groups(runtime, instance_name=args.instance)
        log.info(f"Groups synced: fetched={result.fetched}, synced={result.synced}")
    elif args.command == "rescue":
        rescued = await rescue_group(runtime, args.group, instance_name=args.instance)
        log.info(
            f"Rescue finished: fixed={rescued.fixed}, scanned={rescued.total_scanned}, "
            f"renamed={rescued.renamed}, skipped={rescued.skipped}"
        )
    elif args.command == "full-sync":
        batch = await full_sync(runtime, instance_name=args.instance, on_progress=_log_progress)
        if batch.failed:
            log.warning(f"Groups that failed: {', '.join(batch.failed)}")
    elif args.command == "harvest":
        harvested = await harvest_messages(
            runtime,
            args.group,
            limit=args.limit,
            offset=args.offset,
            instance_name=args.instance,
        )
        log.info(
            f"Harvest finished: found={harvested.total_found}, saved={harvested.saved}, "
            f"skipped={harvested.skipped}"
        )
    elif args.command == "verify":
        verified = await verify(runtime, args.group, instance_name=args.instance)
        log.info(
            f"{args.group}: gateway={verified.gateway_count}, stored={verified.stored_count}, "
            f"status={verified.status}"
        )
    else:
        raise ValueError(f"Unsupported command: {args.command}")


async def _run(args: argparse.Namespace) -> None:
    sync_config = get_sync_config()
    if getattr(args, "pacing", None) is not None:
        sync_config = replace(sync_config, group_pacing_seconds=args.pacing)
    runtime = build_runtime(sync_config=sync_config)
    try:
        await _dispatch(runtime, args)
    finally:
        await runtime.aclose()


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        _validate(parsed_args)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "serve":
            uvicorn.run(create_app(), host=parsed_args.host, port=parsed_args.port)
        else:
            asyncio.run(_run(parsed_args))
    except Exception:
        log.exception("Fatal error during sync")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()
