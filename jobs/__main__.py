"""Command-line entrypoint for fetching event paths and uploading files."""

from __future__ import annotations

import argparse
import json
import logging
import os
from concurrent.futures import TimeoutError as FutureTimeoutError

from actioncore.model import DecodeFormat
from jobs.config import AccessorConfig, build_accessor

logger = logging.getLogger(__name__)


def _split_fields(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


def _run_get_path(args: argparse.Namespace, config: AccessorConfig) -> int:
    fields = _split_fields(args.fields)
    if not fields:
        raise SystemExit("--fields must name at least one field")

    with build_accessor(config) as accessor:
        records = accessor.get_path(
            args.path,
            args.format,
            fields,
            recursive=args.recursive,
            raw=args.raw,
            timeout=args.timeout,
        )
    if records is None:
        logger.warning("No events fetched for %s.", args.path)
        return 1
    for record in records:
        print(json.dumps(record, default=str))
    logger.info("Fetched %s events from %s.", len(records), args.path)
    return 0


def _run_upload(args: argparse.Namespace, config: AccessorConfig) -> int:
    with build_accessor(config) as accessor:
        try:
            future = accessor.upload(
                args.local_file,
                args.remote_path,
                overwrite=args.overwrite,
                replication=args.replication,
                block_size=args.block_size,
                permission=args.permission,
            )
        except OSError as exc:
            raise SystemExit(f"Cannot read {args.local_file}: {exc}") from exc
        try:
            response = future.result(timeout=args.timeout)
        except FutureTimeoutError as exc:
            raise SystemExit(f"Upload of {args.local_file} did not finish within {args.timeout} sec") from exc
    print(response.status_code)
    return 0 if response.is_success else 1


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Action core access client")
    parser.add_argument(
        "--log-level",
        help="Override LOG_LEVEL for this invocation (e.g. DEBUG, INFO)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    get_parser = subparsers.add_parser("get-path", help="Fetch a path and print one JSON event per line")
    get_parser.add_argument("path", help="Logical path on the service (e.g. /events/2011/06/01)")
    get_parser.add_argument(
        "--format",
        default=DecodeFormat.DEFAULT.value,
        choices=[item.value for item in DecodeFormat],
        help="Encoding of the events in the response",
    )
    get_parser.add_argument("--fields", required=True, help="Comma-separated list of event fields to keep")
    get_parser.add_argument("--recursive", action="store_true", help="Include sub-directories")
    get_parser.add_argument("--raw", action="store_true", help="Ask the service for raw content")
    get_parser.add_argument("--timeout", type=float, default=None, help="Seconds to wait for the response")

    upload_parser = subparsers.add_parser("upload", help="Upload a local file to the service")
    upload_parser.add_argument("local_file", help="File to send")
    upload_parser.add_argument("remote_path", help="Destination path on the service")
    upload_parser.add_argument("--overwrite", action="store_true", help="Replace an existing remote file")
    upload_parser.add_argument("--replication", type=int, default=3, help="Replication factor")
    upload_parser.add_argument("--block-size", type=int, default=-1, help="Block size for I/O (-1: server default)")
    upload_parser.add_argument("--permission", default="u=rw,go=r", help="Remote file permissions")
    upload_parser.add_argument("--timeout", type=float, default=None, help="Seconds to wait for the upload")

    args = parser.parse_args(argv)

    logging.basicConfig(level=(args.log_level or os.getenv("LOG_LEVEL", "INFO")).upper())
    config = AccessorConfig.from_env()

    if args.command == "get-path":
        return _run_get_path(args, config)
    if args.command == "upload":
        return _run_upload(args, config)

    parser.error("Unknown command")
    return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
