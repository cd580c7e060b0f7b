"""
CLI for listing channels matching a filter.

Example:
    stream-chat-query-channels --filter '{"members": {"$in": ["tommaso"]}}' --sort last_message_at:-1
"""

import argparse
import json
import logging

import requests

from stream_chat import logging_setup
from stream_chat.client import Client
from stream_chat.schemas import QueryOption, SortOption
from stream_chat.settings import get_settings

logger = logging.getLogger(__name__)


def parse_sort(value: str) -> SortOption:
    """Parse FIELD or FIELD:DIRECTION (1 or -1)."""
    field, _, direction = value.partition(":")
    if not field:
        raise argparse.ArgumentTypeError(f"invalid sort {value!r}")
    try:
        return SortOption(field=field, direction=int(direction or 1))
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid sort {value!r}: {e}")


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Print the cids of channels matching a filter"
    )

    cfg = get_settings()

    parser.add_argument(
        "--filter",
        type=json.loads,
        default={},
        help="Filter conditions as JSON (default: {})"
    )

    parser.add_argument(
        "--sort",
        type=parse_sort,
        action="append",
        default=[],
        help="Sort as FIELD[:DIRECTION], repeatable (e.g. last_message_at:-1)"
    )

    parser.add_argument(
        "--user-id",
        default=None,
        help="Query on behalf of this user (needed for filters like muted)"
    )

    parser.add_argument(
        "--limit",
        type=int,
        default=10,
        help="Maximum channels to return (default: 10)"
    )

    parser.add_argument(
        "--log-level",
        default=cfg.log_level,
        help="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    args = parser.parse_args(argv)

    logging_setup.setup_logging(args.log_level)

    q = QueryOption(filter=args.filter, user_id=args.user_id, limit=args.limit, message_limit=0)

    try:
        with Client.from_env(cfg) as client:
            channels = client.query_channels(q, *args.sort)
    except (ValueError, requests.RequestException) as e:
        logger.error(f"Error: {e}")
        return 1

    logger.info(f"Found {len(channels)} channels")
    for ch in channels:
        print(ch.cid)
    return 0


if __name__ == "__main__":
    exit(main())
