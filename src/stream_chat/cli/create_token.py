"""
CLI for issuing a user token signed with the app secret.

Reads STREAM_KEY / STREAM_SECRET from the environment (or .env).
"""

import argparse
import logging
from datetime import datetime, timedelta, timezone

from stream_chat import logging_setup
from stream_chat.client import Client
from stream_chat.settings import get_settings

logger = logging.getLogger(__name__)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Print a chat token for a user id"
    )

    cfg = get_settings()

    parser.add_argument(
        "user_id",
        help="User id the token is valid for"
    )

    parser.add_argument(
        "--expire-seconds",
        type=int,
        default=None,
        help="Token lifetime in seconds (default: no expiration)"
    )

    parser.add_argument(
        "--log-level",
        default=cfg.log_level,
        help="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    args = parser.parse_args(argv)

    logging_setup.setup_logging(args.log_level)

    expire = None
    if args.expire_seconds is not None:
        if args.expire_seconds <= 0:
            logger.error("--expire-seconds must be positive")
            return 2
        expire = datetime.now(timezone.utc) + timedelta(seconds=args.expire_seconds)

    try:
        client = Client.from_env(cfg)
        token = client.create_token(args.user_id, expire)
    except ValueError as e:
        logger.error(f"Error: {e}")
        return 1

    print(token)
    return 0


if __name__ == "__main__":
    exit(main())
