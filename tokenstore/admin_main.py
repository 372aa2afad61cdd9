from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from tokenstore.application.token_record_store import TokenRecordStore
from tokenstore.domain.errors import TokenStoreError
from tokenstore.logging import setup_logging
from tokenstore.settings import get_settings

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tokenstore-admin",
        description="Maintenance commands for the passwordless token store.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("count", help="print the number of stored tokens")

    invalidate = sub.add_parser("invalidate", help="remove one user's token")
    invalidate.add_argument("uid")

    clear = sub.add_parser("clear", help="remove every stored token")
    clear.add_argument(
        "--yes", action="store_true", help="confirm wiping the whole store"
    )
    return parser


async def _run(args: argparse.Namespace, store: TokenRecordStore) -> int:
    try:
        if args.command == "count":
            print(await store.count())
        elif args.command == "invalidate":
            await store.invalidate_user(args.uid)
            logger.info("admin: token invalidated", extra={"uid": args.uid})
        elif args.command == "clear":
            if not args.yes:
                logger.error("admin: refusing to clear without --yes")
                return 2
            await store.clear()
            logger.info("admin: store cleared")
        return 0
    except TokenStoreError as e:
        logger.error(
            "admin: command failed",
            extra={"command": args.command, "error": str(e)},
        )
        return 1
    finally:
        await store.aclose()


def main(
    argv: Optional[Sequence[str]] = None, store: Optional[TokenRecordStore] = None
) -> int:
    args = _build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(settings.log_level)

    if store is None:
        store = TokenRecordStore.from_settings(settings)
    return asyncio.run(_run(args, store))


if __name__ == "__main__":
    sys.exit(main())
