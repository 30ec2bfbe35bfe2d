"""
Operator script — maintain failed-login rate-limit records.

Usage:
    python -m scripts.rate_limits purge
    python -m scripts.rate_limits unblock 203.0.113.7

purge    Delete every expired record from the durable store.
unblock  Delete the record for one client identity, lifting its block
         immediately (same effect as a successful login from it).

Requires DATABASE_URL (and the other proxy settings) in the environment.
"""

import argparse
import asyncio
import sys

# Ensure the project root is on the path
sys.path.insert(0, ".")

from release_proxy.core.config import Settings
from release_proxy.core.database import build_engine
from release_proxy.services.kv_store import SqlKeyValueStore
from release_proxy.services.rate_limiter import KEY_PREFIX


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="rate_limits", description=__doc__.split("\n\n")[0])
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("purge", help="delete expired records")
    unblock = sub.add_parser("unblock", help="lift the block on one identity")
    unblock.add_argument("identity", help="client identity, e.g. an IP address")
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = Settings()  # type: ignore[call-arg]

    if settings.DATABASE_URL is None:
        print("DATABASE_URL is not set — rate limiting is disabled, nothing to do.")
        return 1

    engine = build_engine(settings.DATABASE_URL)
    store = SqlKeyValueStore(engine)

    try:
        if args.command == "purge":
            removed = await store.purge_expired()
            print(f"Purged {removed} expired record(s).")
        else:
            await store.delete(KEY_PREFIX + args.identity)
            print(f"Cleared rate-limit record for {args.identity}.")
    finally:
        await engine.dispose()

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
