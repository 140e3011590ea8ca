"""
Realign claims with user documents after a partial dual-write failure.

The document store is treated as the source of truth: each user's claims are
rewritten from the role and permissions in its document.

Usage:
    uv run python -m scripts.resync_claims <uid> [<uid> ...]
"""
import argparse
import asyncio

from app.core.errors import NotFound
from app.core.stores import build_stores
from app.features.permissions.service import resync_claims
from app.utils import get_logger


log = get_logger(__name__)


async def main(uids: list[str]) -> int:
    stores = await build_stores()
    failed = 0

    for uid in uids:
        try:
            claims = await resync_claims(stores, uid)
            log.info(f"  - {uid}: role={claims['role']}")
        except NotFound:
            log.warning(f"  - {uid}: no document, skipped")
            failed += 1
        except Exception as e:
            log.error(f"  - {uid}: re-sync failed: {e}", exc_info=True)
            failed += 1

    log.info(f"Re-synced {len(uids) - failed}/{len(uids)} users")
    return 1 if failed else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("uids", nargs="+", help="Identity provider user IDs")
    args = parser.parse_args()
    raise SystemExit(asyncio.run(main(args.uids)))
