"""
Promote a user to admin from the command line.

Same effect as POST /bootstrap-admin, for operators with shell access to the
configured stores. Uses BOOTSTRAP_ADMIN_SECRET from the environment.

Usage:
    uv run python -m scripts.bootstrap_admin <uid>
"""
import argparse
import asyncio

from app.core import config
from app.core.stores import build_stores
from app.features.permissions.service import bootstrap_admin
from app.utils import get_logger


log = get_logger(__name__)


async def main(uid: str):
    log.info("Connecting stores (document store: %s)...", config.DOCUMENT_STORE)
    stores = await build_stores()

    try:
        result = await bootstrap_admin(
            stores,
            uid,
            provided_secret=config.BOOTSTRAP_ADMIN_SECRET,
            configured_secret=config.BOOTSTRAP_ADMIN_SECRET,
        )
    except Exception as e:
        log.error(f"Error bootstrapping admin {uid}: {e}", exc_info=True)
        raise

    log.info(result["message"])


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("uid", help="Identity provider user ID")
    args = parser.parse_args()
    asyncio.run(main(args.uid))
