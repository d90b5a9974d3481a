"""Write the default plansPublic and billing documents into the database.

Run from backend/:
    python -m scripts.seed_config_documents            # insert if missing
    python -m scripts.seed_config_documents --overwrite  # reset to defaults
"""

import argparse
import asyncio

from app.core.config import get_settings
from app.core.logging import configure_structlog
from app.db.base import close_db, get_session_factory, init_db
from app.db.datastore_sql import SqlDatastore
from app.db.seed import seed_config_documents


async def main(overwrite: bool) -> None:
    settings = get_settings()
    configure_structlog(log_level="INFO", json_logs=not settings.debug)

    await init_db()
    try:
        await seed_config_documents(SqlDatastore(get_session_factory()), overwrite=overwrite)
    finally:
        await close_db()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--overwrite", action="store_true", help="replace existing documents with defaults")
    args = parser.parse_args()
    asyncio.run(main(args.overwrite))
