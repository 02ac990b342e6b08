"""
Database initialization script

Creates indexes and seeds the default accounts and sample catalogue:
    python scripts/init_db.py
"""

import asyncio
import sys
from pathlib import Path
from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load environment variables
load_dotenv()

import logging

from app.core.config import settings
from app.db.mongo import MongoLibraryStore
from app.db.store import DOCUMENTS, USERS, LOANS, SESSIONS
from app.services.account_service import AccountService
from app.services.catalogue_service import CatalogueService
from app.services.seed_service import seed_default_data

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


async def main():
    """Main initialization"""
    logger.info("=" * 60)
    logger.info("  Médiathèque Database Setup")
    logger.info("=" * 60 + "\n")

    store = MongoLibraryStore()
    await store.connect()

    try:
        await store.create_indexes()

        # ==================== VERIFICATION ====================
        logger.info("\n🔍 Verifying indexes...")
        for collection_name in [USERS, DOCUMENTS, LOANS, SESSIONS]:
            indexes = await store.database[collection_name].index_information()
            logger.info(f"\n  {collection_name}:")
            for idx_name in indexes.keys():
                if idx_name != "_id_":
                    logger.info(f"    ✅ {idx_name}")

        # ==================== SEED ====================
        accounts = AccountService(
            store,
            default_borrow_limit=settings.DEFAULT_BORROW_LIMIT,
            min_password_length=settings.MIN_PASSWORD_LENGTH,
        )
        catalogue = CatalogueService(store)
        seeded = await seed_default_data(accounts, catalogue, settings)
        logger.info(f"\n🌱 Seed: {seeded}")

        # ==================== STATS ====================
        logger.info("\n📊 Current documents:")
        for collection_name in [USERS, DOCUMENTS, LOANS]:
            count = await store.collection(collection_name).count()
            logger.info(f"  {collection_name}: {count}")

        logger.info("\n✅ Database initialization complete!")

    except Exception as e:
        logger.error(f"\n❌ Error: {e}")
        raise

    finally:
        await store.close()

    logger.info("\n" + "=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
