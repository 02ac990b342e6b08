"""
app/db/indexes.py

Purpose: Database index management

- Unique email per account
- Lookups used by borrow/return, overdue and "my loans" queries
- TTL index for automatic session cleanup
"""

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from app.core.logging import get_logger
from app.db.store import DOCUMENTS, USERS, LOANS, SESSIONS

logger = get_logger(__name__)


async def create_indexes(db: AsyncIOMotorDatabase):
    """
    Creates all necessary database indexes.
    This function is idempotent - safe to run multiple times.
    """
    try:
        users = db[USERS]
        documents = db[DOCUMENTS]
        loans = db[LOANS]
        sessions = db[SESSIONS]

        logger.info("Creating database indexes...")

        # ==============================================
        # USERS COLLECTION INDEXES
        # ==============================================

        await users.create_index("email", unique=True, name="email_unique")
        logger.debug("Created unique index on users.email")

        # ==============================================
        # DOCUMENTS COLLECTION INDEXES
        # ==============================================

        await documents.create_index("availability", name="availability_idx")
        logger.debug("Created index on documents.availability")

        # ==============================================
        # LOANS COLLECTION INDEXES
        # ==============================================

        # Active loan lookup for return
        await loans.create_index(
            [("document_id", ASCENDING), ("user_id", ASCENDING), ("status", ASCENDING)],
            name="loan_lookup_idx"
        )
        logger.debug("Created compound index on loans.document_id + user_id + status")

        # Overdue scan
        await loans.create_index(
            [("status", ASCENDING), ("due_at", ASCENDING)],
            name="loan_due_idx"
        )
        logger.debug("Created compound index on loans.status + due_at")

        # A user's current loans, most recent first
        await loans.create_index(
            [("user_id", ASCENDING), ("status", ASCENDING), ("borrowed_at", DESCENDING)],
            name="user_loans_idx"
        )
        logger.debug("Created compound index on loans.user_id + status + borrowed_at")

        # ==============================================
        # SESSIONS COLLECTION INDEXES
        # ==============================================

        await sessions.create_index("session_id", unique=True, name="session_id_unique")
        logger.debug("Created unique index on sessions.session_id")

        # Delete when expires_at is reached
        await sessions.create_index(
            "expires_at",
            expireAfterSeconds=0,
            name="session_expiry_ttl_idx"
        )
        logger.debug("Created TTL index on sessions.expires_at")

        logger.info("✅ All database indexes created successfully")

        user_indexes = await users.index_information()
        loan_indexes = await loans.index_information()
        session_indexes = await sessions.index_information()

        logger.info(
            f"Index summary: Users={len(user_indexes)}, "
            f"Loans={len(loan_indexes)}, "
            f"Sessions={len(session_indexes)}"
        )

    except Exception as e:
        logger.error(f"Failed to create indexes: {str(e)}", exc_info=True)
        raise
