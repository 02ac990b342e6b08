"""
app/services/seed_service.py

Purpose: Default data

- Admin account and a test account
- Sample catalogue when the documents collection is empty
"""

from app.core.config import Settings
from app.core.logging import get_logger
from app.models.user import Role
from app.services.account_service import AccountService
from app.services.catalogue_service import CatalogueService
from utils.constants import DEFAULT_ADMIN_NAME, DEFAULT_USER_NAME

logger = get_logger(__name__)


async def seed_default_data(
    accounts: AccountService,
    catalogue: CatalogueService,
    config: Settings,
) -> dict:
    """
    Idempotent: existing accounts and a non-empty catalogue are left alone.
    """
    admin_created = await accounts.ensure_account(
        DEFAULT_ADMIN_NAME,
        config.DEFAULT_ADMIN_EMAIL,
        config.DEFAULT_ADMIN_PASSWORD,
        role=Role.ADMIN,
        borrow_limit=config.ADMIN_BORROW_LIMIT,
    )
    if admin_created:
        logger.info(f"✅ Admin account created ({config.DEFAULT_ADMIN_EMAIL})")

    user_created = await accounts.ensure_account(
        DEFAULT_USER_NAME,
        config.DEFAULT_USER_EMAIL,
        config.DEFAULT_USER_PASSWORD,
        role=Role.USER,
        borrow_limit=config.DEFAULT_BORROW_LIMIT,
    )
    if user_created:
        logger.info(f"✅ Test account created ({config.DEFAULT_USER_EMAIL})")

    documents = await catalogue.seed_sample_documents()

    return {
        "admin_created": admin_created,
        "user_created": user_created,
        "documents_inserted": documents,
    }
