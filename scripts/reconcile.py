"""
Reconciliation report

Lists documents, accounts and loans that disagree after an interrupted
borrow or return (or a manual availability toggle):
    python scripts/reconcile.py [--json]

Exits with status 1 when discrepancies are found.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Load environment variables
load_dotenv()

import logging

from app.db.mongo import MongoLibraryStore
from app.services.loan_ledger import LoanLedger
from utils.time_utils import format_timestamp

logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


async def main(as_json: bool) -> int:
    store = MongoLibraryStore()
    await store.connect()

    try:
        ledger = LoanLedger(store)
        report = await ledger.reconcile()
        overdue = await ledger.overdue_loans()
    finally:
        await store.close()

    if as_json:
        data = report.as_dict()
        data["overdue_loans"] = [loan.model_dump(mode="json") for loan in overdue]
        print(json.dumps(data, default=str, indent=2))
        return 0 if report.is_consistent else 1

    logger.info(
        f"Checked {report.documents_checked} documents and {report.users_checked} users"
    )
    for doc in report.documents:
        logger.warning(
            f"  📄 document {doc.document_id}: availability={doc.availability}, "
            f"active loans={doc.active_loans}"
        )
    for user in report.users:
        flag = " (over limit)" if user.over_limit else ""
        logger.warning(
            f"  👤 user {user.user_id}: counter={user.recorded_active}, "
            f"active loans={user.actual_active}{flag}"
        )
    for loan_id in report.orphan_loans:
        logger.warning(f"  🔗 loan {loan_id} points at a missing document")

    logger.info(f"⏰ {len(overdue)} overdue loans")
    for loan in overdue:
        logger.info(
            f"  {loan.document_title or loan.document_id} / {loan.user_email or loan.user_id}: "
            f"due {format_timestamp(loan.due_at)}"
        )

    if report.is_consistent:
        logger.info("✅ No discrepancies")
        return 0
    return 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--json", action="store_true", help="print the report as JSON")
    args = parser.parse_args()
    sys.exit(asyncio.run(main(args.json)))
