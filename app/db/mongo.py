"""
app/db/mongo.py

Purpose: MongoDB store

- Initializes Motor client with connection pooling and bounded timeouts
- Collections: documents, users, loans, sessions
- Translates pymongo failures into StoreError
- Proper connection lifecycle management (owned by the hosting process)
"""

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase, AsyncIOMotorCollection
from pymongo import ReturnDocument
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError, PyMongoError, DuplicateKeyError
from bson import ObjectId
from bson.errors import InvalidId
from typing import Any, Dict, List, Optional, Sequence
import asyncio

from app.core.config import settings
from app.core.logging import get_logger
from app.db.store import (
    CollectionStore,
    LibraryStore,
    StoreError,
    DuplicateRecordError,
    Record,
    Filter,
    Sort,
    DOCUMENTS,
    USERS,
    LOANS,
    SESSIONS,
)

logger = get_logger(__name__)


def _object_id(record_id: str) -> Optional[ObjectId]:
    """Returns None for ids that cannot exist in Mongo."""
    try:
        return ObjectId(str(record_id))
    except (InvalidId, TypeError):
        return None


def _to_record(doc: Optional[Dict[str, Any]]) -> Optional[Record]:
    if doc is None:
        return None
    record = dict(doc)
    record["id"] = str(record.pop("_id"))
    return record


class MongoCollectionStore(CollectionStore):
    """CollectionStore backed by one Motor collection."""

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection
        self.name = collection.name

    async def find_by_id(self, record_id: str) -> Optional[Record]:
        oid = _object_id(record_id)
        if oid is None:
            return None
        try:
            return _to_record(await self.collection.find_one({"_id": oid}))
        except PyMongoError as e:
            raise StoreError(f"{self.name}.find_by_id failed: {e}") from e

    async def find_one(self, filter: Filter, sort: Optional[Sort] = None) -> Optional[Record]:
        try:
            doc = await self.collection.find_one(filter, sort=list(sort) if sort else None)
            return _to_record(doc)
        except PyMongoError as e:
            raise StoreError(f"{self.name}.find_one failed: {e}") from e

    async def find_many(
        self,
        filter: Optional[Filter] = None,
        sort: Optional[Sort] = None,
        limit: int = 0,
        exclude: Sequence[str] = (),
    ) -> List[Record]:
        projection = {field: 0 for field in exclude} or None
        try:
            cursor = self.collection.find(filter or {}, projection)
            if sort:
                cursor = cursor.sort(list(sort))
            if limit:
                cursor = cursor.limit(limit)
            return [_to_record(doc) async for doc in cursor]
        except PyMongoError as e:
            raise StoreError(f"{self.name}.find_many failed: {e}") from e

    async def insert(self, record: Record) -> str:
        doc = dict(record)
        doc.pop("id", None)
        try:
            result = await self.collection.insert_one(doc)
            return str(result.inserted_id)
        except DuplicateKeyError as e:
            raise DuplicateRecordError(f"{self.name}.insert rejected duplicate: {e}") from e
        except PyMongoError as e:
            raise StoreError(f"{self.name}.insert failed: {e}") from e

    async def update_fields(self, record_id: str, fields: Record) -> bool:
        return await self.update_where(record_id, {}, set_fields=fields)

    async def update_where(
        self,
        record_id: str,
        condition: Filter,
        set_fields: Optional[Record] = None,
        inc_fields: Optional[Dict[str, int]] = None,
    ) -> bool:
        oid = _object_id(record_id)
        if oid is None:
            return False

        update: Dict[str, Any] = {}
        if set_fields:
            update["$set"] = set_fields
        if inc_fields:
            update["$inc"] = inc_fields
        if not update:
            return await self.count({"_id": oid, **condition}) > 0

        try:
            # find_one_and_update matches and writes in one server-side step
            doc = await self.collection.find_one_and_update(
                {"_id": oid, **condition},
                update,
                projection={"_id": 1},
                return_document=ReturnDocument.AFTER,
            )
            return doc is not None
        except PyMongoError as e:
            raise StoreError(f"{self.name}.update_where failed: {e}") from e

    async def increment(self, record_id: str, field: str, delta: int) -> bool:
        return await self.update_where(record_id, {}, inc_fields={field: delta})

    async def delete_where(self, filter: Filter) -> int:
        try:
            result = await self.collection.delete_many(filter)
            return result.deleted_count
        except PyMongoError as e:
            raise StoreError(f"{self.name}.delete_where failed: {e}") from e

    async def count(self, filter: Optional[Filter] = None) -> int:
        try:
            return await self.collection.count_documents(filter or {})
        except PyMongoError as e:
            raise StoreError(f"{self.name}.count failed: {e}") from e

    async def sum(self, field: str, filter: Optional[Filter] = None) -> int:
        pipeline = [
            {"$match": filter or {}},
            {"$group": {"_id": None, "total": {"$sum": f"${field}"}}},
        ]
        try:
            result = await self.collection.aggregate(pipeline).to_list(length=1)
        except PyMongoError as e:
            raise StoreError(f"{self.name}.sum failed: {e}") from e
        return result[0]["total"] if result else 0


class MongoLibraryStore(LibraryStore):
    """
    LibraryStore over a single MongoDB database.

    Writes are not retried by the driver (retryWrites=False): a borrow that
    failed half-way must be reported to the caller, never replayed.
    """

    def __init__(self, url: Optional[str] = None, db_name: Optional[str] = None):
        self.url = url or settings.MONGODB_URL
        self.db_name = db_name or settings.MONGODB_DB_NAME
        self._client: Optional[AsyncIOMotorClient] = None
        self._database: Optional[AsyncIOMotorDatabase] = None

    @property
    def database(self) -> AsyncIOMotorDatabase:
        if self._database is None:
            raise RuntimeError(
                "Database not initialized. Call connect() during startup."
            )
        return self._database

    async def connect(self) -> None:
        """
        Establishes connection to MongoDB with retry logic.
        Called during application startup.
        """
        if self._client is not None:
            logger.warning("MongoDB client already initialized")
            return

        max_retries = 3
        retry_delay = 2
        timeout_ms = settings.MONGODB_TIMEOUT_MS

        for attempt in range(1, max_retries + 1):
            try:
                logger.info(
                    f"Attempting to connect to MongoDB (attempt {attempt}/{max_retries})"
                )

                client = AsyncIOMotorClient(
                    self.url,
                    maxPoolSize=50,
                    minPoolSize=5,
                    serverSelectionTimeoutMS=timeout_ms,
                    connectTimeoutMS=timeout_ms,
                    socketTimeoutMS=timeout_ms,
                    retryWrites=False,
                    retryReads=True,
                )

                # Verify connection
                await client.admin.command("ping")

                self._client = client
                self._database = client[self.db_name]
                self._bind_collections()

                logger.info(f"✅ Successfully connected to MongoDB: {self.db_name}")
                return

            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(
                    f"Failed to connect to MongoDB (attempt {attempt}/{max_retries}): {e}"
                )

                if attempt < max_retries:
                    logger.info(f"Retrying in {retry_delay} seconds...")
                    await asyncio.sleep(retry_delay)
                    retry_delay *= 2  # Exponential backoff
                else:
                    logger.critical("Failed to connect to MongoDB after all retries")
                    raise ConnectionError("Could not establish MongoDB connection") from e

    def _bind_collections(self) -> None:
        db = self.database
        self.documents = MongoCollectionStore(db[DOCUMENTS])
        self.users = MongoCollectionStore(db[USERS])
        self.loans = MongoCollectionStore(db[LOANS])
        self.sessions = MongoCollectionStore(db[SESSIONS])

    async def close(self) -> None:
        """
        Closes the MongoDB connection.
        Called during application shutdown.
        """
        if self._client:
            logger.info("Closing MongoDB connection")
            self._client.close()
            self._client = None
            self._database = None
            logger.info("MongoDB connection closed")

    async def ping(self) -> bool:
        """
        Checks if the database connection is healthy.

        Returns:
            True if connection is healthy, False otherwise
        """
        try:
            if self._client is None:
                logger.error("MongoDB client not initialized")
                return False

            await self._client.admin.command("ping")
            return True

        except PyMongoError as e:
            logger.error(f"Database health check failed: {str(e)}")
            return False

    async def create_indexes(self) -> None:
        from app.db.indexes import create_indexes
        await create_indexes(self.database)
