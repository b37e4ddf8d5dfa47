"""
Key-value store clients for async operations.
Stores JSON values under string keys in a single flat namespace, with prefix scans.
"""

import json
import re
from typing import Any, Dict, List, Optional, Protocol

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase, AsyncIOMotorCollection
from pymongo import ReplaceOne
from pymongo.errors import ConnectionFailure
import structlog

logger = structlog.get_logger(__name__)


class KVStore(Protocol):
    """Operations the catalog needs from the key-value store."""

    async def get(self, key: str) -> Optional[Any]:
        ...

    async def set(self, key: str, value: Any) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...

    async def mget(self, keys: List[str]) -> List[Optional[Any]]:
        ...

    async def mset(self, entries: Dict[str, Any]) -> None:
        ...

    async def mdel(self, keys: List[str]) -> int:
        ...

    async def get_by_prefix(self, prefix: str) -> List[Any]:
        ...

    async def ping(self) -> bool:
        ...


class MongoKVStore:
    """
    MongoDB-backed key-value store.
    Each entry is a document of the form {"_id": key, "value": value}.
    """

    def __init__(self, connection_url: str, database_name: str, collection_name: str):
        """
        Initialize the store.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
            collection_name: Name of the collection holding the entries
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.collection_name = collection_name
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self.collection: Optional[AsyncIOMotorCollection] = None

    async def connect(self) -> None:
        """Establish connection to MongoDB."""
        try:
            self.client = AsyncIOMotorClient(self.connection_url)
            self.database = self.client[self.database_name]
            self.collection = self.database[self.collection_name]

            await self.client.admin.command('ping')
            logger.info("Successfully connected to MongoDB",
                        database=self.database_name,
                        collection=self.collection_name)

        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def get(self, key: str) -> Optional[Any]:
        try:
            doc = await self.collection.find_one({"_id": key})
            return doc["value"] if doc else None
        except Exception as e:
            logger.error("Failed to get key", key=key, error=str(e))
            raise

    async def set(self, key: str, value: Any) -> None:
        try:
            await self.collection.replace_one(
                {"_id": key},
                {"_id": key, "value": value},
                upsert=True
            )
            logger.debug("Stored key", key=key)
        except Exception as e:
            logger.error("Failed to set key", key=key, error=str(e))
            raise

    async def delete(self, key: str) -> None:
        try:
            await self.collection.delete_one({"_id": key})
            logger.debug("Deleted key", key=key)
        except Exception as e:
            logger.error("Failed to delete key", key=key, error=str(e))
            raise

    async def mget(self, keys: List[str]) -> List[Optional[Any]]:
        """
        Fetch several keys in one round trip.

        Returns:
            Values aligned with ``keys``; None where a key is absent
        """
        if not keys:
            return []
        try:
            cursor = self.collection.find({"_id": {"$in": list(keys)}})
            docs = await cursor.to_list(length=None)
            found = {doc["_id"]: doc["value"] for doc in docs}
            return [found.get(key) for key in keys]
        except Exception as e:
            logger.error("Failed to get keys", count=len(keys), error=str(e))
            raise

    async def mset(self, entries: Dict[str, Any]) -> None:
        if not entries:
            return
        try:
            operations = [
                ReplaceOne({"_id": key}, {"_id": key, "value": value}, upsert=True)
                for key, value in entries.items()
            ]
            await self.collection.bulk_write(operations, ordered=False)
            logger.debug("Stored keys", count=len(entries))
        except Exception as e:
            logger.error("Failed to set keys", count=len(entries), error=str(e))
            raise

    async def mdel(self, keys: List[str]) -> int:
        """
        Delete several keys with a single delete_many command.

        Returns:
            Number of entries removed
        """
        if not keys:
            return 0
        try:
            result = await self.collection.delete_many({"_id": {"$in": list(keys)}})
            logger.debug("Deleted keys", requested=len(keys), deleted=result.deleted_count)
            return result.deleted_count
        except Exception as e:
            logger.error("Failed to delete keys", count=len(keys), error=str(e))
            raise

    async def get_by_prefix(self, prefix: str) -> List[Any]:
        """
        Return every value whose key starts with ``prefix``.
        The anchored regex is served from the _id index.
        """
        try:
            cursor = self.collection.find({"_id": {"$regex": f"^{re.escape(prefix)}"}})
            docs = await cursor.to_list(length=None)
            return [doc["value"] for doc in docs]
        except Exception as e:
            logger.error("Failed to scan prefix", prefix=prefix, error=str(e))
            raise

    async def ping(self) -> bool:
        try:
            await self.database.command("ping")
            return True
        except Exception as e:
            logger.error("Key-value store health check failed", error=str(e))
            return False


class InMemoryKVStore:
    """Dictionary-backed store for development and tests."""

    def __init__(self):
        self.entries: Dict[str, str] = {}

    # Values are kept as JSON text so callers never share mutable state with the store.
    async def get(self, key: str) -> Optional[Any]:
        raw = self.entries.get(key)
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any) -> None:
        self.entries[key] = json.dumps(value)

    async def delete(self, key: str) -> None:
        self.entries.pop(key, None)

    async def mget(self, keys: List[str]) -> List[Optional[Any]]:
        return [await self.get(key) for key in keys]

    async def mset(self, entries: Dict[str, Any]) -> None:
        for key, value in entries.items():
            await self.set(key, value)

    async def mdel(self, keys: List[str]) -> int:
        deleted = 0
        for key in keys:
            if self.entries.pop(key, None) is not None:
                deleted += 1
        return deleted

    async def get_by_prefix(self, prefix: str) -> List[Any]:
        return [json.loads(raw) for key, raw in self.entries.items() if key.startswith(prefix)]

    async def ping(self) -> bool:
        return True

    async def connect(self) -> None:
        return None

    async def disconnect(self) -> None:
        return None

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.entries.clear()
