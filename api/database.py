"""
Catalog service layer for the FastAPI application.
Maps users, collections and books onto the flat key-value namespace.
"""

from typing import Any, Dict, List, Optional

import structlog

from store.keys import (
    BOOK_PREFIX, COLLECTION_PREFIX,
    book_key, collection_key, user_key
)
from store.kv import KVStore

logger = structlog.get_logger(__name__)

UNKNOWN_USER = "Unknown User"


class CatalogService:
    """Record access for API operations."""

    def __init__(self, store: KVStore):
        self.store = store

    async def list_books(
        self,
        user_id: Optional[str] = None,
        collection_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Scan every book and filter in memory.

        Args:
            user_id: Keep only books owned by this user
            collection_id: Keep only books in this collection

        Returns:
            Matching book records in store iteration order
        """
        books = await self.store.get_by_prefix(BOOK_PREFIX) or []
        if user_id is not None:
            books = [book for book in books if book.get("userId") == user_id]
        if collection_id is not None:
            books = [book for book in books if book.get("collectionId") == collection_id]
        return books

    async def list_collections(self, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        collections = await self.store.get_by_prefix(COLLECTION_PREFIX) or []
        if user_id is not None:
            collections = [col for col in collections if col.get("userId") == user_id]
        return collections

    async def attach_user_names(self, collections: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Add ``userName`` to each collection, looked up from its owner's profile.
        Owners are fetched with a single mget.
        """
        owner_ids = list(dict.fromkeys(col.get("userId") for col in collections))
        users = await self.store.mget([user_key(str(owner_id)) for owner_id in owner_ids])
        names = {
            owner_id: (user or {}).get("name") or UNKNOWN_USER
            for owner_id, user in zip(owner_ids, users)
        }
        return [{**col, "userName": names[col.get("userId")]} for col in collections]

    async def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await self.store.get(user_key(user_id))

    async def get_user_name(self, user_id: str) -> str:
        user = await self.get_user(user_id)
        return (user or {}).get("name") or UNKNOWN_USER

    async def save_user(self, user: Dict[str, Any]) -> None:
        await self.store.set(user_key(user["id"]), user)

    async def get_collection(self, collection_id: str) -> Optional[Dict[str, Any]]:
        return await self.store.get(collection_key(collection_id))

    async def save_collection(self, collection: Dict[str, Any]) -> None:
        await self.store.set(collection_key(collection["id"]), collection)

    async def get_book(self, book_id: str) -> Optional[Dict[str, Any]]:
        return await self.store.get(book_key(book_id))

    async def save_book(self, book: Dict[str, Any]) -> None:
        await self.store.set(book_key(book["id"]), book)

    async def delete_book(self, book_id: str) -> None:
        await self.store.delete(book_key(book_id))

    async def delete_collection_cascade(self, collection_id: str) -> int:
        """
        Delete a collection together with every book that references it.
        All keys are removed in one batch delete.

        Returns:
            Number of books removed
        """
        books = await self.list_books(collection_id=collection_id)
        keys = [book_key(book["id"]) for book in books]
        keys.append(collection_key(collection_id))

        await self.store.mdel(keys)
        logger.info("Collection deleted", collection_id=collection_id, books_deleted=len(books))
        return len(books)

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform key-value store health check.

        Returns:
            Dictionary with health status
        """
        healthy = await self.store.ping()
        return {"status": "healthy" if healthy else "unhealthy"}
