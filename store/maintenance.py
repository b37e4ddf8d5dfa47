"""
Maintenance routines for the catalog key-value namespace.
Used by manage_store.py to inspect record counts and clean up orphaned books.
"""

from typing import Any, Dict, List

import structlog

from .keys import BOOK_PREFIX, COLLECTION_PREFIX, USER_PREFIX, book_key, collection_key
from .kv import KVStore

logger = structlog.get_logger(__name__)


async def prefix_counts(store: KVStore) -> Dict[str, int]:
    """Count records under each known prefix."""
    counts = {}
    for prefix in (USER_PREFIX, COLLECTION_PREFIX, BOOK_PREFIX):
        records = await store.get_by_prefix(prefix)
        counts[prefix.rstrip(":")] = len(records)
    return counts


async def find_orphaned_books(store: KVStore) -> List[Dict[str, Any]]:
    """
    Find books whose collection no longer exists.

    Returns:
        Book records referencing a missing collection
    """
    books = await store.get_by_prefix(BOOK_PREFIX)
    collections = await store.get_by_prefix(COLLECTION_PREFIX)
    live_ids = {collection.get("id") for collection in collections}

    orphans = [book for book in books if book.get("collectionId") not in live_ids]
    logger.info("Orphan scan completed", books_checked=len(books), orphans=len(orphans))
    return orphans


async def purge_orphaned_books(store: KVStore) -> int:
    """
    Delete every orphaned book in one batch.

    Returns:
        Number of books deleted
    """
    orphans = await find_orphaned_books(store)
    if not orphans:
        return 0

    deleted = await store.mdel([book_key(book["id"]) for book in orphans])
    logger.info("Orphaned books removed", deleted=deleted,
                collections=sorted({collection_key(str(book.get("collectionId"))) for book in orphans}))
    return deleted
