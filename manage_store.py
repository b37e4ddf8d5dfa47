#!/usr/bin/env python3
"""
Key-Value Store Management Utility

This script provides utilities to manage the catalog store:
- List records under a key prefix
- Find books whose collection no longer exists
- Clean up orphaned books
- Show record statistics
"""

import asyncio
import json
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from utilities.logger import setup_logging
from utilities.config import config
from store.kv import MongoKVStore
from store.maintenance import find_orphaned_books, prefix_counts, purge_orphaned_books


async def _open_store() -> MongoKVStore:
    store = MongoKVStore(
        connection_url=config.mongodb_url,
        database_name=config.mongodb_database,
        collection_name=config.kv_collection
    )
    await store.connect()
    return store


async def list_records(prefix: str):
    """List all records under a key prefix."""
    print("\n" + "="*80)
    print(f"📋 RECORDS UNDER '{prefix}'")
    print("="*80)

    store = None
    try:
        store = await _open_store()
        records = await store.get_by_prefix(prefix)

        if not records:
            print("❌ No records found")
            return

        print(f"✅ Found {len(records)} records:")
        print()
        for i, record in enumerate(records, 1):
            print(f"{i:3d}. {json.dumps(record, ensure_ascii=False)}")

    except Exception as e:
        print(f"❌ Error listing records: {e}")
    finally:
        if store:
            await store.disconnect()


async def show_orphans():
    """Show books that reference a missing collection."""
    print("\n🔍 ORPHANED BOOKS")
    print("="*80)

    store = None
    try:
        store = await _open_store()
        orphans = await find_orphaned_books(store)

        if not orphans:
            print("ℹ️  No orphaned books found")
            return

        for i, book in enumerate(orphans, 1):
            print(f"{i:3d}. Book ID: {book.get('id')}")
            print(f"     Title: {book.get('title')}")
            print(f"     Missing collection: {book.get('collectionId')}")
            print(f"     Owner: {book.get('userId')}")
            print()

    except Exception as e:
        print(f"❌ Error finding orphans: {e}")
    finally:
        if store:
            await store.disconnect()


async def cleanup_orphaned_books():
    """Delete orphaned books."""
    print("\n🧹 CLEANING UP ORPHANED BOOKS")
    print("="*80)

    store = None
    try:
        store = await _open_store()
        deleted = await purge_orphaned_books(store)

        print(f"🗑️  Orphaned books removed: {deleted}")
        if deleted > 0:
            print("✅ Cleanup completed successfully")
        else:
            print("ℹ️  No orphaned books found")

    except Exception as e:
        print(f"❌ Error during cleanup: {e}")
    finally:
        if store:
            await store.disconnect()


async def show_statistics():
    """Show record statistics."""
    print("\n📊 STORE STATISTICS")
    print("="*80)

    store = None
    try:
        store = await _open_store()
        counts = await prefix_counts(store)
        orphans = await find_orphaned_books(store)

        print(f"👤 Users: {counts['user']}")
        print(f"🗂️  Collections: {counts['collection']}")
        print(f"📚 Books: {counts['book']}")
        print(f"🗑️  Orphaned Books: {len(orphans)}")

        if orphans:
            print(f"\n⚠️  Warning: {len(orphans)} orphaned books found!")
            print("   Run cleanup to remove them.")

    except Exception as e:
        print(f"❌ Error getting statistics: {e}")
    finally:
        if store:
            await store.disconnect()


async def main():
    """Main function."""
    if len(sys.argv) < 2:
        print("Usage: python manage_store.py [list|orphans|cleanup|stats] [prefix]")
        print()
        print("Commands:")
        print("  list     - List records under a key prefix (user:, collection:, book:)")
        print("  orphans  - Show books whose collection no longer exists")
        print("  cleanup  - Delete orphaned books")
        print("  stats    - Show record statistics")
        print()
        print("Examples:")
        print("  python manage_store.py list collection:")
        print("  python manage_store.py cleanup")
        sys.exit(1)

    command = sys.argv[1].lower()

    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file,
        debug=config.debug
    )

    if command == "list":
        if len(sys.argv) < 3:
            print("❌ Error: prefix required for list command")
            print("Usage: python manage_store.py list <prefix>")
            sys.exit(1)
        await list_records(sys.argv[2])
    elif command == "orphans":
        await show_orphans()
    elif command == "cleanup":
        await cleanup_orphaned_books()
    elif command == "stats":
        await show_statistics()
    else:
        print(f"❌ Unknown command: {command}")
        print("Available commands: list, orphans, cleanup, stats")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
