"""
Dependency wiring for the FastAPI app.

The store and identity clients are built once by the application lifespan and
kept on ``app.state``; handlers reach them only through these functions.
"""

import structlog
from fastapi import Request

from api.database import CatalogService
from identity.provider import IdentityProvider, InMemoryIdentityProvider, SupabaseIdentityProvider
from store.kv import InMemoryKVStore, KVStore, MongoKVStore
from utilities.config import ServiceConfig

logger = structlog.get_logger(__name__)


def build_kv_store(settings: ServiceConfig) -> KVStore:
    """Create the key-value store client; it still needs ``connect()``."""
    if settings.use_in_memory_backends:
        logger.warning("Using in-memory key-value store")
        return InMemoryKVStore()
    return MongoKVStore(
        connection_url=settings.mongodb_url,
        database_name=settings.mongodb_database,
        collection_name=settings.kv_collection,
    )


def build_identity_provider(settings: ServiceConfig) -> IdentityProvider:
    if settings.use_in_memory_backends:
        logger.warning("Using in-memory identity provider")
        return InMemoryIdentityProvider()
    if not settings.has_identity_provider():
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
    return SupabaseIdentityProvider(
        base_url=settings.supabase_url,
        service_role_key=settings.supabase_service_role_key,
        timeout=settings.identity_timeout,
    )


def get_identity_provider(request: Request) -> IdentityProvider:
    return request.app.state.identity_provider


def get_catalog(request: Request) -> CatalogService:
    return request.app.state.catalog
