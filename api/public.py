"""
Public endpoints: signup and read-only catalog browsing.
"""

import structlog
from fastapi import APIRouter, Depends

from api.database import CatalogService
from api.dependencies import get_catalog, get_identity_provider
from api.errors import InternalError, InvalidRequest, missing_fields_error
from api.models import (
    BookListResponse, CollectionBooksResponse, CollectionListResponse,
    SignupRequest, SignupResponse, UserCollectionsResponse
)
from identity.provider import IdentityError, IdentityProvider, IdentityUnavailable

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/signup", response_model=SignupResponse, tags=["Accounts"])
async def signup(
    payload: SignupRequest,
    identity: IdentityProvider = Depends(get_identity_provider),
    catalog: CatalogService = Depends(get_catalog)
):
    """Create an account with the identity provider and store its profile."""
    missing = [field for field in ("email", "password", "name") if not getattr(payload, field)]
    if missing:
        raise missing_fields_error(missing)

    try:
        user = await identity.create_user(payload.email, payload.password, payload.name)
    except IdentityError as e:
        logger.warning("Signup rejected", error=str(e))
        raise InvalidRequest(str(e))
    except IdentityUnavailable as e:
        logger.error("Signup error", error=str(e))
        raise InternalError("Failed to sign up")

    try:
        await catalog.save_user({"id": user["id"], "email": payload.email, "name": payload.name})
        return SignupResponse(success=True, user=user)

    except Exception as e:
        logger.error("Signup error", error=str(e))
        raise InternalError("Failed to sign up")


@router.get("/books", response_model=BookListResponse, tags=["Books"])
async def get_books(catalog: CatalogService = Depends(get_catalog)):
    """Get every book in the catalog."""
    try:
        return BookListResponse(books=await catalog.list_books())
    except Exception as e:
        logger.error("Error fetching books", error=str(e))
        raise InternalError("Failed to fetch books")


@router.get("/collections", response_model=CollectionListResponse, tags=["Collections"])
async def get_collections(catalog: CatalogService = Depends(get_catalog)):
    """Get every collection, each with its owner's name as ``userName``."""
    try:
        collections = await catalog.list_collections()
        return CollectionListResponse(collections=await catalog.attach_user_names(collections))
    except Exception as e:
        logger.error("Error fetching collections", error=str(e))
        raise InternalError("Failed to fetch collections")


@router.get(
    "/user/{user_id}/collections",
    response_model=UserCollectionsResponse,
    tags=["Collections"]
)
async def get_user_collections(user_id: str, catalog: CatalogService = Depends(get_catalog)):
    """Get the collections owned by one user."""
    try:
        collections = await catalog.list_collections(user_id=user_id)
        user_name = await catalog.get_user_name(user_id)
        return UserCollectionsResponse(collections=collections, user_name=user_name)
    except Exception as e:
        logger.error("Error fetching user collections", user_id=user_id, error=str(e))
        raise InternalError("Failed to fetch user collections")


@router.get(
    "/collection/{collection_id}/books",
    response_model=CollectionBooksResponse,
    tags=["Books"]
)
async def get_collection_books(collection_id: str, catalog: CatalogService = Depends(get_catalog)):
    """Get the books of one collection along with the collection itself (null if absent)."""
    try:
        books = await catalog.list_books(collection_id=collection_id)
        collection = await catalog.get_collection(collection_id)
        return CollectionBooksResponse(books=books, collection=collection)
    except Exception as e:
        logger.error("Error fetching collection books", collection_id=collection_id, error=str(e))
        raise InternalError("Failed to fetch collection books")
