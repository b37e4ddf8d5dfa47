"""
Authenticated endpoints under /my: the caller's own books, collections and profile.

Ownership failures and missing records answer the same 403 so callers cannot
discover ids owned by someone else.
"""

import json

import structlog
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ValidationError

from api.auth import verify_user
from api.database import CatalogService
from api.dependencies import get_catalog
from api.errors import (
    CatalogError, Forbidden, InternalError, InvalidRequest, NotFound,
    describe_validation_errors, missing_fields_error
)
from api.ids import generate_id, utc_timestamp
from api.models import (
    BookCreate, BookListResponse, BookRecord, BookResult, BookUpdate,
    CollectionCreate, CollectionListResponse, CollectionRecord, CollectionResult,
    DeleteResponse, ProfileResponse, ProfileResult, ProfileUpdate
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/my")

# Partial-update policy. Fields in PRESENCE_FIELDS are replaced whenever the key
# is sent, even with "" or null; every other updatable field keeps its old
# value unless the new one is truthy.
BOOK_PRESENCE_FIELDS = {"author": "author", "description": "description", "cover_image": "coverImage"}


def _owned(record, user_id: str) -> bool:
    return bool(record) and record.get("userId") == user_id


async def _read_body(request: Request, model: type) -> BaseModel:
    """
    Parse the JSON body into ``model``.

    Handlers call this after ``verify_user`` has run, so a caller without a
    valid token gets 401 whatever the body holds.
    """
    try:
        data = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidRequest(detail="Malformed JSON body")

    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise InvalidRequest(detail=describe_validation_errors(e.errors()))


@router.get("/books", response_model=BookListResponse, tags=["My Books"])
async def get_my_books(
    user_id: str = Depends(verify_user),
    catalog: CatalogService = Depends(get_catalog)
):
    try:
        return BookListResponse(books=await catalog.list_books(user_id=user_id))
    except Exception as e:
        logger.error("Error fetching user books", user_id=user_id, error=str(e))
        raise InternalError("Failed to fetch user books")


@router.get("/collections", response_model=CollectionListResponse, tags=["My Collections"])
async def get_my_collections(
    user_id: str = Depends(verify_user),
    catalog: CatalogService = Depends(get_catalog)
):
    try:
        return CollectionListResponse(collections=await catalog.list_collections(user_id=user_id))
    except Exception as e:
        logger.error("Error fetching user collections", user_id=user_id, error=str(e))
        raise InternalError("Failed to fetch user collections")


@router.post("/collections", response_model=CollectionResult, tags=["My Collections"])
async def create_collection(
    request: Request,
    user_id: str = Depends(verify_user),
    catalog: CatalogService = Depends(get_catalog)
):
    """Create a collection owned by the caller."""
    payload = await _read_body(request, CollectionCreate)
    if not payload.name:
        raise missing_fields_error(["name"])

    try:
        collection = CollectionRecord(
            id=generate_id(),
            name=payload.name,
            description=payload.description or "",
            user_id=user_id,
            created_at=utc_timestamp(),
        ).dict(by_alias=True)

        await catalog.save_collection(collection)
        logger.info("Collection created", collection_id=collection["id"], user_id=user_id)
        return CollectionResult(success=True, collection=collection)

    except Exception as e:
        logger.error("Error creating collection", user_id=user_id, error=str(e))
        raise InternalError("Failed to create collection")


@router.post("/books", response_model=BookResult, tags=["My Books"])
async def create_book(
    request: Request,
    user_id: str = Depends(verify_user),
    catalog: CatalogService = Depends(get_catalog)
):
    """Add a book to one of the caller's collections."""
    payload = await _read_body(request, BookCreate)
    missing = []
    if not payload.title:
        missing.append("title")
    if not payload.collection_id:
        missing.append("collectionId")
    if missing:
        raise missing_fields_error(missing)

    try:
        collection = await catalog.get_collection(payload.collection_id)
        if not _owned(collection, user_id):
            raise Forbidden("Invalid collection")

        book = BookRecord(
            id=generate_id(),
            title=payload.title,
            author=payload.author or "",
            description=payload.description or "",
            cover_image=payload.cover_image or "",
            collection_id=payload.collection_id,
            user_id=user_id,
            created_at=utc_timestamp(),
        ).dict(by_alias=True, exclude_none=True)

        await catalog.save_book(book)
        logger.info("Book created", book_id=book["id"], collection_id=book["collectionId"])
        return BookResult(success=True, book=book)

    except CatalogError:
        raise
    except Exception as e:
        logger.error("Error creating book", user_id=user_id, error=str(e))
        raise InternalError("Failed to create book")


@router.put("/books/{book_id}", response_model=BookResult, tags=["My Books"])
async def update_book(
    book_id: str,
    request: Request,
    user_id: str = Depends(verify_user),
    catalog: CatalogService = Depends(get_catalog)
):
    """Merge the supplied fields over one of the caller's books."""
    try:
        book = await catalog.get_book(book_id)
        if not _owned(book, user_id):
            raise Forbidden("Book not found or unauthorized")

        payload = await _read_body(request, BookUpdate)
        changes = payload.dict(exclude_unset=True)
        updated = dict(book)

        if changes.get("title"):
            updated["title"] = changes["title"]
        for field, wire_name in BOOK_PRESENCE_FIELDS.items():
            if field in changes:
                updated[wire_name] = changes[field]

        new_collection_id = changes.get("collection_id")
        if new_collection_id and new_collection_id != book.get("collectionId"):
            target = await catalog.get_collection(new_collection_id)
            if not _owned(target, user_id):
                raise Forbidden("Invalid collection")
            updated["collectionId"] = new_collection_id

        updated["updatedAt"] = utc_timestamp()

        await catalog.save_book(updated)
        return BookResult(success=True, book=updated)

    except CatalogError:
        raise
    except Exception as e:
        logger.error("Error updating book", book_id=book_id, error=str(e))
        raise InternalError("Failed to update book")


@router.delete("/books/{book_id}", response_model=DeleteResponse, tags=["My Books"])
async def delete_book(
    book_id: str,
    user_id: str = Depends(verify_user),
    catalog: CatalogService = Depends(get_catalog)
):
    try:
        book = await catalog.get_book(book_id)
        if not _owned(book, user_id):
            raise Forbidden("Book not found or unauthorized")

        await catalog.delete_book(book_id)
        return DeleteResponse(success=True)

    except CatalogError:
        raise
    except Exception as e:
        logger.error("Error deleting book", book_id=book_id, error=str(e))
        raise InternalError("Failed to delete book")


@router.delete("/collections/{collection_id}", response_model=DeleteResponse, tags=["My Collections"])
async def delete_collection(
    collection_id: str,
    user_id: str = Depends(verify_user),
    catalog: CatalogService = Depends(get_catalog)
):
    """Delete one of the caller's collections and every book in it."""
    try:
        collection = await catalog.get_collection(collection_id)
        if not _owned(collection, user_id):
            raise Forbidden("Collection not found or unauthorized")

        await catalog.delete_collection_cascade(collection_id)
        return DeleteResponse(success=True)

    except CatalogError:
        raise
    except Exception as e:
        logger.error("Error deleting collection", collection_id=collection_id, error=str(e))
        raise InternalError("Failed to delete collection")


@router.get("/profile", response_model=ProfileResponse, tags=["Profile"])
async def get_profile(
    user_id: str = Depends(verify_user),
    catalog: CatalogService = Depends(get_catalog)
):
    try:
        user = await catalog.get_user(user_id)
        if not user:
            raise NotFound("User not found")
        return ProfileResponse(user=user)

    except CatalogError:
        raise
    except Exception as e:
        logger.error("Error fetching profile", user_id=user_id, error=str(e))
        raise InternalError("Failed to fetch profile")


@router.put("/profile", response_model=ProfileResult, tags=["Profile"])
async def update_profile(
    request: Request,
    user_id: str = Depends(verify_user),
    catalog: CatalogService = Depends(get_catalog)
):
    """Update the caller's name and bio. An empty name is ignored; an empty bio clears it."""
    try:
        user = await catalog.get_user(user_id)
        if not user:
            raise NotFound("User not found")

        payload = await _read_body(request, ProfileUpdate)
        changes = payload.dict(exclude_unset=True)
        updated = dict(user)
        if changes.get("name"):
            updated["name"] = changes["name"]
        if "bio" in changes:
            updated["bio"] = changes["bio"]
        updated["updatedAt"] = utc_timestamp()

        await catalog.save_user(updated)
        return ProfileResult(success=True, user=updated)

    except CatalogError:
        raise
    except Exception as e:
        logger.error("Error updating profile", user_id=user_id, error=str(e))
        raise InternalError("Failed to update profile")
