"""
API models and schemas for the FastAPI application.

Wire names are camelCase (``collectionId``, ``coverImage``...); models use
snake_case attributes with aliases and accept either spelling.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

ALIASED = {"populate_by_name": True}


# Request bodies. Every field is optional at the schema level so that missing
# values are reported together as one 400 by the handlers.

class SignupRequest(BaseModel):
    """Signup payload."""
    email: Optional[str] = Field(None, description="Account email")
    password: Optional[str] = Field(None, description="Account password")
    name: Optional[str] = Field(None, description="Display name")


class CollectionCreate(BaseModel):
    """Collection creation payload."""
    name: Optional[str] = Field(None, description="Collection name")
    description: Optional[str] = Field(None, description="Collection description")


class BookCreate(BaseModel):
    """Book creation payload."""
    title: Optional[str] = Field(None, description="Book title")
    author: Optional[str] = Field(None, description="Book author")
    description: Optional[str] = Field(None, description="Book description")
    collection_id: Optional[str] = Field(None, alias="collectionId", description="Owning collection")
    cover_image: Optional[str] = Field(None, alias="coverImage", description="Cover image URL")

    model_config = ALIASED


class BookUpdate(BaseModel):
    """Partial book update; only keys present in the request are considered."""
    title: Optional[str] = None
    author: Optional[str] = None
    description: Optional[str] = None
    collection_id: Optional[str] = Field(None, alias="collectionId")
    cover_image: Optional[str] = Field(None, alias="coverImage")

    model_config = ALIASED


class ProfileUpdate(BaseModel):
    """Partial profile update."""
    name: Optional[str] = None
    bio: Optional[str] = None


# Stored records

class CollectionRecord(BaseModel):
    """Collection stored at collection:<id>."""
    id: str
    name: str
    description: str = ""
    user_id: str = Field(..., alias="userId")
    created_at: str = Field(..., alias="createdAt")

    model_config = ALIASED


class BookRecord(BaseModel):
    """Book stored at book:<id>."""
    id: str
    title: str
    author: str = ""
    description: str = ""
    cover_image: str = Field("", alias="coverImage")
    collection_id: str = Field(..., alias="collectionId")
    user_id: str = Field(..., alias="userId")
    created_at: str = Field(..., alias="createdAt")
    updated_at: Optional[str] = Field(None, alias="updatedAt")

    model_config = ALIASED


# Responses. Records are returned exactly as stored.

class BookListResponse(BaseModel):
    books: List[Dict[str, Any]] = Field(..., description="List of books")


class CollectionListResponse(BaseModel):
    collections: List[Dict[str, Any]] = Field(..., description="List of collections")


class UserCollectionsResponse(BaseModel):
    collections: List[Dict[str, Any]] = Field(..., description="Collections owned by the user")
    user_name: str = Field(..., alias="userName", description="Owner display name")

    model_config = ALIASED


class CollectionBooksResponse(BaseModel):
    books: List[Dict[str, Any]] = Field(..., description="Books in the collection")
    collection: Optional[Dict[str, Any]] = Field(None, description="The collection, if it exists")


class SignupResponse(BaseModel):
    success: bool
    user: Dict[str, Any] = Field(..., description="User as returned by the identity provider")


class CollectionResult(BaseModel):
    success: bool
    collection: Dict[str, Any]


class BookResult(BaseModel):
    success: bool
    book: Dict[str, Any]


class ProfileResponse(BaseModel):
    user: Dict[str, Any]


class ProfileResult(BaseModel):
    success: bool
    user: Dict[str, Any]


class DeleteResponse(BaseModel):
    success: bool


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")
    status_code: int = Field(..., description="HTTP status code")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Key-value store status")
