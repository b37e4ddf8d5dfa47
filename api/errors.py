"""
Error taxonomy for the catalog API.
Each error maps to one HTTP status; the message is safe to return to callers.
"""

from typing import Optional

from fastapi import status


class CatalogError(Exception):
    """Base class for errors answered with a JSON error body."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, detail: Optional[str] = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class Unauthenticated(CatalogError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class InvalidRequest(CatalogError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class Forbidden(CatalogError):
    """Ownership or existence failure; the two are deliberately indistinguishable."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not found or unauthorized"


class NotFound(CatalogError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class InternalError(CatalogError):
    pass


def missing_fields_error(missing: list) -> InvalidRequest:
    return InvalidRequest(f"Missing required fields: {', '.join(missing)}")


def describe_validation_errors(errors: list, skip: int = 0) -> str:
    """
    Render pydantic errors as ``field: message`` pairs.

    Args:
        errors: Output of ``ValidationError.errors()``
        skip: Leading ``loc`` parts to drop (FastAPI prefixes ``body``)
    """
    problems = []
    for error in errors:
        if error.get("type") == "json_invalid":
            problems.append("Malformed JSON body")
            continue
        location = ".".join(str(part) for part in error.get("loc", ())[skip:]) or "body"
        problems.append(f"{location}: {error.get('msg')}")
    return "; ".join(problems)
