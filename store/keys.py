"""
Key layout for records in the flat key-value namespace.
"""

USER_PREFIX = "user:"
COLLECTION_PREFIX = "collection:"
BOOK_PREFIX = "book:"


def user_key(user_id: str) -> str:
    return f"{USER_PREFIX}{user_id}"


def collection_key(collection_id: str) -> str:
    return f"{COLLECTION_PREFIX}{collection_id}"


def book_key(book_id: str) -> str:
    return f"{BOOK_PREFIX}{book_id}"
