"""
Tests for the authenticated /my endpoints: ownership, partial updates and cascades.
"""

import re
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from identity.provider import IdentityUnavailable, InMemoryIdentityProvider

TIMESTAMP = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")

PROTECTED_ROUTES = [
    ("get", "/my/books", None),
    ("get", "/my/collections", None),
    ("post", "/my/collections", {"name": "Sci-Fi"}),
    ("post", "/my/books", {"title": "Dune", "collectionId": "c1"}),
    ("put", "/my/books/b1", {"title": "Changed"}),
    ("delete", "/my/books/b1", None),
    ("delete", "/my/collections/c1", None),
    ("get", "/my/profile", None),
    ("put", "/my/profile", {"name": "Changed"}),
]

BODY_ROUTES = [(method, path) for method, path, body in PROTECTED_ROUTES if body is not None]


def _create_collection(client, prefix, headers, name="Sci-Fi", **extra):
    response = client.post(f"{prefix}/my/collections", json={"name": name, **extra}, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()["collection"]


def _create_book(client, prefix, headers, collection_id, title="Dune", **extra):
    response = client.post(
        f"{prefix}/my/books",
        json={"title": title, "collectionId": collection_id, **extra},
        headers=headers
    )
    assert response.status_code == 200, response.text
    return response.json()["book"]


class TestAuthentication:
    """Requests without a valid bearer token."""

    @pytest.mark.parametrize("method,path,body", PROTECTED_ROUTES)
    def test_missing_token_is_401_without_mutation(
        self, client, kv_store, seed, prefix, method, path, body
    ):
        seed("collection:c1", {"id": "c1", "name": "x", "description": "", "userId": "u", "createdAt": "t"})
        seed("book:b1", {"id": "b1", "title": "x", "collectionId": "c1", "userId": "u"})
        seed("user:u", {"id": "u", "email": "u@example.com", "name": "U"})
        before = dict(kv_store.entries)

        kwargs = {"json": body} if body is not None else {}
        response = client.request(method.upper(), f"{prefix}{path}", **kwargs)

        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"
        assert kv_store.entries == before

    @pytest.mark.parametrize("method,path", BODY_ROUTES)
    def test_missing_token_with_malformed_body_is_401(self, client, kv_store, prefix, method, path):
        before = dict(kv_store.entries)

        response = client.request(
            method.upper(), f"{prefix}{path}",
            content="{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 401
        assert kv_store.entries == before

    @pytest.mark.parametrize("method,path,body", PROTECTED_ROUTES)
    def test_rejected_token_is_401(self, client, prefix, method, path, body):
        kwargs = {"json": body} if body is not None else {}
        response = client.request(
            method.upper(), f"{prefix}{path}",
            headers={"Authorization": "Bearer not-a-real-token"}, **kwargs
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid JWT"

    def test_scheme_is_case_insensitive(self, client, identity, prefix):
        headers = {"Authorization": f"bearer {identity.issue_token('someone')}"}
        assert client.get(f"{prefix}/my/books", headers=headers).status_code == 200

    def test_non_bearer_scheme_is_401(self, client, prefix):
        response = client.get(f"{prefix}/my/books", headers={"Authorization": "Basic abc"})
        assert response.status_code == 401
        assert response.json()["detail"] == "No token provided"

    def test_identity_provider_outage_is_500(self, kv_store, prefix):
        identity = AsyncMock(spec=InMemoryIdentityProvider)
        identity.get_user_id.side_effect = IdentityUnavailable("timed out")
        app = create_app(kv_store=kv_store, identity_provider=identity)

        with TestClient(app) as client:
            response = client.get(f"{prefix}/my/books", headers={"Authorization": "Bearer tok"})

        assert response.status_code == 500
        assert response.json()["error"] == "Authentication service unavailable"


class TestCollections:

    def test_create_collection(self, client, register, prefix):
        user_id, headers = register("Ada")

        collection = _create_collection(client, prefix, headers)
        assert collection["name"] == "Sci-Fi"
        assert collection["description"] == ""
        assert collection["userId"] == user_id
        assert TIMESTAMP.match(collection["createdAt"])
        assert re.match(r"^\d+-[0-9a-z]{9}$", collection["id"])

    def test_create_collection_requires_name(self, client, kv_store, register, prefix):
        _, headers = register("Ada")
        before = dict(kv_store.entries)

        response = client.post(f"{prefix}/my/collections", json={"description": "x"}, headers=headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields: name"
        assert kv_store.entries == before

    def test_my_collections_only_lists_own(self, client, register, prefix):
        _, headers_a = register("Ada")
        _, headers_b = register("Bob")
        mine = _create_collection(client, prefix, headers_a, name="Mine")
        _create_collection(client, prefix, headers_b, name="Theirs")

        collections = client.get(f"{prefix}/my/collections", headers=headers_a).json()["collections"]
        assert [col["id"] for col in collections] == [mine["id"]]

    def test_delete_collection_cascades_to_books(self, client, register, prefix):
        _, headers = register("Ada")
        doomed = _create_collection(client, prefix, headers, name="Doomed")
        kept = _create_collection(client, prefix, headers, name="Kept")
        _create_book(client, prefix, headers, doomed["id"], title="One")
        _create_book(client, prefix, headers, doomed["id"], title="Two")
        survivor = _create_book(client, prefix, headers, kept["id"], title="Three")

        response = client.delete(f"{prefix}/my/collections/{doomed['id']}", headers=headers)
        assert response.status_code == 200
        assert response.json() == {"success": True}

        books = client.get(f"{prefix}/books").json()["books"]
        assert [book["id"] for book in books] == [survivor["id"]]
        collections = client.get(f"{prefix}/collections").json()["collections"]
        assert [col["id"] for col in collections] == [kept["id"]]

    def test_delete_someone_elses_collection_is_403(self, client, register, prefix):
        _, headers_a = register("Ada")
        _, headers_b = register("Bob")
        collection = _create_collection(client, prefix, headers_a)
        _create_book(client, prefix, headers_a, collection["id"])

        response = client.delete(f"{prefix}/my/collections/{collection['id']}", headers=headers_b)
        assert response.status_code == 403
        assert len(client.get(f"{prefix}/books").json()["books"]) == 1

    def test_delete_missing_collection_is_403(self, client, register, prefix):
        _, headers = register("Ada")
        response = client.delete(f"{prefix}/my/collections/missing", headers=headers)
        assert response.status_code == 403


class TestBooks:

    def test_owner_can_add_book_and_others_cannot(self, client, kv_store, register, prefix):
        """User A adds Dune to Sci-Fi; user B is refused the same collection."""
        user_a, headers_a = register("Ada")
        _, headers_b = register("Bob")
        collection = _create_collection(client, prefix, headers_a, name="Sci-Fi")

        book = _create_book(client, prefix, headers_a, collection["id"], title="Dune")
        assert book["userId"] == user_a
        assert book["collectionId"] == collection["id"]
        assert book["author"] == ""
        assert book["coverImage"] == ""
        assert "updatedAt" not in book

        before = dict(kv_store.entries)
        response = client.post(
            f"{prefix}/my/books",
            json={"title": "Dune", "collectionId": collection["id"]},
            headers=headers_b
        )
        assert response.status_code == 403
        assert response.json()["error"] == "Invalid collection"
        assert kv_store.entries == before

    def test_create_book_in_missing_collection_is_403(self, client, register, prefix):
        _, headers = register("Ada")
        response = client.post(
            f"{prefix}/my/books", json={"title": "Dune", "collectionId": "missing"}, headers=headers
        )
        assert response.status_code == 403

    def test_create_book_lists_missing_fields(self, client, register, prefix):
        _, headers = register("Ada")
        response = client.post(f"{prefix}/my/books", json={"title": ""}, headers=headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields: title, collectionId"

    def test_my_books_only_lists_own(self, client, register, prefix):
        _, headers_a = register("Ada")
        _, headers_b = register("Bob")
        mine = _create_book(client, prefix, headers_a, _create_collection(client, prefix, headers_a)["id"])
        _create_book(client, prefix, headers_b, _create_collection(client, prefix, headers_b)["id"])

        books = client.get(f"{prefix}/my/books", headers=headers_a).json()["books"]
        assert [book["id"] for book in books] == [mine["id"]]

    def test_partial_update_only_touches_supplied_field(self, client, register, prefix):
        _, headers = register("Ada")
        collection = _create_collection(client, prefix, headers)
        book = _create_book(
            client, prefix, headers, collection["id"],
            author="Frank Herbert", coverImage="https://example.com/dune.jpg"
        )

        response = client.put(
            f"{prefix}/my/books/{book['id']}", json={"description": "new"}, headers=headers
        )
        assert response.status_code == 200
        updated = response.json()["book"]
        assert updated["description"] == "new"
        for field in ("title", "author", "coverImage", "collectionId", "createdAt", "userId"):
            assert updated[field] == book[field]
        assert TIMESTAMP.match(updated["updatedAt"])

    def test_update_field_policy(self, client, register, prefix):
        """Empty title and collectionId are ignored; empty author and null cover are applied."""
        _, headers = register("Ada")
        collection = _create_collection(client, prefix, headers)
        book = _create_book(
            client, prefix, headers, collection["id"],
            author="Frank Herbert", coverImage="https://example.com/dune.jpg"
        )

        response = client.put(
            f"{prefix}/my/books/{book['id']}",
            json={"title": "", "collectionId": "", "author": "", "coverImage": None},
            headers=headers
        )
        updated = response.json()["book"]
        assert updated["title"] == "Dune"
        assert updated["collectionId"] == collection["id"]
        assert updated["author"] == ""
        assert updated["coverImage"] is None

    def test_update_persists(self, client, register, prefix):
        _, headers = register("Ada")
        collection = _create_collection(client, prefix, headers)
        book = _create_book(client, prefix, headers, collection["id"])

        client.put(f"{prefix}/my/books/{book['id']}", json={"title": "Dune Messiah"}, headers=headers)

        books = client.get(f"{prefix}/collection/{collection['id']}/books").json()["books"]
        assert books[0]["title"] == "Dune Messiah"

    def test_move_book_to_own_collection(self, client, register, prefix):
        _, headers = register("Ada")
        first = _create_collection(client, prefix, headers, name="First")
        second = _create_collection(client, prefix, headers, name="Second")
        book = _create_book(client, prefix, headers, first["id"])

        response = client.put(
            f"{prefix}/my/books/{book['id']}", json={"collectionId": second["id"]}, headers=headers
        )
        assert response.status_code == 200
        assert response.json()["book"]["collectionId"] == second["id"]

    def test_move_book_to_someone_elses_collection_is_403(self, client, register, prefix):
        _, headers_a = register("Ada")
        _, headers_b = register("Bob")
        book = _create_book(client, prefix, headers_a, _create_collection(client, prefix, headers_a)["id"])
        foreign = _create_collection(client, prefix, headers_b)

        response = client.put(
            f"{prefix}/my/books/{book['id']}", json={"collectionId": foreign["id"]}, headers=headers_a
        )
        assert response.status_code == 403
        stored = client.get(f"{prefix}/my/books", headers=headers_a).json()["books"][0]
        assert stored["collectionId"] == book["collectionId"]

    def test_non_owner_with_badly_typed_body_is_403(self, client, register, prefix):
        _, headers_a = register("Ada")
        _, headers_b = register("Bob")
        book = _create_book(client, prefix, headers_a, _create_collection(client, prefix, headers_a)["id"])

        response = client.put(f"{prefix}/my/books/{book['id']}", json={"author": 5}, headers=headers_b)
        assert response.status_code == 403

    def test_owner_with_badly_typed_body_is_400(self, client, register, prefix):
        _, headers = register("Ada")
        book = _create_book(client, prefix, headers, _create_collection(client, prefix, headers)["id"])

        response = client.put(f"{prefix}/my/books/{book['id']}", json={"author": 5}, headers=headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"
        assert response.json()["detail"].startswith("author: ")

    def test_malformed_body_is_400_for_authenticated_caller(self, client, register, prefix):
        _, headers = register("Ada")

        response = client.post(
            f"{prefix}/my/collections",
            content="{not json", headers={**headers, "Content-Type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Malformed JSON body"

    def test_update_someone_elses_book_is_403(self, client, register, prefix):
        _, headers_a = register("Ada")
        _, headers_b = register("Bob")
        book = _create_book(client, prefix, headers_a, _create_collection(client, prefix, headers_a)["id"])

        response = client.put(f"{prefix}/my/books/{book['id']}", json={"title": "Mine"}, headers=headers_b)
        assert response.status_code == 403
        assert response.json()["error"] == "Book not found or unauthorized"

    def test_update_missing_book_is_403(self, client, register, prefix):
        _, headers = register("Ada")
        response = client.put(f"{prefix}/my/books/missing", json={"title": "x"}, headers=headers)
        assert response.status_code == 403

    def test_delete_book(self, client, register, prefix):
        _, headers = register("Ada")
        book = _create_book(client, prefix, headers, _create_collection(client, prefix, headers)["id"])

        response = client.delete(f"{prefix}/my/books/{book['id']}", headers=headers)
        assert response.status_code == 200
        assert response.json() == {"success": True}
        assert client.get(f"{prefix}/books").json()["books"] == []

    def test_delete_someone_elses_book_is_403(self, client, register, prefix):
        _, headers_a = register("Ada")
        _, headers_b = register("Bob")
        book = _create_book(client, prefix, headers_a, _create_collection(client, prefix, headers_a)["id"])

        response = client.delete(f"{prefix}/my/books/{book['id']}", headers=headers_b)
        assert response.status_code == 403
        assert len(client.get(f"{prefix}/books").json()["books"]) == 1


class TestProfile:

    def test_update_profile_policy(self, client, register, prefix):
        """An empty name is ignored while an empty bio is stored."""
        _, headers = register("Ada")
        client.put(f"{prefix}/my/profile", json={"bio": "Reads a lot"}, headers=headers)

        response = client.put(f"{prefix}/my/profile", json={"name": "", "bio": ""}, headers=headers)
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["user"]["name"] == "Ada"
        assert data["user"]["bio"] == ""
        assert TIMESTAMP.match(data["user"]["updatedAt"])

    def test_renamed_user_shows_on_collections(self, client, register, prefix):
        user_id, headers = register("Ada")
        _create_collection(client, prefix, headers)

        client.put(f"{prefix}/my/profile", json={"name": "Ada L."}, headers=headers)

        collections = client.get(f"{prefix}/collections").json()["collections"]
        assert collections[0]["userName"] == "Ada L."
        assert client.get(f"{prefix}/user/{user_id}/collections").json()["userName"] == "Ada L."

    def test_profile_without_record_is_404(self, client, identity, prefix):
        headers = {"Authorization": f"Bearer {identity.issue_token('no-profile')}"}

        assert client.get(f"{prefix}/my/profile", headers=headers).status_code == 404
        response = client.put(f"{prefix}/my/profile", json={"name": "x"}, headers=headers)
        assert response.status_code == 404
        assert response.json()["error"] == "User not found"
