"""
Identity provider clients.
Supabase Auth (GoTrue) over its REST API, plus an in-memory provider for tests and local runs.
"""

import secrets
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol

import httpx
import structlog

logger = structlog.get_logger(__name__)


class IdentityError(Exception):
    """The provider rejected the request (bad token, duplicate email, weak password...)."""


class IdentityUnavailable(Exception):
    """The provider could not be reached or failed internally."""


class IdentityProvider(Protocol):
    """Operations the catalog needs from the identity provider."""

    async def get_user_id(self, access_token: str) -> str:
        ...

    async def create_user(self, email: str, password: str, name: str) -> Dict[str, Any]:
        ...

    async def close(self) -> None:
        ...


class SupabaseIdentityProvider:
    """
    Supabase Auth client using the service role key.
    """

    def __init__(
        self,
        base_url: str,
        service_role_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the client.

        Args:
            base_url: Project URL, e.g. https://xyz.supabase.co
            service_role_key: Service role key used for admin calls
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests inject a MockTransport)
        """
        self.service_role_key = service_role_key
        self.client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/auth/v1",
            timeout=timeout,
            headers={"apikey": service_role_key},
            transport=transport,
        )

    async def close(self) -> None:
        await self.client.aclose()

    async def get_user_id(self, access_token: str) -> str:
        """
        Introspect an access token.

        Returns:
            The provider's user id

        Raises:
            IdentityError: If the token is rejected or carries no user
            IdentityUnavailable: If the provider cannot answer
        """
        response = await self._request(
            "GET", "/user", headers={"Authorization": f"Bearer {access_token}"}
        )
        user = response.json() if response.content else {}
        user_id = user.get("id") if isinstance(user, dict) else None
        if not user_id:
            raise IdentityError("Unauthorized")
        return user_id

    async def create_user(self, email: str, password: str, name: str) -> Dict[str, Any]:
        """
        Create a confirmed user through the admin API.

        The email is confirmed immediately since no mail server is configured.
        """
        response = await self._request(
            "POST",
            "/admin/users",
            headers={"Authorization": f"Bearer {self.service_role_key}"},
            json={
                "email": email,
                "password": password,
                "user_metadata": {"name": name},
                "email_confirm": True,
            },
        )
        user = response.json()
        logger.info("Identity provider created user", user_id=user.get("id"))
        return user

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Identity provider request failed", path=path, error=str(e))
            raise IdentityUnavailable(str(e)) from e

        if response.status_code >= 500:
            logger.error("Identity provider error", path=path, status_code=response.status_code)
            raise IdentityUnavailable(f"Identity provider returned {response.status_code}")
        if response.status_code >= 400:
            message = self._error_message(response)
            logger.warning("Identity provider rejected request", path=path,
                           status_code=response.status_code, error=message)
            raise IdentityError(message)
        return response

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or "Unauthorized"
        if isinstance(body, dict):
            for field in ("msg", "message", "error_description", "error"):
                if body.get(field):
                    return str(body[field])
        return "Unauthorized"


class InMemoryIdentityProvider:
    """Test double issuing opaque tokens for locally created users."""

    def __init__(self):
        self.users: Dict[str, Dict[str, Any]] = {}
        self.passwords: Dict[str, str] = {}
        self.tokens: Dict[str, str] = {}

    async def get_user_id(self, access_token: str) -> str:
        user_id = self.tokens.get(access_token)
        if not user_id:
            raise IdentityError("Invalid JWT")
        return user_id

    async def create_user(self, email: str, password: str, name: str) -> Dict[str, Any]:
        if any(user["email"] == email for user in self.users.values()):
            raise IdentityError("A user with this email address has already been registered")
        if len(password) < 6:
            raise IdentityError("Password should be at least 6 characters.")

        user = {
            "id": str(uuid.uuid4()),
            "email": email,
            "user_metadata": {"name": name},
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        self.users[user["id"]] = user
        self.passwords[user["id"]] = password
        return user

    def issue_token(self, user_id: str) -> str:
        """Mint an access token for an existing user id."""
        token = secrets.token_urlsafe(24)
        self.tokens[token] = user_id
        return token

    def sign_in(self, email: str, password: str) -> str:
        """Exchange credentials for an access token."""
        for user_id, user in self.users.items():
            if user["email"] == email and self.passwords[user_id] == password:
                return self.issue_token(user_id)
        raise IdentityError("Invalid login credentials")

    async def close(self) -> None:
        return None
