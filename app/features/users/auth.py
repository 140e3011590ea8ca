"""
Appwrite-backed claims store.

Appwrite has no signed custom token claims; a user's role and permissions
live in the user's preferences, which the client SDK exposes on the session
and which only a server key can replace.
"""
import asyncio
import jwt
from typing import Any, Dict, Optional
from appwrite.client import Client
from appwrite.services.account import Account
from appwrite.services.users import Users
from appwrite.exception import AppwriteException

from app.core import config
from app.core.errors import Unauthenticated, UpstreamFailure
from app.utils import get_logger


log = get_logger(__name__)

# Appwrite codes meaning the token itself was refused
REJECTED_TOKEN_CODES = {401, 403}


def create_appwrite_client(
    endpoint: Optional[str] = None,
    project_id: Optional[str] = None,
    api_key: Optional[str] = None,
) -> Client:
    """Create a server-side Appwrite client. Built once at startup and shared."""
    client = Client()
    client.set_endpoint(endpoint or config.APPWRITE_ENDPOINT)
    client.set_project(project_id or config.APPWRITE_PROJECT_ID)
    client.set_key(api_key or config.APPWRITE_API_KEY)
    return client


def verify_jwt_token(token: str) -> dict:
    """
    Decode an Appwrite JWT and check its expiry.

    The signature is checked by Appwrite itself when the token is used to
    read the account, so this only rejects garbled or expired tokens early.

    Raises:
        Unauthenticated: If token is invalid or expired
    """
    try:
        return jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": True}
        )
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("Token has expired")
    except jwt.InvalidTokenError as e:
        raise Unauthenticated("Invalid token", str(e))


class AppwriteClaimsStore:
    """Claims store on top of Appwrite account preferences."""

    def __init__(self, client: Client, endpoint: Optional[str] = None, project_id: Optional[str] = None):
        self.users = Users(client)
        self.endpoint = endpoint or config.APPWRITE_ENDPOINT
        self.project_id = project_id or config.APPWRITE_PROJECT_ID

    def _session_client(self, token: str) -> Client:
        """Client acting as the token holder, without the server key."""
        session = Client()
        session.set_endpoint(self.endpoint)
        session.set_project(self.project_id)
        session.set_jwt(token)
        return session

    async def verify(self, token: str) -> Dict[str, Any]:
        """
        Verify ``token`` against Appwrite and return the caller's claims.

        Returns:
            {"uid": ..., "role": ..., "permissions": {...}, "email": ...}
        """
        payload = verify_jwt_token(token)
        if not payload.get("userId"):
            raise Unauthenticated("Invalid token payload")

        account = Account(self._session_client(token))
        try:
            user = await asyncio.to_thread(account.get)
        except AppwriteException as e:
            if e.code in REJECTED_TOKEN_CODES:
                raise Unauthenticated("Invalid or expired token", e.message)
            raise UpstreamFailure("Failed to verify token", e.message)

        prefs = user.get("prefs") or {}
        return {
            "uid": user.get("$id"),
            "email": user.get("email"),
            "role": prefs.get("role"),
            "permissions": prefs.get("permissions") or {},
        }

    async def set_claims(self, uid: str, claims: Dict[str, Any]) -> None:
        """Replace the user's preferences with ``claims``."""
        await asyncio.to_thread(self.users.update_prefs, uid, dict(claims))
        log.debug("Claims written for user %s", uid)
