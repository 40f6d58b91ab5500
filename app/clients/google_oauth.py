"""Google ID token verification for OAuth login."""

import logging
import time

import httpx
from jose import JWTError, jwt

from app.core.exceptions import UnauthenticatedError

logger = logging.getLogger(__name__)

GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")
CERTS_CACHE_SECONDS = 3600


class GoogleIdTokenVerifier:
    """
    Verify a Google Sign-In credential against Google's published keys.

    The key set is fetched with httpx and cached for an hour.
    """

    def __init__(self, certs_url: str, timeout: float, transport: httpx.AsyncBaseTransport | None = None):
        self.certs_url = certs_url
        self.timeout = timeout
        self.transport = transport
        self._certs: dict | None = None
        self._certs_expire_at = 0.0

    async def _get_certs(self) -> dict:
        if self._certs is not None and self._certs_expire_at > time.monotonic():
            return self._certs
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.get(self.certs_url)
            response.raise_for_status()
        self._certs = response.json()
        self._certs_expire_at = time.monotonic() + CERTS_CACHE_SECONDS
        return self._certs

    async def verify(self, credential: str, client_id: str) -> dict:
        """
        Verify an ID token issued for the tenant's OAuth client.

        Args:
            credential: Google ID token from the browser
            client_id: Tenant's Google OAuth client id (expected audience)

        Returns:
            Dict with sub, email, name, picture

        Raises:
            UnauthenticatedError: If the token is invalid or lacks an email
        """
        certs = await self._get_certs()
        try:
            payload = jwt.decode(
                credential,
                certs,
                algorithms=["RS256"],
                audience=client_id,
                issuer=GOOGLE_ISSUERS,
                options={"verify_at_hash": False},
            )
        except JWTError as e:
            logger.info("Rejected Google credential: %s", e)
            raise UnauthenticatedError("Invalid Google token") from e

        if not payload.get("sub") or not payload.get("email"):
            raise UnauthenticatedError("Invalid Google token")

        return {
            "sub": payload["sub"],
            "email": payload["email"],
            "name": payload.get("name"),
            "picture": payload.get("picture"),
        }
