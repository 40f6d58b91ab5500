"""
Tenant-scoped session tokens.

Two interchangeable signing strategies are supported and selected once
from configuration (JWT_SIGNING_MODE):

- HmacTokenSigner: HS256 with the tenant's own random secret.
  iss = "auth-service:<tenant name>", aud = tenant domain.
- RsaTokenSigner: RS256 with one service-wide keypair shared by all
  tenants. iss = "https://<tenant domain>", aud = tenant domain. The public
  key is published as a JWKS document for edge verifiers.

In both modes the embedded tenantId claim is compared with the tenant the
request was resolved to, before issuer/audience are looked at, so a token
minted for one tenant is rejected with TenantMismatchError in another.
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, UTC

from jose import ExpiredSignatureError, JWTError, jwk, jwt

from app.config import Settings
from app.core.exceptions import (
    ConfigurationError,
    ExpiredTokenError,
    InvalidTokenError,
    TenantMismatchError,
)

logger = logging.getLogger(__name__)

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhdw]?)\s*$")
_DURATION_UNITS = {
    "": "seconds",
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
    "w": "weeks",
}


def parse_duration(value: str) -> timedelta:
    """
    Parse a token lifetime such as "7d", "12h", "30m", "45s" or "3600".

    Raises:
        ValueError: If the string is not a positive duration
    """
    match = _DURATION_RE.match(str(value))
    if not match or int(match.group(1)) <= 0:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(**{_DURATION_UNITS[unit]: int(amount)})


@dataclass(frozen=True)
class TokenClaims:
    """Verified claim set of a session token"""

    user_id: str
    tenant_id: str
    role: str
    email: str
    issued_at: datetime | None = None
    expires_at: datetime | None = None


class TokenSigner(ABC):
    """Issue and verify session tokens bound to a single tenant."""

    algorithm: str

    @abstractmethod
    def issuer_for(self, tenant) -> str:
        """Expected iss claim for a tenant"""

    @abstractmethod
    def _signing_key(self, tenant) -> str:
        pass

    @abstractmethod
    def _verification_key(self, tenant) -> str:
        pass

    def _headers(self) -> dict | None:
        return None

    def audience_for(self, tenant) -> str:
        return tenant.domain

    def issue(self, tenant, user_id: str, role: str, email: str) -> str:
        """
        Mint a token for a user of the given tenant.

        Args:
            tenant: Tenant the token is scoped to
            user_id: Subject user id
            role: Role at issuance time
            email: User email

        Returns:
            Encoded JWT

        Raises:
            ConfigurationError: If key material or the tenant lifetime is unusable
        """
        try:
            lifetime = parse_duration(tenant.jwt_expiry)
        except ValueError as e:
            raise ConfigurationError(f"Tenant {tenant.name} has an invalid token lifetime") from e

        now = datetime.now(UTC)
        payload = {
            "userId": str(user_id),
            "tenantId": str(tenant.id),
            "role": role,
            "email": email,
            "iss": self.issuer_for(tenant),
            "aud": self.audience_for(tenant),
            "iat": now,
            "exp": now + lifetime,
        }
        return jwt.encode(
            payload, self._signing_key(tenant), algorithm=self.algorithm, headers=self._headers()
        )

    def verify(self, tenant, token: str) -> TokenClaims:
        """
        Verify a token in the context of a tenant.

        Order of checks: signature and expiry, required claims, tenant id,
        then issuer and audience.

        Raises:
            ExpiredTokenError: Token is past its expiry
            InvalidTokenError: Malformed token, bad signature or claims
            TenantMismatchError: Token belongs to another tenant
            ConfigurationError: Verification key is not configured
        """
        try:
            payload = jwt.decode(
                token,
                self._verification_key(tenant),
                algorithms=[self.algorithm],
                options={"verify_aud": False, "verify_iss": False},
            )
        except ExpiredSignatureError as e:
            raise ExpiredTokenError("Token has expired") from e
        except JWTError as e:
            raise InvalidTokenError(f"Invalid token: {str(e)}") from e

        if payload.get("exp") is None:
            raise InvalidTokenError("Token missing expiration")
        if not payload.get("userId") or not payload.get("tenantId"):
            raise InvalidTokenError("Token missing user or tenant identifier")

        if str(payload["tenantId"]) != str(tenant.id):
            logger.warning(
                "Rejected token for tenant %s presented to tenant %s",
                payload["tenantId"],
                tenant.id,
            )
            raise TenantMismatchError("Invalid token for this tenant")

        if payload.get("iss") != self.issuer_for(tenant):
            raise InvalidTokenError("Invalid token: issuer mismatch")
        audience = payload.get("aud")
        audiences = audience if isinstance(audience, list) else [audience]
        if self.audience_for(tenant) not in audiences:
            raise InvalidTokenError("Invalid token: audience mismatch")

        return TokenClaims(
            user_id=str(payload["userId"]),
            tenant_id=str(payload["tenantId"]),
            role=payload.get("role") or "USER",
            email=payload.get("email") or "",
            issued_at=_from_timestamp(payload.get("iat")),
            expires_at=_from_timestamp(payload.get("exp")),
        )

    def refresh(self, tenant, old_token: str) -> str:
        """
        Verify a token and mint a fresh one.

        Role and email are carried over from the old token; the user's
        current database state is not consulted.
        """
        claims = self.verify(tenant, old_token)
        return self.issue(tenant, claims.user_id, claims.role, claims.email)

    def jwks(self) -> dict:
        """Public key set for external verifiers; empty for symmetric signers"""
        return {"keys": []}


class HmacTokenSigner(TokenSigner):
    """HS256 signer keyed by each tenant's own secret"""

    algorithm = "HS256"

    def issuer_for(self, tenant) -> str:
        return f"auth-service:{tenant.name}"

    def _signing_key(self, tenant) -> str:
        if not tenant.jwt_secret:
            raise ConfigurationError(f"Tenant {tenant.name} has no signing secret")
        return tenant.jwt_secret

    def _verification_key(self, tenant) -> str:
        return self._signing_key(tenant)


class RsaTokenSigner(TokenSigner):
    """RS256 signer using one service-wide keypair"""

    algorithm = "RS256"

    def __init__(self, private_key: str, public_key: str, key_id: str):
        self.private_key = private_key
        self.public_key = public_key
        self.key_id = key_id

    def issuer_for(self, tenant) -> str:
        return f"https://{tenant.domain}"

    def _headers(self) -> dict:
        return {"kid": self.key_id}

    def _signing_key(self, tenant) -> str:
        if not self.private_key:
            raise ConfigurationError("JWT private key not configured")
        return self.private_key

    def _verification_key(self, tenant) -> str:
        if not self.public_key:
            raise ConfigurationError("JWT public key not configured")
        return self.public_key

    def jwks(self) -> dict:
        if not self.public_key:
            return {"keys": []}
        try:
            key = jwk.construct(self.public_key, algorithm="RS256").public_key().to_dict()
        except Exception:
            logger.error("Failed to generate JWKS", exc_info=True)
            return {"keys": []}
        key.update({"kid": self.key_id, "use": "sig", "alg": "RS256"})
        return {"keys": [key]}


def build_token_signer(config: Settings) -> TokenSigner:
    """
    Select the signing strategy from configuration.

    Raises:
        ConfigurationError: If JWT_SIGNING_MODE is unknown
    """
    mode = config.JWT_SIGNING_MODE.lower()
    if mode == "hmac":
        return HmacTokenSigner()
    if mode == "rs256":
        return RsaTokenSigner(
            private_key=config.jwt_private_key_pem,
            public_key=config.jwt_public_key_pem,
            key_id=config.JWT_KEY_ID,
        )
    raise ConfigurationError(f"Unknown JWT_SIGNING_MODE: {config.JWT_SIGNING_MODE}")


def _from_timestamp(value) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), UTC)
