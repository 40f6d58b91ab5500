import logging
import secrets
from functools import lru_cache

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from app.clients.author_client import AuthorClient
from app.clients.google_oauth import GoogleIdTokenVerifier
from app.clients.storage_client import StorageClient
from app.config import settings
from app.core.exceptions import (
    BlogPlatformException,
    ConfigurationError,
    ForbiddenError,
)
from app.core.identity import (
    IdentityStrategy,
    authenticate,
    default_strategies,
    optional_authenticate,
    require_admin,
)
from app.core.security import TokenSigner, build_token_signer
from app.core.side_channel import NonCriticalTaskRunner
from app.database import get_db
from app.models.principal import Principal
from app.models.tenant import Tenant
from app.services.engagement_service import ViewDecayPolicy, build_view_policy
from app.services.tenant_service import TenantService

logger = logging.getLogger(__name__)


@lru_cache
def get_token_signer() -> TokenSigner:
    """Signing strategy selected once from JWT_SIGNING_MODE"""
    return build_token_signer(settings)


@lru_cache
def get_view_policy() -> ViewDecayPolicy:
    return build_view_policy(settings)


@lru_cache
def get_task_runner() -> NonCriticalTaskRunner:
    return NonCriticalTaskRunner(timeout=settings.OUTBOUND_TIMEOUT_SECONDS)


@lru_cache
def get_storage_client() -> StorageClient:
    return StorageClient(settings.STORAGE_SERVICE_URL, timeout=settings.OUTBOUND_TIMEOUT_SECONDS)


@lru_cache
def get_author_client() -> AuthorClient:
    return AuthorClient(
        settings.AUTH_SERVICE_URL,
        timeout=settings.OUTBOUND_TIMEOUT_SECONDS,
        ttl_seconds=settings.AUTHOR_CACHE_TTL_SECONDS,
    )


@lru_cache
def get_google_verifier() -> GoogleIdTokenVerifier:
    return GoogleIdTokenVerifier(settings.GOOGLE_CERTS_URL, timeout=settings.OUTBOUND_TIMEOUT_SECONDS)


def get_admin_emails() -> list[str]:
    """OAuth admin allow-list, injected into the Google login flow"""
    return settings.admin_emails_list


def get_tenant(request: Request, db: Session = Depends(get_db)) -> Tenant:
    """
    FastAPI dependency resolving the tenant of the request.

    Priority: x-tenant-id, x-tenant-name, then the Host subdomain.

    Raises:
        IdentificationError 400: If no tenant identifier is present
        NotFoundError 404: If the tenant doesn't exist
        ForbiddenError 403: If the tenant is deactivated
    """
    return TenantService(db).resolve(request.headers, request.headers.get("host"))


def get_optional_tenant(request: Request, db: Session = Depends(get_db)) -> Tenant | None:
    """Same as get_tenant, but continues without a tenant on any resolution failure"""
    try:
        return TenantService(db).resolve(request.headers, request.headers.get("host"))
    except BlogPlatformException as e:
        logger.debug("Continuing without tenant: %s", e.message)
        return None


def get_identity_strategies(
    signer: TokenSigner = Depends(get_token_signer),
) -> list[IdentityStrategy]:
    return default_strategies(signer)


def get_current_principal(
    request: Request,
    tenant: Tenant = Depends(get_tenant),
    strategies: list[IdentityStrategy] = Depends(get_identity_strategies),
) -> Principal:
    """
    FastAPI dependency resolving the acting principal.

    Trusted upstream identity headers win over a bearer token.

    Raises:
        UnauthenticatedError 401: If no identity is present or the token is invalid/expired
        TenantMismatchError 403: If the token belongs to another tenant
    """
    return authenticate(request.headers, tenant, strategies)


def get_optional_principal(
    request: Request,
    tenant: Tenant = Depends(get_tenant),
    strategies: list[IdentityStrategy] = Depends(get_identity_strategies),
) -> Principal | None:
    return optional_authenticate(request.headers, tenant, strategies)


def require_admin_principal(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    """
    Raises:
        ForbiddenError 403: If the principal is not an admin
    """
    return require_admin(principal)


def verify_super_admin(x_super_admin_key: str | None = Header(None)) -> None:
    """
    Gate super-admin endpoints on the x-super-admin-key header.

    Raises:
        ConfigurationError 500: If SUPER_ADMIN_API_KEY is not configured
        ForbiddenError 403: If the header is missing or wrong
    """
    if not settings.SUPER_ADMIN_API_KEY:
        raise ConfigurationError("Super admin key is not configured")
    if not x_super_admin_key or not secrets.compare_digest(
        x_super_admin_key.encode("utf-8"), settings.SUPER_ADMIN_API_KEY.encode("utf-8")
    ):
        raise ForbiddenError("Invalid super admin key")


def verify_internal_request(x_internal_request: str | None = Header(None)) -> None:
    """
    Gate endpoints reachable only from inside the cluster.

    Raises:
        ForbiddenError 403: Unless x-internal-request is "true"
    """
    if x_internal_request != "true":
        raise ForbiddenError("Internal endpoint")
