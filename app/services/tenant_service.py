import logging
import secrets
from collections.abc import Mapping

from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import (
    ForbiddenError,
    IdentificationError,
    NotFoundError,
    ValidationError,
)
from app.models.tenant import Tenant
from app.repositories.tenant_repository import TenantRepository
from app.schemas.tenant_schemas import TenantCreate, TenantUpdate

logger = logging.getLogger(__name__)

TENANT_ID_HEADER = "x-tenant-id"
TENANT_NAME_HEADER = "x-tenant-name"

# 64 random bytes -> 512-bit secret, hex encoded
TENANT_SECRET_BYTES = 64
NULLABLE_TENANT_FIELDS = {"google_client_id", "google_client_secret"}


def derive_tenant_identifier(headers: Mapping[str, str], host: str | None) -> tuple[str, str] | None:
    """
    Pick the tenant identifier of a request.

    Priority: x-tenant-id header, x-tenant-name header, then the leftmost
    label of a hostname with at least three labels
    ("acme.blog.example.com" -> "acme").

    Args:
        headers: Case-insensitive request headers
        host: Host header value (port allowed)

    Returns:
        (source, identifier) with source one of "id", "name", "subdomain",
        or None if nothing could be derived
    """
    tenant_id = (headers.get(TENANT_ID_HEADER) or "").strip()
    if tenant_id:
        return "id", tenant_id

    tenant_name = (headers.get(TENANT_NAME_HEADER) or "").strip()
    if tenant_name:
        return "name", tenant_name

    if host:
        hostname = host.split(":")[0]
        labels = hostname.split(".")
        if len(labels) >= 3 and labels[0]:
            return "subdomain", labels[0]

    return None


class TenantService:
    """Tenant resolution and super-admin tenant management"""

    def __init__(self, db: Session, id_prefix: str | None = None):
        self.db = db
        self.tenant_repo = TenantRepository(db)
        self.id_prefix = settings.TENANT_ID_PREFIX if id_prefix is None else id_prefix

    def resolve(self, headers: Mapping[str, str], host: str | None) -> Tenant:
        """
        Resolve and gate the tenant of a request.

        A prefixed x-tenant-id ("tenant-<name>", injected by the edge proxy)
        has the prefix stripped, then matches either a tenant id or a
        tenant name.

        Args:
            headers: Case-insensitive request headers
            host: Host header value

        Returns:
            Active tenant

        Raises:
            IdentificationError: If no identifier could be derived
            NotFoundError: If no tenant matches the identifier
            ForbiddenError: If the tenant is deactivated
        """
        derived = derive_tenant_identifier(headers, host)
        if derived is None:
            raise IdentificationError(
                "Unable to identify tenant. Provide an X-Tenant-Name header or use a subdomain."
            )
        source, identifier = derived

        lookup_key = identifier
        if self.id_prefix and lookup_key.startswith(self.id_prefix):
            lookup_key = lookup_key[len(self.id_prefix):]
        if not lookup_key:
            raise IdentificationError(f"Tenant identifier is empty: {identifier}")

        tenant = None
        if source == "id":
            tenant = self.tenant_repo.get_by_id(lookup_key)
        if tenant is None:
            tenant = self.tenant_repo.get_by_name(lookup_key)

        if tenant is None:
            logger.debug("Tenant lookup failed for %s=%s", source, identifier)
            raise NotFoundError(f"Tenant not found: {identifier}")

        if not tenant.is_active:
            raise ForbiddenError("This tenant is deactivated")

        return tenant

    def create_tenant(self, tenant_data: TenantCreate) -> Tenant:
        """
        Create a tenant with a freshly generated signing secret.

        Args:
            tenant_data: Tenant configuration

        Returns:
            Created tenant

        Raises:
            ValidationError: If the name is already taken
        """
        if self.tenant_repo.get_by_name(tenant_data.name):
            raise ValidationError("Tenant name already exists")

        tenant = Tenant(
            name=tenant_data.name,
            domain=tenant_data.domain,
            jwt_secret=secrets.token_hex(TENANT_SECRET_BYTES),
            jwt_expiry=tenant_data.jwt_expiry or settings.DEFAULT_JWT_EXPIRY,
            allow_registration=tenant_data.allow_registration,
            allow_google_oauth=tenant_data.allow_google_oauth,
            google_client_id=tenant_data.google_client_id,
            google_client_secret=tenant_data.google_client_secret,
            password_min_length=tenant_data.password_policy.min_length,
            password_require_uppercase=tenant_data.password_policy.require_uppercase,
            password_require_number=tenant_data.password_policy.require_number,
            password_require_special=tenant_data.password_policy.require_special,
        )
        tenant = self.tenant_repo.create(tenant)
        logger.info("Created tenant %s (%s)", tenant.name, tenant.id)
        return tenant

    def list_tenants(self) -> list[dict]:
        """
        List all tenants, newest first.

        Returns:
            List of tenants with user counts
        """
        return [
            {"tenant": tenant, "user_count": count}
            for tenant, count in self.tenant_repo.get_all_with_user_counts()
        ]

    def get_tenant(self, tenant_id: str) -> tuple[Tenant, int]:
        """
        Get a tenant and its user count.

        Raises:
            NotFoundError: If tenant doesn't exist
        """
        tenant = self.tenant_repo.get_by_id(tenant_id)
        if not tenant:
            raise NotFoundError("Tenant not found")
        return tenant, self.tenant_repo.count_users(tenant.id)

    def update_tenant(self, tenant_id: str, tenant_update: TenantUpdate) -> Tenant:
        """
        Update tenant configuration. Only fields present in the request change.

        Deactivation is a soft delete: is_active=False makes every request
        for the tenant fail with 403.

        Raises:
            NotFoundError: If tenant doesn't exist
        """
        tenant = self.tenant_repo.get_by_id(tenant_id)
        if not tenant:
            raise NotFoundError("Tenant not found")

        changes = tenant_update.model_dump(exclude_unset=True)
        policy = changes.pop("password_policy", None)
        for field, value in changes.items():
            if value is None and field not in NULLABLE_TENANT_FIELDS:
                continue
            setattr(tenant, field, value)
        if policy:
            for field, value in policy.items():
                if value is not None:
                    setattr(tenant, f"password_{field}", value)

        return self.tenant_repo.update(tenant)
