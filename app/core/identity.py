"""
Request principal resolution.

Identity is resolved by an ordered chain of strategies. Each strategy
returns a Principal, or None when it does not apply to the request; the
first applicable strategy wins:

1. UpstreamHeaderStrategy - a gateway or service mesh already verified the
   token and injected x-user-id / x-user-email / x-user-role. Trusted as-is.
2. BearerTokenStrategy - "Authorization: Bearer <token>" verified with the
   configured TokenSigner in the context of the resolved tenant.

The choice is made per request, so mesh-internal calls and public
ingress can share the same endpoints.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence

from app.core.exceptions import ForbiddenError, UnauthenticatedError
from app.core.security import TokenSigner
from app.models.principal import Principal
from app.models.role import UserRole

USER_ID_HEADER = "x-user-id"
USER_EMAIL_HEADER = "x-user-email"
USER_ROLE_HEADER = "x-user-role"


class IdentityStrategy(ABC):
    """One way of turning request headers into a Principal"""

    @abstractmethod
    def resolve(self, headers: Mapping[str, str], tenant) -> Principal | None:
        """Return the principal, or None if this strategy does not apply"""


class UpstreamHeaderStrategy(IdentityStrategy):
    """Trust identity headers injected by an upstream component"""

    def resolve(self, headers: Mapping[str, str], tenant) -> Principal | None:
        user_id = headers.get(USER_ID_HEADER)
        if not user_id:
            return None
        return Principal(
            user_id=user_id,
            tenant_id=str(tenant.id),
            role=headers.get(USER_ROLE_HEADER) or UserRole.USER.value,
            email=headers.get(USER_EMAIL_HEADER) or "",
            source="upstream",
        )


class BearerTokenStrategy(IdentityStrategy):
    """Verify a bearer token with the tenant's signing material"""

    def __init__(self, signer: TokenSigner):
        self.signer = signer

    def resolve(self, headers: Mapping[str, str], tenant) -> Principal | None:
        token = extract_bearer_token(headers)
        if token is None:
            return None
        claims = self.signer.verify(tenant, token)
        return Principal(
            user_id=claims.user_id,
            tenant_id=claims.tenant_id,
            role=claims.role,
            email=claims.email,
            source="bearer",
        )


def extract_bearer_token(headers: Mapping[str, str]) -> str | None:
    """Return the token of an "Authorization: Bearer" header, if any"""
    auth_header = headers.get("authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header[len("Bearer "):].strip()
    return token or None


def default_strategies(signer: TokenSigner) -> list[IdentityStrategy]:
    return [UpstreamHeaderStrategy(), BearerTokenStrategy(signer)]


def resolve_principal(
    headers: Mapping[str, str], tenant, strategies: Sequence[IdentityStrategy]
) -> Principal | None:
    """
    Run the strategy chain and return the first resolved principal.

    Token verification errors from an applicable strategy propagate; they
    are never treated as "not applicable".

    Args:
        headers: Case-insensitive request headers
        tenant: Resolved tenant of the request
        strategies: Ordered strategy chain

    Returns:
        Principal or None if no strategy applied
    """
    for strategy in strategies:
        principal = strategy.resolve(headers, tenant)
        if principal is not None:
            return principal
    return None


def authenticate(
    headers: Mapping[str, str], tenant, strategies: Sequence[IdentityStrategy]
) -> Principal:
    """
    Resolve a principal or fail.

    Raises:
        UnauthenticatedError: If neither upstream headers nor a bearer token are present
    """
    principal = resolve_principal(headers, tenant, strategies)
    if principal is None:
        raise UnauthenticatedError("Authentication required")
    return principal


def optional_authenticate(
    headers: Mapping[str, str], tenant, strategies: Sequence[IdentityStrategy]
) -> Principal | None:
    """
    Resolve a principal if the request carries one.

    Anonymous requests and requests whose credential fails verification
    both continue as anonymous.
    """
    try:
        return resolve_principal(headers, tenant, strategies)
    except UnauthenticatedError:
        return None


def require_admin(principal: Principal | None) -> Principal:
    """
    Role gate for privileged endpoints.

    Raises:
        UnauthenticatedError: If no principal was resolved
        ForbiddenError: If the principal is not an admin
    """
    if principal is None:
        raise UnauthenticatedError("Authentication required")
    if not principal.is_admin():
        raise ForbiddenError("Admin privileges required")
    return principal
