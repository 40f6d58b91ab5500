import logging
from datetime import datetime, UTC

from sqlalchemy.orm import Session

from app.core.exceptions import (
    ConfigurationError,
    ForbiddenError,
    NotFoundError,
    UnauthenticatedError,
    ValidationError,
)
from app.core.passwords import PasswordPolicy, hash_password, validate_password, verify_password
from app.core.security import TokenSigner
from app.models.principal import Principal
from app.models.role import UserRole, UserStatus
from app.models.tenant import Tenant
from app.models.user import User
from app.repositories.user_repository import UserRepository
from app.schemas.auth_schemas import MeUpdate, RegisterRequest

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


class AuthService:
    """Registration, login and session token flows for one tenant"""

    def __init__(self, db: Session, signer: TokenSigner):
        self.db = db
        self.signer = signer
        self.user_repo = UserRepository(db)

    def _issue(self, tenant: Tenant, user: User) -> str:
        return self.signer.issue(tenant, user.id, user.role.value, user.email)

    def register(self, tenant: Tenant, request: RegisterRequest) -> tuple[str, User]:
        """
        Register a new USER account.

        Args:
            tenant: Resolved tenant
            request: Email, password and display name

        Returns:
            Tuple of (token, user)

        Raises:
            ForbiddenError: If the tenant doesn't accept registrations
            ValidationError: If email is taken or the password violates policy
        """
        if not tenant.allow_registration:
            raise ForbiddenError("Registration is closed for this site")

        if self.user_repo.get_by_email(request.email, tenant.id):
            raise ValidationError("Email is already in use")

        validate_password(PasswordPolicy.for_tenant(tenant), request.password)

        user = User(
            tenant_id=tenant.id,
            email=request.email,
            password_hash=hash_password(request.password),
            name=request.name,
            role=UserRole.USER,
        )
        user = self.user_repo.create(user)
        return self._issue(tenant, user), user

    def login(self, tenant: Tenant, email: str, password: str) -> tuple[str, User]:
        """
        Password login.

        Unknown email, OAuth-only account and wrong password all produce
        the same error.

        Raises:
            UnauthenticatedError: On bad credentials
            ForbiddenError: If the account is not ACTIVE
        """
        user = self.user_repo.get_by_email(email, tenant.id)
        if not user or not user.password_hash:
            raise UnauthenticatedError(INVALID_CREDENTIALS)

        if not verify_password(password, user.password_hash):
            raise UnauthenticatedError(INVALID_CREDENTIALS)

        if user.status != UserStatus.ACTIVE:
            raise ForbiddenError("This account is suspended")

        token = self._issue(tenant, user)
        user.last_login_at = datetime.now(UTC)
        user = self.user_repo.update(user)
        return token, user

    def google_login(
        self, tenant: Tenant, identity: dict, admin_emails: list[str]
    ) -> tuple[str, User]:
        """
        Sign in with a verified Google identity.

        Looks the user up by Google subject, then by email (linking the
        Google account), otherwise creates it. Emails on the admin
        allow-list are promoted to ADMIN at every login.

        Args:
            tenant: Resolved tenant
            identity: Verified claims (sub, email, name, picture)
            admin_emails: Lower-cased admin allow-list

        Returns:
            Tuple of (token, user)

        Raises:
            ForbiddenError: If the account is not ACTIVE
        """
        email = identity["email"]
        is_allow_listed = email.lower() in admin_emails

        user = self.user_repo.get_by_google_id(identity["sub"], tenant.id)
        if not user:
            user = self.user_repo.get_by_email(email, tenant.id)
            if user:
                user.google_id = identity["sub"]
                if identity.get("picture"):
                    user.avatar = identity["picture"]
                user = self.user_repo.update(user)
            else:
                user = self.user_repo.create(
                    User(
                        tenant_id=tenant.id,
                        email=email,
                        google_id=identity["sub"],
                        name=identity.get("name") or email,
                        avatar=identity.get("picture"),
                        role=UserRole.ADMIN if is_allow_listed else UserRole.USER,
                    )
                )

        if is_allow_listed and user.role != UserRole.ADMIN:
            logger.info("Promoting allow-listed user %s to ADMIN", user.id)
            user.role = UserRole.ADMIN
            user = self.user_repo.update(user)

        if user.status != UserStatus.ACTIVE:
            raise ForbiddenError("This account is suspended")

        token = self._issue(tenant, user)
        user.last_login_at = datetime.now(UTC)
        user = self.user_repo.update(user)
        return token, user

    def refresh(self, tenant: Tenant, old_token: str) -> str:
        """Re-issue a token; role and email come from the old token."""
        return self.signer.refresh(tenant, old_token)

    def get_me(self, principal: Principal) -> User:
        """
        Raises:
            NotFoundError: If the principal's user no longer exists
        """
        user = self.user_repo.get_by_id(principal.user_id, principal.tenant_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def update_me(self, principal: Principal, update: MeUpdate) -> tuple[User, str | None]:
        """
        Update own name, avatar and bio.

        Returns:
            Tuple of (user, replaced avatar URL or None); the caller
            schedules deletion of the replaced avatar
        """
        user = self.get_me(principal)
        changes = update.model_dump(exclude_unset=True)
        replaced_avatar = None

        if changes.get("name") is not None:
            user.name = changes["name"]
        if "avatar" in changes:
            new_avatar = changes["avatar"] or None
            if user.avatar and user.avatar != new_avatar:
                replaced_avatar = user.avatar
            user.avatar = new_avatar
        if "bio" in changes:
            user.bio = changes["bio"] or None

        return self.user_repo.update(user), replaced_avatar

    def change_password(
        self, tenant: Tenant, principal: Principal, current_password: str, new_password: str
    ) -> None:
        """
        Raises:
            NotFoundError: If the user has no password (OAuth-only)
            ValidationError: If the current password is wrong or the new one violates policy
        """
        user = self.user_repo.get_by_id(principal.user_id, tenant.id)
        if not user or not user.password_hash:
            raise NotFoundError("User not found")

        if not verify_password(current_password, user.password_hash):
            raise ValidationError("Current password is incorrect")

        validate_password(PasswordPolicy.for_tenant(tenant), new_password)

        user.password_hash = hash_password(new_password)
        self.user_repo.update(user)


def ensure_google_enabled(tenant: Tenant) -> str:
    """
    Check the tenant allows Google sign-in and return its client id.

    Raises:
        ForbiddenError: If Google login is disabled for the tenant
        ConfigurationError: If no client id is configured
    """
    if not tenant.allow_google_oauth:
        raise ForbiddenError("Google login is disabled")
    if not tenant.google_client_id:
        raise ConfigurationError("Google OAuth is not configured")
    return tenant.google_client_id
