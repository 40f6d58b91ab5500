from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from app.clients.google_oauth import GoogleIdTokenVerifier
from app.clients.storage_client import StorageClient
from app.core.exceptions import UnauthenticatedError
from app.core.identity import extract_bearer_token
from app.core.security import TokenSigner
from app.core.side_channel import NonCriticalTaskRunner
from app.database import get_db
from app.dependencies import (
    get_admin_emails,
    get_current_principal,
    get_google_verifier,
    get_storage_client,
    get_task_runner,
    get_tenant,
    get_token_signer,
)
from app.models.principal import Principal
from app.models.tenant import Tenant
from app.services.auth_service import AuthService, ensure_google_enabled
from app.schemas.auth_schemas import (
    AuthResponse,
    GoogleLoginRequest,
    LoginRequest,
    MeResponse,
    MeUpdate,
    RegisterRequest,
    TokenResponse,
)

router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    tenant: Tenant = Depends(get_tenant),
    signer: TokenSigner = Depends(get_token_signer),
    db: Session = Depends(get_db),
):
    """
    Register with email and password.

    - Tenant must allow registration
    - Password is checked against the tenant's password policy
    """
    service = AuthService(db, signer)
    token, user = service.register(tenant, data)
    return {"token": token, "user": user}


@router.post("/login", response_model=AuthResponse)
async def login(
    data: LoginRequest,
    tenant: Tenant = Depends(get_tenant),
    signer: TokenSigner = Depends(get_token_signer),
    db: Session = Depends(get_db),
):
    """Email and password login"""
    service = AuthService(db, signer)
    token, user = service.login(tenant, data.email, data.password)
    return {"token": token, "user": user}


@router.post("/google", response_model=AuthResponse)
async def google_login(
    data: GoogleLoginRequest,
    tenant: Tenant = Depends(get_tenant),
    signer: TokenSigner = Depends(get_token_signer),
    verifier: GoogleIdTokenVerifier = Depends(get_google_verifier),
    admin_emails: list[str] = Depends(get_admin_emails),
    db: Session = Depends(get_db),
):
    """
    Sign in with a Google ID token.

    - Tenant must enable Google login and configure a client id
    - Emails on ADMIN_EMAILS are promoted to ADMIN
    """
    client_id = ensure_google_enabled(tenant)
    identity = await verifier.verify(data.credential, client_id)
    service = AuthService(db, signer)
    token, user = service.google_login(tenant, identity, admin_emails)
    return {"token": token, "user": user}


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    request: Request,
    tenant: Tenant = Depends(get_tenant),
    signer: TokenSigner = Depends(get_token_signer),
    db: Session = Depends(get_db),
):
    """
    Exchange a valid bearer token for a fresh one.

    Role and email are copied from the presented token.
    """
    token = extract_bearer_token(request.headers)
    if token is None:
        raise UnauthenticatedError("Authentication required")
    service = AuthService(db, signer)
    return {"token": service.refresh(tenant, token)}


@router.get("/me", response_model=MeResponse)
async def get_me(
    principal: Principal = Depends(get_current_principal),
    signer: TokenSigner = Depends(get_token_signer),
    db: Session = Depends(get_db),
):
    """Current user profile"""
    service = AuthService(db, signer)
    return service.get_me(principal)


@router.patch("/me", response_model=MeResponse)
async def update_me(
    data: MeUpdate,
    tenant: Tenant = Depends(get_tenant),
    principal: Principal = Depends(get_current_principal),
    signer: TokenSigner = Depends(get_token_signer),
    storage: StorageClient = Depends(get_storage_client),
    runner: NonCriticalTaskRunner = Depends(get_task_runner),
    db: Session = Depends(get_db),
):
    """
    Update own name, avatar and bio.

    A replaced avatar is deleted from storage in the background.
    """
    service = AuthService(db, signer)
    user, replaced_avatar = service.update_me(principal, data)
    if replaced_avatar:
        runner.spawn(
            f"delete-avatar:{user.id}",
            lambda: storage.delete_by_url(tenant, replaced_avatar),
        )
    return user
