from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.security import TokenSigner
from app.database import get_db
from app.dependencies import (
    get_current_principal,
    get_optional_tenant,
    get_tenant,
    get_token_signer,
    require_admin_principal,
    verify_internal_request,
)
from app.models.principal import Principal
from app.models.role import UserRole, UserStatus
from app.models.tenant import Tenant
from app.services.auth_service import AuthService
from app.services.user_service import UserService
from app.schemas.auth_schemas import ChangePasswordRequest, MessageResponse
from app.schemas.user_schemas import (
    PublicUserEnvelope,
    UserAdminResponse,
    UserListResponse,
    UserRoleUpdate,
    UserStatsResponse,
    UserStatusUpdate,
)

router = APIRouter()


@router.get("", response_model=UserListResponse)
async def list_users(
    role: UserRole | None = Query(None),
    user_status: UserStatus | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    admin: Principal = Depends(require_admin_principal),
    db: Session = Depends(get_db),
):
    """List users of the tenant (ADMIN only)"""
    service = UserService(db)
    return service.list_users(admin.tenant_id, role=role, status=user_status, page=page, limit=limit)


@router.get("/stats", response_model=UserStatsResponse)
async def get_user_stats(
    admin: Principal = Depends(require_admin_principal),
    db: Session = Depends(get_db),
):
    """User totals and new-user counts per day, week and month (ADMIN only)"""
    service = UserService(db)
    return service.get_stats(admin.tenant_id)


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    data: ChangePasswordRequest,
    tenant: Tenant = Depends(get_tenant),
    principal: Principal = Depends(get_current_principal),
    signer: TokenSigner = Depends(get_token_signer),
    db: Session = Depends(get_db),
):
    """Change own password; the new one must satisfy the tenant's policy"""
    service = AuthService(db, signer)
    service.change_password(tenant, principal, data.current_password, data.new_password)
    return {"message": "Password changed"}


@router.patch("/{user_id}/role", response_model=UserAdminResponse)
async def update_user_role(
    user_id: str,
    data: UserRoleUpdate,
    admin: Principal = Depends(require_admin_principal),
    db: Session = Depends(get_db),
):
    """
    Change a user's role.

    - **Requires ADMIN**
    - Another admin's role cannot be changed
    """
    service = UserService(db)
    return service.change_role(user_id, data.role, admin)


@router.patch("/{user_id}/status", response_model=UserAdminResponse)
async def update_user_status(
    user_id: str,
    data: UserStatusUpdate,
    admin: Principal = Depends(require_admin_principal),
    db: Session = Depends(get_db),
):
    """
    Suspend or reactivate a user.

    - **Requires ADMIN**
    - Another admin cannot be suspended
    """
    service = UserService(db)
    return service.change_status(user_id, data.status, admin)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    admin: Principal = Depends(require_admin_principal),
    db: Session = Depends(get_db),
):
    """
    Delete a user.

    - **Requires ADMIN**
    - Admin accounts can never be deleted
    """
    service = UserService(db)
    service.delete_user(user_id, admin)


@router.get(
    "/{user_id}/public",
    response_model=PublicUserEnvelope,
    dependencies=[Depends(verify_internal_request)],
)
async def get_public_user(
    user_id: str,
    tenant: Tenant | None = Depends(get_optional_tenant),
    db: Session = Depends(get_db),
):
    """Public author profile for sibling services (internal only)"""
    service = UserService(db)
    user = service.get_public_user(user_id, tenant.id if tenant else None)
    return {"data": user}
