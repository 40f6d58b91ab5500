from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import verify_super_admin
from app.services.tenant_service import TenantService
from app.schemas.tenant_schemas import TenantCreate, TenantResponse, TenantUpdate

router = APIRouter(dependencies=[Depends(verify_super_admin)])


@router.post("", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
async def create_tenant(tenant_data: TenantCreate, db: Session = Depends(get_db)):
    """
    Create a tenant.

    - **Requires x-super-admin-key**
    - A 512-bit signing secret is generated and never returned
    """
    service = TenantService(db)
    tenant = service.create_tenant(tenant_data)
    return TenantResponse.from_tenant(tenant, user_count=0)


@router.get("", response_model=list[TenantResponse])
async def list_tenants(db: Session = Depends(get_db)):
    """List all tenants, newest first, with user counts"""
    service = TenantService(db)
    return [
        TenantResponse.from_tenant(item["tenant"], user_count=item["user_count"])
        for item in service.list_tenants()
    ]


@router.get("/{tenant_id}", response_model=TenantResponse)
async def get_tenant(tenant_id: str, db: Session = Depends(get_db)):
    """Get tenant configuration"""
    service = TenantService(db)
    tenant, user_count = service.get_tenant(tenant_id)
    return TenantResponse.from_tenant(tenant, user_count=user_count)


@router.patch("/{tenant_id}", response_model=TenantResponse)
async def update_tenant(
    tenant_id: str, tenant_update: TenantUpdate, db: Session = Depends(get_db)
):
    """
    Update tenant configuration.

    - Only fields present in the body change
    - is_active=false deactivates the tenant (soft delete)
    """
    service = TenantService(db)
    tenant = service.update_tenant(tenant_id, tenant_update)
    _, user_count = service.get_tenant(tenant.id)
    return TenantResponse.from_tenant(tenant, user_count=user_count)
