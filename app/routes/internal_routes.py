from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_tenant, verify_internal_request
from app.models.tenant import Tenant
from app.services.user_service import UserService
from app.schemas.user_schemas import BasicUsersResponse

router = APIRouter(dependencies=[Depends(verify_internal_request)])


@router.get("/users/basic", response_model=BasicUsersResponse)
async def get_basic_users(
    ids: str = Query("", description="Comma-separated user IDs"),
    tenant: Tenant = Depends(get_tenant),
    db: Session = Depends(get_db),
):
    """Batch user lookup for comment enrichment. Unknown IDs are skipped."""
    user_ids = [user_id.strip() for user_id in ids.split(",") if user_id.strip()]
    service = UserService(db)
    return {"data": service.get_basic_users(user_ids, tenant.id)}
