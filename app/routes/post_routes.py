from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from app.clients.author_client import AuthorClient
from app.clients.storage_client import StorageClient
from app.config import settings
from app.core.side_channel import NonCriticalTaskRunner
from app.database import get_db
from app.dependencies import (
    get_author_client,
    get_optional_principal,
    get_storage_client,
    get_task_runner,
    get_tenant,
    get_view_policy,
    require_admin_principal,
)
from app.models.principal import Principal
from app.models.tenant import Tenant
from app.services.engagement_service import (
    EngagementKind,
    EngagementService,
    ViewDecayPolicy,
    resolve_engagement_identity,
)
from app.services.featured_service import refresh_featured_best_effort
from app.services.post_service import PostService
from app.schemas.post_schemas import (
    BulkDeleteRequest,
    BulkDeleteResponse,
    LikeResponse,
    PostCreate,
    PostDetailResponse,
    PostListResponse,
    PostResponse,
)

router = APIRouter()


def _engagement_identity(request: Request, principal: Principal | None) -> str:
    socket_host = request.client.host if request.client else None
    return resolve_engagement_identity(
        principal, request.headers, socket_host, settings.IP_HASH_SALT
    )


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    data: PostCreate,
    tenant: Tenant = Depends(get_tenant),
    admin: Principal = Depends(require_admin_principal),
    storage: StorageClient = Depends(get_storage_client),
    runner: NonCriticalTaskRunner = Depends(get_task_runner),
    db: Session = Depends(get_db),
):
    """
    Create a post (ADMIN only).

    The cover image is linked in storage in the background and the
    featured post is recomputed.
    """
    service = PostService(db)
    post = service.create_post(tenant.id, data, admin)

    if post.cover_image:
        cover_image, post_id = post.cover_image, post.id
        runner.spawn(
            f"link-files:post:{post_id}",
            lambda: storage.link_files(tenant, [cover_image], "post", post_id),
        )
    refresh_featured_best_effort(db, tenant.id)
    db.refresh(post)
    return post


@router.get("", response_model=PostListResponse)
async def list_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    featured: bool = Query(False),
    tenant: Tenant = Depends(get_tenant),
    principal: Principal | None = Depends(get_optional_principal),
    db: Session = Depends(get_db),
):
    """List posts; anonymous callers and non-admins only see PUBLIC posts"""
    service = PostService(db)
    return service.list_posts(tenant.id, principal, page=page, limit=limit, featured_only=featured)


@router.get("/featured", response_model=PostResponse)
async def get_featured_post(
    tenant: Tenant = Depends(get_tenant),
    db: Session = Depends(get_db),
):
    """Current featured post of the tenant"""
    service = PostService(db)
    return service.get_featured(tenant.id)


@router.post("/bulk-delete", response_model=BulkDeleteResponse)
async def bulk_delete_posts(
    data: BulkDeleteRequest,
    tenant: Tenant = Depends(get_tenant),
    admin: Principal = Depends(require_admin_principal),
    db: Session = Depends(get_db),
):
    """Delete several posts (ADMIN only) and recompute the featured post"""
    service = PostService(db)
    deleted = service.bulk_delete(tenant.id, data.ids)
    refresh_featured_best_effort(db, tenant.id)
    return {"deleted": deleted}


@router.get("/{slug}", response_model=PostDetailResponse)
async def get_post(
    slug: str,
    request: Request,
    tenant: Tenant = Depends(get_tenant),
    principal: Principal | None = Depends(get_optional_principal),
    view_policy: ViewDecayPolicy = Depends(get_view_policy),
    author_client: AuthorClient = Depends(get_author_client),
    db: Session = Depends(get_db),
):
    """
    Post detail by slug.

    Records a deduplicated view for the caller and attaches the author's
    public profile when the auth service answers.
    """
    post = PostService(db).get_visible_by_slug(tenant.id, slug, principal)

    engagement = EngagementService(db, view_policy)
    result = engagement.record_engagement(
        tenant.id, post.id, _engagement_identity(request, principal), EngagementKind.VIEW
    )
    if result.is_new_engagement:
        refresh_featured_best_effort(db, tenant.id)

    db.refresh(post)
    author = await author_client.get_author(tenant.id, post.author_id)
    return {
        **PostResponse.model_validate(post).model_dump(),
        "author": author,
        "is_new_view": result.is_new_engagement,
    }


@router.post("/{post_id}/like", response_model=LikeResponse)
async def toggle_like(
    post_id: str,
    request: Request,
    tenant: Tenant = Depends(get_tenant),
    principal: Principal | None = Depends(get_optional_principal),
    view_policy: ViewDecayPolicy = Depends(get_view_policy),
    db: Session = Depends(get_db),
):
    """
    Like or unlike a post.

    Authenticated callers are tracked by user id, anonymous callers by
    hashed IP.
    """
    post = PostService(db).get_visible_by_id(tenant.id, post_id, principal)

    engagement = EngagementService(db, view_policy)
    result = engagement.record_engagement(
        tenant.id, post.id, _engagement_identity(request, principal), EngagementKind.LIKE
    )
    refresh_featured_best_effort(db, tenant.id)
    return {"liked": result.is_new_engagement, "like_count": result.current_count}


@router.get("/{post_id}/like", response_model=LikeResponse)
async def get_like_status(
    post_id: str,
    request: Request,
    tenant: Tenant = Depends(get_tenant),
    principal: Principal | None = Depends(get_optional_principal),
    view_policy: ViewDecayPolicy = Depends(get_view_policy),
    db: Session = Depends(get_db),
):
    """Whether the caller currently likes the post"""
    post = PostService(db).get_visible_by_id(tenant.id, post_id, principal)

    engagement = EngagementService(db, view_policy)
    liked = engagement.is_liked(tenant.id, post.id, _engagement_identity(request, principal))
    return {"liked": liked, "like_count": post.like_count}
