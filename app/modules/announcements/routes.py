from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, Form, Query
from app.config import settings
from app.config.roles_config import ANNOUNCEMENT_AUTHOR_ROLES, allowed_roles
from app.database.supabase_client import SupabaseClient
from app.modules.announcements.schemas import (
    AnnouncementCreate, AnnouncementUpdate, AnnouncementResponse, AnnouncementWithDetails,
    AnnouncementPage, AnnouncementPermissionsResponse, VoteRequest, VoteResponse, PinResponse,
    ImageUploadResponse, CategoryResponse
)
from app.modules.announcements.service import AnnouncementService
from app.modules.announcements.image_storage import ImageStorage
from app.core.dependencies import get_current_user, get_permission_evaluator, get_user_supabase
from app.core.errors import NotMember
from app.core.permissions import GroupRole, PermissionEvaluator
from supabase import Client
from typing import List, Dict, Optional, Literal

router = APIRouter(prefix="/announcements", tags=["announcements"])


def get_announcement_service(supabase: Client = Depends(get_user_supabase)) -> AnnouncementService:
    return AnnouncementService(supabase)


def get_image_storage() -> ImageStorage:
    # uploads are authorised here; the service client writes into the caller's folder
    return ImageStorage(SupabaseClient.get_service_client())


@router.post("", response_model=AnnouncementResponse, status_code=201)
async def create_announcement(
    data: AnnouncementCreate,
    user_data: Dict = Depends(get_current_user),
    service: AnnouncementService = Depends(get_announcement_service),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
):
    """Create an announcement (group admins and contributors)"""
    evaluator.require_group_role(
        data.group_id,
        user_data["id"],
        ANNOUNCEMENT_AUTHOR_ROLES,
        "Only admins and contributors can create announcements"
    )
    return service.create_announcement(data, user_data["id"])


@router.get("/categories", response_model=List[CategoryResponse])
async def list_categories(
    user_data: Dict = Depends(get_current_user),
    service: AnnouncementService = Depends(get_announcement_service)
):
    """List announcement categories"""
    return service.list_categories()


@router.post("/images", response_model=ImageUploadResponse, status_code=201)
async def upload_image(
    file: UploadFile = File(...),
    group_id: str = Form(...),
    user_data: Dict = Depends(get_current_user),
    storage: ImageStorage = Depends(get_image_storage),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
):
    """Upload an image to attach to an announcement; returns its public URL"""
    evaluator.require_group_role(
        group_id,
        user_data["id"],
        ANNOUNCEMENT_AUTHOR_ROLES,
        "Only admins and contributors can upload images"
    )
    if file.content_type not in settings.get_allowed_image_types():
        raise HTTPException(status_code=400, detail="Only JPEG, PNG, GIF and WebP images are accepted")
    content = await file.read()
    if len(content) > settings.max_image_size:
        limit_mb = settings.max_image_size / (1024 * 1024)
        raise HTTPException(status_code=400, detail=f"Image must be {limit_mb:g}MB or smaller")
    try:
        return storage.upload_image(content, user_data["id"], file.filename, file.content_type)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e) or "Failed to upload image")


@router.get("/group/{group_id}", response_model=AnnouncementPage)
async def list_announcements(
    group_id: str,
    include_archived: bool = False,
    category_id: Optional[str] = None,
    tag_id: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    sort_by: Literal["created_at", "deadline"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    user_data: Dict = Depends(get_current_user),
    service: AnnouncementService = Depends(get_announcement_service),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
):
    """Paginated announcements of a group (members only). Archived ones are visible to admins on request."""
    role = evaluator.get_group_role(group_id, user_data["id"])
    if role is None:
        raise NotMember()
    return service.list_announcements(
        group_id,
        user_data["id"],
        show_archived=include_archived and role == GroupRole.ADMIN,
        category_id=category_id,
        tag_id=tag_id,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        sort_order=sort_order
    )


@router.get("/group/{group_id}/pinned", response_model=List[AnnouncementWithDetails])
async def list_pinned(
    group_id: str,
    user_data: Dict = Depends(get_current_user),
    service: AnnouncementService = Depends(get_announcement_service),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
):
    """Pinned announcements of a group (members only)"""
    if evaluator.get_group_role(group_id, user_data["id"]) is None:
        raise NotMember()
    return service.list_pinned(group_id, user_data["id"])


@router.get("/{announcement_id}", response_model=AnnouncementWithDetails)
async def get_announcement(
    announcement_id: str,
    user_data: Dict = Depends(get_current_user),
    service: AnnouncementService = Depends(get_announcement_service)
):
    """Get a single announcement"""
    return service.get_announcement(announcement_id, user_data["id"])


@router.get("/{announcement_id}/permissions", response_model=AnnouncementPermissionsResponse)
async def check_permissions(
    announcement_id: str,
    user_data: Dict = Depends(get_current_user),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
):
    """What the caller may do with this announcement (for UI gating)"""
    return evaluator.check_announcement_permissions(announcement_id, user_data["id"])


@router.put("/{announcement_id}", response_model=AnnouncementResponse)
async def update_announcement(
    announcement_id: str,
    data: AnnouncementUpdate,
    user_data: Dict = Depends(get_current_user),
    service: AnnouncementService = Depends(get_announcement_service),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
):
    """Update an announcement (author or group admin; only admins may pin/archive)"""
    perms = evaluator.require_modify_announcement(announcement_id, user_data["id"])
    return service.update_announcement(announcement_id, data, is_admin=perms.is_admin)


@router.delete("/{announcement_id}", status_code=204)
async def delete_announcement(
    announcement_id: str,
    user_data: Dict = Depends(get_current_user),
    service: AnnouncementService = Depends(get_announcement_service),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
):
    """Delete an announcement (author or group admin)"""
    evaluator.require_modify_announcement(
        announcement_id, user_data["id"], "You do not have permission to delete this announcement"
    )
    if not service.delete_announcement(announcement_id):
        raise HTTPException(status_code=404, detail="Announcement not found")
    return None


@router.post("/{announcement_id}/vote", response_model=VoteResponse)
async def vote(
    announcement_id: str,
    vote_data: VoteRequest,
    user_data: Dict = Depends(get_current_user),
    service: AnnouncementService = Depends(get_announcement_service)
):
    """Upvote/downvote; sending the same vote again removes it"""
    user_vote = service.vote(announcement_id, user_data["id"], vote_data.vote_type)
    return VoteResponse(announcement_id=announcement_id, user_vote=user_vote)


@router.post("/{announcement_id}/pin", response_model=PinResponse)
async def toggle_pin(
    announcement_id: str,
    user_data: Dict = Depends(get_current_user),
    service: AnnouncementService = Depends(get_announcement_service),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
):
    """Pin or unpin an announcement (group admins and contributors)"""
    current = service.get_pin_state(announcement_id)
    evaluator.require_group_role(
        current["group_id"],
        user_data["id"],
        allowed_roles("announcements:pin"),
        "Only admins and contributors can pin announcements"
    )
    is_pinned = service.set_pinned(announcement_id, not current["is_pinned"])
    return PinResponse(announcement_id=announcement_id, is_pinned=is_pinned)
