from fastapi import APIRouter, Depends, HTTPException
from app.config.roles_config import allowed_roles
from app.modules.tags.schemas import (
    TagCreate, TagUpdate, TagResponse, TagSummary, AnnouncementTagsRequest
)
from app.modules.tags.service import TagService
from app.core.dependencies import (
    get_current_user, get_permission_evaluator, get_user_supabase, require_group_access
)
from app.core.permissions import PermissionEvaluator
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/tags", tags=["tags"])

TAG_MANAGER_ROLES = allowed_roles("tags:manage")


def get_tag_service(supabase: Client = Depends(get_user_supabase)) -> TagService:
    return TagService(supabase)


@router.get("/group/{group_id}", response_model=List[TagSummary])
async def list_group_tags(
    group_id: str,
    user_data: Dict = Depends(get_current_user),
    service: TagService = Depends(get_tag_service),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
):
    """List a group's tags (members only)"""
    require_group_access(group_id, user_data, evaluator)
    return service.list_group_tags(group_id)


@router.post("", response_model=TagResponse, status_code=201)
async def create_tag(
    tag_data: TagCreate,
    user_data: Dict = Depends(get_current_user),
    service: TagService = Depends(get_tag_service),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
):
    """Create a tag (group admin only)"""
    evaluator.require_group_role(
        tag_data.group_id, user_data["id"], TAG_MANAGER_ROLES, "Only group admins can manage tags"
    )
    return service.create_tag(tag_data, user_data["id"])


@router.put("/{tag_id}", response_model=TagResponse)
async def update_tag(
    tag_id: str,
    tag_data: TagUpdate,
    user_data: Dict = Depends(get_current_user),
    service: TagService = Depends(get_tag_service),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
):
    """Rename or recolor a tag (group admin only)"""
    group_id = service.get_tag_group_id(tag_id)
    evaluator.require_group_role(
        group_id, user_data["id"], TAG_MANAGER_ROLES, "Only group admins can manage tags"
    )
    return service.update_tag(tag_id, tag_data)


@router.delete("/{tag_id}", status_code=204)
async def delete_tag(
    tag_id: str,
    user_data: Dict = Depends(get_current_user),
    service: TagService = Depends(get_tag_service),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
):
    """Delete a tag (group admin only)"""
    group_id = service.get_tag_group_id(tag_id)
    evaluator.require_group_role(
        group_id, user_data["id"], TAG_MANAGER_ROLES, "Only group admins can manage tags"
    )
    if not service.delete_tag(tag_id):
        raise HTTPException(status_code=404, detail="Tag not found")
    return None


@router.get("/announcement/{announcement_id}", response_model=List[TagSummary])
async def list_announcement_tags(
    announcement_id: str,
    user_data: Dict = Depends(get_current_user),
    service: TagService = Depends(get_tag_service)
):
    """Tags attached to an announcement"""
    return service.list_announcement_tags(announcement_id)


@router.post("/announcement/{announcement_id}", status_code=204)
async def add_announcement_tags(
    announcement_id: str,
    request: AnnouncementTagsRequest,
    user_data: Dict = Depends(get_current_user),
    service: TagService = Depends(get_tag_service),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
):
    """Attach tags to an announcement (author or group admin)"""
    evaluator.require_modify_announcement(announcement_id, user_data["id"])
    service.add_tags_to_announcement(announcement_id, request.tag_ids)
    return None


@router.post("/announcement/{announcement_id}/remove", status_code=204)
async def remove_announcement_tags(
    announcement_id: str,
    request: AnnouncementTagsRequest,
    user_data: Dict = Depends(get_current_user),
    service: TagService = Depends(get_tag_service),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
):
    """Detach tags from an announcement (author or group admin)"""
    evaluator.require_modify_announcement(announcement_id, user_data["id"])
    service.remove_tags_from_announcement(announcement_id, request.tag_ids)
    return None
