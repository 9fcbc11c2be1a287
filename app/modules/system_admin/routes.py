from fastapi import APIRouter, Depends, HTTPException, Query
from app.modules.system_admin.schemas import (
    GrantSystemAdminRequest, SystemAdminResponse, PendingGroupResponse, AdminGroupCreate,
    AdminGroupCreated, SystemStatistics, GroupsTimelinePoint, AnnouncementsTimelinePoint,
    TopActiveGroup, SystemAdminStatus
)
from app.modules.system_admin.service import SystemAdminService
from app.core.dependencies import (
    get_current_user, get_permission_evaluator, get_user_supabase, require_system_admin
)
from app.core.permissions import PermissionEvaluator
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/admin", tags=["system-admin"])


def get_system_admin_service(supabase: Client = Depends(get_user_supabase)) -> SystemAdminService:
    return SystemAdminService(supabase)


@router.get("/status", response_model=SystemAdminStatus)
async def check_status(
    user_data: Dict = Depends(get_current_user),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
):
    """Whether the caller is a system admin"""
    return SystemAdminStatus(is_system_admin=evaluator.is_system_admin(user_data["id"]))


@router.get("/admins", response_model=List[SystemAdminResponse])
async def list_admins(
    user_data: Dict = Depends(require_system_admin()),
    service: SystemAdminService = Depends(get_system_admin_service)
):
    return service.list_system_admins()


@router.post("/admins", status_code=204)
async def grant_admin(
    request: GrantSystemAdminRequest,
    user_data: Dict = Depends(require_system_admin("Only system admins can grant admin privileges")),
    service: SystemAdminService = Depends(get_system_admin_service)
):
    """Grant system admin to a user"""
    service.grant_system_admin(request.user_id, user_data["id"])
    return None


@router.delete("/admins/{user_id}", status_code=204)
async def revoke_admin(
    user_id: str,
    user_data: Dict = Depends(require_system_admin("Only system admins can revoke admin privileges")),
    service: SystemAdminService = Depends(get_system_admin_service)
):
    """Revoke system admin (not from yourself)"""
    service.revoke_system_admin(user_id, user_data["id"])
    return None


@router.get("/groups/pending", response_model=List[PendingGroupResponse])
async def list_pending_groups(
    user_data: Dict = Depends(require_system_admin()),
    service: SystemAdminService = Depends(get_system_admin_service)
):
    return service.list_pending_groups()


@router.post("/groups/{group_id}/approve", status_code=204)
async def approve_group(
    group_id: str,
    user_data: Dict = Depends(require_system_admin("Only system admins can approve groups")),
    service: SystemAdminService = Depends(get_system_admin_service)
):
    service.approve_group(group_id, user_data["id"])
    return None


@router.post("/groups/{group_id}/reject", status_code=204)
async def reject_group(
    group_id: str,
    user_data: Dict = Depends(require_system_admin("Only system admins can reject groups")),
    service: SystemAdminService = Depends(get_system_admin_service)
):
    service.reject_group(group_id, user_data["id"])
    return None


@router.post("/groups", response_model=AdminGroupCreated, status_code=201)
async def create_group(
    data: AdminGroupCreate,
    user_data: Dict = Depends(require_system_admin("Only system admins can create groups administratively")),
    service: SystemAdminService = Depends(get_system_admin_service)
):
    """Create a group, optionally naming another user as its admin"""
    return service.create_group(data, user_data["id"])


@router.delete("/groups/{group_id}", status_code=204)
async def delete_group(
    group_id: str,
    user_data: Dict = Depends(require_system_admin("Only system admins can delete groups")),
    service: SystemAdminService = Depends(get_system_admin_service)
):
    if not service.delete_group(group_id):
        raise HTTPException(status_code=404, detail="Group not found")
    return None


@router.get("/statistics", response_model=SystemStatistics)
async def get_statistics(
    user_data: Dict = Depends(require_system_admin()),
    service: SystemAdminService = Depends(get_system_admin_service)
):
    return service.get_statistics()


@router.get("/statistics/groups-timeline", response_model=List[GroupsTimelinePoint])
async def groups_timeline(
    days: int = Query(30, ge=1, le=365),
    user_data: Dict = Depends(require_system_admin()),
    service: SystemAdminService = Depends(get_system_admin_service)
):
    return service.groups_timeline(days)


@router.get("/statistics/announcements-timeline", response_model=List[AnnouncementsTimelinePoint])
async def announcements_timeline(
    days: int = Query(30, ge=1, le=365),
    user_data: Dict = Depends(require_system_admin()),
    service: SystemAdminService = Depends(get_system_admin_service)
):
    return service.announcements_timeline(days)


@router.get("/statistics/top-groups", response_model=List[TopActiveGroup])
async def top_active_groups(
    user_data: Dict = Depends(require_system_admin()),
    service: SystemAdminService = Depends(get_system_admin_service)
):
    return service.top_active_groups()
