from fastapi import APIRouter, Depends, HTTPException
from app.database.supabase_client import SupabaseClient
from app.modules.groups.schemas import (
    GroupCreate, GroupUpdate, GroupResponse, GroupWithStatsResponse, JoinGroupRequest,
    GroupMemberResponse, MemberRoleUpdate, GroupCapabilitiesResponse
)
from app.modules.groups.service import GroupService
from app.config.roles_config import ADMIN_ROLES, get_role_matrix
from app.core.dependencies import (
    get_current_user, get_permission_evaluator, get_user_supabase,
    require_group_access, require_group_manager
)
from app.core.permissions import PermissionEvaluator
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/groups", tags=["groups"])


def get_group_service(supabase: Client = Depends(get_user_supabase)) -> GroupService:
    return GroupService(supabase, lookup_client=SupabaseClient.get_service_client())


@router.get("", response_model=List[GroupWithStatsResponse])
async def list_my_groups(
    user_data: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service)
):
    """List groups the caller is a member of"""
    return service.list_my_groups(user_data["id"])


@router.post("", response_model=GroupResponse, status_code=201)
async def create_group(
    group_data: GroupCreate,
    user_data: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service)
):
    """Create a new group; the caller becomes its admin"""
    return service.create_group(group_data, user_data["id"])


@router.post("/join", response_model=GroupResponse)
async def join_group(
    join_data: JoinGroupRequest,
    user_data: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service)
):
    """Join a group with its invite code"""
    return service.join_group(join_data.code, user_data["id"])


@router.get("/roles")
async def get_roles(user_data: Dict = Depends(get_current_user)):
    """Group roles and the actions each may perform"""
    return get_role_matrix()


@router.get("/{group_id}", response_model=GroupResponse)
async def get_group(
    group_id: str,
    user_data: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
):
    """Get group by ID (members and system admins only)"""
    require_group_access(group_id, user_data, evaluator)
    return service.get_group(group_id)


@router.get("/{group_id}/role", response_model=GroupCapabilitiesResponse)
async def get_my_role(
    group_id: str,
    user_data: Dict = Depends(get_current_user),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
):
    """Caller's role in the group and which group actions it allows (for UI gating)"""
    return evaluator.group_capabilities(group_id, user_data["id"])


@router.put("/{group_id}", response_model=GroupResponse)
async def update_group(
    group_id: str,
    group_data: GroupUpdate,
    user_data: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
):
    """Update group (group admin or system admin)"""
    require_group_manager(group_id, user_data, evaluator, "Only group admins can update the group")
    return service.update_group(group_id, group_data)


@router.delete("/{group_id}", status_code=204)
async def delete_group(
    group_id: str,
    user_data: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
):
    """Delete group (group admin or system admin)"""
    require_group_manager(group_id, user_data, evaluator, "Only group admins can delete the group")
    if not service.delete_group(group_id):
        raise HTTPException(status_code=404, detail="Group not found")
    return None


@router.post("/{group_id}/leave", status_code=204)
async def leave_group(
    group_id: str,
    user_data: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
):
    """Leave a group"""
    if evaluator.get_group_role(group_id, user_data["id"]) is None:
        raise HTTPException(status_code=400, detail="You are not a member of this group")
    service.leave_group(group_id, user_data["id"])
    return None


@router.get("/{group_id}/members", response_model=List[GroupMemberResponse])
async def list_members(
    group_id: str,
    user_data: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
):
    """List all members of a group (members and system admins only)"""
    require_group_access(group_id, user_data, evaluator)
    return service.list_members(group_id)


@router.put("/{group_id}/members/{user_id}", response_model=GroupMemberResponse)
async def update_member_role(
    group_id: str,
    user_id: str,
    role_data: MemberRoleUpdate,
    user_data: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
):
    """Change a member's role (group admin only)"""
    evaluator.require_group_role(
        group_id, user_data["id"], ADMIN_ROLES, "Only group admins can change member roles"
    )
    return service.update_member_role(group_id, user_id, role_data.role)


@router.delete("/{group_id}/members/{user_id}", status_code=204)
async def remove_member(
    group_id: str,
    user_id: str,
    user_data: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service),
    evaluator: PermissionEvaluator = Depends(get_permission_evaluator)
):
    """Remove a member from the group (group admin only)"""
    evaluator.require_group_role(
        group_id, user_data["id"], ADMIN_ROLES, "Only group admins can remove members"
    )
    if not service.remove_member(group_id, user_id):
        raise HTTPException(status_code=404, detail="Member not found")
    return None
