import logging
from datetime import datetime, timezone
from supabase import Client
from app.config.roles_config import SYSTEM_ADMIN_ROLE
from app.modules.system_admin.schemas import (
    SystemAdminResponse, PendingGroupResponse, AdminGroupCreate, AdminGroupCreated,
    SystemStatistics, GroupsTimelinePoint, AnnouncementsTimelinePoint, TopActiveGroup
)
from typing import List
from fastapi import HTTPException

logger = logging.getLogger(__name__)


class SystemAdminService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def grant_system_admin(self, user_id: str, granted_by: str) -> None:
        try:
            self.supabase.table("system_roles").insert({
                "user_id": user_id,
                "role": SYSTEM_ADMIN_ROLE,
                "granted_by": granted_by
            }).execute()
            logger.info(f"System admin granted to {user_id} by {granted_by}")
        except Exception as e:
            if "23505" in str(e) or "duplicate" in str(e).lower():
                raise HTTPException(status_code=400, detail="User is already a system admin")
            logger.error(f"Failed to grant system admin: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to grant admin privileges")

    def revoke_system_admin(self, user_id: str, revoked_by: str) -> None:
        if user_id == revoked_by:
            raise HTTPException(status_code=400, detail="You cannot revoke your own admin privileges")
        try:
            self.supabase.table("system_roles")\
                .delete()\
                .eq("user_id", user_id)\
                .execute()
            logger.info(f"System admin revoked from {user_id} by {revoked_by}")
        except Exception as e:
            logger.error(f"Failed to revoke system admin: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to revoke admin privileges")

    def list_system_admins(self) -> List[SystemAdminResponse]:
        try:
            result = self.supabase.table("system_roles")\
                .select("user_id, granted_at, granted_by")\
                .order("granted_at", desc=True)\
                .execute()
            return [SystemAdminResponse(**row) for row in result.data or []]
        except Exception as e:
            logger.error(f"Failed to get system admins: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to fetch system admins")

    def list_pending_groups(self) -> List[PendingGroupResponse]:
        try:
            result = self.supabase.rpc("get_pending_groups").execute()
            return [PendingGroupResponse(**row) for row in result.data or []]
        except Exception as e:
            logger.error(f"Failed to get pending groups: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to fetch pending groups")

    def approve_group(self, group_id: str, admin_id: str) -> None:
        self._update_group(group_id, {
            "approved": True,
            "approved_at": datetime.now(timezone.utc).isoformat(),
            "approved_by": admin_id
        }, "approve")

    def reject_group(self, group_id: str, admin_id: str) -> None:
        """Mark the group rejected; the row is kept"""
        self._update_group(group_id, {
            "rejected_at": datetime.now(timezone.utc).isoformat(),
            "rejected_by": admin_id
        }, "reject")

    def _update_group(self, group_id: str, changes: dict, verb: str) -> None:
        try:
            result = self.supabase.table("groups")\
                .update(changes)\
                .eq("id", group_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Group not found")
            logger.info(f"Group {group_id}: {verb} done")
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to {verb} group {group_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e) or f"Failed to {verb} group")

    def create_group(self, data: AdminGroupCreate, admin_id: str) -> AdminGroupCreated:
        """
        Create a group administratively. The creator is made admin by a trigger;
        when another admin is named, that membership is handed over.
        """
        try:
            result = self.supabase.table("groups").insert({
                "name": data.name,
                "description": data.description,
                "creator_id": admin_id
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create group")
            group = result.data[0]

            if data.admin_user_id and data.admin_user_id != admin_id:
                self.supabase.table("group_members")\
                    .delete()\
                    .eq("group_id", group["id"])\
                    .eq("user_id", admin_id)\
                    .execute()
                self.supabase.table("group_members").insert({
                    "group_id": group["id"],
                    "user_id": data.admin_user_id,
                    "role": "admin"
                }).execute()

            return AdminGroupCreated(id=group["id"], code=group["code"])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to create group: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to create group")

    def delete_group(self, group_id: str) -> bool:
        try:
            result = self.supabase.table("groups")\
                .delete()\
                .eq("id", group_id)\
                .execute()
            return len(result.data) > 0
        except Exception as e:
            logger.error(f"Failed to delete group {group_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to delete group")

    def get_statistics(self) -> SystemStatistics:
        try:
            result = self.supabase.table("system_statistics")\
                .select("*")\
                .limit(1)\
                .execute()
            return SystemStatistics(**(result.data[0] if result.data else {}))
        except Exception as e:
            logger.error(f"Failed to get system statistics: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to fetch statistics")

    def groups_timeline(self, days: int = 30) -> List[GroupsTimelinePoint]:
        try:
            result = self.supabase.table("groups_created_timeline")\
                .select("*")\
                .limit(days)\
                .execute()
            return [GroupsTimelinePoint(**row) for row in result.data or []]
        except Exception as e:
            logger.error(f"Failed to get groups timeline: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to fetch timeline")

    def announcements_timeline(self, days: int = 30) -> List[AnnouncementsTimelinePoint]:
        try:
            result = self.supabase.table("announcements_created_timeline")\
                .select("*")\
                .limit(days)\
                .execute()
            return [AnnouncementsTimelinePoint(**row) for row in result.data or []]
        except Exception as e:
            logger.error(f"Failed to get announcements timeline: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to fetch timeline")

    def top_active_groups(self) -> List[TopActiveGroup]:
        try:
            result = self.supabase.table("top_active_groups").select("*").execute()
            return [TopActiveGroup(**row) for row in result.data or []]
        except Exception as e:
            logger.error(f"Failed to get top active groups: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to fetch top groups")
