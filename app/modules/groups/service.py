import logging
from supabase import Client
from app.config import settings
from app.modules.groups.schemas import (
    GroupCreate, GroupUpdate, GroupResponse, GroupWithStatsResponse, GroupMemberResponse
)
from typing import List, Optional
from fastapi import HTTPException

logger = logging.getLogger(__name__)


class GroupService:
    def __init__(self, supabase: Client, lookup_client: Optional[Client] = None):
        self.supabase = supabase
        # Joining by code must see groups the caller is not a member of yet, which RLS hides
        self.lookup_client = lookup_client or supabase

    def list_my_groups(self, user_id: str) -> List[GroupWithStatsResponse]:
        """Groups the user is a member of, newest first, with member/admin counts"""
        try:
            members_result = self.supabase.table("group_members")\
                .select("group_id")\
                .eq("user_id", user_id)\
                .execute()
            group_ids = [m["group_id"] for m in members_result.data or []]
            if not group_ids:
                return []

            result = self.supabase.table("groups_with_stats")\
                .select("*")\
                .in_("id", group_ids)\
                .order("created_at", desc=True)\
                .execute()
            return [GroupWithStatsResponse(**group) for group in result.data]
        except Exception as e:
            logger.error(f"Failed to get groups for user {user_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to fetch groups")

    def get_group(self, group_id: str) -> GroupResponse:
        """Get group by ID"""
        try:
            result = self.supabase.table("groups")\
                .select("*")\
                .eq("id", group_id)\
                .limit(1)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Group not found")

            return GroupResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to get group {group_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to fetch group")

    def generate_code(self) -> str:
        result = self.supabase.rpc(
            "generate_group_code", {"length": settings.group_code_length}
        ).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to generate group code")
        return result.data

    def create_group(self, group_data: GroupCreate, user_id: str) -> GroupResponse:
        """Create a new group with a fresh join code; the creator becomes its admin"""
        try:
            code = self.generate_code()
            result = self.supabase.table("groups").insert({
                "creator_id": user_id,
                "name": group_data.name,
                "code": code,
                "description": group_data.description or None
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create group")
            group = result.data[0]

            # The add_creator_as_admin trigger normally inserts this row
            existing = self.supabase.table("group_members")\
                .select("id")\
                .eq("group_id", group["id"])\
                .eq("user_id", user_id)\
                .execute()
            if not existing.data:
                self.supabase.table("group_members").insert({
                    "group_id": group["id"],
                    "user_id": user_id,
                    "role": "admin"
                }).execute()

            logger.info(f"Group {group['id']} created by {user_id}")
            return GroupResponse(**group)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to create group: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to create group")

    def update_group(self, group_id: str, group_data: GroupUpdate) -> GroupResponse:
        """Update group name/description"""
        try:
            update_data = group_data.model_dump(exclude_unset=True)
            if not update_data:
                return self.get_group(group_id)

            result = self.supabase.table("groups")\
                .update(update_data)\
                .eq("id", group_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Group not found")

            return GroupResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to update group {group_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to update group")

    def delete_group(self, group_id: str) -> bool:
        """Delete group; memberships, announcements, tags and votes cascade"""
        try:
            result = self.supabase.table("groups")\
                .delete()\
                .eq("id", group_id)\
                .execute()
            return len(result.data) > 0
        except Exception as e:
            logger.error(f"Failed to delete group {group_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to delete group")

    def join_group(self, code: str, user_id: str) -> GroupResponse:
        """Join a group as a plain member using its code (case-insensitive)"""
        try:
            group_result = self.lookup_client.table("groups")\
                .select("*")\
                .ilike("code", code.strip())\
                .limit(1)\
                .execute()

            # Unapproved groups stay invisible to everyone but their creator
            if not group_result.data or group_result.data[0].get("approved") is False:
                raise HTTPException(status_code=404, detail="Invalid group code")
            group = group_result.data[0]

            existing = self.lookup_client.table("group_members")\
                .select("id")\
                .eq("group_id", group["id"])\
                .eq("user_id", user_id)\
                .execute()
            if existing.data:
                raise HTTPException(status_code=400, detail="You are already a member of this group")

            self.supabase.table("group_members").insert({
                "group_id": group["id"],
                "user_id": user_id,
                "role": "member"
            }).execute()

            logger.info(f"User {user_id} joined group {group['id']}")
            return GroupResponse(**group)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to join group: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to join group")

    def leave_group(self, group_id: str, user_id: str) -> bool:
        """Leave a group. The last admin has to promote someone first."""
        try:
            admins = self.supabase.table("group_members")\
                .select("user_id")\
                .eq("group_id", group_id)\
                .eq("role", "admin")\
                .execute()
            admin_ids = [a["user_id"] for a in admins.data or []]
            if admin_ids == [user_id]:
                raise HTTPException(
                    status_code=400,
                    detail="You are the only admin. Please promote another member before leaving."
                )

            result = self.supabase.table("group_members")\
                .delete()\
                .eq("group_id", group_id)\
                .eq("user_id", user_id)\
                .execute()
            return len(result.data) > 0
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to leave group {group_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to leave group")

    def list_members(self, group_id: str) -> List[GroupMemberResponse]:
        """List all members of a group, oldest first"""
        try:
            result = self.supabase.table("group_members")\
                .select("*")\
                .eq("group_id", group_id)\
                .order("joined_at")\
                .execute()
            return [GroupMemberResponse(**member) for member in result.data]
        except Exception as e:
            logger.error(f"Failed to get members of group {group_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to fetch members")

    def update_member_role(self, group_id: str, user_id: str, role: str) -> GroupMemberResponse:
        try:
            result = self.supabase.table("group_members")\
                .update({"role": role})\
                .eq("group_id", group_id)\
                .eq("user_id", user_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Member not found")

            logger.info(f"User {user_id} in group {group_id} is now {role}")
            return GroupMemberResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to update member role: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to update member role")

    def remove_member(self, group_id: str, user_id: str) -> bool:
        """Remove a member from the group"""
        try:
            result = self.supabase.table("group_members")\
                .delete()\
                .eq("group_id", group_id)\
                .eq("user_id", user_id)\
                .execute()
            return len(result.data) > 0
        except Exception as e:
            logger.error(f"Failed to remove member {user_id} from group {group_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to remove member")
