import logging
from supabase import Client
from app.modules.tags.schemas import TagCreate, TagUpdate, TagResponse, TagSummary
from typing import List
from fastapi import HTTPException

logger = logging.getLogger(__name__)


class TagService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_group_tags(self, group_id: str) -> List[TagSummary]:
        """Tags of a group with how many announcements use each"""
        try:
            result = self.supabase.rpc("get_group_tags", {"group_id_param": group_id}).execute()
            return [TagSummary(**tag) for tag in result.data or []]
        except Exception as e:
            logger.error(f"Failed to get tags for group {group_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to fetch tags")

    def get_tag_group_id(self, tag_id: str) -> str:
        result = self.supabase.table("tags")\
            .select("group_id")\
            .eq("id", tag_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Tag not found")
        return result.data[0]["group_id"]

    def create_tag(self, tag_data: TagCreate, user_id: str) -> TagResponse:
        try:
            result = self.supabase.table("tags").insert({
                "group_id": tag_data.group_id,
                "title": tag_data.title.strip(),
                "color": tag_data.color,
                "created_by": user_id
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create tag")

            return TagResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to create tag: {e}")
            if "duplicate" in str(e).lower() or "23505" in str(e):
                raise HTTPException(status_code=400, detail="A tag with this title already exists")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to create tag")

    def update_tag(self, tag_id: str, tag_data: TagUpdate) -> TagResponse:
        try:
            update_data = {}
            if tag_data.title is not None:
                update_data["title"] = tag_data.title.strip()
            if tag_data.color is not None:
                update_data["color"] = tag_data.color
            if not update_data:
                raise HTTPException(status_code=400, detail="Nothing to update")

            result = self.supabase.table("tags")\
                .update(update_data)\
                .eq("id", tag_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Tag not found")

            return TagResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to update tag {tag_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to update tag")

    def delete_tag(self, tag_id: str) -> bool:
        try:
            result = self.supabase.table("tags")\
                .delete()\
                .eq("id", tag_id)\
                .execute()
            return len(result.data) > 0
        except Exception as e:
            logger.error(f"Failed to delete tag {tag_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to delete tag")

    def add_tags_to_announcement(self, announcement_id: str, tag_ids: List[str]) -> None:
        try:
            self.supabase.table("announcement_tags").insert([
                {"announcement_id": announcement_id, "tag_id": tag_id} for tag_id in tag_ids
            ]).execute()
        except Exception as e:
            logger.error(f"Failed to add tags to announcement {announcement_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to add tags")

    def remove_tags_from_announcement(self, announcement_id: str, tag_ids: List[str]) -> None:
        try:
            self.supabase.table("announcement_tags")\
                .delete()\
                .eq("announcement_id", announcement_id)\
                .in_("tag_id", tag_ids)\
                .execute()
        except Exception as e:
            logger.error(f"Failed to remove tags from announcement {announcement_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to remove tags")

    def list_announcement_tags(self, announcement_id: str) -> List[TagSummary]:
        try:
            result = self.supabase.rpc(
                "get_announcement_tags", {"announcement_id_param": announcement_id}
            ).execute()
            return [TagSummary(**tag) for tag in result.data or []]
        except Exception as e:
            logger.error(f"Failed to get tags of announcement {announcement_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to fetch announcement tags")
