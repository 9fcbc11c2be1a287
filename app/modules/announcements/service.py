import logging
import math
from datetime import datetime, timezone
from supabase import Client
from app.modules.announcements.schemas import (
    AnnouncementCreate, AnnouncementUpdate, AnnouncementResponse, AnnouncementWithDetails,
    AnnouncementPage, CategoryResponse
)
from typing import Dict, List, Optional, Tuple
from fastapi import HTTPException

logger = logging.getLogger(__name__)

SORT_FIELDS = ("created_at", "deadline")


def page_range(page: int, page_size: int) -> Tuple[int, int]:
    """Inclusive row range for a 1-based page, as PostgREST's range() expects"""
    start = (page - 1) * page_size
    return start, start + page_size - 1


def total_pages(total: int, page_size: int) -> int:
    return math.ceil(total / page_size) if page_size else 0


def merge_user_votes(rows: List[dict], votes: List[dict]) -> List[AnnouncementWithDetails]:
    """Attach the caller's vote (or None) to each announcement row"""
    vote_map = {v["announcement_id"]: v["vote_type"] for v in votes}
    return [
        AnnouncementWithDetails(**{**row, "user_vote": vote_map.get(row["id"])})
        for row in rows
    ]


class AnnouncementService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _set_tags(self, announcement_id: str, tag_ids: List[str]) -> None:
        if not tag_ids:
            return
        self.supabase.table("announcement_tags").insert([
            {"announcement_id": announcement_id, "tag_id": tag_id} for tag_id in tag_ids
        ]).execute()

    def _user_votes(self, user_id: str, announcement_ids: List[str]) -> List[dict]:
        if not announcement_ids:
            return []
        result = self.supabase.table("votes")\
            .select("announcement_id, vote_type")\
            .eq("user_id", user_id)\
            .in_("announcement_id", announcement_ids)\
            .execute()
        return result.data or []

    def create_announcement(self, data: AnnouncementCreate, user_id: str) -> AnnouncementResponse:
        try:
            result = self.supabase.table("announcements").insert({
                "group_id": data.group_id,
                "author_id": user_id,
                "title": data.title,
                "content": data.content,
                "category_id": data.category_id or None,
                "deadline": data.deadline.isoformat() if data.deadline else None,
                "image_url": data.image_url or None
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create announcement")
            announcement = result.data[0]

            try:
                self._set_tags(announcement["id"], data.tag_ids)
            except Exception as e:
                # the announcement itself is already stored; a bad tag must not undo it
                logger.error(f"Failed to add tags to announcement {announcement['id']}: {e}")

            logger.info(f"Announcement {announcement['id']} created in group {data.group_id}")
            return AnnouncementResponse(**announcement)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to create announcement: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to create announcement")

    def update_announcement(
        self,
        announcement_id: str,
        data: AnnouncementUpdate,
        is_admin: bool
    ) -> AnnouncementResponse:
        """Apply the fields that were sent. Pin/archive flags are ignored unless the caller is a group admin."""
        try:
            sent = data.model_fields_set
            updates = {}
            for field in ("title", "content", "category_id"):
                if field in sent and getattr(data, field) is not None:
                    updates[field] = getattr(data, field)
            if "category_id" in sent and not data.category_id:
                updates["category_id"] = None
            if "deadline" in sent:
                updates["deadline"] = data.deadline.isoformat() if data.deadline else None
            if is_admin:
                if data.is_pinned is not None:
                    updates["is_pinned"] = data.is_pinned
                if data.is_archived is not None:
                    updates["is_archived"] = data.is_archived
            updates["updated_at"] = datetime.now(timezone.utc).isoformat()

            result = self.supabase.table("announcements")\
                .update(updates)\
                .eq("id", announcement_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Announcement not found")

            if data.tag_ids is not None:
                self.supabase.table("announcement_tags")\
                    .delete()\
                    .eq("announcement_id", announcement_id)\
                    .execute()
                self._set_tags(announcement_id, data.tag_ids)

            return AnnouncementResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to update announcement {announcement_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to update announcement")

    def delete_announcement(self, announcement_id: str) -> bool:
        """Delete announcement; tags, votes and attachments cascade"""
        try:
            result = self.supabase.table("announcements")\
                .delete()\
                .eq("id", announcement_id)\
                .execute()
            return len(result.data) > 0
        except Exception as e:
            logger.error(f"Failed to delete announcement {announcement_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to delete announcement")

    def list_announcements(
        self,
        group_id: str,
        user_id: str,
        show_archived: bool = False,
        category_id: Optional[str] = None,
        tag_id: Optional[str] = None,
        page: int = 1,
        page_size: int = 10,
        sort_by: str = "created_at",
        sort_order: str = "desc"
    ) -> AnnouncementPage:
        """One page of a group's announcements, pinned first, with the caller's votes merged in"""
        try:
            if sort_by not in SORT_FIELDS:
                sort_by = "created_at"

            query = self.supabase.table("announcements_with_details")\
                .select("*", count="exact")\
                .eq("group_id", group_id)
            if not show_archived:
                query = query.eq("is_archived", False)
            if category_id:
                query = query.eq("category_id", category_id)
            if tag_id:
                tagged = self.supabase.table("announcement_tags")\
                    .select("announcement_id")\
                    .eq("tag_id", tag_id)\
                    .execute()
                ids = [t["announcement_id"] for t in tagged.data or []]
                if not ids:
                    return AnnouncementPage(data=[], total=0, page=page, page_size=page_size, total_pages=0)
                query = query.in_("id", ids)

            start, end = page_range(page, page_size)
            result = query.order("is_pinned", desc=True)\
                .order(sort_by, desc=sort_order != "asc")\
                .range(start, end)\
                .execute()

            rows = result.data or []
            votes = self._user_votes(user_id, [row["id"] for row in rows])
            total = result.count or 0
            return AnnouncementPage(
                data=merge_user_votes(rows, votes),
                total=total,
                page=page,
                page_size=page_size,
                total_pages=total_pages(total, page_size)
            )
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to get announcements for group {group_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to fetch announcements")

    def list_pinned(self, group_id: str, user_id: str) -> List[AnnouncementWithDetails]:
        """All pinned, non-archived announcements of a group (not paginated)"""
        try:
            result = self.supabase.table("announcements_with_details")\
                .select("*")\
                .eq("group_id", group_id)\
                .eq("is_pinned", True)\
                .eq("is_archived", False)\
                .order("created_at", desc=True)\
                .execute()
            rows = result.data or []
            return merge_user_votes(rows, self._user_votes(user_id, [row["id"] for row in rows]))
        except Exception as e:
            logger.error(f"Failed to get pinned announcements for group {group_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to fetch pinned announcements")

    def get_announcement(self, announcement_id: str, user_id: str) -> AnnouncementWithDetails:
        """Single announcement; RLS hides it from non-members"""
        try:
            result = self.supabase.table("announcements_with_details")\
                .select("*")\
                .eq("id", announcement_id)\
                .limit(1)\
                .execute()
            if not result.data:
                raise HTTPException(
                    status_code=404,
                    detail="Announcement not found or you do not have access"
                )
            return merge_user_votes(result.data, self._user_votes(user_id, [announcement_id]))[0]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Failed to get announcement {announcement_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to fetch announcement")

    def get_pin_state(self, announcement_id: str) -> Dict:
        result = self.supabase.table("announcements")\
            .select("group_id, is_pinned")\
            .eq("id", announcement_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Announcement not found")
        return result.data[0]

    def set_pinned(self, announcement_id: str, is_pinned: bool) -> bool:
        try:
            self.supabase.table("announcements")\
                .update({
                    "is_pinned": is_pinned,
                    "updated_at": datetime.now(timezone.utc).isoformat()
                })\
                .eq("id", announcement_id)\
                .execute()
            return is_pinned
        except Exception as e:
            logger.error(f"Failed to toggle pin on {announcement_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to toggle pin")

    def vote(self, announcement_id: str, user_id: str, vote_type: str) -> Optional[str]:
        """
        Upvote or downvote. Repeating the same vote removes it, the other vote type replaces it.
        Returns the caller's vote after the change. Vote counters are kept by database triggers.
        """
        try:
            existing = self.supabase.table("votes")\
                .select("id, vote_type")\
                .eq("announcement_id", announcement_id)\
                .eq("user_id", user_id)\
                .limit(1)\
                .execute()

            if existing.data:
                vote = existing.data[0]
                if vote["vote_type"] == vote_type:
                    self.supabase.table("votes").delete().eq("id", vote["id"]).execute()
                    return None
                self.supabase.table("votes")\
                    .update({
                        "vote_type": vote_type,
                        "updated_at": datetime.now(timezone.utc).isoformat()
                    })\
                    .eq("id", vote["id"])\
                    .execute()
                return vote_type

            self.supabase.table("votes").insert({
                "announcement_id": announcement_id,
                "user_id": user_id,
                "vote_type": vote_type
            }).execute()
            return vote_type
        except Exception as e:
            logger.error(f"Failed to vote on {announcement_id}: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to vote")

    def list_categories(self) -> List[CategoryResponse]:
        try:
            result = self.supabase.table("categories")\
                .select("*")\
                .order("name")\
                .execute()
            return [CategoryResponse(**c) for c in result.data]
        except Exception as e:
            logger.error(f"Failed to get categories: {e}")
            raise HTTPException(status_code=500, detail=str(e) or "Failed to fetch categories")
