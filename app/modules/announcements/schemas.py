"""
Supabase tables: announcements, votes, categories (view: announcements_with_details)

announcements:
- id: uuid (primary key)
- group_id: uuid (foreign key to groups.id, cascade)
- author_id: uuid (foreign key to auth.users.id, cascade)
- category_id: uuid (foreign key to categories.id, set null)
- title: text (3-200 chars), content: text (markdown, 1-50000 chars)
- deadline: timestamptz (nullable, UTC)
- image_url: text (nullable, public URL in the announcement-images bucket)
- is_pinned, is_archived: boolean
- upvotes_count, downvotes_count: integer (maintained by vote triggers)
- created_at, updated_at: timestamptz

votes:
- announcement_id, user_id, vote_type ('upvote' | 'downvote'), unique (announcement_id, user_id)
"""
from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from datetime import datetime

VoteType = Literal["upvote", "downvote"]


class AnnouncementCreate(BaseModel):
    group_id: str
    title: str = Field(min_length=3, max_length=200)
    content: str = Field(min_length=1, max_length=50000)
    category_id: Optional[str] = None
    tag_ids: List[str] = []
    deadline: Optional[datetime] = None
    image_url: Optional[str] = None


class AnnouncementUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=3, max_length=200)
    content: Optional[str] = Field(default=None, min_length=1, max_length=50000)
    category_id: Optional[str] = None
    tag_ids: Optional[List[str]] = None
    deadline: Optional[datetime] = None
    is_pinned: Optional[bool] = None
    is_archived: Optional[bool] = None


class AnnouncementResponse(BaseModel):
    id: str
    group_id: str
    author_id: str
    category_id: Optional[str] = None
    title: str
    content: str
    deadline: Optional[datetime] = None
    image_url: Optional[str] = None
    is_pinned: bool = False
    is_archived: bool = False
    upvotes_count: int = 0
    downvotes_count: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AnnouncementWithDetails(AnnouncementResponse):
    user_vote: Optional[VoteType] = None

    class Config:
        from_attributes = True
        # the view adds author/category/tag columns; pass them through untouched
        extra = "allow"


class AnnouncementPage(BaseModel):
    data: List[AnnouncementWithDetails]
    total: int
    page: int
    page_size: int
    total_pages: int


class VoteRequest(BaseModel):
    vote_type: VoteType


class VoteResponse(BaseModel):
    announcement_id: str
    user_vote: Optional[VoteType] = None


class AnnouncementPermissionsResponse(BaseModel):
    can_edit: bool
    can_delete: bool
    can_pin: bool
    can_archive: bool
    is_author: bool
    is_admin: bool


class PinResponse(BaseModel):
    announcement_id: str
    is_pinned: bool


class ImageUploadResponse(BaseModel):
    path: str
    url: str


class CategoryResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
