from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

HEX_COLOR = r"^#[0-9a-fA-F]{6}$"


class TagCreate(BaseModel):
    group_id: str
    title: str = Field(min_length=1, max_length=50)
    color: str = Field(default="#3b82f6", pattern=HEX_COLOR)


class TagUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=50)
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR)


class TagResponse(BaseModel):
    id: str
    group_id: str
    title: str
    color: str
    created_by: str
    created_at: datetime

    class Config:
        from_attributes = True


class TagSummary(BaseModel):
    id: str
    title: str
    color: str
    usage_count: Optional[int] = None


class AnnouncementTagsRequest(BaseModel):
    tag_ids: List[str] = Field(min_length=1)
