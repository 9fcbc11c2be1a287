"""
System administration payloads.

system_roles: user_id, role ('system_admin'), granted_at, granted_by
Statistics come from read-only views maintained in the database.
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class GrantSystemAdminRequest(BaseModel):
    user_id: str


class SystemAdminResponse(BaseModel):
    user_id: str
    granted_at: Optional[datetime] = None
    granted_by: Optional[str] = None


class PendingGroupResponse(BaseModel):
    id: str
    name: str
    code: str
    description: Optional[str] = None
    created_at: datetime
    creator_email: Optional[str] = None
    admin_count: int = 0


class AdminGroupCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    admin_user_id: Optional[str] = None


class AdminGroupCreated(BaseModel):
    id: str
    code: str


class SystemStatistics(BaseModel):
    total_groups: int = 0
    total_announcements: int = 0
    total_memberships: int = 0
    total_active_users: int = 0
    total_votes: int = 0
    total_attachments: int = 0


class GroupsTimelinePoint(BaseModel):
    date: str
    groups_created: int


class AnnouncementsTimelinePoint(BaseModel):
    date: str
    announcements_created: int


class TopActiveGroup(BaseModel):
    id: str
    name: str
    code: str
    announcement_count: int = 0
    member_count: int = 0
    vote_count: int = 0


class SystemAdminStatus(BaseModel):
    is_system_admin: bool
