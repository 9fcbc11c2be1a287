"""
Supabase tables: groups, group_members (view: groups_with_stats)

groups:
- id: uuid (primary key)
- creator_id: uuid (foreign key to auth.users.id, not null)
- name: text (3-100 chars)
- code: text (6-12 uppercase alphanumeric, unique case-insensitively)
- description: text (nullable)
- approved: boolean, approved_at, approved_by, rejected_at, rejected_by
- created_at, updated_at: timestamptz

group_members:
- id: uuid (primary key)
- group_id: uuid (foreign key to groups.id, cascade)
- user_id: uuid (foreign key to auth.users.id, cascade)
- role: text - values: admin, contributor, member
- joined_at: timestamptz
- unique constraint on (group_id, user_id)
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, Literal
from datetime import datetime


class GroupCreate(BaseModel):
    name: str = Field(min_length=3, max_length=100)
    description: Optional[str] = None


class GroupUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=3, max_length=100)
    description: Optional[str] = None


class JoinGroupRequest(BaseModel):
    code: str = Field(min_length=1)


class GroupResponse(BaseModel):
    id: str
    creator_id: str
    name: str
    code: str
    description: Optional[str] = None
    approved: Optional[bool] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GroupWithStatsResponse(GroupResponse):
    member_count: int = 0
    admin_count: int = 0


class GroupMemberResponse(BaseModel):
    id: str
    group_id: str
    user_id: str
    role: str
    joined_at: datetime

    class Config:
        from_attributes = True


class MemberRoleUpdate(BaseModel):
    role: Literal["admin", "contributor", "member"]


class GroupCapabilitiesResponse(BaseModel):
    group_id: str
    role: Optional[str] = None
    is_member: bool
    actions: Dict[str, bool]
