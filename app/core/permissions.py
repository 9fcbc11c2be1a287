"""
Group and system role checks.

Two flavours of check live here:

- boolean checks (get_group_role, has_group_permission, is_group_admin, ...) used to gate UI
  controls. They never raise: a missing row or a failed lookup means "no".
- enforcing checks (require_group_role, require_modify_announcement, require_system_admin)
  called right before a mutation.
  They raise a PermissionDenied subclass whose message is shown to the user as-is.

Nothing is cached. Every call reads the current membership state so promotions, demotions and
removals apply to the very next request. Row-level security in the database stays the real
enforcement point; these checks mirror it so requests fail fast with a readable message.
"""

import logging
from enum import Enum
from typing import Dict, Iterable, Optional

from pydantic import BaseModel
from supabase import Client

from app.config.roles_config import (
    ADMIN_ROLES, ANNOUNCEMENT_AUTHOR_ROLES, GROUP_ACTIONS, LEGACY_ROLE_ALIASES, SYSTEM_ADMIN_ROLE
)
from app.core.errors import InsufficientRole, LookupFailed, NotMember

logger = logging.getLogger(__name__)


class GroupRole(str, Enum):
    ADMIN = "admin"
    CONTRIBUTOR = "contributor"
    MEMBER = "member"


class AnnouncementOwner(BaseModel):
    author_id: str
    group_id: str


class AnnouncementPermissions(BaseModel):
    can_modify: bool = False
    is_author: bool = False
    is_admin: bool = False


def normalize_role(value: Optional[str]) -> Optional[GroupRole]:
    """Map a stored role string onto GroupRole. Legacy values are aliased; unknown values are no role."""
    if value is None:
        return None
    value = LEGACY_ROLE_ALIASES.get(value, value)
    try:
        return GroupRole(value)
    except ValueError:
        logger.warning(f"Ignoring unknown group role value: {value!r}")
        return None


def _role_names(roles: Iterable) -> frozenset:
    return frozenset(getattr(r, "value", r) for r in roles)


class PermissionRepository:
    """Single-row lookups behind the evaluator. Absence is None/False; transport errors raise LookupFailed."""

    def get_membership_role(self, group_id: str, user_id: str) -> Optional[str]:
        raise NotImplementedError

    def get_announcement_owner(self, announcement_id: str) -> Optional[AnnouncementOwner]:
        raise NotImplementedError

    def has_system_role(self, user_id: str, role: str = SYSTEM_ADMIN_ROLE) -> bool:
        raise NotImplementedError


class SupabasePermissionRepository(PermissionRepository):
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_membership_role(self, group_id: str, user_id: str) -> Optional[str]:
        try:
            result = self.supabase.table("group_members")\
                .select("role")\
                .eq("group_id", group_id)\
                .eq("user_id", user_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Error looking up role of user {user_id} in group {group_id}: {e}")
            raise LookupFailed() from e
        if not result.data:
            return None
        return result.data[0]["role"]

    def get_announcement_owner(self, announcement_id: str) -> Optional[AnnouncementOwner]:
        try:
            result = self.supabase.table("announcements")\
                .select("author_id, group_id")\
                .eq("id", announcement_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Error looking up announcement {announcement_id}: {e}")
            raise LookupFailed() from e
        if not result.data:
            return None
        return AnnouncementOwner(**result.data[0])

    def has_system_role(self, user_id: str, role: str = SYSTEM_ADMIN_ROLE) -> bool:
        try:
            result = self.supabase.table("system_roles")\
                .select("role")\
                .eq("user_id", user_id)\
                .eq("role", role)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Error looking up system role of user {user_id}: {e}")
            raise LookupFailed() from e
        return bool(result.data)


class PermissionEvaluator:
    def __init__(self, repository: PermissionRepository):
        self.repository = repository

    def get_group_role(self, group_id: str, user_id: str) -> Optional[GroupRole]:
        """Caller's role in the group, or None when not a member or the lookup failed"""
        try:
            return normalize_role(self.repository.get_membership_role(group_id, user_id))
        except Exception as e:
            logger.warning(f"Treating user {user_id} as non-member of group {group_id}: {e}")
            return None

    def has_group_permission(self, group_id: str, user_id: str, allowed_roles: Iterable) -> bool:
        role = self.get_group_role(group_id, user_id)
        return role is not None and role.value in _role_names(allowed_roles)

    def is_group_admin(self, group_id: str, user_id: str) -> bool:
        return self.has_group_permission(group_id, user_id, ADMIN_ROLES)

    def can_create_announcements(self, group_id: str, user_id: str) -> bool:
        return self.has_group_permission(group_id, user_id, ANNOUNCEMENT_AUTHOR_ROLES)

    def can_modify_announcement(self, announcement_id: str, user_id: str) -> AnnouncementPermissions:
        """Author or group admin may modify. Unknown announcements yield no permission at all."""
        try:
            owner = self.repository.get_announcement_owner(announcement_id)
        except Exception as e:
            logger.warning(f"Denying modification of announcement {announcement_id}: {e}")
            return AnnouncementPermissions()
        if owner is None:
            return AnnouncementPermissions()

        is_author = owner.author_id == user_id
        is_admin = self.is_group_admin(owner.group_id, user_id)
        return AnnouncementPermissions(
            can_modify=is_author or is_admin,
            is_author=is_author,
            is_admin=is_admin
        )

    def check_announcement_permissions(self, announcement_id: str, user_id: str) -> Dict[str, bool]:
        """Flags for showing edit/delete/pin/archive controls"""
        perms = self.can_modify_announcement(announcement_id, user_id)
        return {
            "can_edit": perms.can_modify,
            "can_delete": perms.can_modify,
            "can_pin": perms.is_admin,
            "can_archive": perms.is_admin,
            "is_author": perms.is_author,
            "is_admin": perms.is_admin,
        }

    def is_system_admin(self, user_id: str) -> bool:
        try:
            return self.repository.has_system_role(user_id, SYSTEM_ADMIN_ROLE)
        except Exception as e:
            logger.warning(f"Treating user {user_id} as non system admin: {e}")
            return False

    def can_access_group(self, group_id: str, user_id: str) -> bool:
        """System admins reach every group; everyone else needs a membership of any role"""
        if self.is_system_admin(user_id):
            return True
        return self.get_group_role(group_id, user_id) is not None

    def can_manage_group(self, group_id: str, user_id: str) -> bool:
        if self.is_system_admin(user_id):
            return True
        return self.is_group_admin(group_id, user_id)

    def group_capabilities(self, group_id: str, user_id: str) -> Dict:
        """Caller's role plus one flag per configured group action, from a single membership lookup"""
        role = self.get_group_role(group_id, user_id)
        actions = {
            name: role is not None and role.value in config["roles"]
            for name, config in GROUP_ACTIONS.items()
        }
        return {
            "group_id": group_id,
            "role": role.value if role else None,
            "is_member": role is not None,
            "actions": actions,
        }

    def require_group_role(
        self,
        group_id: str,
        user_id: str,
        allowed_roles: Iterable,
        failure_message: str = "Insufficient permissions"
    ) -> GroupRole:
        """Return the caller's role or raise NotMember / InsufficientRole / LookupFailed"""
        stored = self.repository.get_membership_role(group_id, user_id)
        if stored is None:
            raise NotMember()
        role = normalize_role(stored)
        if role is None or role.value not in _role_names(allowed_roles):
            raise InsufficientRole(failure_message)
        return role

    def require_modify_announcement(
        self,
        announcement_id: str,
        user_id: str,
        failure_message: str = "You do not have permission to edit this announcement"
    ) -> AnnouncementPermissions:
        """Enforcing form of can_modify_announcement: raise InsufficientRole / LookupFailed instead of denying"""
        owner = self.repository.get_announcement_owner(announcement_id)
        if owner is None:
            raise InsufficientRole(failure_message)

        is_author = owner.author_id == user_id
        role = normalize_role(self.repository.get_membership_role(owner.group_id, user_id))
        is_admin = role == GroupRole.ADMIN
        if not (is_author or is_admin):
            raise InsufficientRole(failure_message)
        return AnnouncementPermissions(can_modify=True, is_author=is_author, is_admin=is_admin)

    def require_system_admin(
        self,
        user_id: str,
        failure_message: str = "System admin privileges required"
    ) -> None:
        if not self.repository.has_system_role(user_id, SYSTEM_ADMIN_ROLE):
            raise InsufficientRole(failure_message)
