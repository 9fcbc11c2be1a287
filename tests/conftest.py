"""
Pytest fixtures shared by the test suite
"""

import pytest
from typing import Dict, Optional, Tuple

from app.core.action_state import ActionStateStore
from app.core.errors import LookupFailed
from app.core.permissions import AnnouncementOwner, PermissionEvaluator, PermissionRepository


class FakePermissionRepository(PermissionRepository):
    """In-memory membership, ownership and system role rows"""

    def __init__(self):
        self.memberships: Dict[Tuple[str, str], str] = {}
        self.announcements: Dict[str, AnnouncementOwner] = {}
        self.system_admins = set()
        self.calls = 0

    def add_member(self, group_id: str, user_id: str, role: str) -> "FakePermissionRepository":
        self.memberships[(group_id, user_id)] = role
        return self

    def add_announcement(self, announcement_id: str, author_id: str, group_id: str) -> "FakePermissionRepository":
        self.announcements[announcement_id] = AnnouncementOwner(author_id=author_id, group_id=group_id)
        return self

    def get_membership_role(self, group_id: str, user_id: str) -> Optional[str]:
        self.calls += 1
        return self.memberships.get((group_id, user_id))

    def get_announcement_owner(self, announcement_id: str) -> Optional[AnnouncementOwner]:
        self.calls += 1
        return self.announcements.get(announcement_id)

    def has_system_role(self, user_id: str, role: str = "system_admin") -> bool:
        self.calls += 1
        return user_id in self.system_admins


class FailingPermissionRepository(PermissionRepository):
    """Every lookup fails as if the database were unreachable"""

    def get_membership_role(self, group_id, user_id):
        raise LookupFailed()

    def get_announcement_owner(self, announcement_id):
        raise LookupFailed()

    def has_system_role(self, user_id, role="system_admin"):
        raise LookupFailed()


@pytest.fixture
def repository() -> FakePermissionRepository:
    return FakePermissionRepository()


@pytest.fixture
def evaluator(repository) -> PermissionEvaluator:
    return PermissionEvaluator(repository)


@pytest.fixture
def failing_evaluator() -> PermissionEvaluator:
    return PermissionEvaluator(FailingPermissionRepository())


@pytest.fixture
def store() -> ActionStateStore:
    return ActionStateStore()


@pytest.fixture
def user() -> Dict[str, str]:
    return {"id": "user-1", "email": "user@example.com"}
