"""
Route tests: permission failures surface as HTTP errors carrying the check's message
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock
from fastapi.testclient import TestClient

from app.config import settings
from app.core.dependencies import get_current_user, get_permission_evaluator
from app.core.errors import AuthenticationRequired
from app.core.permissions import PermissionEvaluator
from app.main import app
from app.modules.announcements.routes import get_announcement_service, get_image_storage
from app.modules.announcements.schemas import AnnouncementResponse
from app.modules.groups.routes import get_group_service
from app.modules.groups.schemas import GroupResponse
from app.modules.system_admin.routes import get_system_admin_service
from app.modules.system_admin.schemas import SystemStatistics
from app.modules.tags.routes import get_tag_service

from tests.conftest import FailingPermissionRepository

NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def services():
    return {
        "announcements": MagicMock(),
        "groups": MagicMock(),
        "tags": MagicMock(),
        "system_admin": MagicMock(),
    }


@pytest.fixture
def client(repository, services, user):
    app.dependency_overrides[get_current_user] = lambda: user
    app.dependency_overrides[get_permission_evaluator] = lambda: PermissionEvaluator(repository)
    app.dependency_overrides[get_announcement_service] = lambda: services["announcements"]
    app.dependency_overrides[get_group_service] = lambda: services["groups"]
    app.dependency_overrides[get_tag_service] = lambda: services["tags"]
    app.dependency_overrides[get_system_admin_service] = lambda: services["system_admin"]
    yield TestClient(app)
    app.dependency_overrides.clear()


def announcement(**overrides):
    data = {
        "id": "a1",
        "group_id": "g1",
        "author_id": "user-1",
        "title": "Exam moved",
        "content": "Now on Friday",
        "created_at": NOW,
    }
    data.update(overrides)
    return AnnouncementResponse(**data)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.headers["X-Frame-Options"] == "DENY"


class TestAnnouncementRoutes:
    payload = {"group_id": "g1", "title": "Exam moved", "content": "Now on Friday"}

    def test_member_cannot_create(self, client, repository, services):
        repository.add_member("g1", "user-1", "member")
        response = client.post("/api/v1/announcements", json=self.payload)
        assert response.status_code == 403
        assert response.json() == {"detail": "Only admins and contributors can create announcements"}
        services["announcements"].create_announcement.assert_not_called()

    def test_contributor_can_create(self, client, repository, services):
        repository.add_member("g1", "user-1", "contributor")
        services["announcements"].create_announcement.return_value = announcement()
        response = client.post("/api/v1/announcements", json=self.payload)
        assert response.status_code == 201
        assert response.json()["id"] == "a1"

    def test_non_member_cannot_create(self, client, services):
        response = client.post("/api/v1/announcements", json=self.payload)
        assert response.status_code == 403
        assert response.json() == {"detail": "You are not a member of this group"}

    def test_other_member_cannot_edit(self, client, repository, services):
        repository.add_member("g1", "user-1", "member")
        repository.add_announcement("a1", author_id="user-2", group_id="g1")
        response = client.put("/api/v1/announcements/a1", json={"title": "Changed"})
        assert response.status_code == 403
        assert response.json() == {"detail": "You do not have permission to edit this announcement"}

    def test_author_edit_cannot_pin(self, client, repository, services):
        repository.add_member("g1", "user-1", "contributor")
        repository.add_announcement("a1", author_id="user-1", group_id="g1")
        services["announcements"].update_announcement.return_value = announcement(title="Changed")
        response = client.put("/api/v1/announcements/a1", json={"title": "Changed", "is_pinned": True})
        assert response.status_code == 200
        _, kwargs = services["announcements"].update_announcement.call_args
        assert kwargs["is_admin"] is False

    def test_edit_lookup_failure_is_service_unavailable(self, client, services):
        app.dependency_overrides[get_permission_evaluator] = lambda: PermissionEvaluator(FailingPermissionRepository())
        response = client.put("/api/v1/announcements/a1", json={"title": "Changed"})
        assert response.status_code == 503
        assert response.json() == {"detail": "Could not verify permissions, please try again"}
        services["announcements"].update_announcement.assert_not_called()

    def test_delete_by_other_member_carries_delete_message(self, client, repository, services):
        repository.add_member("g1", "user-1", "member")
        repository.add_announcement("a1", author_id="user-2", group_id="g1")
        response = client.delete("/api/v1/announcements/a1")
        assert response.status_code == 403
        assert response.json() == {"detail": "You do not have permission to delete this announcement"}
        services["announcements"].delete_announcement.assert_not_called()

    def test_oversized_image_message_follows_setting(self, client, repository, monkeypatch):
        monkeypatch.setattr(settings, "max_image_size", 1024 * 1024)
        repository.add_member("g1", "user-1", "contributor")
        storage = MagicMock()
        app.dependency_overrides[get_image_storage] = lambda: storage
        response = client.post(
            "/api/v1/announcements/images",
            files={"file": ("poster.png", b"x" * (1024 * 1024 + 1), "image/png")},
            data={"group_id": "g1"},
        )
        assert response.status_code == 400
        assert response.json() == {"detail": "Image must be 1MB or smaller"}
        storage.upload_image.assert_not_called()

    def test_permissions_helper(self, client, repository):
        repository.add_member("g1", "user-1", "admin")
        repository.add_announcement("a1", author_id="user-2", group_id="g1")
        response = client.get("/api/v1/announcements/a1/permissions")
        assert response.status_code == 200
        assert response.json()["can_pin"] is True
        assert response.json()["is_author"] is False


class TestGroupRoutes:
    def test_non_member_cannot_view_group(self, client, services):
        response = client.get("/api/v1/groups/g1")
        assert response.status_code == 403
        assert response.json()["detail"] == "You are not a member of this group"

    def test_system_admin_can_view_any_group(self, client, repository, services):
        repository.system_admins.add("user-1")
        services["groups"].get_group.return_value = GroupResponse(
            id="g1", creator_id="user-2", name="CS 101", code="ABCD1234", created_at=NOW
        )
        response = client.get("/api/v1/groups/g1")
        assert response.status_code == 200
        assert response.json()["code"] == "ABCD1234"

    def test_contributor_cannot_remove_members(self, client, repository, services):
        repository.add_member("g1", "user-1", "contributor")
        response = client.delete("/api/v1/groups/g1/members/user-2")
        assert response.status_code == 403
        assert response.json()["detail"] == "Only group admins can remove members"
        services["groups"].remove_member.assert_not_called()

    def test_lookup_failure_is_service_unavailable(self, client, services):
        app.dependency_overrides[get_permission_evaluator] = lambda: PermissionEvaluator(FailingPermissionRepository())
        response = client.delete("/api/v1/groups/g1/members/user-2")
        assert response.status_code == 503
        assert response.json()["detail"] == "Could not verify permissions, please try again"

    def test_role_capabilities(self, client, repository):
        repository.add_member("g1", "user-1", "contributor")
        response = client.get("/api/v1/groups/g1/role")
        assert response.status_code == 200
        body = response.json()
        assert body["role"] == "contributor"
        assert body["actions"]["announcements:pin"] is True
        assert body["actions"]["tags:manage"] is False


class TestTagAndAdminRoutes:
    def test_contributor_cannot_create_tag(self, client, repository, services):
        repository.add_member("g1", "user-1", "contributor")
        response = client.post("/api/v1/tags", json={"group_id": "g1", "title": "exams"})
        assert response.status_code == 403
        assert response.json()["detail"] == "Only group admins can manage tags"

    def test_tag_color_is_validated(self, client, repository):
        repository.add_member("g1", "user-1", "admin")
        response = client.post("/api/v1/tags", json={"group_id": "g1", "title": "exams", "color": "blue"})
        assert response.status_code == 422

    def test_statistics_require_system_admin(self, client, services):
        response = client.get("/api/v1/admin/statistics")
        assert response.status_code == 403
        assert response.json()["detail"] == "System admin privileges required"

    def test_statistics_for_system_admin(self, client, repository, services):
        repository.system_admins.add("user-1")
        services["system_admin"].get_statistics.return_value = SystemStatistics(total_groups=3)
        response = client.get("/api/v1/admin/statistics")
        assert response.status_code == 200
        assert response.json()["total_groups"] == 3

    def test_approve_message(self, client, services):
        response = client.post("/api/v1/admin/groups/g1/approve")
        assert response.status_code == 403
        assert response.json()["detail"] == "Only system admins can approve groups"

    def test_tagging_lookup_failure_is_service_unavailable(self, client, services):
        app.dependency_overrides[get_permission_evaluator] = lambda: PermissionEvaluator(FailingPermissionRepository())
        response = client.post("/api/v1/tags/announcement/a1", json={"tag_ids": ["t1"]})
        assert response.status_code == 503
        services["tags"].add_tags_to_announcement.assert_not_called()

    def test_status(self, client):
        response = client.get("/api/v1/admin/status")
        assert response.json() == {"is_system_admin": False}


def test_unauthenticated_request(client):
    def reject():
        raise AuthenticationRequired("Invalid or expired token")

    app.dependency_overrides[get_current_user] = reject
    response = client.get("/api/v1/groups")
    assert response.status_code == 401
    assert response.json() == {"detail": "Invalid or expired token"}


def test_role_matrix(client):
    response = client.get("/api/v1/groups/roles")
    assert response.status_code == 200
    actions = {a["name"]: a["roles"] for a in response.json()["actions"]}
    assert actions["announcements:create"] == ["admin", "contributor"]
    assert actions["tags:manage"] == ["admin"]
