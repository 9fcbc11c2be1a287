"""
HTTP client for the bulletin board API.

Every method returns an ActionResponse instead of raising, so results can be fed straight
into ActionStateStore.execute.

Lifecycle:
    - Call start() before use (or use ``async with``)
    - Call stop() when done
    - If not started, each request opens a short-lived client
"""

import httpx
import logging
from typing import Any, Dict, List, Optional

from app.config import settings
from app.core.responses import ActionResponse, err, ok

logger = logging.getLogger(__name__)


class BoardApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        access_token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = (base_url or settings.api_base_url).rstrip('/')
        self.access_token = access_token
        self.timeout = timeout if timeout is not None else settings.api_timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, *exc_info):
        await self.stop()

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport
        )

    async def start(self):
        if self._client is not None:
            logger.warning("BoardApiClient already started")
            return
        self._client = self._new_client()
        logger.info(f"BoardApiClient started: base_url={self.base_url}")

    async def stop(self):
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("BoardApiClient stopped")

    def set_token(self, access_token: Optional[str]) -> None:
        self.access_token = access_token

    def _headers(self) -> Dict[str, str]:
        if not self.access_token:
            return {}
        return {"Authorization": f"Bearer {self.access_token}"}

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            detail = body.get("detail") or body.get("error")
            if isinstance(detail, str) and detail:
                return detail
            if isinstance(detail, list) and detail:
                # FastAPI validation errors
                return "; ".join(str(item.get("msg", item)) for item in detail if isinstance(item, dict)) \
                    or str(detail)
        return response.text or f"Request failed with status {response.status_code}"

    async def _make_request(self, method: str, endpoint: str, **kwargs) -> ActionResponse:
        headers = {**self._headers(), **kwargs.pop("headers", {})}
        try:
            if self._client:
                response = await self._client.request(method, endpoint, headers=headers, **kwargs)
            else:
                async with self._new_client() as client:
                    response = await client.request(method, endpoint, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Request {method} {endpoint} failed: {e}")
            return err(str(e) or f"Could not reach {self.base_url}")

        if response.is_success:
            if response.status_code == 204 or not response.content:
                return ok(None)
            return ok(response.json())

        detail = self._error_detail(response)
        logger.debug(f"{method} {endpoint} returned {response.status_code}: {detail}")
        return err(detail)

    # Auth
    async def sign_up(self, email: str, password: str, full_name: Optional[str] = None) -> ActionResponse:
        return await self._make_request(
            "POST", "/auth/signup", json={"email": email, "password": password, "full_name": full_name}
        )

    async def sign_in(self, email: str, password: str) -> ActionResponse:
        result = await self._make_request("POST", "/auth/login", json={"email": email, "password": password})
        if result.success and isinstance(result.data, dict):
            self.set_token(result.data.get("access_token"))
        return result

    async def sign_out(self) -> ActionResponse:
        result = await self._make_request("POST", "/auth/logout")
        self.set_token(None)
        return result

    async def get_me(self) -> ActionResponse:
        return await self._make_request("GET", "/auth/me")

    # Groups
    async def list_my_groups(self) -> ActionResponse:
        return await self._make_request("GET", "/groups")

    async def get_group(self, group_id: str) -> ActionResponse:
        return await self._make_request("GET", f"/groups/{group_id}")

    async def get_group_role(self, group_id: str) -> ActionResponse:
        return await self._make_request("GET", f"/groups/{group_id}/role")

    async def create_group(self, name: str, description: Optional[str] = None) -> ActionResponse:
        return await self._make_request("POST", "/groups", json={"name": name, "description": description})

    async def update_group(self, group_id: str, **changes) -> ActionResponse:
        return await self._make_request("PUT", f"/groups/{group_id}", json=changes)

    async def delete_group(self, group_id: str) -> ActionResponse:
        return await self._make_request("DELETE", f"/groups/{group_id}")

    async def join_group(self, code: str) -> ActionResponse:
        return await self._make_request("POST", "/groups/join", json={"code": code})

    async def leave_group(self, group_id: str) -> ActionResponse:
        return await self._make_request("POST", f"/groups/{group_id}/leave")

    async def list_members(self, group_id: str) -> ActionResponse:
        return await self._make_request("GET", f"/groups/{group_id}/members")

    async def update_member_role(self, group_id: str, user_id: str, role: str) -> ActionResponse:
        return await self._make_request("PUT", f"/groups/{group_id}/members/{user_id}", json={"role": role})

    async def remove_member(self, group_id: str, user_id: str) -> ActionResponse:
        return await self._make_request("DELETE", f"/groups/{group_id}/members/{user_id}")

    # Announcements
    async def list_announcements(self, group_id: str, **params) -> ActionResponse:
        query = {k: v for k, v in params.items() if v is not None}
        return await self._make_request("GET", f"/announcements/group/{group_id}", params=query)

    async def list_pinned(self, group_id: str) -> ActionResponse:
        return await self._make_request("GET", f"/announcements/group/{group_id}/pinned")

    async def get_announcement(self, announcement_id: str) -> ActionResponse:
        return await self._make_request("GET", f"/announcements/{announcement_id}")

    async def get_announcement_permissions(self, announcement_id: str) -> ActionResponse:
        return await self._make_request("GET", f"/announcements/{announcement_id}/permissions")

    async def create_announcement(self, group_id: str, title: str, content: str, **fields) -> ActionResponse:
        payload: Dict[str, Any] = {"group_id": group_id, "title": title, "content": content, **fields}
        return await self._make_request("POST", "/announcements", json=payload)

    async def update_announcement(self, announcement_id: str, **changes) -> ActionResponse:
        return await self._make_request("PUT", f"/announcements/{announcement_id}", json=changes)

    async def delete_announcement(self, announcement_id: str) -> ActionResponse:
        return await self._make_request("DELETE", f"/announcements/{announcement_id}")

    async def vote(self, announcement_id: str, vote_type: str) -> ActionResponse:
        return await self._make_request(
            "POST", f"/announcements/{announcement_id}/vote", json={"vote_type": vote_type}
        )

    async def toggle_pin(self, announcement_id: str) -> ActionResponse:
        return await self._make_request("POST", f"/announcements/{announcement_id}/pin")

    async def list_categories(self) -> ActionResponse:
        return await self._make_request("GET", "/announcements/categories")

    # Tags
    async def list_group_tags(self, group_id: str) -> ActionResponse:
        return await self._make_request("GET", f"/tags/group/{group_id}")

    async def create_tag(self, group_id: str, title: str, color: Optional[str] = None) -> ActionResponse:
        payload = {"group_id": group_id, "title": title}
        if color:
            payload["color"] = color
        return await self._make_request("POST", "/tags", json=payload)

    async def update_tag(self, tag_id: str, **changes) -> ActionResponse:
        return await self._make_request("PUT", f"/tags/{tag_id}", json=changes)

    async def delete_tag(self, tag_id: str) -> ActionResponse:
        return await self._make_request("DELETE", f"/tags/{tag_id}")

    async def add_announcement_tags(self, announcement_id: str, tag_ids: List[str]) -> ActionResponse:
        return await self._make_request(
            "POST", f"/tags/announcement/{announcement_id}", json={"tag_ids": tag_ids}
        )

    async def remove_announcement_tags(self, announcement_id: str, tag_ids: List[str]) -> ActionResponse:
        return await self._make_request(
            "POST", f"/tags/announcement/{announcement_id}/remove", json={"tag_ids": tag_ids}
        )

    # System admin
    async def get_system_admin_status(self) -> ActionResponse:
        return await self._make_request("GET", "/admin/status")

    async def list_pending_groups(self) -> ActionResponse:
        return await self._make_request("GET", "/admin/groups/pending")

    async def approve_group(self, group_id: str) -> ActionResponse:
        return await self._make_request("POST", f"/admin/groups/{group_id}/approve")

    async def reject_group(self, group_id: str) -> ActionResponse:
        return await self._make_request("POST", f"/admin/groups/{group_id}/reject")

    async def get_statistics(self) -> ActionResponse:
        return await self._make_request("GET", "/admin/statistics")
