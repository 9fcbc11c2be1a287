"""
Keyed bindings between screens and the API client.

Keys used on the shared store:

    my-groups                         groups the caller belongs to
    group-<id>                        a single group
    members-<id>                      members of a group
    announcements-<group_id>          current page of a group's announcements
    pinned-<group_id>                 pinned announcements of a group
    tags-<group_id>                   tags of a group
    join-group                        join-by-code mutation
    create-group                      group creation mutation
    create-announcement-<group_id>    announcement creation mutation
    vote-<announcement_id>            vote mutation

Mutations refresh the list keys they affect from on_success, so every binding reading
that key sees the new data.
"""

import inspect
from typing import Any, Callable, Dict, Optional

from app.client.api_client import BoardApiClient
from app.core.action_state import ActionStateStore, ServerAction, ServerActionWithParams, build_key


class BoardActions:
    def __init__(self, store: ActionStateStore, client: BoardApiClient):
        self.store = store
        self.client = client
        # last list query per group, reused when a mutation refreshes the list
        self._list_params: Dict[str, Dict[str, Any]] = {}

    # Reads
    def my_groups(self) -> ServerAction:
        return ServerAction(self.store, self.client.list_my_groups, key="my-groups")

    def group(self, group_id: str) -> ServerAction:
        return ServerAction(
            self.store, lambda: self.client.get_group(group_id), key=build_key("group", group_id)
        )

    def members(self, group_id: str) -> ServerAction:
        return ServerAction(
            self.store, lambda: self.client.list_members(group_id), key=build_key("members", group_id)
        )

    def announcements(self, group_id: str) -> ServerActionWithParams:
        """execute(**filters) fetches a page; the filters are remembered for later refreshes"""
        async def fetch(**params):
            self._list_params[group_id] = params
            return await self.client.list_announcements(group_id, **params)

        return ServerActionWithParams(self.store, fetch, key=build_key("announcements", group_id))

    def pinned(self, group_id: str) -> ServerAction:
        return ServerAction(
            self.store, lambda: self.client.list_pinned(group_id), key=build_key("pinned", group_id)
        )

    def tags(self, group_id: str) -> ServerAction:
        return ServerAction(
            self.store, lambda: self.client.list_group_tags(group_id), key=build_key("tags", group_id)
        )

    # Refreshes
    async def refresh_my_groups(self) -> None:
        await self.my_groups().execute()

    async def refresh_announcements(self, group_id: str) -> None:
        await self.announcements(group_id).execute(**self._list_params.get(group_id, {}))
        await self.pinned(group_id).execute()

    # Mutations
    def join_group(self, on_joined: Optional[Callable[[Any], Any]] = None) -> ServerActionWithParams:
        async def on_success(group):
            await self.refresh_my_groups()
            if on_joined:
                await _maybe_await(on_joined(group))

        return ServerActionWithParams(self.store, self.client.join_group, key="join-group", on_success=on_success)

    def create_group(self, on_created: Optional[Callable[[Any], Any]] = None) -> ServerActionWithParams:
        async def on_success(group):
            await self.refresh_my_groups()
            if on_created:
                await _maybe_await(on_created(group))

        return ServerActionWithParams(
            self.store, self.client.create_group, key="create-group", on_success=on_success
        )

    def create_announcement(self, group_id: str) -> ServerActionWithParams:
        """execute(title, content, **fields)"""
        async def create(title: str, content: str, **fields):
            return await self.client.create_announcement(group_id, title, content, **fields)

        async def on_success(_):
            await self.refresh_announcements(group_id)

        return ServerActionWithParams(
            self.store, create, key=build_key("create-announcement", group_id), on_success=on_success
        )

    def vote(self, announcement_id: str, group_id: str) -> ServerActionWithParams:
        """execute(vote_type); the group's announcement list is refreshed to pick up new counts"""
        async def cast(vote_type: str):
            return await self.client.vote(announcement_id, vote_type)

        async def on_success(_):
            await self.refresh_announcements(group_id)

        return ServerActionWithParams(
            self.store, cast, key=build_key("vote", announcement_id), on_success=on_success
        )


async def _maybe_await(value):
    if inspect.isawaitable(value):
        await value
