"""
Tests for the keyed async action store
"""

import asyncio
import pytest

from app.core.action_state import (
    ActionState, EMPTY_STATE, QueryAction, ServerAction, ServerActionWithParams, build_key
)
from app.core.errors import UNEXPECTED_ERROR_MESSAGE
from app.core.responses import err, ok


async def returning(value):
    return ok(value)


class TestReadAndReset:
    def test_unknown_key_reads_default(self, store):
        assert store.read("never-used") == ActionState(data=None, error=None, is_loading=False)

    @pytest.mark.parametrize("key", ["never-used", "group-1", ""])
    def test_reset_then_read_is_default(self, store, key):
        store.set_data(key, "x")
        store.set_error(key, "boom")
        store.reset(key)
        assert store.read(key) == EMPTY_STATE

    def test_reset_unused_key(self, store):
        store.reset("fresh")
        assert store.read("fresh") == EMPTY_STATE

    def test_primitive_writers_preserve_other_fields(self, store):
        store.set_data("k", 1)
        store.set_loading("k", True)
        store.set_error("k", "bad")
        assert store.read("k") == ActionState(data=1, error="bad", is_loading=True)
        store.set_data("k", 2)
        assert store.read("k") == ActionState(data=2, error=None, is_loading=True)

    def test_reset_all(self, store):
        store.set_data("a", 1)
        store.set_data("b", 2)
        store.reset_all()
        assert store.keys() == []
        assert store.read("a") == EMPTY_STATE

    def test_build_key(self):
        assert build_key("announcements", "g1") == "announcements-g1"
        assert build_key("create-announcement", 7) == "create-announcement-7"
        assert build_key("my-groups") == "my-groups"


class TestExecute:
    @pytest.mark.asyncio
    async def test_success_stores_data(self, store):
        await store.execute("k", lambda: returning(42))
        assert store.read("k") == ActionState(data=42, error=None, is_loading=False)

    @pytest.mark.asyncio
    async def test_failure_result_keeps_stale_data(self, store):
        store.set_data("k", "X")
        await store.execute("k", lambda: returning_failure("nope"))
        assert store.read("k") == ActionState(data="X", error="nope", is_loading=False)

    @pytest.mark.asyncio
    async def test_exception_keeps_stale_data(self, store):
        store.set_data("k", "X")

        async def boom():
            raise RuntimeError("boom")

        await store.execute("k", boom)
        state = store.read("k")
        assert state.data == "X"
        assert state.error == "boom"
        assert state.is_loading is False

    @pytest.mark.asyncio
    async def test_exception_without_message_uses_fallback(self, store):
        async def boom():
            raise RuntimeError()

        await store.execute("k", boom)
        assert store.read("k").error == UNEXPECTED_ERROR_MESSAGE

    @pytest.mark.asyncio
    async def test_synchronous_raise_still_settles(self, store):
        events = []

        def unit():
            raise ValueError("sync boom")

        await store.execute(
            "k",
            unit,
            on_success=lambda data: events.append(("success", data)),
            on_error=lambda error: events.append(("error", error)),
            on_settled=lambda: events.append(("settled", store.read("k").is_loading)),
        )

        assert store.read("k") == ActionState(error="sync boom")
        assert events == [("error", "sync boom"), ("settled", False)]

    @pytest.mark.asyncio
    async def test_dict_response_is_accepted(self, store):
        async def unit():
            return {"success": True, "data": [1, 2]}

        await store.execute("k", unit)
        assert store.read("k").data == [1, 2]

    @pytest.mark.asyncio
    async def test_non_response_is_an_error(self, store):
        async def unit():
            return 5

        await store.execute("k", unit)
        assert store.read("k").error.startswith("Expected an action response")

    @pytest.mark.asyncio
    async def test_loading_while_in_flight_keeps_prior_data(self, store):
        store.set_data("k", "old")
        store.set_error("k", "previous failure")
        release = asyncio.Event()
        seen = {}

        async def unit():
            seen["during"] = store.read("k")
            await release.wait()
            return ok("new")

        task = asyncio.create_task(store.execute("k", unit))
        await asyncio.sleep(0)
        release.set()
        await task

        assert seen["during"] == ActionState(data="old", error=None, is_loading=True)
        assert store.read("k").data == "new"

    @pytest.mark.asyncio
    async def test_last_completion_wins(self, store):
        release_slow = asyncio.Event()

        async def slow():
            await release_slow.wait()
            return ok("A")

        slow_task = asyncio.create_task(store.execute("K", slow))
        await asyncio.sleep(0)
        await store.execute("K", lambda: returning("B"))
        assert store.read("K").data == "B"

        release_slow.set()
        await slow_task
        assert store.read("K").data == "A"

    @pytest.mark.asyncio
    async def test_reset_does_not_cancel_in_flight_work(self, store):
        release = asyncio.Event()

        async def slow():
            await release.wait()
            return ok("late")

        task = asyncio.create_task(store.execute("k", slow))
        await asyncio.sleep(0)
        store.reset("k")
        assert store.read("k") == EMPTY_STATE

        release.set()
        await task
        assert store.read("k").data == "late"

    @pytest.mark.asyncio
    async def test_distinct_keys_are_isolated(self, store):
        await store.execute("a", lambda: returning(1))
        await store.execute("b", lambda: returning_failure("bad"))
        assert store.read("a") == ActionState(data=1)
        assert store.read("b") == ActionState(error="bad")


class TestCallbacks:
    @pytest.mark.asyncio
    async def test_success_then_settled(self, store):
        events = []
        await store.execute(
            "k",
            lambda: returning("v"),
            on_success=lambda data: events.append(("success", data)),
            on_error=lambda error: events.append(("error", error)),
            on_settled=lambda: events.append(("settled", store.read("k").is_loading)),
        )
        assert events == [("success", "v"), ("settled", False)]

    @pytest.mark.asyncio
    async def test_error_then_settled(self, store):
        events = []
        await store.execute(
            "k",
            lambda: returning_failure("denied"),
            on_success=lambda data: events.append(("success", data)),
            on_error=lambda error: events.append(("error", error)),
            on_settled=lambda: events.append(("settled", None)),
        )
        assert events == [("error", "denied"), ("settled", None)]

    @pytest.mark.asyncio
    async def test_async_callbacks_are_awaited(self, store):
        events = []

        async def on_success(data):
            await asyncio.sleep(0)
            events.append(data)

        await store.execute("k", lambda: returning("v"), on_success=on_success)
        assert events == ["v"]

    @pytest.mark.asyncio
    async def test_raising_on_success_keeps_recorded_data(self, store):
        events = []

        def on_success(data):
            raise RuntimeError("callback bug")

        with pytest.raises(RuntimeError, match="callback bug"):
            await store.execute(
                "k",
                lambda: returning(1),
                on_success=on_success,
                on_error=lambda error: events.append(("error", error)),
                on_settled=lambda: events.append(("settled", None)),
            )

        assert store.read("k") == ActionState(data=1, error=None, is_loading=False)
        assert events == [("settled", None)]

    @pytest.mark.asyncio
    async def test_raising_on_error_keeps_recorded_error(self, store):
        def on_error(error):
            raise RuntimeError("callback bug")

        with pytest.raises(RuntimeError, match="callback bug"):
            await store.execute("k", lambda: returning_failure("denied"), on_error=on_error)

        assert store.read("k") == ActionState(data=None, error="denied", is_loading=False)

    @pytest.mark.asyncio
    async def test_on_success_can_refresh_another_key(self, store):
        async def refresh(_):
            await store.execute("announcements-g1", lambda: returning(["fresh"]))

        await store.execute("create-announcement-g1", lambda: returning({"id": "a1"}), on_success=refresh)
        assert store.read("announcements-g1").data == ["fresh"]


class TestBindings:
    @pytest.mark.asyncio
    async def test_shared_key_visibility(self, store):
        first = ServerAction(store, lambda: returning(42), key="L")
        second = ServerAction(store, lambda: returning(0), key="L")
        await first.execute()
        assert first.data == 42
        assert second.data == 42
        assert second.is_loading is False

    @pytest.mark.asyncio
    async def test_server_action_with_params(self, store):
        async def add(a, b=0):
            return ok(a + b)

        action = ServerActionWithParams(store, add, key="sum")
        await action.execute(2, b=3)
        assert action.data == 5
        action.reset()
        assert action.state == EMPTY_STATE

    @pytest.mark.asyncio
    async def test_default_key_is_shared(self, store):
        a = ServerAction(store, lambda: returning("a"))
        b = ServerAction(store, lambda: returning("b"))
        await a.execute()
        assert b.data == "a"

    @pytest.mark.asyncio
    async def test_query_action_wraps_plain_values(self, store):
        query = QueryAction(store)

        async def fetch():
            return {"total": 3}

        await query.execute(fetch)
        assert query.data == {"total": 3}
        assert query.error is None

    @pytest.mark.asyncio
    async def test_query_action_wraps_exceptions(self, store):
        query = QueryAction(store)

        async def fetch():
            raise ValueError("not found")

        await query.execute(fetch)
        assert query.error == "not found"
        assert query.is_loading is False

    def test_query_actions_get_distinct_keys(self, store):
        assert QueryAction(store).key != QueryAction(store).key
        assert QueryAction(store, key="stats").key == "stats"


class TestSubscribe:
    @pytest.mark.asyncio
    async def test_listener_sees_every_write(self, store):
        seen = []
        unsubscribe = store.subscribe(lambda key, state: seen.append((key, state.is_loading, state.data)))
        await store.execute("k", lambda: returning("v"))
        assert seen[0] == ("k", True, None)
        assert seen[-1] == ("k", False, "v")

        unsubscribe()
        store.set_data("k", "other")
        assert seen[-1] == ("k", False, "v")

    def test_failing_listener_does_not_block_writes(self, store):
        def broken(key, state):
            raise RuntimeError("listener bug")

        store.subscribe(broken)
        store.set_data("k", 1)
        assert store.read("k").data == 1


async def returning_failure(message):
    return err(message)
