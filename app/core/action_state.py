"""
Keyed store of async action state: one ``{data, error, is_loading}`` slot per string key.

Every UI-triggered call (fetch, create, update, delete) runs through ``ActionStateStore.execute``
so loading/error/data bookkeeping lives in one place. Components that use the same key share a
slot, which is how "refresh the list after a mutation" works: the mutation's ``on_success``
re-executes the list fetch under the list's key and every reader of that key sees the new data.

Key convention: ``"<entity>-<id>"``, e.g. ``"announcements-<group_id>"`` or ``"group-<id>"``.
Use ``build_key`` to produce them. Two unrelated callers picking the same key is a caller error;
the store does not try to tell them apart.

Concurrency semantics (asyncio, single thread):

- Overlapping executions on one key both write to the same slot. The one that *completes* last
  wins, regardless of call order. Callers needing strict ordering use distinct keys.
- ``reset`` does not cancel an in-flight unit of work; when it completes it writes into the
  freshly reset slot.
- No timeouts and no retries. A hung unit of work leaves ``is_loading`` set.
- After a completed execution exactly one of ``data``/``error`` reflects it. A callback that
  raises does not rewrite the slot; its exception reaches the caller of ``execute``.
"""

import inspect
import itertools
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from app.core.responses import ActionResponse, as_action_response, coerce_response, err, normalize_error

logger = logging.getLogger(__name__)

UnitOfWork = Callable[[], Awaitable[ActionResponse]]
Listener = Callable[[str, "ActionState"], None]

_query_ids = itertools.count(1)


class ActionState(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    data: Any = None
    error: Optional[str] = None
    is_loading: bool = False


EMPTY_STATE = ActionState()


def build_key(entity: str, *parts) -> str:
    """build_key("announcements", group_id) -> "announcements-<group_id>" """
    return "-".join([entity, *(str(p) for p in parts)])


async def _invoke(callback: Optional[Callable], *args) -> None:
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class ActionStateStore:
    def __init__(self):
        self._states: Dict[str, ActionState] = {}
        self._listeners: List[Listener] = []

    def read(self, key: str) -> ActionState:
        return self._states.get(key, EMPTY_STATE)

    def keys(self) -> List[str]:
        return list(self._states)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called with (key, state) after every write. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self, key: str, state: ActionState) -> None:
        for listener in list(self._listeners):
            try:
                listener(key, state)
            except Exception:
                logger.exception(f"Action state listener failed for key {key}")

    def _write(self, key: str, **changes) -> ActionState:
        state = self.read(key).model_copy(update=changes)
        self._states[key] = state
        self._notify(key, state)
        return state

    def set_loading(self, key: str, is_loading: bool) -> None:
        self._write(key, is_loading=is_loading)

    def set_data(self, key: str, data: Any) -> None:
        self._write(key, data=data, error=None)

    def set_error(self, key: str, error: Optional[str]) -> None:
        self._write(key, error=error)

    def reset(self, key: str) -> None:
        self._write(key, data=None, error=None, is_loading=False)

    def reset_all(self) -> None:
        keys = self.keys()
        self._states.clear()
        for key in keys:
            self._notify(key, EMPTY_STATE)

    async def execute(
        self,
        key: str,
        unit_of_work: UnitOfWork,
        *,
        on_success: Optional[Callable[[Any], Any]] = None,
        on_error: Optional[Callable[[str], Any]] = None,
        on_settled: Optional[Callable[[], Any]] = None,
    ) -> None:
        """
        Run unit_of_work and record its outcome under key. Never raises for a failed unit of work,
        whether it raises synchronously, raises when awaited, or returns a failure.
        Exceptions from on_success/on_error propagate to the caller after on_settled; the recorded
        outcome is left as the unit of work produced it.
        """
        try:
            # prior data stays visible while loading
            self._write(key, is_loading=True, error=None)
            try:
                result = coerce_response(await unit_of_work())
            except Exception as e:
                message = normalize_error(e)
                logger.debug(f"Action {key} failed: {message}")
                result = err(message)

            if result.success:
                self.set_data(key, result.data)
                await _invoke(on_success, result.data)
            else:
                self.set_error(key, result.error)
                await _invoke(on_error, result.error)
        finally:
            self.set_loading(key, False)
            await _invoke(on_settled)


class _KeyedAction:
    def __init__(
        self,
        store: ActionStateStore,
        key: str,
        on_success: Optional[Callable[[Any], Any]] = None,
        on_error: Optional[Callable[[str], Any]] = None,
        on_settled: Optional[Callable[[], Any]] = None,
    ):
        self.store = store
        self.key = key
        self.on_success = on_success
        self.on_error = on_error
        self.on_settled = on_settled

    @property
    def state(self) -> ActionState:
        return self.store.read(self.key)

    @property
    def data(self) -> Any:
        return self.state.data

    @property
    def error(self) -> Optional[str]:
        return self.state.error

    @property
    def is_loading(self) -> bool:
        return self.state.is_loading

    def reset(self) -> None:
        self.store.reset(self.key)

    async def _run(self, unit_of_work: UnitOfWork) -> None:
        await self.store.execute(
            self.key,
            unit_of_work,
            on_success=self.on_success,
            on_error=self.on_error,
            on_settled=self.on_settled,
        )


class ServerAction(_KeyedAction):
    """Zero-argument form: the action is fixed when the binding is created."""

    def __init__(self, store: ActionStateStore, action: UnitOfWork, key: str = "default", **callbacks):
        super().__init__(store, key, **callbacks)
        self.action = action

    async def execute(self) -> None:
        await self._run(self.action)


class ServerActionWithParams(_KeyedAction):
    """Parameterised form: execute(*args) builds the unit of work from the call arguments."""

    def __init__(
        self,
        store: ActionStateStore,
        action: Callable[..., Awaitable[ActionResponse]],
        key: str = "default",
        **callbacks
    ):
        super().__init__(store, key, **callbacks)
        self.action = action

    async def execute(self, *args, **kwargs) -> None:
        async def unit_of_work():
            return await self.action(*args, **kwargs)
        await self._run(unit_of_work)


class QueryAction(_KeyedAction):
    """Runs arbitrary coroutines that return a plain value or raise. Gets its own key unless given one."""

    def __init__(self, store: ActionStateStore, key: Optional[str] = None, **callbacks):
        super().__init__(store, key or build_key("query", next(_query_ids)), **callbacks)

    async def execute(self, fn: Callable[[], Awaitable[Any]]) -> None:
        await self._run(as_action_response()(fn))
