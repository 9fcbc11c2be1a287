"""
Two-case result returned by server actions and consumed by the action cache.

    {"success": true, "data": ...} | {"success": false, "error": "..."}
"""

import functools
from typing import Any, Awaitable, Callable, Generic, Literal, Optional, TypeVar, Union
from pydantic import BaseModel

from app.core.errors import UNEXPECTED_ERROR_MESSAGE

T = TypeVar("T")


class ActionSuccess(BaseModel, Generic[T]):
    success: Literal[True] = True
    data: Optional[T] = None


class ActionFailure(BaseModel):
    success: Literal[False] = False
    error: str


ActionResponse = Union[ActionSuccess, ActionFailure]


def ok(data: Any = None) -> ActionSuccess:
    return ActionSuccess(data=data)


def err(message: str) -> ActionFailure:
    return ActionFailure(error=message)


def normalize_error(exc: BaseException, fallback: str = UNEXPECTED_ERROR_MESSAGE) -> str:
    """Reduce an exception to a display message, falling back when it carries none."""
    for attr in ("message", "detail"):
        value = getattr(exc, attr, None)
        if isinstance(value, str) and value:
            return value
    message = str(exc)
    return message if message else fallback


def coerce_response(value: Any) -> ActionResponse:
    """Accept an ActionSuccess/ActionFailure or its dict form; anything else is a contract violation."""
    if isinstance(value, (ActionSuccess, ActionFailure)):
        return value
    if isinstance(value, dict) and "success" in value:
        if value["success"]:
            return ActionSuccess(data=value.get("data"))
        return ActionFailure(error=value.get("error") or UNEXPECTED_ERROR_MESSAGE)
    raise TypeError(f"Expected an action response, got {type(value).__name__}")


def as_action_response(fallback: str = UNEXPECTED_ERROR_MESSAGE):
    """Decorator: run a coroutine that returns a plain value or raises, and return an ActionResponse instead."""
    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[ActionResponse]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> ActionResponse:
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                return err(normalize_error(e, fallback))
            if isinstance(result, (ActionSuccess, ActionFailure)):
                return result
            return ok(result)
        return wrapper
    return decorator
