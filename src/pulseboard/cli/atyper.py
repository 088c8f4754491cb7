"""Typer with support for ``async def`` commands."""

import asyncio
import inspect
from functools import wraps
from typing import Any, Callable

import typer
from typer.core import TyperCommand, TyperGroup


def _run_async(f: Callable) -> Callable:
    """Wrap a coroutine function so click can call it synchronously."""

    @wraps(f)
    def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
        coro = f(*args, **kwargs)
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(coro)
        # Invoked from inside a loop (tests); let the caller await it
        return coro

    return sync_wrapper


class AsyncTyperGroup(TyperGroup):
    """Group whose callback may be a coroutine function."""

    def invoke(self, ctx: Any) -> Any:
        if inspect.iscoroutinefunction(self.callback):
            return asyncio.run(self.callback(**ctx.params))
        return super().invoke(ctx)


class ATyper(typer.Typer):
    """Typer subclass with async command support."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("cls", AsyncTyperGroup)
        kwargs.setdefault("no_args_is_help", False)
        super().__init__(*args, **kwargs)

    def command(  # type: ignore
        self,
        name: str | None = None,
        *,
        cls: type[TyperCommand] | None = None,
        **kwargs: Any,
    ) -> Any:
        """Register a command, running coroutine functions with asyncio."""

        def decorator(f: Callable) -> Callable:
            if inspect.iscoroutinefunction(f):
                f = _run_async(f)
            return typer.Typer.command(self, name, cls=cls, **kwargs)(f)

        return decorator
