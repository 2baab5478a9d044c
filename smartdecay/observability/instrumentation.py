"""
Observability context shared by logs and stream events.

The context names the work in flight: which owner, which simulated year,
which decay event, which component. It lives in a contextvar, so a ticker
thread and a manual step never see each other's values.

    with obs_scope(owner_id="alice", component="baseline"):
        ...

    @with_obs_context(lambda self: {"owner_id": self.owner_id})
    def _run_cycle(self): ...
"""

import contextlib
import contextvars
import functools
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Union

ContextSource = Union[Mapping[str, Any], Callable[..., Optional[Mapping[str, Any]]], None]

_obs_context: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar("smartdecay_obs_context")


def get_obs_context() -> Dict[str, Any]:
    """Copy of the current context; empty outside of any scope."""
    return dict(_obs_context.get({}))


def set_obs_context(ctx: Mapping[str, Any]) -> None:
    """Replace the whole context. Non-mappings are ignored."""
    if isinstance(ctx, Mapping):
        _obs_context.set(dict(ctx))


def update_obs_context(values: Mapping[str, Any]) -> None:
    """Add or overwrite keys for the rest of the current scope."""
    if isinstance(values, Mapping):
        _obs_context.set({**_obs_context.get({}), **values})


def clear_obs_context() -> None:
    _obs_context.set({})


@contextlib.contextmanager
def obs_scope(values: Optional[Mapping[str, Any]] = None, *, merge: bool = True, **more: Any) -> Iterator[Dict[str, Any]]:
    """Run a block with extra context; the previous context comes back on exit, errors included."""
    added = {**(values or {}), **more}
    effective = {**_obs_context.get({}), **added} if merge else added
    token = _obs_context.set(effective)
    try:
        yield dict(effective)
    finally:
        _obs_context.reset(token)


def with_obs_context(ctx_or_fn: ContextSource = None, *, merge: bool = True):
    """Decorator form of ``obs_scope``.

    ``ctx_or_fn`` is either a fixed mapping or a callable receiving the
    decorated function's arguments and returning the values to add.
    """

    def _decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(fn)
        def _wrap(*args: Any, **kwargs: Any) -> Any:
            if callable(ctx_or_fn):
                values = ctx_or_fn(*args, **kwargs) or {}
            else:
                values = ctx_or_fn or {}
            with obs_scope(values, merge=merge):
                return fn(*args, **kwargs)

        return _wrap

    return _decorator
