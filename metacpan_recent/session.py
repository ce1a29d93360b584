# Session / Kernel: a small asyncio host for event-driven components.

# A Session is an execution context that receives one-way events by name.
# The Kernel keeps every live session addressable by integer id or alias so
# that a component can be pointed at "the session called 'main'" rather
# than at an object.
#
# Sessions stay alive while something holds a reference on them. A poller
# delivering events into a subscriber holds a Lease on it; the subscriber's
# wait_idle() does not return until that lease is released.

import asyncio
import contextlib
import itertools
import logging
from collections import Counter
from collections.abc import Callable, Iterator
from contextvars import ContextVar
from typing import Any

log = logging.getLogger(__name__)

_current: ContextVar["Session | None"] = ContextVar("metacpan_recent_session", default=None)


def current_session() -> "Session | None":
    """The session whose handler is running right now, if any."""
    return _current.get()


class Kernel:
    """Registry of live sessions, by id and by alias."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._sessions: dict[int, Session] = {}
        self._aliases: dict[str, Session] = {}

    def register(self, session: "Session", alias: str | None = None) -> int:
        session_id = next(self._ids)
        self._sessions[session_id] = session
        if alias:
            self.alias_set(alias, session)
        return session_id

    def unregister(self, session: "Session") -> None:
        self._sessions.pop(session.id, None)
        for alias in self.alias_list(session):
            del self._aliases[alias]

    def alias_set(self, alias: str, session: "Session") -> None:
        if alias in self._aliases and self._aliases[alias] is not session:
            raise ValueError(f"alias {alias!r} is already in use")
        self._aliases[alias] = session

    def alias_list(self, session: "Session") -> list[str]:
        return [a for a, s in self._aliases.items() if s is session]

    def resolve(self, ref: "Session | int | str | None") -> "Session | None":
        if isinstance(ref, Session):
            return ref if self._sessions.get(ref.id) is ref else None
        if isinstance(ref, int):
            return self._sessions.get(ref)
        if isinstance(ref, str):
            return self._aliases.get(ref)
        return None

    def post(self, ref: "Session | int | str", event: str, *args: Any) -> bool:
        session = self.resolve(ref)
        if session is None:
            log.debug("Dropping %r for unknown session %r", event, ref)
            return False
        session.post(event, *args)
        return True


default_kernel = Kernel()


class Lease:
    """An ownership reference on a session. release() is safe to call twice."""

    def __init__(self, session: "Session", tag: str) -> None:
        self.session = session
        self.tag = tag
        self._released = False
        session.refcount_increment(tag)

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self.session.refcount_decrement(self.tag)


class Session:

    def __init__(
        self,
        handlers: dict[str, Callable[..., Any]] | None = None,
        *,
        alias: str | None = None,
        options: dict[str, Any] | None = None,
        kernel: Kernel | None = None,
    ) -> None:
        self._kernel = kernel if kernel is not None else default_kernel
        self._handlers: dict[str, Callable[..., Any]] = dict(handlers or {})
        self._options = dict(options or {})
        self._refs: Counter[str] = Counter()
        self._pending = 0
        self._tasks: set[asyncio.Task] = set()
        self._changed = asyncio.Event()
        self._closed = False
        self.id = self._kernel.register(self, alias)

    def __repr__(self) -> str:
        return f"<Session {self.id}>"

    @property
    def options(self) -> dict[str, Any]:
        return dict(self._options)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def refcount(self) -> int:
        return sum(self._refs.values())

    @contextlib.contextmanager
    def activate(self) -> Iterator["Session"]:
        """Run a block as if it were one of this session's handlers."""
        token = _current.set(self)
        try:
            yield self
        finally:
            _current.reset(token)

    # ── events ───────────────────────────────────────────────────────────

    def post(self, event: str, *args: Any) -> None:
        """Queue a one-way event. Events are dispatched in the order posted."""
        if self._closed:
            log.debug("%r is closed, dropping %r", self, event)
            return
        self._pending += 1
        asyncio.get_running_loop().call_soon(self._dispatch, event, args)

    def _dispatch(self, event: str, args: tuple) -> None:
        try:
            handler = self._handlers.get(event)
            if handler is None:
                log.debug("%r has no handler for %r", self, event)
                return
            if self._options.get("trace"):
                log.debug("%r dispatching %r", self, event)
            with self.activate():
                result = handler(*args)
                if asyncio.iscoroutine(result):
                    task = asyncio.get_running_loop().create_task(result)
                    self._tasks.add(task)
                    task.add_done_callback(self._task_done)
        except Exception:
            log.exception("%r handler for %r failed", self, event)
        finally:
            self._pending -= 1
            self._changed.set()

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            log.error("%r handler task failed", self, exc_info=task.exception())
        self._changed.set()

    # ── reference counting ───────────────────────────────────────────────

    def refcount_increment(self, tag: str) -> int:
        self._refs[tag] += 1
        return self._refs[tag]

    def refcount_decrement(self, tag: str) -> int:
        if self._refs[tag] <= 0:
            raise ValueError(f"{self!r} holds no reference tagged {tag!r}")
        self._refs[tag] -= 1
        if not self._refs[tag]:
            del self._refs[tag]
        self._changed.set()
        return self._refs.get(tag, 0)

    def lease(self, tag: str) -> Lease:
        return Lease(self, tag)

    def busy(self) -> bool:
        return bool(self.refcount or self._pending or self._tasks)

    async def wait_idle(self) -> None:
        """Return once nothing holds this session and it has no work queued."""
        while self.busy():
            self._changed.clear()
            await self._changed.wait()

    def close(self) -> None:
        """Stop accepting events and forget this session's id and aliases."""
        if self._closed:
            return
        self._closed = True
        self._kernel.unregister(self)
