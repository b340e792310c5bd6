import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable

from messenger.core.models.message import Listener


@dataclass(eq=False)
class _Registration:
    listener: Listener
    once: bool


class ListenerRegistry:
    """
    Maps event names to the listeners registered for them and dispatches
    events to those listeners.

    Listeners are invoked in registration order. Every emission works on a
    snapshot of the registrations taken when it starts, so listeners may
    register or remove listeners (including themselves) from inside a
    dispatch without affecting the dispatch in progress.

    Dispatch is asynchronous: each listener is called, and the awaitables
    returned by coroutine listeners are awaited together before `emit()`
    returns. A listener that fails is logged; it never prevents the other
    listeners from running and its error is not propagated to the emitter.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._listeners: dict[str, list[_Registration]] = {}
        self._logger = logger or logging.getLogger("core.events")

    def on(self, event: str, listener: Listener | None = None) -> Any:
        """
        Register `listener` for `event`.

        When `listener` is omitted a decorator is returned instead:

            @registry.on("ping")
            async def ping(seq): ...
        """
        return self._add(event, listener, once=False)

    def once(self, event: str, listener: Listener | None = None) -> Any:
        """Same as `on()`, but the listener is removed before its first call."""
        return self._add(event, listener, once=True)

    def off(self, event: str, listener: Listener) -> None:
        """Remove the first registration of `listener` for `event`, if any."""
        registrations = self._listeners.get(event)
        if not registrations:
            return

        for index, registration in enumerate(registrations):
            if registration.listener == listener:
                del registrations[index]
                break

        if not registrations:
            del self._listeners[event]

    def remove_all(self, event: str | None = None) -> None:
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event, None)

    def listeners(self, event: str) -> list[Listener]:
        return [r.listener for r in self._listeners.get(event, ())]

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, ()))

    async def emit(self, event: str, *args: Any) -> int:
        """
        Invoke every listener registered for `event` with `args` and wait
        for all of them to complete.

        Returns the number of listeners that were invoked.
        """
        snapshot = list(self._listeners.get(event, ()))

        for registration in snapshot:
            if registration.once:
                self._discard(event, registration)

        pending = []
        for registration in snapshot:
            try:
                result = registration.listener(*args)
            except Exception as exc:
                self._log_failure(event, exc)
                continue

            if inspect.isawaitable(result):
                pending.append(result)

        if pending:
            results = await asyncio.gather(*pending, return_exceptions=True)
            for result in results:
                if isinstance(result, BaseException):
                    self._log_failure(event, result)

        return len(snapshot)

    def _add(self, event: str, listener: Listener | None, once: bool) -> Any:
        if listener is None:
            def decorator(func: Callable) -> Callable:
                self._add(event, func, once)
                return func

            return decorator

        self._listeners.setdefault(event, []).append(_Registration(listener, once))
        return listener

    def _discard(self, event: str, registration: _Registration) -> None:
        registrations = self._listeners.get(event)
        if not registrations:
            return

        for index, current in enumerate(registrations):
            if current is registration:
                del registrations[index]
                break

        if not registrations:
            del self._listeners[event]

    def _log_failure(self, event: str, exc: BaseException) -> None:
        self._logger.error(f"Listener for '{event}' failed: {exc}", exc_info=exc)
