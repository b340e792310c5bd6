import asyncio
import contextlib
import functools
import importlib
import inspect
import logging
import pkgutil
import signal
import sys
import threading
from collections.abc import Callable
from types import FrameType
from typing import Any, Generator

SHUTDOWN_SIGNALS = (
    signal.SIGINT,
    signal.SIGTERM,
)

if sys.platform == "win32":
    SHUTDOWN_SIGNALS += (signal.SIGBREAK,)

LOG_FORMAT = '%(asctime)s %(levelname)-8s [%(name)s:%(funcName)s] : %(message)s'


async def maybe_await(func: Callable[..., Any], *args: Any) -> Any:
    """
    Call `func` and, if it returned an awaitable, wait for its completion.

    This lets the endpoint sequence sends and dispatches identically whether
    the collaborator is synchronous or asynchronous.
    """
    result = func(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


@contextlib.contextmanager
def setup_signal_handler(
    signals: tuple[signal.Signals, ...] = SHUTDOWN_SIGNALS,
) -> Generator[asyncio.Event, None, None]:
    """
    Turn shutdown signals into a stop event for the duration of the block.

    Outside the main thread signals cannot be trapped and the event is only
    set by the caller. On exit the previous handlers are restored; a captured
    signal is re-raised only if the previous handler was installed by the
    embedding application, since the messenger has already stopped cleanly
    for the default ones.
    """
    stop_event = asyncio.Event()
    logger = logging.getLogger("core.helpers.signals")

    if threading.current_thread() is not threading.main_thread():
        yield stop_event
        return

    captured: list[int] = []

    def handle(sig: int, frame: FrameType | None) -> None:
        if not captured:
            logger.info(f"Received {signal.Signals(sig).name}, shutting down")
        captured.append(sig)
        stop_event.set()

    previous = {sig: signal.signal(sig, handle) for sig in signals}

    try:
        yield stop_event
    finally:
        for sig, old in previous.items():
            signal.signal(sig, old)

        for sig in dict.fromkeys(reversed(captured)):
            if callable(previous[sig]) and previous[sig] is not signal.default_int_handler:
                signal.raise_signal(sig)


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


def import_modules(package: str) -> list[str]:
    """
    Import every public module of `package` and return their names.
    Modules whose name starts with an underscore are left alone.
    """
    py_package = importlib.import_module(package)
    imported = []

    for module_info in pkgutil.iter_modules(py_package.__path__):
        if module_info.name.startswith("_"):
            continue
        name = f"{package}.{module_info.name}"
        importlib.import_module(name)
        imported.append(name)

    return imported


def scan(package: str):
    """
    Decorator importing the modules of `package` before the decorated
    function runs, so that listeners declared at import time get registered.
    """
    def decorator(func: Callable):

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            import_modules(package)
            return func(*args, **kwargs)

        return wrapper

    return decorator
