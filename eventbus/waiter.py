"""Await-once helper: resolve on the next matching emission or time out."""

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any, Optional

from eventbus.errors import EventTimeoutError

if TYPE_CHECKING:
    from eventbus.registry import ListenerRegistry

logger = logging.getLogger(__name__)


def wait_for_event(
    registry: "ListenerRegistry",
    event_name: str,
    timeout: Optional[float] = None,
) -> "asyncio.Future[Any]":
    """
    Future of the payload of the next emission of ``event_name``.

    The listener is registered before this returns, so an emission right after
    the call is not missed. Whichever of event, timer or cancellation settles
    the future first wins; the done-callback then tears down both the listener
    and the timer.

    Args:
        registry: Registry to subscribe on
        event_name: Name (or pattern) to wait for
        timeout: Seconds before giving up; None waits forever

    Raises:
        RuntimeError: called without a running event loop
        EventTimeoutError: (from the future) nothing arrived within ``timeout``
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future = loop.create_future()
    started = time.monotonic()

    def on_event(payload: Any) -> None:
        if future.done():
            return
        if timer is not None:
            timer.cancel()
        future.set_result(payload)

    unsubscribe = registry.subscribe(event_name, on_event, once=True)

    def on_timeout() -> None:
        if future.done():
            return
        unsubscribe()
        if registry.config.debug:
            logger.debug(f"wait_for({event_name}) timed out after {time.monotonic() - started:.3f}s")
        future.set_exception(EventTimeoutError(event_name, timeout))

    timer = loop.call_later(timeout, on_timeout) if timeout is not None else None

    def cleanup(_: asyncio.Future) -> None:
        if timer is not None:
            timer.cancel()
        unsubscribe()

    future.add_done_callback(cleanup)
    return future
