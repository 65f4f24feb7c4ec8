"""
Dispatch Executor - runs a resolved listener snapshot.

Sync dispatch calls listeners back-to-back on the calling turn; the first
failure aborts the rest only when ``throw_on_error`` is set.

Async dispatch starts one task per listener and joins them with
``asyncio.gather(..., return_exceptions=True)``: a failing listener never
cancels its siblings. With ``throw_on_error`` the first failure (in snapshot
order) is re-raised once every task has finished.

In both modes ``once`` records that were invoked are removed afterwards, and
every failure increments the ledger's error counter.
"""

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from typing import Any, List, Optional

from eventbus.config import BusConfig
from eventbus.ledger import Ledger
from eventbus.logging_config import dispatch_context
from eventbus.registry import ListenerRecord, ListenerRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of one listener invocation."""
    listener_id: str
    success: bool
    result: Any = None
    error: Optional[BaseException] = None
    duration_ms: float = 0.0


class DispatchExecutor:
    """Invokes listeners and reports per-listener outcomes."""

    def __init__(self, registry: ListenerRegistry, ledger: Ledger, config: BusConfig):
        self.registry = registry
        self.ledger = ledger
        self.config = config

    def _should_invoke(self, record: ListenerRecord, payload: Any) -> bool:
        if record.condition is None:
            return True
        return bool(record.condition(payload))

    def _failed(self, record: ListenerRecord, event_name: str, error: BaseException, start: float) -> DispatchResult:
        self.ledger.increment_errors()
        if self.config.debug:
            logger.error(f"Error in listener {record.id} for event {event_name}: {error}", exc_info=error)
        else:
            logger.warning(f"Error in listener {record.id} for event {event_name}: {error}")
        return DispatchResult(
            listener_id=record.id,
            success=False,
            error=error,
            duration_ms=(time.perf_counter() - start) * 1000,
        )

    def _remove_once(self, invoked: List[ListenerRecord]) -> None:
        for record in invoked:
            if record.once:
                self.registry.remove_record(record)

    def run_sync(
        self,
        event_name: str,
        payload: Any,
        listeners: List[ListenerRecord],
        throw_on_error: bool = False,
    ) -> List[DispatchResult]:
        results: List[DispatchResult] = []
        invoked: List[ListenerRecord] = []

        with dispatch_context(event_name):
            try:
                for record in listeners:
                    start = time.perf_counter()
                    try:
                        if not self._should_invoke(record, payload):
                            continue
                        invoked.append(record)
                        result = self._call_sync(record, payload, event_name)
                    except Exception as e:
                        results.append(self._failed(record, event_name, e, start))
                        if throw_on_error:
                            raise
                        continue

                    results.append(DispatchResult(
                        listener_id=record.id,
                        success=True,
                        result=result,
                        duration_ms=(time.perf_counter() - start) * 1000,
                    ))
            finally:
                self._remove_once(invoked)

        return results

    def _call_sync(self, record: ListenerRecord, payload: Any, event_name: str) -> Any:
        result = record.invoke(payload, event_name)
        if not inspect.isawaitable(result):
            return result

        # coroutine listener on the sync path: hand it to the running loop
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(result):
                result.close()
            raise RuntimeError(
                f"Listener {record.id} returned an awaitable but no event loop is running; "
                "use emit_async()"
            ) from None
        return asyncio.ensure_future(result)

    async def run_async(
        self,
        event_name: str,
        payload: Any,
        listeners: List[ListenerRecord],
        throw_on_error: bool = False,
    ) -> List[DispatchResult]:
        invoked: List[ListenerRecord] = []

        async def run_one(record: ListenerRecord) -> Optional[DispatchResult]:
            start = time.perf_counter()
            try:
                if not self._should_invoke(record, payload):
                    return None
                invoked.append(record)
                result = record.invoke(payload, event_name)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as e:
                return self._failed(record, event_name, e, start)

            return DispatchResult(
                listener_id=record.id,
                success=True,
                result=result,
                duration_ms=(time.perf_counter() - start) * 1000,
            )

        with dispatch_context(event_name):
            try:
                outcomes = await asyncio.gather(
                    *(run_one(record) for record in listeners),
                    return_exceptions=True,
                )
            finally:
                self._remove_once(invoked)

        results: List[DispatchResult] = []
        for record, outcome in zip(listeners, outcomes):
            if outcome is None:
                continue
            if isinstance(outcome, BaseException):
                # only non-Exception errors (e.g. cancellation) get here
                self.ledger.increment_errors()
                outcome = DispatchResult(listener_id=record.id, success=False, error=outcome)
            results.append(outcome)

        if throw_on_error:
            for outcome in results:
                if not outcome.success:
                    raise outcome.error

        return results
