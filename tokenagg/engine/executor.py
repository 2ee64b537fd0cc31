"""Concurrent fan-out of source calls with per-source and global timeouts."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Mapping, Sequence

from tokenagg.errors import SourceTimeoutError
from tokenagg.metrics.exporter import SOURCE_CALL_LATENCY, SOURCE_CALLS_TOTAL
from tokenagg.models import FailureReason, SourceFailure, SourceOutcome, SourceSuccess

log = logging.getLogger(__name__)

SourceCall = Callable[[float | None], Awaitable[Any]]


def _budget(
    source_id: str,
    timeout: float | None,
    per_source_timeout: Mapping[str, float | None] | None,
) -> float | None:
    own = (per_source_timeout or {}).get(source_id)
    if own is None:
        return timeout
    if timeout is None:
        return own
    return min(own, timeout)


def _record(service: str, outcome: SourceOutcome, elapsed: float) -> None:
    if isinstance(outcome, SourceSuccess):
        result = "success"
        log.debug("%s source %s succeeded in %.3fs", service, outcome.source_id, elapsed)
    else:
        result = outcome.reason.value
        log.warning(
            "%s source %s failed (%s): %s",
            service,
            outcome.source_id,
            outcome.reason.value,
            outcome.error,
        )
    SOURCE_CALLS_TOTAL.labels(service, outcome.source_id, result).inc()
    SOURCE_CALL_LATENCY.labels(service, outcome.source_id).observe(elapsed)


async def run_sources(
    calls: Sequence[tuple[str, SourceCall]],
    *,
    timeout: float | None,
    per_source_timeout: Mapping[str, float | None] | None = None,
    service: str = "quotes",
) -> list[SourceOutcome]:
    """Invoke every call concurrently and collect one outcome per call.

    Parameters
    ----------
    calls:
        ``(source_id, call)`` pairs. Each ``call`` receives its time budget in
        seconds (or ``None`` for unbounded) and is awaited exactly once.
    timeout:
        Global budget for the whole fan-out, in seconds.
    per_source_timeout:
        Optional tighter budgets keyed by source id.
    service:
        Label used for logs and metrics (``quotes``, ``balances``, ...).

    Returns
    -------
    list[SourceOutcome]
        Outcomes in launch order. Exceptions become
        ``SourceFailure(reason=CALL_FAILED)``; exceeding either budget becomes
        ``SourceFailure(reason=TIMEOUT)``. Timed-out calls are cancelled and
        never retried; the engine does not wait for a cancelled call to
        unwind once the global deadline has passed.
    """

    if not calls:
        return []

    loop = asyncio.get_running_loop()
    started = loop.time()

    async def _run(source_id: str, call: SourceCall) -> SourceOutcome:
        budget = _budget(source_id, timeout, per_source_timeout)
        t0 = loop.time()
        try:
            if budget is None:
                value = await call(None)
            else:
                value = await asyncio.wait_for(call(budget), budget)
        except asyncio.TimeoutError:
            outcome: SourceOutcome = SourceFailure(
                source_id, FailureReason.TIMEOUT, str(SourceTimeoutError(source_id, budget))
            )
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            outcome = SourceFailure(source_id, FailureReason.CALL_FAILED, message)
        else:
            outcome = SourceSuccess(source_id, value)
        _record(service, outcome, loop.time() - t0)
        return outcome

    tasks = [
        asyncio.create_task(_run(source_id, call), name=f"{service}:{source_id}")
        for source_id, call in calls
    ]
    _done, pending = await asyncio.wait(tasks, timeout=timeout)
    for task in pending:
        task.cancel()

    outcomes: list[SourceOutcome] = []
    for (source_id, _call), task in zip(calls, tasks):
        if task in pending or task.cancelled():
            outcome: SourceOutcome = SourceFailure(
                source_id, FailureReason.TIMEOUT, str(SourceTimeoutError(source_id, timeout))
            )
            _record(service, outcome, loop.time() - started)
            outcomes.append(outcome)
        else:
            outcomes.append(task.result())
    return outcomes


def successes(outcomes: Sequence[SourceOutcome]) -> list[SourceSuccess]:
    return [o for o in outcomes if isinstance(o, SourceSuccess)]

