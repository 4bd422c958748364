"""
Data coordinator: snapshot ownership, fetch cycles and refresh triggers.

The coordinator is the only writer of the Snapshot. Everything else reads it
or subscribes to replacements.

Architecture:
  - DataCoordinator: owns the Snapshot, runs fetch cycles on the asyncio loop
  - Timer task: fires a trigger every `interval` seconds on a fixed schedule
  - Triggers: startup, parameter change, timer tick, manual refresh()

Cycle:
  1. loading=True, error cleared (routers/services kept)
  2. routers and services fetched concurrently (asyncio.gather)
  3. any failure -> error set, data kept; routers win if both fail
  4. both succeed -> data replaced, last_updated stamped

Concurrency:
  - Single-threaded asyncio; no locks
  - `_in_flight` drops triggers that arrive while a cycle runs
  - `_generation` is bumped on parameter change/stop; a cycle whose
    generation is no longer current discards its results
  - Each commit swaps in one new frozen Snapshot, so observers never see
    routers from one cycle next to services from another
"""

import asyncio
import dataclasses
import logging
import time
from typing import Any, Awaitable, Callable, List, Optional, Set

from . import api
from .model import Snapshot

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 10.0

Listener = Callable[[Snapshot], None]


class DataCoordinator:
    def __init__(
        self,
        api_url: str,
        credential: Optional[str] = None,
        gateway: Any = None,
        interval: float = DEFAULT_INTERVAL,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ):
        if interval <= 0:
            raise ValueError(f"Refresh interval must be positive, got {interval!r}")
        self.api_url = api_url
        self.credential = credential
        self.gateway = gateway if gateway is not None else api.default_gateway
        self.interval = interval
        self._sleep = sleep
        self._clock = clock

        self._snapshot = Snapshot()
        self._listeners: List[Listener] = []
        self._generation = 0
        self._in_flight = False
        self._refresh_tick = 0
        self._cycle_count = 0
        self._timer_task: Optional[asyncio.Task] = None
        self._cycle_tasks: Set[asyncio.Task] = set()
        self._running = False

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def refresh_tick(self) -> int:
        return self._refresh_tick

    @property
    def cycle_count(self) -> int:
        """Number of fetch cycles started so far."""
        return self._cycle_count

    @property
    def running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a snapshot listener. Returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _commit(self, **changes: Any) -> None:
        self._snapshot = dataclasses.replace(self._snapshot, **changes)
        for listener in list(self._listeners):
            try:
                listener(self._snapshot)
            except Exception as e:
                logger.error(f"Snapshot listener {listener!r} failed: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> "DataCoordinator":
        """Fire the startup cycle and arm the timer. Needs a running event loop."""
        if self._running:
            return self
        self._running = True
        logger.info(f"Coordinator started for {self.api_url} (interval={self.interval}s)")
        self._start_timer()
        self._trigger("startup")
        return self

    def stop(self) -> None:
        """Tear down the timer. Cycles still in flight finish but are discarded."""
        if not self._running:
            return
        self._running = False
        self._generation += 1
        self._in_flight = False
        self._cancel_timer()
        if self._snapshot.loading:
            # The superseded cycle will never commit
            self._commit(loading=False)
        logger.info("Coordinator stopped")

    def update_params(self, api_url: str, credential: Optional[str] = None) -> None:
        """Switch to a new API URL/credential, restarting timer and fetching immediately."""
        if api_url == self.api_url and credential == self.credential:
            return
        logger.info(f"Coordinator parameters changed: {self.api_url} -> {api_url}")
        self.api_url = api_url
        self.credential = credential
        self._generation += 1
        self._in_flight = False
        if not self._running:
            return
        self._cancel_timer()
        self._start_timer()
        self._trigger("params")

    def refresh(self) -> None:
        """Manual refresh: bump the tick and trigger an extra cycle."""
        self._refresh_tick += 1
        if self._running:
            self._trigger("manual")

    async def wait_idle(self) -> None:
        """Wait until every cycle task started so far has finished."""
        while self._cycle_tasks:
            await asyncio.gather(*list(self._cycle_tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Timer
    # ------------------------------------------------------------------

    def _start_timer(self) -> None:
        self._timer_task = asyncio.get_running_loop().create_task(
            self._timer_loop(self._generation)
        )

    def _cancel_timer(self) -> None:
        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None

    async def _timer_loop(self, generation: int) -> None:
        while self._running and generation == self._generation:
            await self._sleep(self.interval)
            if not self._running or generation != self._generation:
                return
            self._trigger("timer")

    # ------------------------------------------------------------------
    # Cycles
    # ------------------------------------------------------------------

    def _trigger(self, source: str) -> None:
        if self._in_flight:
            logger.debug(f"Refresh from {source} coalesced into the running cycle")
            return

        self._in_flight = True
        self._cycle_count += 1
        generation = self._generation
        logger.debug(f"Fetch cycle {self._cycle_count} started ({source})")
        self._commit(loading=True, error=None)

        task = asyncio.get_running_loop().create_task(self._run_cycle(generation))
        self._cycle_tasks.add(task)
        task.add_done_callback(self._cycle_tasks.discard)

    async def _run_cycle(self, generation: int) -> None:
        api_url, credential = self.api_url, self.credential
        try:
            try:
                routers_result, services_result = await asyncio.gather(
                    self.gateway.fetch_routers(api_url, credential),
                    self.gateway.fetch_services(api_url, credential),
                )
            except Exception as e:
                # Gateways are expected to return failures, not raise them
                logger.error(f"Gateway raised during fetch cycle: {e}", exc_info=True)
                if generation == self._generation:
                    self._commit(loading=False, error=api.FetchFailure(str(e) or type(e).__name__))
                return

            if generation != self._generation:
                logger.debug("Discarding results of a superseded fetch cycle")
                return

            if not routers_result.ok:
                logger.error(f"Error fetching routers: {routers_result.error}")
                self._commit(loading=False, error=routers_result.error)
                return

            if not services_result.ok:
                logger.error(f"Error fetching services: {services_result.error}")
                self._commit(loading=False, error=services_result.error)
                return

            now = self._clock()
            previous = self._snapshot.last_updated
            if previous is not None and now <= previous:
                now = previous + 1e-6
            self._commit(
                routers=list(routers_result.value),
                services=list(services_result.value),
                loading=False,
                error=None,
                last_updated=now,
            )
            logger.debug(
                f"Fetched {len(routers_result.value)} routers and {len(services_result.value)} services"
            )
        finally:
            if generation == self._generation:
                self._in_flight = False


def start(
    api_url: str,
    credential: Optional[str] = None,
    **kwargs: Any,
) -> DataCoordinator:
    """Create a coordinator for (api_url, credential) and fire its startup cycle."""
    return DataCoordinator(api_url, credential, **kwargs).start()
