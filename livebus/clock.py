from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

from .advancer import ARRIVAL_TOLERANCE, MOVE_FACTOR, advance_bus
from .registry import BusRegistry, LiveBus

logger = logging.getLogger(__name__)

DEFAULT_TICK_SECONDS = 2.0

Listener = Callable[[List[LiveBus]], None]


class SimulationClock:
    """
    Background worker that advances every registered bus on a fixed period.

    Ticks never overlap: scheduled ticks run on one worker thread, and a
    manual ``tick()`` issued while another tick is in progress is skipped.
    """

    def __init__(
        self,
        registry: BusRegistry,
        interval: float = DEFAULT_TICK_SECONDS,
        move_factor: float = MOVE_FACTOR,
        tolerance: float = ARRIVAL_TOLERANCE,
    ):
        if interval <= 0:
            raise ValueError("Tick interval must be positive.")
        self.registry = registry
        self.interval = interval
        self.move_factor = move_factor
        self.tolerance = tolerance
        self.tick_count = 0
        self._listeners: List[Listener] = []
        self._tick_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener for post-tick snapshots; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="livebus-clock", daemon=True
        )
        self._thread.start()
        logger.info("Simulation clock started (interval %.2fs)", self.interval)

    def stop(self, timeout: Optional[float] = None) -> None:
        thread = self._thread
        if thread is None:
            return
        self._stop_event.set()
        if thread is not threading.current_thread():
            thread.join(timeout if timeout is not None else self.interval * 2)
        self._thread = None
        logger.info("Simulation clock stopped after %d ticks", self.tick_count)

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval):
            self.tick()

    def _step(self, bus: LiveBus) -> LiveBus:
        route = self.registry.catalog.get(bus.route_id)
        return advance_bus(bus, route, self.move_factor, self.tolerance)

    def tick(self) -> bool:
        """Advance all buses once. Returns False if a tick was already running."""
        if not self._tick_lock.acquire(blocking=False):
            logger.debug("Tick skipped; previous tick still running")
            return False
        try:
            evicted = self.registry.update_all(self._step)
            self.tick_count += 1
            if evicted:
                logger.warning("Evicted buses during tick: %s", ", ".join(evicted))
            self._publish(self.registry.snapshot())
        finally:
            self._tick_lock.release()
        return True

    def _publish(self, buses: List[LiveBus]) -> None:
        for listener in list(self._listeners):
            try:
                listener(buses)
            except Exception:
                logger.exception("Simulation listener %r failed", listener)
