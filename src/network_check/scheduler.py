"""
Scheduler module for the network check system.

Runs measurement cycles on a fixed period until a shutdown signal arrives.
Cancellation is cooperative and only takes effect between cycles.
"""

import asyncio
import time
from typing import Optional

from .audit_logger import AuditLogger
from .orchestrator import SamplingOrchestrator


class CycleRunner:
    """Fixed-period driver loop around a SamplingOrchestrator."""

    def __init__(
        self,
        orchestrator: SamplingOrchestrator,
        interval_seconds: float,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        """
        Initialize the runner.

        Args:
            orchestrator: Orchestrator executing each cycle
            interval_seconds: Period between cycle starts
            logger: Optional audit logger
        """
        if interval_seconds < 0:
            raise ValueError(f"interval_seconds must not be negative: {interval_seconds}")
        self._orchestrator = orchestrator
        self._interval_seconds = interval_seconds
        self._logger = logger
        self._running = False
        self._stop_event: Optional[asyncio.Event] = None

    async def run(
        self,
        stop_event: Optional[asyncio.Event] = None,
        max_cycles: Optional[int] = None,
    ) -> int:
        """
        Run cycles until stopped.

        Args:
            stop_event: Optional event to signal the runner to stop
            max_cycles: Optional upper bound on the number of cycles

        Returns:
            Number of cycles started
        """
        self._stop_event = stop_event or asyncio.Event()
        self._running = True
        cycles = 0

        try:
            while self._running and not self._stop_event.is_set():
                if max_cycles is not None and cycles >= max_cycles:
                    break

                cycle_start = time.monotonic()
                cycles += 1
                try:
                    await self._orchestrator.run_cycle(self._stop_event)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    # Log error but keep the loop alive for the next cycle
                    if self._logger:
                        self._logger.log_error("CycleRunner", "Cycle failed", e, {"cycle": cycles})

                if max_cycles is not None and cycles >= max_cycles:
                    break

                remaining = self._interval_seconds - (time.monotonic() - cycle_start)
                if remaining > 0:
                    try:
                        await asyncio.wait_for(self._stop_event.wait(), timeout=remaining)
                    except asyncio.TimeoutError:
                        pass
        finally:
            self._running = False
            self._orchestrator.stop()
            if self._logger:
                self._logger.info("CycleRunner", "Shutting down", {"cycles": cycles})

        return cycles

    def stop(self) -> None:
        """Signal the runner to stop after the current cycle."""
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()

    def is_running(self) -> bool:
        return self._running
