"""Mutual exclusion for the automatic synchronization pass.

At most one pass runs at a time, and a pass waits for live generations to
finish. Manual vectorization and retrieval are not guarded here.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable

from shared.helper.HelperConfig import HelperConfig

SYNC_SKIPPED = -1


class SyncGate:
    def __init__(self, helper_config: HelperConfig, poll_interval: float | None = None, timeout: float | None = None):
        self.logging = helper_config.get_logger()
        self._poll_interval = poll_interval if poll_interval is not None else helper_config.get_number_val("SYNC_GATE_POLL_INTERVAL", default=1.0)
        self._timeout = timeout if timeout is not None else helper_config.get_number_val("SYNC_GATE_TIMEOUT", default=10.0)
        self._sync_running = False
        self._active_generations = 0
        self._host_generating = False

    ##########################################
    ################ STATE ###################
    ##########################################

    def is_sync_running(self) -> bool:
        return self._sync_running

    def is_generation_active(self) -> bool:
        return self._host_generating or self._active_generations > 0

    def set_host_generating(self, active: bool) -> None:
        """Record the host's own send-in-progress flag."""
        self._host_generating = active

    @asynccontextmanager
    async def generation(self) -> AsyncIterator[None]:
        """Mark a generation turn as in flight for the duration of the block."""
        self._active_generations += 1
        try:
            yield
        finally:
            self._active_generations -= 1

    ##########################################
    ################ GATE ####################
    ##########################################

    async def wait_until_free(self) -> bool:
        """Poll until no pass and no generation is active.

        Returns:
            bool: True when free, False when the timeout elapsed first.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._timeout
        while self._sync_running or self.is_generation_active():
            if loop.time() >= deadline:
                return False
            await asyncio.sleep(self._poll_interval)
        return True

    async def run_exclusive(self, sync_pass: Callable[[], Awaitable[int]]) -> int:
        """Run one pass under the gate.

        Args:
            sync_pass: Coroutine factory performing the pass, returning the number of remaining items.

        Returns:
            int: The pass result, or SYNC_SKIPPED when the gate could not be acquired in time.
        """
        if not await self.wait_until_free():
            self.logging.info("Synchronization blocked by another process, skipping this pass.")
            return SYNC_SKIPPED

        # no await between the free check and taking the gate
        self._sync_running = True
        try:
            return await sync_pass()
        finally:
            self._sync_running = False
