import asyncio
import logging
from contextlib import suppress
from enum import Enum

from vanish.errors import StorageUnavailableError
from vanish.stores.message import MessageStore

log = logging.getLogger("vanish.sweeper")

DEFAULT_SWEEP_INTERVAL_SECONDS = 60.0


class SweeperState(str, Enum):
    """States of the expiry sweeper.

    Attributes:
        IDLE: Waiting for the next tick
        SWEEPING: A sweep is in progress
    """

    IDLE = "idle"
    SWEEPING = "sweeping"


class ExpirySweeper:
    """Background task that purges expired messages on a fixed period.

    The sweeper runs once as soon as it is started and then every
    ``interval`` seconds until stopped. A failed sweep is logged and the next
    tick simply tries again; there is no backoff.

    Attributes:
        state: Whether a sweep is currently running
        last_deleted_count: Messages removed by the most recent successful sweep
    """

    def __init__(
        self,
        message_store: MessageStore,
        interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
    ) -> None:
        self._message_store = message_store
        self._interval = interval
        self._task: asyncio.Task | None = None
        self.state = SweeperState.IDLE
        self.last_deleted_count = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep_once(self) -> int | None:
        """Run a single sweep.

        Returns:
            Number of messages deleted, or None if the sweep failed
        """
        self.state = SweeperState.SWEEPING
        try:
            deleted_count = await self._message_store.delete_expired()
        except StorageUnavailableError as e:
            log.warning(f"Sweep skipped, storage unavailable: {e}")
            return None
        except Exception:
            log.exception("Sweep failed")
            return None
        finally:
            self.state = SweeperState.IDLE

        self.last_deleted_count = deleted_count
        if deleted_count > 0:
            log.info(f"Removed {deleted_count} expired message(s)")
        return deleted_count

    async def _run(self) -> None:
        while True:
            await self.sweep_once()
            await asyncio.sleep(self._interval)

    def start(self) -> None:
        """Start the recurring sweep. Calling start twice is a no-op."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="expiry-sweeper")
        log.info(f"Expiry sweeper started (runs every {self._interval:g} seconds)")

    async def stop(self) -> None:
        """Cancel the recurring sweep and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        log.info("Expiry sweeper stopped")
