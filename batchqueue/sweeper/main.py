"""
Expiry sweeper for returning expired pending jobs to their batches.

The sweeper runs periodically over every known batch and requeues pending
jobs older than the configured TTL. This handles consumer crashes after a
reliable pluck and gives at-least-once delivery.
"""

import asyncio
import logging
import signal

from batchqueue.config import get_settings
from batchqueue.constants import SPAN_SWEEP
from batchqueue.observability.logging import batch_context, setup_logging
from batchqueue.observability.metrics import serve_metrics
from batchqueue.observability.tracing import create_span, setup_tracing
from batchqueue.queue import BatchQueue
from batchqueue.store.connection import get_client_context

logger = logging.getLogger(__name__)


class Sweeper:
    """
    Sweeper that requeues expired pending jobs.

    Each pass:
    1. Lists every known batch
    2. Requeues its pending jobs older than the TTL
    3. Keeps going past batches that fail, logging the error
    """

    def __init__(
        self,
        queue: BatchQueue | None = None,
        interval_seconds: float | None = None,
        ttl: float | None = None,
        unique: bool | None = None,
    ):
        """
        Initialize the sweeper.

        Args:
            queue: Batch queue to sweep. Defaults to one on the shared client.
            interval_seconds: Seconds between sweeps.
            ttl: Pending job TTL in seconds.
            unique: Whether requeues drop payloads that are already live.
        """
        settings = get_settings()
        self.queue = queue or BatchQueue()
        self.interval = (
            settings.sweeper_interval_seconds if interval_seconds is None else interval_seconds
        )
        self.ttl = settings.pending_ttl_seconds if ttl is None else ttl
        self.unique = settings.sweeper_unique if unique is None else unique
        self._running = False

    async def start(self) -> None:
        """Start the sweeper loop."""
        logger.info(
            f"Sweeper starting with interval {self.interval}s",
            extra={"ttl": self.ttl, "unique": self.unique},
        )
        self._running = True

        while self._running:
            try:
                swept = await self.run_once()
                expired = sum(len(ids) for ids in swept.values())
                if expired > 0:
                    logger.info(f"Requeued {expired} expired pending jobs")

            except Exception as e:
                logger.exception(f"Error in sweeper loop: {e}")

            await asyncio.sleep(self.interval)

        logger.info("Sweeper stopped")

    async def stop(self) -> None:
        """Stop the sweeper."""
        logger.info("Sweeper stopping")
        self._running = False

    async def run_once(self) -> dict[str, list[str]]:
        """
        Run one sweep over all batches (for testing or cron-style execution).

        Returns:
            Mapping of batch name -> expired pending job ids processed.
            Batches with nothing expired are omitted.
        """
        swept: dict[str, list[str]] = {}
        with create_span(SPAN_SWEEP, ttl=self.ttl, unique=self.unique):
            for name in await self.queue.list_batches():
                with batch_context(name):
                    try:
                        expired = await self.queue.requeue_expired(
                            name, unique=self.unique, ttl=self.ttl
                        )
                    except Exception as e:
                        logger.exception(f"Failed to requeue batch: {e}", extra={"batch": name})
                        continue
                if expired:
                    swept[name] = expired
        return swept


async def run_async() -> None:
    """Run the sweeper asynchronously."""
    settings = get_settings()
    setup_logging()
    if settings.tracing_enabled:
        setup_tracing()
    if settings.metrics_enabled:
        serve_metrics(settings.prometheus_port)

    async with get_client_context():
        sweeper = Sweeper()

        # Handle shutdown signals
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(
                sig,
                lambda: asyncio.create_task(sweeper.stop())
            )

        await sweeper.start()


def run() -> None:
    """Run the sweeper."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()
