"""
Registration worker.

- Consumes the durable ``user_registration_queue`` one message at a time
- Re-validates, persists the user and sends a welcome email
- Acks on success or duplicate, rejects without requeue on any failure
- Exits with status 1 if the broker or database is unavailable at startup,
  or if the broker closes the channel while consuming
"""

import asyncio
import logging
import signal
import sys
import time
from typing import Any, Optional

from aio_pika.abc import AbstractIncomingMessage

from libs.config import CONSUMER_PREFETCH, Settings, get_settings
from libs.logging_utils import setup_logging
from libs.metrics import (
    WORKER_MESSAGE_TOTAL,
    WORKER_PROCESS_LATENCY_SECONDS,
    start_metrics_server,
)
from libs.notifier import WelcomeNotifier
from libs.processor import process_message
from libs.rabbit import declare_registration_queue, open_channel
from libs.store import UserStore


logger = logging.getLogger(__name__)


class RegistrationWorker:
    """Single-consumer worker for the registration queue.

    Concurrency model:
    - Prefetch is fixed at 1, so the broker never delivers a second message
      before the current one is acked or rejected
    - Processing of a message is sequential: parse, validate, persist, notify, ack

    Example:
    ```python
    worker = RegistrationWorker(settings, store, notifier)
    await worker.run()  # returns after stop(), raises if the channel is lost
    ```
    """

    def __init__(self, settings: Settings, store: UserStore, notifier: WelcomeNotifier):
        self.settings = settings
        self.store = store
        self.notifier = notifier
        self._stopping = asyncio.Event()
        self._channel_lost: Optional[BaseException] = None

    async def run(self) -> None:
        """Open the channel, declare the queue and consume until ``stop()``.

        Raises ``ConnectionError`` if the broker closes the channel before
        ``stop()`` is called, so the process exits and its supervisor restarts it.
        """
        async with open_channel(self.settings.rabbitmq_url, prefetch_count=CONSUMER_PREFETCH) as channel:
            channel.close_callbacks.add(self._on_channel_closed)
            queue = await declare_registration_queue(channel, self.settings.registration_queue)
            logger.info("Waiting for messages on queue %s", self.settings.registration_queue)
            await queue.consume(self._on_message, no_ack=False)

            # Wait until stop() is called (SIGINT/SIGTERM) or the channel is lost
            await self._stopping.wait()

            if self._channel_lost is not None:
                raise ConnectionError("RabbitMQ channel closed unexpectedly") from self._channel_lost

    def _on_channel_closed(self, _sender: Any, exc: Optional[BaseException] = None) -> None:
        if self._stopping.is_set():
            return
        logger.error("RabbitMQ channel closed while consuming: %s", exc)
        self._channel_lost = exc if exc is not None else ConnectionError("channel closed")
        self._stopping.set()

    async def _on_message(self, message: AbstractIncomingMessage) -> None:
        start_ts = time.perf_counter()
        try:
            outcome = await process_message(message, self.store, self.notifier)
            WORKER_MESSAGE_TOTAL.labels(outcome=outcome.value).inc()
        except Exception:  # noqa: BLE001
            # ack/reject itself failed, e.g. the channel closed mid-message
            logger.exception("Failed to settle registration message")
        finally:
            WORKER_PROCESS_LATENCY_SECONDS.observe(time.perf_counter() - start_ts)

    def stop(self) -> None:
        """Signal the run loop to stop (used by signal handlers)."""
        self._stopping.set()


async def main() -> int:
    """Entrypoint for running the worker as a script. Returns the exit status."""
    settings = get_settings()
    setup_logging(settings.log_level)

    try:
        start_metrics_server(settings.metrics_port)
        logger.info("Metrics server listening on :%s /metrics", settings.metrics_port)
    except OSError as exc:
        logger.warning("Metrics server not started: %s", exc)

    store = UserStore.from_url(settings.database_url)
    try:
        try:
            await store.ping()
            await store.create_schema()
            logger.info("Connected to the user store")
        except Exception:  # noqa: BLE001
            logger.exception("Could not connect to the user store")
            return 1

        notifier = WelcomeNotifier(settings)
        await notifier.initialize()

        worker = RegistrationWorker(settings, store, notifier)
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, worker.stop)

        try:
            await worker.run()
        except Exception:  # noqa: BLE001
            logger.exception("Registration worker failed")
            return 1
        return 0
    finally:
        await store.close()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
