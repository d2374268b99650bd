"""
Topology initializer.

- Declares the durable registration queue
- Creates the users table and its unique email index

Supports a best-effort mode via ``--best-effort`` or ``INIT_TOPOLOGY_BEST_EFFORT=1``
which skips a dependency that is not reachable (useful in CI).

Examples:
    python -m scripts.init_topology
    python -m scripts.init_topology --best-effort
"""

import argparse
import asyncio
import logging
import os

from libs.config import get_settings
from libs.logging_utils import setup_logging
from libs.rabbit import declare_registration_queue, open_channel
from libs.store import UserStore


logger = logging.getLogger(__name__)


async def main(best_effort: bool) -> None:
    """Declare the queue and create the schema.

    When ``best_effort`` is True, a connection or declaration error is
    logged and that step is skipped.
    """
    settings = get_settings()

    try:
        async with open_channel(settings.rabbitmq_url) as channel:
            await declare_registration_queue(channel, settings.registration_queue)
        logger.info("Queue %s declared", settings.registration_queue)
    except Exception as exc:  # noqa: BLE001
        if not best_effort:
            raise
        logger.warning("Skipping queue declaration: RabbitMQ not reachable (%s)", exc)

    store = UserStore.from_url(settings.database_url)
    try:
        await store.create_schema()
        logger.info("User store schema ready")
    except Exception as exc:  # noqa: BLE001
        if not best_effort:
            raise
        logger.warning("Skipping schema creation: database not reachable (%s)", exc)
    finally:
        await store.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Declare the registration queue and user table")
    parser.add_argument("--best-effort", action="store_true", help="Do not fail if a dependency is unreachable")
    args = parser.parse_args()

    best_effort_env = os.getenv("INIT_TOPOLOGY_BEST_EFFORT", "false").lower() in {"1", "true", "yes"}
    setup_logging(get_settings().log_level)
    asyncio.run(main(bool(args.best_effort or best_effort_env)))
