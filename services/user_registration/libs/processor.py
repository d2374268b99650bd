"""
Processing of a single registration message.

Lifecycle: parse -> validate -> persist -> notify -> ack, strictly in order.

Outcomes:
- ``ACKED``: persisted (and notification attempted), message acknowledged
- ``DUPLICATE``: email already registered, message acknowledged, no email sent
- ``REJECTED``: bad JSON, failed validation or store error; rejected without requeue
- ``IGNORED``: no message was delivered (consumer cancellation); nothing to ack
"""
from __future__ import annotations

import enum
import json
import logging
from typing import Optional

from aio_pika.abc import AbstractIncomingMessage

from libs.exceptions import ValidationError
from libs.notifier import WelcomeNotifier
from libs.store import UserStore
from libs.validation import validate_user_payload


logger = logging.getLogger(__name__)


class Outcome(str, enum.Enum):
    ACKED = "acked"
    DUPLICATE = "duplicate"
    REJECTED = "rejected"
    IGNORED = "ignored"


async def _reject(message: AbstractIncomingMessage) -> Outcome:
    await message.reject(requeue=False)
    return Outcome.REJECTED


async def process_message(
    message: Optional[AbstractIncomingMessage],
    store: UserStore,
    notifier: WelcomeNotifier,
) -> Outcome:
    """Handle one delivery and settle it with ack or reject (never requeue).

    Notifier failures never block the ack: ``send_welcome`` swallows its own
    errors, and anything escaping it anyway is logged here.
    """
    if message is None:
        logger.warning("Null message received from RabbitMQ; the consumer may have been cancelled")
        return Outcome.IGNORED

    try:
        raw = json.loads(message.body)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.error("Message body is not valid JSON: %s", exc)
        return await _reject(message)

    try:
        payload = validate_user_payload(raw)
    except ValidationError as exc:
        logger.error("Message failed validation: %s", exc.errors)
        return await _reject(message)

    logger.info("Registration message received for %s", payload.email)

    try:
        saved = await store.save(payload)
    except Exception as exc:  # noqa: BLE001
        logger.error("Could not persist user %s: %s", payload.email, exc)
        return await _reject(message)

    if saved is None:
        await message.ack()
        logger.info("User %s already registered; message acknowledged without notification", payload.email)
        return Outcome.DUPLICATE

    try:
        await notifier.send_welcome(payload)
    except Exception as exc:  # noqa: BLE001
        logger.error("Welcome notification for %s failed: %s", payload.email, exc)

    await message.ack()
    logger.info("Message for %s processed and acknowledged", payload.email)
    return Outcome.ACKED
