"""
Registration API endpoints.
Validates submissions and hands them to the queue publisher.
"""

import datetime
import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from api.deps import get_publisher
from libs.exceptions import ValidationError
from libs.rabbit import UserPublisher
from libs.validation import export_user_json_schema, validate_user_payload

logger = logging.getLogger(__name__)

ACCEPTED_MESSAGE = "User received and queued for processing."
INTERNAL_ERROR_MESSAGE = "Internal server error while processing your request."

router = APIRouter(prefix="/api", tags=["users"])
health_router = APIRouter(tags=["health"])


@router.post(
    "/users",
    status_code=status.HTTP_202_ACCEPTED,
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": export_user_json_schema()}},
        }
    },
    responses={
        400: {"description": "Validation error"},
        500: {"description": "Internal server error"},
    },
)
async def register_user(request: Request, publisher: UserPublisher = Depends(get_publisher)):
    """
    Register a user by validating the body and queueing it for the worker.

    Returns:
        202 with the name and email echoed back (never the phone).

    Raises:
        ValidationError: rendered as 400 by the application's exception handler
    """
    try:
        body = await request.json()
    except ValueError:
        raise ValidationError('"body" must be valid JSON', field="body") from None

    payload = validate_user_payload(body)

    try:
        await publisher.publish(payload)
    except Exception:  # noqa: BLE001
        logger.exception("Error registering user %s", payload.email)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": INTERNAL_ERROR_MESSAGE},
        )

    return {
        "message": ACCEPTED_MESSAGE,
        "data": {"name": payload.name, "email": str(payload.email)},
    }


@health_router.get("/health", status_code=status.HTTP_200_OK)
async def health_check(publisher: UserPublisher = Depends(get_publisher)) -> dict:
    """
    Health check reporting whether the broker channel is open.

    Returns:
        dict: Health status with keys: status, timestamp, services
    """
    broker_healthy = publisher.is_connected
    return {
        "status": "healthy" if broker_healthy else "degraded",
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "services": {
            "application": "healthy",
            "broker": "healthy" if broker_healthy else "unhealthy",
        },
    }
