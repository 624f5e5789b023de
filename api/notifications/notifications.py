from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import JSONResponse

from config import Settings, get_settings
from models.db import db
from schemas.notifications import CheckRunOut, NotifiedOut, PushSendIn, PushSendOut
from utils.errors import ConfigurationError, DeliveryError, PersistenceError, Unauthorized
from utils.push_sender import PushSender

from . import messages
from .orchestrator import require_push_credentials, run_check, verify_cron_secret
from .store import MongoNotificationStore, NotificationStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["notifications"])


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_store() -> NotificationStore:
    return MongoNotificationStore(db)


def get_sender(settings: Settings = Depends(get_settings)) -> PushSender:
    return PushSender(settings)


def failure(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


@router.api_route("/cron/check-prayers", methods=["GET", "POST"], response_model=CheckRunOut)
async def check_prayers(
    x_cron_auth: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
    store: NotificationStore = Depends(get_store),
    sender: PushSender = Depends(get_sender),
    now: datetime = Depends(utcnow),
):
    try:
        result = await run_check(now, auth_token=x_cron_auth, settings=settings, store=store, sender=sender)
    except Unauthorized:
        raise HTTPException(status_code=401, detail="Unauthorized")
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except PersistenceError as e:
        logger.error("Prayer check aborted: %s", e)
        raise HTTPException(status_code=500, detail=str(e))
    except Exception as e:
        logger.exception("Prayer check failed")
        raise HTTPException(status_code=500, detail=str(e))

    return CheckRunOut(
        success=True,
        count=result.count,
        notified=[NotifiedOut(uid=n.uid, prayer=n.prayer, alert=n.alert) for n in result.notified],
    )


@router.post("/notifications/send", response_model=PushSendOut, response_model_exclude_none=True)
async def send_notification(
    payload: PushSendIn,
    settings: Settings = Depends(get_settings),
    sender: PushSender = Depends(get_sender),
):
    missing = payload.missing_fields()
    if missing:
        return failure(400, f"Missing required fields: {', '.join(missing)}")

    try:
        require_push_credentials(settings)
        message_id = await sender.send(messages.manual(settings, payload.token, payload.title, payload.body))
    except (ConfigurationError, DeliveryError) as e:
        logger.error("Manual send failed: %s", e)
        return failure(500, str(e))

    logger.info("Manual message sent: %s", message_id)
    return PushSendOut(success=True, message_id=message_id)


@router.api_route(
    "/cron/donation", methods=["GET", "POST"], response_model=PushSendOut, response_model_exclude_none=True
)
async def donation_reminder(
    x_cron_auth: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
    sender: PushSender = Depends(get_sender),
):
    """Broadcast the donation reminder to the donation topic.

    When CRON_SECRET is set the caller must send it in ``x-cron-auth``;
    without it the endpoint is open, as scheduled broadcasts have always been.
    """
    if settings.cron_secret and not verify_cron_secret(settings, x_cron_auth):
        logger.warning("Donation reminder: unauthorized attempt blocked")
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        require_push_credentials(settings)
        message_id = await sender.send(messages.donation_reminder(settings))
    except (ConfigurationError, DeliveryError) as e:
        logger.error("Donation reminder failed: %s", e)
        return failure(500, str(e))

    logger.info("Donation reminder sent to topic %s: %s", settings.donation_topic, message_id)
    return PushSendOut(success=True, message_id=message_id)
