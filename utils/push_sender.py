from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, Dict, Optional

import requests
from fastapi.concurrency import run_in_threadpool
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import service_account
from pydantic import BaseModel, Field, model_validator

from config import Settings
from utils.errors import ConfigurationError, DeliveryError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/firebase.messaging"]
TOKEN_URI = "https://oauth2.googleapis.com/token"
FCM_TIMEOUT_SECONDS = 12


class PushMessage(BaseModel):
    """One push message, addressed to a single device token or to a topic."""

    token: Optional[str] = None
    topic: Optional[str] = None
    title: str = Field(min_length=1)
    body: str = Field(min_length=1)
    data: Dict[str, Any] = Field(default_factory=dict)

    android_sound: Optional[str] = None
    android_channel: Optional[str] = None
    high_priority: bool = False
    apns_sound: Optional[str] = None
    link: Optional[str] = None
    icon: Optional[str] = None
    badge: Optional[str] = None
    analytics_label: Optional[str] = None

    @model_validator(mode="after")
    def check_target(self) -> "PushMessage":
        if bool(self.token) == bool(self.topic):
            raise ValueError("exactly one of token or topic is required")
        return self

    @property
    def target(self) -> str:
        return f"topic:{self.topic}" if self.topic else f"token:{(self.token or '')[:12]}..."

    def to_fcm(self) -> Dict[str, Any]:
        msg: Dict[str, Any] = {"notification": {"title": self.title, "body": self.body}}
        if self.token:
            msg["token"] = self.token
        else:
            msg["topic"] = self.topic
        if self.data:
            msg["data"] = {k: str(v) for k, v in self.data.items()}

        android_notif: Dict[str, Any] = {}
        if self.android_sound:
            android_notif["sound"] = self.android_sound
        if self.android_channel:
            android_notif["channel_id"] = self.android_channel
        if self.high_priority:
            android_notif["notification_priority"] = "PRIORITY_MAX"
        android: Dict[str, Any] = {}
        if self.high_priority:
            android["priority"] = "HIGH"
        if android_notif:
            android["notification"] = android_notif
        if android:
            msg["android"] = android

        if self.apns_sound:
            apns: Dict[str, Any] = {"payload": {"aps": {"sound": self.apns_sound}}}
            if self.high_priority:
                apns["headers"] = {"apns-priority": "10"}
            msg["apns"] = apns

        webpush: Dict[str, Any] = {}
        if self.link:
            webpush["fcm_options"] = {"link": self.link}
        web_notif = {k: v for k, v in (("icon", self.icon), ("badge", self.badge)) if v}
        if web_notif:
            webpush["notification"] = web_notif
        if webpush:
            msg["webpush"] = webpush

        if self.analytics_label:
            msg["fcm_options"] = {"analytics_label": self.analytics_label}
        return {"message": msg}


_session: Optional[AuthorizedSession] = None
_session_lock = threading.Lock()


def init_messaging(settings: Settings) -> AuthorizedSession:
    """Create the process-wide FCM session once; later calls return it unchanged."""
    global _session
    with _session_lock:
        if _session is not None:
            return _session
        if not settings.fcm_configured:
            raise ConfigurationError("Missing Credentials")
        info = {
            "type": "service_account",
            "project_id": settings.fcm_project_id,
            "client_email": settings.fcm_client_email,
            "private_key": settings.fcm_private_key,
            "token_uri": TOKEN_URI,
        }
        try:
            creds = service_account.Credentials.from_service_account_info(info, scopes=SCOPES)
        except ValueError as e:
            raise ConfigurationError(f"Invalid service account: {e}") from e
        _session = AuthorizedSession(creds)
        logger.info("FCM session initialised for project %s", settings.fcm_project_id)
        return _session


def reset_messaging() -> None:
    global _session
    with _session_lock:
        _session = None


def _error_code(payload: Any) -> Optional[str]:
    # FCM v1 error bodies: {"error": {"status": ..., "details": [{"errorCode": ...}]}}
    if not isinstance(payload, dict):
        return None
    err = payload.get("error") or {}
    for d in err.get("details") or []:
        if isinstance(d, dict) and d.get("errorCode"):
            return d["errorCode"]
    return err.get("status")


class PushSender:
    def __init__(self, settings: Settings, session: Optional[AuthorizedSession] = None):
        self.settings = settings
        self._session = session

    @property
    def url(self) -> str:
        return f"https://fcm.googleapis.com/v1/projects/{self.settings.fcm_project_id}/messages:send"

    def _get_session(self) -> AuthorizedSession:
        if self._session is None:
            self._session = init_messaging(self.settings)
        return self._session

    def ensure_ready(self) -> None:
        """Load the service account now so a bad key fails before any send."""
        if self.settings.push_mode != "stub":
            self._get_session()

    def _post(self, message: PushMessage) -> str:
        try:
            r = self._get_session().post(self.url, json=message.to_fcm(), timeout=FCM_TIMEOUT_SECONDS)
        except GoogleAuthError as e:
            raise DeliveryError(f"FCM auth failed: {e}", target=message.target) from e
        except requests.RequestException as e:
            raise DeliveryError(f"FCM request failed: {e}", target=message.target) from e

        if 200 <= r.status_code < 300:
            try:
                return str(r.json().get("name") or "")
            except ValueError:
                return ""

        try:
            payload = r.json()
        except ValueError:
            payload = None
        raise DeliveryError(
            f"FCM rejected message status={r.status_code}: {r.text[:400]}",
            target=message.target,
            error_code=_error_code(payload),
            status_code=r.status_code,
        )

    async def send(self, message: PushMessage) -> str:
        if self.settings.push_mode == "stub":
            message_id = f"stub-{uuid.uuid4().hex}"
            logger.info("[stub] push %s -> %s: %s", message_id, message.target, message.title)
            return message_id

        message_id = await run_in_threadpool(self._post, message)
        logger.debug("Push sent %s -> %s", message_id, message.target)
        return message_id
