from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from beanie import Document
from pydantic import BaseModel, ConfigDict, Field
from pymongo import IndexModel, ASCENDING

from .enums import NotificationKind

MARKER_TTL_SECONDS = 8 * 24 * 3600


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MarkerKey(BaseModel):
    """Identity of one once-per-day notification event.

    ``user_id`` is the record the marker belongs to. For partner delay alerts
    that is the partner being notified, and ``origin_user_id`` is the user who
    is late.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    kind: NotificationKind
    local_date: str = Field(min_length=10, max_length=10)
    prayer: Optional[str] = None
    origin_user_id: Optional[str] = None

    @classmethod
    def quran(cls, uid: str, local_date: str) -> "MarkerKey":
        return cls(user_id=uid, kind=NotificationKind.quran_reminder, local_date=local_date)

    @classmethod
    def prayer_due(cls, uid: str, prayer: str, local_date: str) -> "MarkerKey":
        return cls(user_id=uid, kind=NotificationKind.prayer_due, local_date=local_date, prayer=prayer)

    @classmethod
    def partner_delay(cls, partner_id: str, origin_uid: str, prayer: str, local_date: str) -> "MarkerKey":
        return cls(
            user_id=partner_id,
            kind=NotificationKind.partner_delay,
            local_date=local_date,
            prayer=prayer,
            origin_user_id=origin_uid,
        )

    @property
    def legacy_field(self) -> str:
        # Flat flag names written onto user documents by the previous backend.
        if self.kind == NotificationKind.quran_reminder:
            return f"quranNotif_{self.local_date}"
        if self.kind == NotificationKind.prayer_due:
            return f"lastNotif_{self.prayer}_{self.local_date}"
        return f"delayNotif_{self.origin_user_id}_{self.prayer}_{self.local_date}"

    def query(self) -> dict:
        return {
            "user_id": self.user_id,
            "kind": self.kind.value,
            "local_date": self.local_date,
            "prayer": self.prayer,
            "origin_user_id": self.origin_user_id,
        }


class NotificationMarker(Document):
    user_id: str
    kind: NotificationKind
    local_date: str = Field(min_length=10, max_length=10)
    prayer: Optional[str] = None
    origin_user_id: Optional[str] = None
    message_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)

    class Settings:
        name = "notification_markers"
        indexes = [
            IndexModel(
                [
                    ("user_id", ASCENDING),
                    ("kind", ASCENDING),
                    ("local_date", ASCENDING),
                    ("prayer", ASCENDING),
                    ("origin_user_id", ASCENDING),
                ],
                unique=True,
            ),
            IndexModel([("created_at", ASCENDING)], expireAfterSeconds=MARKER_TTL_SECONDS),
        ]

    @classmethod
    def from_key(cls, key: MarkerKey, message_id: Optional[str] = None) -> "NotificationMarker":
        return cls(**key.model_dump(), message_id=message_id)
