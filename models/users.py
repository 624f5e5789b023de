from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class TwinsRef(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pair_id: Optional[str] = Field(default=None, alias="pairId")


class UserRecord(BaseModel):
    """A user document as the PWA writes it to the ``users`` collection.

    Only the fields the notification core reads are declared; everything else
    on the document is ignored.
    """

    model_config = ConfigDict(populate_by_name=True)

    uid: str
    email: Optional[str] = None
    fcm_token: Optional[str] = Field(default=None, alias="fcmToken")
    timezone: Optional[str] = None
    sleep_time: Optional[str] = Field(default=None, alias="sleepTime")
    struggle_prayer: Optional[str] = Field(default=None, alias="strugglePrayer")
    prayer_times: Dict[str, Dict[str, Any]] = Field(default_factory=dict, alias="prayerTimes")
    logs: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    twins: Optional[TwinsRef] = None

    @property
    def pair_id(self) -> Optional[str]:
        return self.twins.pair_id if self.twins else None

    @property
    def display_name(self) -> str:
        if self.email and "@" in self.email:
            return self.email.split("@", 1)[0] or "Partner"
        return self.email or "Partner"

    def timings_for(self, date_key: str) -> Dict[str, Any]:
        return self.prayer_times.get(date_key) or {}

    def has_marked(self, date_key: str, prayer: str) -> bool:
        return bool((self.logs.get(date_key) or {}).get(prayer))


class PairRecord(BaseModel):
    user1: Optional[str] = None
    user2: Optional[str] = None

    def partner_of(self, uid: str) -> Optional[str]:
        return self.user2 if self.user1 == uid else self.user1
