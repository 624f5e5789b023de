from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field

from typing import List, Optional


class NotifiedOut(BaseModel):
    uid: str
    prayer: str
    alert: Optional[str] = None


class CheckRunOut(BaseModel):
    success: bool = True
    count: int = 0
    notified: List[NotifiedOut] = Field(default_factory=list)


class PushSendIn(BaseModel):
    token: Optional[str] = None
    title: Optional[str] = None
    body: Optional[str] = None

    def missing_fields(self) -> List[str]:
        return [k for k in ("token", "title", "body") if not (getattr(self, k) or "").strip()]


class PushSendOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message_id: Optional[str] = Field(default=None, alias="messageId")
    error: Optional[str] = None
