from __future__ import annotations

from motor.motor_asyncio import AsyncIOMotorDatabase
from beanie import init_beanie
from .db import db, client
from .users import UserRecord, PairRecord
from .notifications import MarkerKey, NotificationMarker

ALL_MODELS = [
    NotificationMarker,
]


async def init_models(database: AsyncIOMotorDatabase) -> None:
    await init_beanie(database=database, document_models=ALL_MODELS)
