from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError, PyMongoError

from models.notifications import MarkerKey, NotificationMarker
from models.users import PairRecord, UserRecord
from utils.errors import PersistenceError

logger = logging.getLogger(__name__)


def parse_user(uid: str, doc: dict) -> Optional[UserRecord]:
    data = {k: v for k, v in doc.items() if k != "_id"}
    data["uid"] = uid
    try:
        return UserRecord.model_validate(data)
    except ValidationError as e:
        logger.warning("User %s skipped: malformed document (%s)", uid, e.error_count())
        return None


def parse_pair(pair_id: str, doc: dict) -> Optional[PairRecord]:
    try:
        return PairRecord.model_validate({k: v for k, v in doc.items() if k != "_id"})
    except ValidationError:
        logger.warning("Pair %s skipped: malformed document", pair_id)
        return None


class NotificationStore(ABC):
    """What the notification core needs from the document store."""

    @abstractmethod
    async def fetch_users(self) -> Dict[str, UserRecord]: ...

    @abstractmethod
    async def fetch_pairs(self) -> Dict[str, PairRecord]: ...

    @abstractmethod
    async def has_marker(self, key: MarkerKey) -> bool: ...

    @abstractmethod
    async def set_marker(self, key: MarkerKey, message_id: Optional[str] = None) -> None: ...


class MongoNotificationStore(NotificationStore):
    def __init__(self, database: AsyncIOMotorDatabase, marker_model=NotificationMarker):
        self.db = database
        self.markers = marker_model

    async def fetch_users(self) -> Dict[str, UserRecord]:
        try:
            docs = await self.db["users"].find({}).to_list(length=None)
        except PyMongoError as e:
            raise PersistenceError(f"users read failed: {e}") from e

        users: Dict[str, UserRecord] = {}
        for doc in docs:
            uid = str(doc.get("_id"))
            user = parse_user(uid, doc)
            if user:
                users[uid] = user
        return users

    async def fetch_pairs(self) -> Dict[str, PairRecord]:
        try:
            docs = await self.db["pairs"].find({}).to_list(length=None)
        except PyMongoError as e:
            raise PersistenceError(f"pairs read failed: {e}") from e

        pairs: Dict[str, PairRecord] = {}
        for doc in docs:
            pair_id = str(doc.get("_id"))
            pair = parse_pair(pair_id, doc)
            if pair:
                pairs[pair_id] = pair
        return pairs

    async def has_marker(self, key: MarkerKey) -> bool:
        try:
            if await self.markers.find_one(key.query()):
                return True
            legacy = await self.db["users"].count_documents({"_id": key.user_id, key.legacy_field: True}, limit=1)
        except PyMongoError as e:
            raise PersistenceError(f"marker read failed: {e}") from e
        return legacy > 0

    async def set_marker(self, key: MarkerKey, message_id: Optional[str] = None) -> None:
        try:
            await self.markers.from_key(key, message_id=message_id).insert()
        except DuplicateKeyError:
            # Another run already recorded the same event.
            logger.info("Marker %s already present", key.legacy_field)
        except PyMongoError as e:
            raise PersistenceError(f"marker write failed: {e}") from e
