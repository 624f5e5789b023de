from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from config import Settings
from models.enums import DAILY_PRAYERS
from models.notifications import MarkerKey
from models.users import PairRecord, UserRecord
from utils.errors import DeliveryError, PersistenceError, TimezoneResolutionError
from utils.push_sender import PushMessage, PushSender
from utils.time_window import LocalClock, is_due, local_clock

from . import messages
from .store import NotificationStore

logger = logging.getLogger(__name__)

DELAY_ALERT = "delay_nudged"


@dataclass(frozen=True)
class NotifiedEntry:
    uid: str
    prayer: str
    alert: Optional[str] = None


@dataclass
class RunContext:
    """Everything one run shares across users: a snapshot taken at run start."""

    now: datetime
    settings: Settings
    store: NotificationStore
    sender: PushSender
    users: Dict[str, UserRecord] = field(default_factory=dict)
    pairs: Dict[str, PairRecord] = field(default_factory=dict)


async def fire_once(ctx: RunContext, key: MarkerKey, message: PushMessage) -> bool:
    """Send ``message`` unless ``key`` was already recorded, then record it.

    The marker is written only after a successful send, so a failed delivery
    is retried on the next run.
    """
    try:
        if await ctx.store.has_marker(key):
            logger.debug("Already sent %s", key.legacy_field)
            return False
    except PersistenceError as e:
        logger.error("Marker check failed for %s, skipping: %s", key.legacy_field, e)
        return False

    try:
        message_id = await ctx.sender.send(message)
    except DeliveryError as e:
        logger.warning(
            "Delivery failed for %s (user %s): %s code=%s",
            key.legacy_field, key.user_id, e, e.error_code,
        )
        return False

    try:
        await ctx.store.set_marker(key, message_id=message_id)
    except PersistenceError as e:
        logger.error("Sent %s but could not record marker: %s", key.legacy_field, e)
    return True


async def check_quran_reminder(ctx: RunContext, uid: str, user: UserRecord, clock: LocalClock) -> bool:
    start = user.sleep_time or ctx.settings.quran_default_time
    if not is_due(clock.hhmm, start, ctx.settings.quran_window_minutes):
        return False

    sent = await fire_once(ctx, MarkerKey.quran(uid, clock.date_key), messages.quran_reminder(ctx.settings, user.fcm_token))
    if sent:
        logger.info("Quran reminder sent to %s at %s", uid, start)
    return sent


async def check_prayer_due(
    ctx: RunContext, uid: str, user: UserRecord, prayer: str, target: str, clock: LocalClock
) -> Optional[NotifiedEntry]:
    if not is_due(clock.hhmm, target, ctx.settings.prayer_window_minutes):
        return None

    key = MarkerKey.prayer_due(uid, prayer, clock.date_key)
    if not await fire_once(ctx, key, messages.prayer_due(ctx.settings, user, prayer)):
        return None

    logger.info("Prayer reminder sent to %s: %s at %s", uid, prayer, target)
    return NotifiedEntry(uid=uid, prayer=prayer)


async def check_partner_delay(
    ctx: RunContext, uid: str, user: UserRecord, prayer: str, target: str, clock: LocalClock
) -> Optional[NotifiedEntry]:
    s = ctx.settings
    if not is_due(clock.hhmm, target, s.delay_window_minutes, s.delay_offset_minutes):
        return None

    if user.has_marked(clock.date_key, prayer):
        logger.debug("User %s already marked %s, no nudge needed", uid, prayer)
        return None

    pair_id = user.pair_id
    pair = ctx.pairs.get(pair_id) if pair_id else None
    if not pair:
        logger.debug("User %s has no active pair", uid)
        return None

    partner_id = pair.partner_of(uid)
    partner = ctx.users.get(partner_id) if partner_id else None
    if not partner or not partner.fcm_token:
        logger.info("Cannot nudge partner %s of %s: no token", partner_id, uid)
        return None

    key = MarkerKey.partner_delay(partner_id, uid, prayer, clock.date_key)
    message = messages.partner_delay(ctx.settings, user, partner.fcm_token, prayer)
    if not await fire_once(ctx, key, message):
        return None

    logger.info("Delay alert: %s late for %s, partner %s notified", uid, prayer, partner_id)
    return NotifiedEntry(uid=partner_id, prayer=prayer, alert=DELAY_ALERT)


async def evaluate_user(ctx: RunContext, uid: str, user: UserRecord) -> List[NotifiedEntry]:
    if not user.fcm_token or not user.timezone:
        logger.debug("User %s skipped: no token or timezone", uid)
        return []

    try:
        clock = local_clock(ctx.now, user.timezone)
    except TimezoneResolutionError as e:
        logger.warning("User %s skipped: %s", uid, e)
        return []

    logger.debug("Checking user %s (%s) local time %s", uid, user.timezone, clock.hhmm)

    await check_quran_reminder(ctx, uid, user, clock)

    timings = user.timings_for(clock.date_key)
    if not timings:
        logger.debug("User %s has no timings for %s", uid, clock.date_key)
        return []

    notified: List[NotifiedEntry] = []
    for prayer in DAILY_PRAYERS:
        target = timings.get(prayer.value)
        if not target:
            continue
        target = str(target)

        entry = await check_prayer_due(ctx, uid, user, prayer.value, target, clock)
        if entry:
            notified.append(entry)

        alert = await check_partner_delay(ctx, uid, user, prayer.value, target, clock)
        if alert:
            notified.append(alert)

    return notified
