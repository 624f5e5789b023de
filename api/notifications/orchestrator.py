from __future__ import annotations

import asyncio
import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from config import Settings
from utils.errors import ConfigurationError, Unauthorized
from utils.push_sender import PushSender

from .evaluator import NotifiedEntry, RunContext, evaluate_user
from .store import NotificationStore

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    notified: List[NotifiedEntry] = field(default_factory=list)
    scanned: int = 0
    failed: int = 0

    @property
    def count(self) -> int:
        return len(self.notified)


def verify_cron_secret(settings: Settings, auth_token: Optional[str]) -> bool:
    # An unset secret locks the trigger instead of opening it.
    if not settings.cron_secret or not auth_token:
        return False
    return secrets.compare_digest(auth_token.strip().encode(), settings.cron_secret.encode())


def require_push_credentials(settings: Settings) -> None:
    if not settings.push_ready:
        raise ConfigurationError("Missing Credentials")


async def run_check(
    now: datetime,
    *,
    auth_token: Optional[str],
    settings: Settings,
    store: NotificationStore,
    sender: PushSender,
) -> RunResult:
    if not verify_cron_secret(settings, auth_token):
        logger.warning("Prayer check: unauthorized attempt blocked")
        raise Unauthorized("Unauthorized")
    require_push_credentials(settings)
    sender.ensure_ready()

    logger.info("Prayer check starting at %s", now.isoformat())
    users, pairs = await asyncio.gather(store.fetch_users(), store.fetch_pairs())

    result = RunResult()
    if not users:
        logger.info("Prayer check: no users found")
        return result

    ctx = RunContext(now=now, settings=settings, store=store, sender=sender, users=users, pairs=pairs)
    for uid, user in users.items():
        result.scanned += 1
        try:
            result.notified.extend(await evaluate_user(ctx, uid, user))
        except ConfigurationError:
            raise
        except Exception:
            result.failed += 1
            logger.exception("Error processing user %s", uid)

    logger.info(
        "Prayer check finished: scanned=%d notified=%d failed=%d",
        result.scanned, result.count, result.failed,
    )
    return result
