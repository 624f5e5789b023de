# tasks/check_prayers.py
import argparse
import asyncio
import json
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from main import setup_logging
from config import get_settings
from models import client, db, init_models
from api.notifications.orchestrator import run_check
from api.notifications.store import MongoNotificationStore
from utils.push_sender import PushSender


def parse_asof(value, tz_name):
    if not value:
        return datetime.now(timezone.utc)
    local = datetime.strptime(value, "%Y-%m-%d %H:%M").replace(tzinfo=ZoneInfo(tz_name))
    return local.astimezone(timezone.utc)


async def _run(now):
    settings = get_settings()
    await init_models(db)
    try:
        result = await run_check(
            now,
            auth_token=settings.cron_secret,
            settings=settings,
            store=MongoNotificationStore(db),
            sender=PushSender(settings),
        )
    finally:
        client.close()
    return result


def main():
    p = argparse.ArgumentParser(description="Run one prayer notification check.")
    p.add_argument("--asof", type=str, help="YYYY-MM-DD HH:MM, interpreted in --tz")
    p.add_argument("--tz", type=str, default="UTC")
    args = p.parse_args()

    setup_logging()
    result = asyncio.run(_run(parse_asof(args.asof, args.tz)))
    print(json.dumps({
        "success": True,
        "count": result.count,
        "notified": [{"uid": n.uid, "prayer": n.prayer, "alert": n.alert} for n in result.notified],
        "scanned": result.scanned,
        "failed": result.failed,
    }, ensure_ascii=False))


if __name__ == "__main__":
    main()
