from __future__ import annotations

from config import Settings
from models.users import UserRecord
from utils.push_sender import PushMessage

PRAYER_CHANNEL = "prayer-notifications"


def _web(settings: Settings) -> dict:
    return {"link": settings.app_link, "icon": settings.icon_url, "badge": settings.icon_url}


def quran_reminder(settings: Settings, token: str) -> PushMessage:
    return PushMessage(
        token=token,
        title="Quran Reminder 🎧",
        body="Sone se pehle chand ayaat sun lein? Dil ko sukoon milega. 🌙",
        data={"type": "quran_reminder"},
        **_web(settings),
    )


def prayer_due(settings: Settings, user: UserRecord, prayer: str) -> PushMessage:
    if user.struggle_prayer == prayer:
        title = f"⚠️ High Priority: {prayer}"
        body = "Ye wo namaz hai jo aksar miss hoti hai. Aaj hum ne isay waqt par parhna hai! Shaitaan ko harana hai. 💪"
    else:
        title = f"🕌 Time for {prayer}"
        body = f"Allah-o-Akbar! It's time for {prayer} prayer."

    return PushMessage(
        token=user.fcm_token,
        title=title,
        body=body,
        data={"type": "prayer_due", "prayer": prayer},
        android_sound="azan_tone",
        android_channel=PRAYER_CHANNEL,
        high_priority=True,
        apns_sound="azan_tone.caf",
        analytics_label="prayer-notification",
        **_web(settings),
    )


def partner_delay(settings: Settings, late_user: UserRecord, partner_token: str, prayer: str) -> PushMessage:
    name = late_user.display_name
    if late_user.struggle_prayer == prayer:
        title = "⚠️ High Priority Nudge"
        body = f"{name} is struggling with {prayer} right now. Reach out and motivate them! 💪"
    else:
        title = "Partner Reminder 🤲"
        body = f"{name} ne abhi tak {prayer} mark nahi ki. Osko remind karwaein!"

    return PushMessage(
        token=partner_token,
        title=title,
        body=body,
        data={"type": "partner_delay", "prayer": prayer, "partner": late_user.uid},
        android_sound="reminder_tone",
        android_channel=PRAYER_CHANNEL,
        high_priority=True,
        **_web(settings),
    )


def donation_reminder(settings: Settings) -> PushMessage:
    return PushMessage(
        topic=settings.donation_topic,
        title="Jummah Mubarak! 🤲",
        body="Aaj Jummah hai! Sadqa dein aur apni aur dusron ki mushkilat aasan karein.",
        android_sound="default",
        android_channel=PRAYER_CHANNEL,
        link=settings.app_link,
        icon=settings.icon_url,
    )


def manual(settings: Settings, token: str, title: str, body: str) -> PushMessage:
    return PushMessage(token=token, title=title, body=body, link=settings.app_link)
