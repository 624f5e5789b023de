from __future__ import annotations
from enum import Enum


class Prayer(str, Enum):
    fajr = "Fajr"
    dhuhr = "Dhuhr"
    asr = "Asr"
    maghrib = "Maghrib"
    isha = "Isha"


# Evaluation order within a day.
DAILY_PRAYERS = [Prayer.fajr, Prayer.dhuhr, Prayer.asr, Prayer.maghrib, Prayer.isha]


class NotificationKind(str, Enum):
    quran_reminder = "quran_reminder"
    prayer_due = "prayer_due"
    partner_delay = "partner_delay"
