from api.notifications.store import parse_pair, parse_user
from models.enums import NotificationKind
from models.notifications import MarkerKey


def test_parse_user_reads_pwa_field_names():
    doc = {
        "_id": "abc",
        "email": "ali@example.com",
        "fcmToken": "tok",
        "timezone": "Asia/Karachi",
        "prayerTimes": {"2026-03-10": {"Fajr": "05:00"}},
        "logs": {"2026-03-10": {"Fajr": "prayed"}},
        "twins": {"pairId": "p1"},
        "strugglePrayer": "Fajr",
        "theme": "dark",
    }

    user = parse_user("abc", doc)

    assert user.uid == "abc"
    assert user.fcm_token == "tok"
    assert user.pair_id == "p1"
    assert user.display_name == "ali"
    assert user.timings_for("2026-03-10") == {"Fajr": "05:00"}
    assert user.has_marked("2026-03-10", "Fajr")
    assert not user.has_marked("2026-03-10", "Isha")
    assert not user.has_marked("2026-03-11", "Fajr")


def test_parse_user_skips_malformed_document():
    assert parse_user("bad", {"prayerTimes": ["not", "a", "mapping"]}) is None


def test_user_without_email_is_called_partner():
    assert parse_user("x", {}).display_name == "Partner"


def test_parse_pair_and_partner_lookup():
    pair = parse_pair("p1", {"_id": "p1", "user1": "a", "user2": "b"})
    assert pair.partner_of("a") == "b"
    assert pair.partner_of("b") == "a"


def test_marker_keys_render_legacy_field_names():
    assert MarkerKey.quran("u1", "2026-03-10").legacy_field == "quranNotif_2026-03-10"
    assert MarkerKey.prayer_due("u1", "Asr", "2026-03-10").legacy_field == "lastNotif_Asr_2026-03-10"
    assert MarkerKey.partner_delay("u2", "u1", "Asr", "2026-03-10").legacy_field == "delayNotif_u1_Asr_2026-03-10"


def test_marker_key_query_is_fully_structured():
    key = MarkerKey.partner_delay("u2", "u1", "Isha", "2026-03-10")
    assert key.query() == {
        "user_id": "u2",
        "kind": NotificationKind.partner_delay.value,
        "local_date": "2026-03-10",
        "prayer": "Isha",
        "origin_user_id": "u1",
    }
    assert key == MarkerKey.partner_delay("u2", "u1", "Isha", "2026-03-10")
    assert len({key, MarkerKey.partner_delay("u2", "u1", "Isha", "2026-03-10")}) == 1
