"""Tests for the JSON reminder store.

Each test gets its own file under pytest's tmp_path.
"""

import json
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from reminders.errors import StoreError
from reminders.models import Reminder
from reminders.store import ReminderStore


def make_reminder(reminder_id=1735732800000, **overrides):
    fields = dict(
        id=reminder_id,
        user_id=111,
        time=datetime(2025, 1, 1, 12, 0, 30, 123456, tzinfo=timezone.utc),
        message="check oven",
        channel_id=222,
        guild_id=333,
        retries=0,
    )
    fields.update(overrides)
    return Reminder(**fields)


class TestLoad:
    def test_missing_file_is_empty(self, tmp_path):
        store = ReminderStore(tmp_path / "nope" / "reminders.json")
        assert store.load() == {}

    def test_legacy_millisecond_z_timestamps(self, tmp_path):
        path = tmp_path / "reminders.json"
        path.write_text(json.dumps({
            "1704110400000": {
                "userId": "ignored",
                "user_id": 111,
                "time": "2024-01-01T12:00:00.000Z",
                "message": "hello",
                "channel_id": "222",
                "guild_id": "333",
                "retries": 1,
            }
        }))

        loaded = ReminderStore(path).load()

        reminder = loaded[1704110400000]
        assert reminder.time == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert reminder.channel_id == 222
        assert reminder.guild_id == 333
        assert reminder.retries == 1

    def test_naive_timestamp_taken_as_utc(self, tmp_path):
        path = tmp_path / "reminders.json"
        path.write_text(json.dumps({
            "5": {"user_id": 1, "time": "2025-01-01T12:00:00", "message": "m", "channel_id": 2}
        }))

        reminder = ReminderStore(path).load()[5]

        assert reminder.time == datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert reminder.guild_id is None
        assert reminder.retries == 0

    @pytest.mark.parametrize("content", [
        "{not json",
        "[1, 2, 3]",
        '{"1": {"user_id": 1}}',
        '{"1": {"user_id": 1, "time": "yesterday", "message": "m", "channel_id": 2}}',
        '{"abc": {"user_id": 1, "time": "2025-01-01T12:00:00Z", "message": "m", "channel_id": 2}}',
        '{"1": "oops"}',
    ])
    def test_corrupt_store_raises(self, tmp_path, content):
        path = tmp_path / "reminders.json"
        path.write_text(content)

        with pytest.raises(StoreError):
            ReminderStore(path).load()

    def test_unreadable_store_raises(self, tmp_path):
        # A directory where the file should be
        path = tmp_path / "reminders.json"
        path.mkdir()

        with pytest.raises(StoreError):
            ReminderStore(path).load()


class TestSave:
    def test_round_trip_preserves_fields_and_microseconds(self, store):
        reminders = {
            1: make_reminder(1),
            2: make_reminder(2, guild_id=None, retries=2, message="日本語 ok"),
        }

        store.save(reminders)
        loaded = store.load()

        assert loaded == reminders
        assert loaded[1].time.microsecond == 123456

    def test_instants_written_as_utc_iso8601(self, store):
        tokyo = datetime(2025, 1, 1, 21, 0, tzinfo=ZoneInfo("Asia/Tokyo"))
        store.save({1: make_reminder(1, time=tokyo)})

        record = json.loads(store.path.read_text(encoding="utf-8"))["1"]

        assert record["time"] == "2025-01-01T12:00:00.000000+00:00"
        assert store.load()[1].time == tokyo

    def test_save_of_load_is_byte_stable(self, store):
        store.save({3: make_reminder(3), 1: make_reminder(1), 2: make_reminder(2)})
        first = store.path.read_bytes()

        store.save(store.load())
        second = store.path.read_bytes()
        store.save(store.load())

        assert first == second == store.path.read_bytes()

    def test_entries_written_in_id_order(self, store):
        store.save({30: make_reminder(30), 4: make_reminder(4), 100: make_reminder(100)})

        data = json.loads(store.path.read_text(encoding="utf-8"))

        assert list(data) == ["4", "30", "100"]

    def test_full_snapshot_overwrite(self, store):
        store.save({1: make_reminder(1), 2: make_reminder(2)})
        store.save({2: make_reminder(2)})

        assert list(store.load()) == [2]

    def test_no_temp_file_left_behind(self, store):
        store.save({1: make_reminder(1)})

        assert [p.name for p in store.path.parent.iterdir()] == ["reminders.json"]

    def test_creates_parent_directories(self, tmp_path):
        store = ReminderStore(tmp_path / "data" / "nested" / "reminders.json")
        store.save({1: make_reminder(1)})

        assert store.load()[1].message == "check oven"

    def test_write_failure_raises(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("I am a file")
        store = ReminderStore(blocker / "reminders.json")

        with pytest.raises(StoreError):
            store.save({1: make_reminder(1)})
