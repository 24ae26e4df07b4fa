"""Tests for the JSON-backed schedule store."""

import json
from dataclasses import replace

import pytest

from artfeed.scheduling import (
    ContentKind,
    DiscordTarget,
    Platform,
    ScheduleRequest,
    ScheduleStore,
    ScheduleValidationError,
)
from tests.conftest import make_discord_schedule, make_schedule


def _telegram_request(**overrides) -> ScheduleRequest:
    values = {
        "name": "Daily Artist",
        "content_kind": ContentKind.ARTIST,
        "cron_expression": "0 12 * * *",
        "platform": Platform.TELEGRAM,
        "user_id": "111",
        "username": "alice",
        "chat_id": "-100123",
    }
    values.update(overrides)
    return ScheduleRequest(**values)


class TestLoad:
    def test_missing_file_initializes_empty_document(self, store_path):
        store = ScheduleStore(store_path)
        assert store.load() == []
        assert json.loads(store_path.read_text()) == {"schedules": [], "version": 1}

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "schedules.json"
        store = ScheduleStore(path)
        store.load()
        assert path.exists()

    def test_round_trip_through_disk(self, store, store_path):
        schedule = store.add(make_schedule())
        reloaded = ScheduleStore(store_path)
        assert reloaded.load() == [schedule]

    def test_corrupt_document_is_set_aside(self, store_path):
        store_path.write_text("{not json")
        store = ScheduleStore(store_path)
        assert store.load() == []
        assert (store_path.parent / "schedules.json.corrupt").read_text() == "{not json"
        assert len(store) == 0

    def test_non_object_document_is_set_aside(self, store_path):
        store_path.write_text("[]")
        store = ScheduleStore(store_path)
        assert store.load() == []
        assert (store_path.parent / "schedules.json.corrupt").exists()

    def test_invalid_records_are_skipped(self, store_path):
        good = make_schedule().to_dict()
        store_path.write_text(
            json.dumps(
                {
                    "schedules": [good, {"name": "no id"}, "garbage"],
                    "version": 1,
                }
            )
        )
        store = ScheduleStore(store_path)
        loaded = store.load()
        assert [s.id for s in loaded] == [good["id"]]

    @pytest.mark.parametrize(
        "patch",
        [
            {"createdAt": "abc"},
            {"discord": "555"},
            {"telegram": ["-100123"]},
            {"createdBy": "alice"},
        ],
        ids=["created-at", "discord-block", "telegram-block", "created-by"],
    )
    def test_malformed_fields_are_skipped(self, store_path, patch):
        good = make_schedule().to_dict()
        bad = {**good, "id": "telegram-2-bbbbbb", **patch}
        store_path.write_text(json.dumps({"schedules": [good, bad], "version": 1}))

        loaded = ScheduleStore(store_path).load()

        assert [s.id for s in loaded] == [good["id"]]

    def test_duplicate_ids_keep_first(self, store_path):
        first = make_schedule(name="First").to_dict()
        second = make_schedule(name="Second").to_dict()
        store_path.write_text(json.dumps({"schedules": [first, second], "version": 1}))
        store = ScheduleStore(store_path)
        loaded = store.load()
        assert len(loaded) == 1
        assert loaded[0].name == "First"

    def test_load_replaces_registry(self, store, store_path):
        store.add(make_schedule())
        store_path.write_text(json.dumps({"schedules": [], "version": 1}))
        assert store.load() == []
        assert len(store) == 0


class TestSave:
    def test_document_layout(self, store, store_path):
        store.add(make_schedule())
        document = json.loads(store_path.read_text())
        assert document["version"] == 1
        assert document["schedules"][0]["cronExpression"] == "0 12 * * *"

    def test_save_replaces_registry(self, store, store_path):
        store.add(make_schedule())
        other = make_discord_schedule()
        assert store.save([other]) is True
        assert store.list_all() == [other]
        assert [r["id"] for r in json.loads(store_path.read_text())["schedules"]] == [
            other.id
        ]

    def test_write_failure_is_reported_not_raised(self, store, monkeypatch):
        def fail(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr("artfeed.scheduling.store.tempfile.mkstemp", fail)
        assert store.save() is False

    def test_mutation_survives_write_failure_in_memory(self, store, monkeypatch):
        def fail(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr("artfeed.scheduling.store.tempfile.mkstemp", fail)
        schedule = store.add(make_schedule())
        assert store.get(schedule.id) == schedule

    def test_no_temp_files_left_behind(self, store, store_path):
        store.add(make_schedule())
        leftovers = [p for p in store_path.parent.iterdir() if p.suffix == ".tmp"]
        assert leftovers == []


class TestQueries:
    def test_list_enabled(self, store):
        active = store.add(make_schedule())
        store.add(make_discord_schedule(enabled=False))
        assert store.list_enabled() == [active]

    def test_list_for_telegram_chat(self, store):
        schedule = store.add(make_schedule())
        store.add(make_schedule(id="other", telegram=replace(schedule.telegram, chat_id="-100999")))
        assert store.list_for_telegram_chat("-100123") == [schedule]
        assert store.list_for_telegram_chat(-100123) == [schedule]

    def test_list_for_discord_channel(self, store):
        schedule = store.add(make_discord_schedule())
        assert store.list_for_discord_channel("555") == [schedule]
        assert store.list_for_discord_channel(555, 999) == [schedule]
        assert store.list_for_discord_channel("555", "111") == []
        assert store.list_for_discord_channel("556") == []

    def test_schedule_without_guild_matches_any_guild(self, store):
        schedule = store.add(
            make_discord_schedule(discord=DiscordTarget(channel_id="555"))
        )
        assert store.list_for_discord_channel("555", "12345") == [schedule]

    def test_contains_and_len(self, store):
        schedule = store.add(make_schedule())
        assert schedule.id in store
        assert "missing" not in store
        assert len(store) == 1


class TestCanManage:
    def test_creator_can_manage(self, store):
        schedule = store.add(make_schedule())
        assert store.can_manage(schedule.id, Platform.TELEGRAM, "111")

    def test_other_user_cannot_manage(self, store):
        schedule = store.add(make_schedule())
        assert not store.can_manage(schedule.id, Platform.TELEGRAM, "999")

    def test_same_id_on_other_platform_cannot_manage(self, store):
        schedule = store.add(make_schedule())
        assert not store.can_manage(schedule.id, Platform.DISCORD, "111")

    def test_admin_can_manage(self, store):
        schedule = store.add(make_schedule())
        assert store.can_manage(schedule.id, Platform.TELEGRAM, "999", is_admin=True)

    def test_missing_schedule(self, store):
        assert not store.can_manage("missing", Platform.TELEGRAM, "111", is_admin=True)


class TestMutations:
    def test_add_assigns_id_and_created_at(self, store):
        schedule = store.add(make_schedule(id="", created_at=0))
        assert schedule.id.startswith("telegram-")
        assert schedule.created_at > 0

    def test_add_without_creator_uses_generic_prefix(self, store):
        schedule = store.add(make_schedule(id="", created_by=None))
        assert schedule.id.startswith("schedule-")

    def test_add_rejects_duplicate_id(self, store):
        store.add(make_schedule())
        with pytest.raises(ScheduleValidationError):
            store.add(make_schedule())

    def test_add_rejects_schedule_without_destination(self, store, store_path):
        with pytest.raises(ScheduleValidationError):
            store.add(make_schedule(telegram=None))
        assert len(store) == 0
        assert json.loads(store_path.read_text())["schedules"] == []

    def test_update_keeps_creation_info(self, store):
        schedule = store.add(make_schedule())
        updated = store.update(replace(schedule, enabled=False, created_at=1, created_by=None))
        assert updated is not None
        assert updated.enabled is False
        assert updated.created_at == schedule.created_at
        assert updated.created_by == schedule.created_by
        assert store.get(schedule.id) == updated

    def test_update_missing_returns_none(self, store):
        assert store.update(make_schedule()) is None
        assert len(store) == 0

    def test_delete(self, store, store_path):
        schedule = store.add(make_schedule())
        assert store.delete(schedule.id) is True
        assert store.get(schedule.id) is None
        assert json.loads(store_path.read_text())["schedules"] == []

    def test_delete_missing(self, store):
        assert store.delete("missing") is False


class TestCreateFromRequest:
    def test_creates_enabled_schedule(self, store):
        schedule = store.create_from_request(_telegram_request())
        assert schedule.enabled is True
        assert schedule.id.startswith("telegram-")
        assert schedule.telegram is not None
        assert schedule.telegram.chat_id == "-100123"
        assert schedule.discord is None
        assert schedule.created_by is not None
        assert schedule.created_by.username == "alice"
        assert store.get(schedule.id) == schedule

    def test_only_attaches_destination_for_platform(self, store):
        schedule = store.create_from_request(
            _telegram_request(platform=Platform.DISCORD, channel_id="555", guild_id="999")
        )
        assert schedule.discord is not None
        assert schedule.discord.channel_id == "555"
        assert schedule.discord.guild_id == "999"
        assert schedule.telegram is None

    def test_invalid_cron_stores_nothing(self, store):
        with pytest.raises(ScheduleValidationError):
            store.create_from_request(_telegram_request(cron_expression="every 90 minutes"))
        assert len(store) == 0

    def test_missing_destination(self, store):
        with pytest.raises(ScheduleValidationError):
            store.create_from_request(_telegram_request(chat_id=None))
        assert len(store) == 0

    def test_generated_ids_are_unique(self, store):
        ids = {store.create_from_request(_telegram_request()).id for _ in range(20)}
        assert len(ids) == 20
