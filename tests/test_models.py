"""Tests for models module."""

import json
import uuid
from dataclasses import FrozenInstanceError

import pytest

from src.fsmonitor.models import (
    EventType,
    ChangeEvent,
    RawNotification,
    compute_file_id,
)


class TestEventType:
    """Tests for EventType enum."""

    def test_event_type_values(self):
        assert EventType.CREATE.value == "CREATE"
        assert EventType.MODIFY.value == "MODIFY"
        assert EventType.DELETE.value == "DELETE"
        assert EventType.OVERFLOW.value == "OVERFLOW"

    def test_event_type_from_value(self):
        assert EventType("CREATE") == EventType.CREATE
        assert EventType("OVERFLOW") == EventType.OVERFLOW


class TestComputeFileId:
    """Tests for compute_file_id function."""

    def test_deterministic(self):
        assert compute_file_id("/tmp/x", "a.txt") == compute_file_id("/tmp/x", "a.txt")

    def test_is_version_3_uuid(self):
        file_id = compute_file_id("/tmp/x", "a.txt")
        parsed = uuid.UUID(file_id)
        assert parsed.version == 3
        assert str(parsed) == file_id

    def test_different_names(self):
        assert compute_file_id("/tmp/x", "a.txt") != compute_file_id("/tmp/x", "b.txt")

    def test_different_directories(self):
        assert compute_file_id("/tmp/x", "a.txt") != compute_file_id("/tmp/y", "a.txt")

    def test_boundary_between_directory_and_name(self):
        assert compute_file_id("/a", "bc") != compute_file_id("/ab", "c")

    def test_many_pairs_distinct(self):
        ids = {
            compute_file_id(f"/data/{d}", f"file{n}.txt")
            for d in range(20)
            for n in range(50)
        }
        assert len(ids) == 1000

    def test_non_ascii_name(self):
        file_id = compute_file_id("/tmp/x", "résumé.txt")
        assert file_id == compute_file_id("/tmp/x", "résumé.txt")


class TestChangeEvent:
    """Tests for ChangeEvent dataclass."""

    def test_from_notification(self):
        notification = RawNotification(EventType.CREATE, "a.txt")
        event = ChangeEvent.from_notification("/tmp/x", notification)

        assert event.file_name == "a.txt"
        assert event.file_path == "/tmp/x"
        assert event.event_type == EventType.CREATE
        assert event.file_id == compute_file_id("/tmp/x", "a.txt")

    def test_overflow_notification(self):
        notification = RawNotification(EventType.OVERFLOW, "", count=7)
        event = ChangeEvent.from_notification("/tmp/x", notification)

        assert event.event_type == EventType.OVERFLOW
        assert event.file_name == ""
        assert event.file_path == "/tmp/x"

    def test_keeps_relative_directory(self):
        event = ChangeEvent.from_notification(".", RawNotification(EventType.MODIFY, "a.txt"))
        assert event.file_path == "."

    def test_immutable(self):
        event = ChangeEvent.from_notification("/tmp/x", RawNotification(EventType.DELETE, "a.txt"))
        with pytest.raises(FrozenInstanceError):
            event.file_name = "b.txt"

    def test_to_dict(self):
        event = ChangeEvent.from_notification("/tmp/x", RawNotification(EventType.DELETE, "a.txt"))
        data = event.to_dict()

        assert data == {
            "file_id": compute_file_id("/tmp/x", "a.txt"),
            "file_name": "a.txt",
            "file_path": "/tmp/x",
            "event_type": "DELETE",
        }

    def test_from_dict(self):
        data = {
            "file_id": "abc",
            "file_name": "a.txt",
            "file_path": "/tmp/x",
            "event_type": "MODIFY",
        }
        event = ChangeEvent.from_dict(data)

        assert event.file_id == "abc"
        assert event.event_type == EventType.MODIFY

    def test_message_is_json(self):
        event = ChangeEvent.from_notification("/tmp/x", RawNotification(EventType.CREATE, "a|b.txt"))
        message = event.to_message()

        assert list(json.loads(message)) == ["file_id", "file_name", "file_path", "event_type"]
        assert ChangeEvent.from_message(message) == event

    def test_to_record(self):
        event = ChangeEvent.from_notification("/tmp/x", RawNotification(EventType.CREATE, "a.txt"))
        record = event.to_record()

        assert set(record) == {"message"}
        assert isinstance(record["message"], str)
        assert json.loads(record["message"])["file_name"] == "a.txt"


class TestRawNotification:
    """Tests for RawNotification dataclass."""

    def test_defaults(self):
        notification = RawNotification(EventType.MODIFY, "a.txt")
        assert notification.count == 1
