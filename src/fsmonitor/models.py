"""Data models for the fsmonitor package."""

from dataclasses import dataclass
from enum import Enum
import hashlib
import json
import os
import uuid


class EventType(Enum):
    """Kinds of change reported for a watched directory entry."""
    CREATE = "CREATE"
    MODIFY = "MODIFY"
    DELETE = "DELETE"
    OVERFLOW = "OVERFLOW"


@dataclass
class RawNotification:
    """
    Notification queued on a watch key before translation.

    Attributes:
        event_type: Kind of change
        name: Entry name relative to the watched directory ("" for overflow)
        count: Number of notifications this entry stands for
    """
    event_type: EventType
    name: str
    count: int = 1


@dataclass(frozen=True)
class ChangeEvent:
    """
    One normalized filesystem change, handed to the sink.

    Attributes:
        file_id: Deterministic id derived from (file_path, file_name)
        file_name: Name of the changed entry, relative to its directory
        file_path: The watched directory, as it was given
        event_type: The kind of change
    """
    file_id: str
    file_name: str
    file_path: str
    event_type: EventType

    @classmethod
    def from_notification(cls, directory: str, notification: RawNotification) -> "ChangeEvent":
        """Translate a raw notification queued for ``directory``."""
        return cls(
            file_id=compute_file_id(directory, notification.name),
            file_name=notification.name,
            file_path=directory,
            event_type=notification.event_type,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "file_id": self.file_id,
            "file_name": self.file_name,
            "file_path": self.file_path,
            "event_type": self.event_type.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ChangeEvent":
        """Create from dictionary."""
        return cls(
            file_id=data["file_id"],
            file_name=data["file_name"],
            file_path=data["file_path"],
            event_type=EventType(data["event_type"]),
        )

    def to_message(self) -> str:
        """
        Serialize to the textual form carried in a record's ``message``.

        The message is a JSON object with the keys file_id, file_name,
        file_path and event_type, in that order.
        """
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_message(cls, message: str) -> "ChangeEvent":
        """Parse a message produced by to_message."""
        return cls.from_dict(json.loads(message))

    def to_record(self) -> dict:
        """Build the record handed to the sink."""
        return {"message": self.to_message()}


def compute_file_id(directory: str, name: str) -> str:
    """
    Compute the id of a directory entry from its location.

    The id is a name-based (MD5, version 3) UUID of the joined path, so
    the same directory and name always give the same id.

    Args:
        directory: Directory path as it was watched
        name: Entry name within the directory

    Returns:
        UUID string
    """
    digest = hashlib.md5(
        os.fsencode(os.path.join(directory, name)), usedforsecurity=False
    ).digest()
    return str(uuid.UUID(bytes=digest, version=3))
