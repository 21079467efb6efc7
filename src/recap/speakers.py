from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

logger = logging.getLogger(__name__)

ATTENDEE_JOINED = "chime:AttendeeJoined"
# Scalar DynamoDB attribute-value type descriptors.
_SCALAR_TYPES = ("S", "N")


class SpeakerLookupError(RuntimeError):
    """Raised when attendee display names cannot be looked up."""


class SpeakerDirectory:
    """Read-only attendee id -> display name mapping."""

    def __init__(self, names: Mapping[str, str] | None = None) -> None:
        self._names = dict(names or {})

    def display_name(self, attendee_id: str | None) -> str:
        if attendee_id is None:
            return ""
        return self._names.get(attendee_id, "")

    def __len__(self) -> int:
        return len(self._names)

    def as_dict(self) -> dict[str, str]:
        return dict(self._names)


def display_name_from_external_id(external_user_id: str) -> str:
    """``"<tenant>:<name>"`` -> ``"<name>"``; empty when there is no name part."""

    _, separator, name = external_user_id.partition(":")
    return name.strip() if separator else ""


def _unwrap_attribute_value(value: Any) -> Any:
    if not isinstance(value, dict) or len(value) != 1:
        return value
    ((kind, inner),) = value.items()
    if kind in _SCALAR_TYPES:
        return inner
    if kind == "NULL":
        return None
    return value


class JoinRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)

    attendee_id: str = Field(alias="attendeeId")
    external_user_id: str | None = Field(default=None, alias="externalUserId")
    event_type: str = Field(alias="eventType")
    meeting_id: str = Field(alias="meetingId")
    session_id: str | None = Field(default=None, alias="breakoutSessionId")

    @model_validator(mode="before")
    @classmethod
    def unwrap_attribute_values(cls, data: Any) -> Any:
        """Accept table exports that keep DynamoDB typing, e.g. ``{"S": "m1"}``."""

        if not isinstance(data, dict):
            return data
        return {key: _unwrap_attribute_value(value) for key, value in data.items()}


def build_directory(records: Iterable[JoinRecord], meeting_id: str, session_id: str | None = None) -> SpeakerDirectory:
    names: dict[str, str] = {}
    for record in records:
        if record.event_type != ATTENDEE_JOINED or record.meeting_id != meeting_id:
            continue
        if session_id is not None and record.session_id is not None and record.session_id != session_id:
            continue
        if not record.external_user_id:
            continue
        name = display_name_from_external_id(record.external_user_id)
        if name:
            names[record.attendee_id] = name
    return SpeakerDirectory(names)


class SpeakerLookup(Protocol):
    def lookup(self, meeting_id: str, session_id: str | None = None) -> SpeakerDirectory:
        """Resolve display names of the attendees who joined a meeting."""


class JoinRecordFileLookup:
    """Speaker lookup backed by a JSON export of attendee-joined records."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _load_records(self) -> list[JoinRecord]:
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise SpeakerLookupError(f"Cannot read join records from {self.path}: {exc}") from exc
        if isinstance(payload, dict):
            payload = payload.get("Items", payload.get("items"))
        if not isinstance(payload, list):
            raise SpeakerLookupError(f"Join records in {self.path} must be a JSON array")
        try:
            return [JoinRecord.model_validate(item) for item in payload]
        except ValidationError as exc:
            raise SpeakerLookupError(f"Invalid join record in {self.path}: {exc}") from exc

    def lookup(self, meeting_id: str, session_id: str | None = None) -> SpeakerDirectory:
        directory = build_directory(self._load_records(), meeting_id, session_id)
        logger.info("Resolved %d speaker names for meeting %s", len(directory), meeting_id)
        return directory
