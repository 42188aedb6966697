"""Domain records shared by the service layers."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping

_ZERO_TIME = "0001-01-01T00:00:00Z"
_FRACTION = re.compile(r"^(.*T\d{2}:\d{2}:\d{2})\.(\d+)(.*)$")


class UploadStatus(str, enum.Enum):
    """Lifecycle states of a bulk upload job."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    PROCESSED = "PROCESSED"
    FAILED = "FAILED"


class RequestType(str, enum.Enum):
    """Kinds of bulk upload that the worker knows how to process."""

    STUDENT_RECORD = "STUDENT_RECORD"
    VACCINE_RECORD = "VACCINE_RECORD"


def _text(value: Any) -> str:
    return value.value if isinstance(value, enum.Enum) else value


def _format_time(value: datetime | None) -> str | None:
    return None if value is None else value.isoformat()


def _parse_time(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not value or value == _ZERO_TIME:
        return None
    text = str(value).replace("Z", "+00:00")
    match = _FRACTION.match(text)
    if match:
        fraction = (match.group(2) + "000000")[:6]
        text = f"{match.group(1)}.{fraction}{match.group(3)}"
    return datetime.fromisoformat(text)


@dataclass
class BulkUploadModel:
    """A bulk upload job as stored in the database and sent over the queue."""

    id: int = 0
    file_name: str = ""
    file_path: str = ""
    status: str = ""
    error_message: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    processed_records: int = 0
    total_records: int = 0
    request_id: str = ""
    request_type: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "Id": self.id,
            "file_name": self.file_name,
            "file_path": self.file_path,
            "status": _text(self.status),
            "error_message": self.error_message,
            "created_at": _format_time(self.created_at) or _ZERO_TIME,
            "updated_at": _format_time(self.updated_at) or _ZERO_TIME,
            "processed_records": self.processed_records,
            "total_records": self.total_records,
            "request_id": self.request_id,
            "request_Type": _text(self.request_type),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BulkUploadModel":
        return cls(
            id=int(data.get("Id") or 0),
            file_name=data.get("file_name") or "",
            file_path=data.get("file_path") or "",
            status=data.get("status") or "",
            error_message=data.get("error_message") or "",
            created_at=_parse_time(data.get("created_at")),
            updated_at=_parse_time(data.get("updated_at")),
            processed_records=int(data.get("processed_records") or 0),
            total_records=int(data.get("total_records") or 0),
            request_id=data.get("request_id") or "",
            request_type=data.get("request_Type") or "",
        )


@dataclass
class Student:
    """A student row."""

    id: int = 0
    name: str = ""
    class_name: str = ""
    gender: str = ""
    roll_number: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    phone_no: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "class": self.class_name,
            "gender": self.gender,
            "roll_number": self.roll_number,
            "created_at": _format_time(self.created_at),
            "update_at": _format_time(self.updated_at),
            "phone_no": self.phone_no,
        }


@dataclass
class InsertionRecord:
    """Outcome of inserting one student."""

    record: Student = field(default_factory=Student)
    status: bool = False
    error_reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "record": self.record.to_dict(),
            "status": self.status,
            "error_reason": self.error_reason,
        }


@dataclass
class GetStudentDetails:
    """A student together with their vaccination state."""

    id: int = 0
    name: str = ""
    class_name: str = ""
    gender: str = ""
    roll_no: str = ""
    phone_no: str = ""
    vaccination: bool = False
    vaccine_name: str = ""
    vaccine_date: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "class": self.class_name,
            "gender": self.gender,
            "roll_no": self.roll_no,
            "phone_no": self.phone_no,
            "vaccination": self.vaccination,
        }
        if self.vaccine_name:
            data["vaccine_name"] = self.vaccine_name
        if self.vaccine_date:
            data["vaccine_date"] = self.vaccine_date
        return data


@dataclass
class VaccineRecord:
    """A vaccination of one student in one drive."""

    id: int = 0
    student_id: int = 0
    drive_id: int = 0
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "student_id": self.student_id,
            "drive_id": self.drive_id,
            "created_at": _format_time(self.created_at),
        }


@dataclass
class VaccineInsertionRecord:
    """Outcome of inserting one vaccination record."""

    record: VaccineRecord = field(default_factory=VaccineRecord)
    status: bool = False
    error_reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "record": self.record.to_dict(),
            "status": self.status,
            "error_reason": self.error_reason,
        }


@dataclass
class StudentVaccinationDetail:
    """A student row joined with an optional vaccination drive id."""

    id: int = 0
    name: str = ""
    class_name: str = ""
    gender: str = ""
    roll_number: str = ""
    phone_no: str = ""
    drive_id: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "class": self.class_name,
            "gender": self.gender,
            "roll_number": self.roll_number,
            "phone_no": self.phone_no,
            "drive_id": self.drive_id,
        }