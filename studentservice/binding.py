"""Request objects and the binding of raw input to them."""

from __future__ import annotations

import os
import re
import shutil
import tempfile
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, BinaryIO, Mapping

from .models import BulkUploadModel, RequestType, Student, UploadStatus, VaccineRecord
from .validation import validate

_INTEGER = re.compile(r"[+-]?\d+")


class BindError(Exception):
    """Raised when input cannot be bound; ``status`` is an HTTP code, or None."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.message = message
        self.status = status


@dataclass
class Pagination:
    limit: int = 0
    offset: int = 0


def get_pagination(pagination: Pagination) -> Pagination:
    """Default the limit to 5 and cap it at 15."""
    limit = pagination.limit
    if limit == 0:
        limit = 5
    if limit > 15:
        limit = 15
    return replace(pagination, limit=limit)


@dataclass
class BulkUploadRequest:
    file_path: str = ""
    request_type: str = ""


@dataclass
class GetBulkUploadRequest:
    request_id: str = ""
    pagination: Pagination = field(default_factory=Pagination)


@dataclass
class StudentCreateRequest:
    name: str = field(default="", metadata={"validate": "required"})
    class_name: str = field(default="", metadata={"validate": "checkValidGrade", "field": "class"})
    gender: str = field(default="", metadata={"validate": "required"})
    roll_no: str = field(default="", metadata={"validate": "required"})
    phone_no: str = field(default="", metadata={"validate": "required"})


@dataclass
class StudentUpdateRequest:
    id: int = field(default=0, metadata={"validate": "required"})
    name: str = ""
    class_name: str = field(
        default="", metadata={"validate": "omitempty,checkValidGradeUpdate", "field": "class"}
    )
    gender: str = ""
    roll_no: str = ""
    phone_no: str = ""


@dataclass
class VaccineRecordCreateRequest:
    student_id: int = field(default=0, metadata={"validate": "required"})
    drive_id: int = field(default=0, metadata={"validate": "required"})


@dataclass
class GetStudentVaccineRecordRequest:
    id: int = 0
    roll_no: str = ""
    vaccine_name: str = ""
    class_name: str = field(
        default="", metadata={"validate": "omitempty,checkValidGradeUpdate", "field": "class"}
    )
    name: str = ""
    pagination: Pagination = field(default_factory=Pagination)


@dataclass
class GenerateReportRequest:
    class_name: str = field(
        default="", metadata={"validate": "omitempty,checkValidGradeUpdate", "field": "class"}
    )
    vaccine_name: str = ""
    request_id: str = ""


def _json_object(payload: Any) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise BindError("request body must be a JSON object", status=400)
    return payload


def _lookup(payload: Mapping[str, Any], key: str) -> Any:
    if key in payload:
        return payload[key]
    lowered = key.lower()
    for name, value in payload.items():
        if isinstance(name, str) and name.lower() == lowered:
            return value
    return None


def _json_str(payload: Mapping[str, Any], key: str) -> str:
    value = _lookup(payload, key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise BindError(f"field {key!r} must be a string", status=400)
    return value


def _json_int(payload: Mapping[str, Any], key: str) -> int:
    value = _lookup(payload, key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise BindError(f"field {key!r} must be an integer", status=400)
    return value


def _param_int(values: Mapping[str, Any] | None, key: str) -> int:
    raw = (values or {}).get(key)
    if raw is None or raw == "":
        return 0
    text = str(raw)
    if not _INTEGER.fullmatch(text):
        raise BindError(f"parameter {key!r} must be an integer", status=400)
    return int(text)


def _param_str(values: Mapping[str, Any] | None, key: str) -> str:
    raw = (values or {}).get(key)
    return "" if raw is None else str(raw)


def _pagination(query: Mapping[str, Any] | None) -> Pagination:
    return Pagination(limit=_param_int(query, "limit"), offset=_param_int(query, "offset"))


def bind_bulk_upload(
    filename: str | None, stream: BinaryIO | None, request_type: RequestType | str
) -> tuple[BulkUploadRequest, BulkUploadModel]:
    """Save an uploaded file to the temp directory and describe the job."""
    name = os.path.basename(filename or "")
    if not name or stream is None:
        raise BindError("file not received")
    kind = RequestType(request_type).value
    path = os.path.join(tempfile.gettempdir(), name)
    try:
        with open(path, "wb") as target:
            shutil.copyfileobj(stream, target)
    except OSError as exc:
        raise BindError(f"unable to create temp file {exc}") from exc
    model = BulkUploadModel(
        file_name=name,
        file_path=path,
        status=UploadStatus.PENDING.value,
        request_id=str(uuid.uuid4()),
        request_type=kind,
    )
    return BulkUploadRequest(file_path=path, request_type=kind), model


def bind_get_bulk_upload(
    path_params: Mapping[str, Any] | None, query: Mapping[str, Any] | None
) -> GetBulkUploadRequest:
    return GetBulkUploadRequest(
        request_id=_param_str(path_params, "request_id"),
        pagination=get_pagination(_pagination(query)),
    )


def bind_student_create(payload: Any) -> tuple[StudentCreateRequest, Student]:
    body = _json_object(payload)
    request = StudentCreateRequest(
        name=_json_str(body, "name"),
        class_name=_json_str(body, "class"),
        gender=_json_str(body, "gender"),
        roll_no=_json_str(body, "roll_no"),
        phone_no=_json_str(body, "phone_no"),
    )
    validate(request)
    student = Student(
        name=request.name,
        class_name=request.class_name,
        gender=request.gender,
        roll_number=request.roll_no,
        phone_no=request.phone_no,
    )
    return request, student


def bind_student_update(payload: Any) -> tuple[StudentUpdateRequest, Student]:
    body = _json_object(payload)
    request = StudentUpdateRequest(
        id=_json_int(body, "id"),
        name=_json_str(body, "name"),
        class_name=_json_str(body, "class"),
        gender=_json_str(body, "gender"),
        roll_no=_json_str(body, "roll_no"),
        phone_no=_json_str(body, "phone_no"),
    )
    validate(request)
    student = Student(
        id=request.id,
        name=request.name,
        class_name=request.class_name,
        gender=request.gender,
        roll_number=request.roll_no,
        phone_no=request.phone_no,
    )
    return request, student


def bind_vaccine_record_create(payload: Any) -> tuple[VaccineRecordCreateRequest, VaccineRecord]:
    body = _json_object(payload)
    request = VaccineRecordCreateRequest(
        student_id=_json_int(body, "student_id"),
        drive_id=_json_int(body, "drive_id"),
    )
    validate(request)
    return request, VaccineRecord(student_id=request.student_id, drive_id=request.drive_id)


def bind_get_student_vaccine_record(
    path_params: Mapping[str, Any] | None, query: Mapping[str, Any] | None
) -> GetStudentVaccineRecordRequest:
    request = GetStudentVaccineRecordRequest(
        id=_param_int(path_params, "id"),
        roll_no=_param_str(query, "roll_no"),
        vaccine_name=_param_str(query, "vaccine_name"),
        class_name=_param_str(query, "class"),
        name=_param_str(query, "name"),
        pagination=_pagination(query),
    )
    validate(request)
    request.pagination = get_pagination(request.pagination)
    return request


def bind_generate_report(query: Mapping[str, Any] | None) -> GenerateReportRequest:
    request = GenerateReportRequest(
        class_name=_param_str(query, "class"),
        vaccine_name=_param_str(query, "vaccine_name"),
    )
    validate(request)
    request.request_id = str(uuid.uuid4())
    return request