"""Shapes of the JSON bodies returned by the HTTP API."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from .binding import (
    BindError,
    GetStudentVaccineRecordRequest,
    StudentCreateRequest,
    StudentUpdateRequest,
    VaccineRecordCreateRequest,
)
from .models import GetStudentDetails, InsertionRecord, Student, VaccineInsertionRecord
from .validation import ValidationError

log = logging.getLogger(__name__)

_UNSUPPORTED_MEDIA = (
    "Unsupported Media Type. Please use application/json in request header Content-Type"
)


def process_error_response(err: BaseException) -> dict[str, Any]:
    """Turn an exception into the API's error envelope."""
    log.info("error type %r", err)
    if isinstance(err, ValidationError):
        return {"message": "Invalid Input", "data": [], "error": dict(err.fields)}
    if isinstance(err, BindError) and err.status is not None:
        if err.status == 415:
            return {
                "message": "Invalid Request",
                "data": [],
                "error": {"error": _UNSUPPORTED_MEDIA},
            }
        return {"message": "", "data": None}
    return {"message": "unable to process request", "data": [], "error": str(err)}


def student_links(student_id: int) -> dict[str, dict[str, str]]:
    """Hypermedia links for one student."""
    href = f"http://localhost:8080/students/{student_id}"
    return {
        "self": {"href": href, "method": "GET"},
        "edit": {"href": href, "method": "PATCH"},
    }


def _student_data(student: Student, links: Any = None) -> dict[str, Any]:
    raw = student.to_dict()
    data: dict[str, Any] = {}
    if student.id:
        data["id"] = student.id
    data["name"] = student.name
    data["class"] = student.class_name
    data["gender"] = student.gender
    data["roll_no"] = student.roll_number
    if raw["created_at"] is not None:
        data["created_at"] = raw["created_at"]
    if raw["update_at"] is not None:
        data["update_at"] = raw["update_at"]
    data["phone_no"] = student.phone_no
    if links is not None:
        data["_links"] = links
    return data


def process_student_response(request: Any, result: Any) -> dict[str, Any]:
    """Build the response for a student create or update."""
    if isinstance(request, StudentCreateRequest):
        first: InsertionRecord = result[0]
        if first.status:
            return {
                "message": "Student Successfully Onboarded",
                "data": _student_data(first.record, student_links(first.record.id)),
            }
        return {
            "message": "Student Not Onboarded",
            "data": _student_data(first.record),
            "error": first.error_reason,
        }
    if isinstance(request, StudentUpdateRequest):
        student: Student = result
        return {
            "message": "Student Successfully Updated",
            "data": _student_data(student, student_links(student.id)),
        }
    return {"message": "", "data": None}


def process_vaccine_record_response(request: Any, data: Any) -> dict[str, Any]:
    """Build the response for a vaccination record create or listing."""
    if isinstance(request, VaccineRecordCreateRequest):
        first: VaccineInsertionRecord = data[0]
        record: dict[str, Any] = {}
        if first.record.id:
            record["id"] = first.record.id
        record["student_id"] = first.record.student_id
        record["drive_id"] = first.record.drive_id
        if first.status:
            return {"message": "Vaccination Record added Successfully", "data": record}
        return {
            "message": "Vaccination Record addition failed",
            "data": record,
            "error": first.error_reason,
        }
    if isinstance(request, GetStudentVaccineRecordRequest):
        details: Sequence[GetStudentDetails] | None = data
        response: dict[str, Any] = {
            "message": "student record fetched successfully",
            "data": [item.to_dict() for item in details] if details else None,
        }
        if request.pagination.limit:
            response["limit"] = request.pagination.limit
        if request.pagination.offset:
            response["offset"] = request.pagination.offset
        return response
    return {"message": "", "data": None}