from datetime import datetime, timezone

from studentservice.binding import (
    BindError,
    GetStudentVaccineRecordRequest,
    Pagination,
    StudentCreateRequest,
    StudentUpdateRequest,
    VaccineRecordCreateRequest,
)
from studentservice.models import (
    GetStudentDetails,
    InsertionRecord,
    Student,
    VaccineInsertionRecord,
    VaccineRecord,
)
from studentservice.responses import (
    process_error_response,
    process_student_response,
    process_vaccine_record_response,
    student_links,
)
from studentservice.validation import ValidationError


def test_validation_error_response():
    err = ValidationError("name is bad", {"name": "name is bad"})
    assert process_error_response(err) == {
        "message": "Invalid Input",
        "data": [],
        "error": {"name": "name is bad"},
    }


def test_unsupported_media_type_response():
    resp = process_error_response(BindError("unsupported", status=415))
    assert resp["message"] == "Invalid Request"
    assert resp["error"] == {
        "error": "Unsupported Media Type. Please use application/json in request header Content-Type"
    }


def test_other_bind_status_gives_empty_envelope():
    assert process_error_response(BindError("bad", status=400)) == {"message": "", "data": None}


def test_generic_error_response():
    resp = process_error_response(RuntimeError("boom"))
    assert resp == {"message": "unable to process request", "data": [], "error": "boom"}


def test_student_links():
    links = student_links(4)
    assert links["self"] == {"href": "http://localhost:8080/students/4", "method": "GET"}
    assert links["edit"] == {"href": "http://localhost:8080/students/4", "method": "PATCH"}


def test_student_create_success():
    created = datetime(2024, 1, 2, tzinfo=timezone.utc)
    record = InsertionRecord(
        record=Student(id=4, name="Asha", class_name="Grade 1", roll_number="R1", created_at=created),
        status=True,
    )
    resp = process_student_response(StudentCreateRequest(), [record])
    assert resp["message"] == "Student Successfully Onboarded"
    assert "error" not in resp
    assert resp["data"]["id"] == 4
    assert resp["data"]["roll_no"] == "R1"
    assert resp["data"]["created_at"] == created.isoformat()
    assert "update_at" not in resp["data"]
    assert resp["data"]["_links"] == student_links(4)


def test_student_create_failure():
    record = InsertionRecord(record=Student(name="Asha"), status=False, error_reason="duplicate")
    resp = process_student_response(StudentCreateRequest(), [record])
    assert resp["message"] == "Student Not Onboarded"
    assert resp["error"] == "duplicate"
    assert "id" not in resp["data"]
    assert "_links" not in resp["data"]


def test_student_update_response():
    resp = process_student_response(StudentUpdateRequest(id=6), Student(id=6, name="Ravi"))
    assert resp["message"] == "Student Successfully Updated"
    assert resp["data"]["name"] == "Ravi"
    assert resp["data"]["_links"] == student_links(6)


def test_student_unknown_request():
    assert process_student_response(object(), None) == {"message": "", "data": None}


def test_vaccine_create_success():
    record = VaccineInsertionRecord(record=VaccineRecord(id=2, student_id=4, drive_id=9), status=True)
    resp = process_vaccine_record_response(VaccineRecordCreateRequest(), [record])
    assert resp == {
        "message": "Vaccination Record added Successfully",
        "data": {"id": 2, "student_id": 4, "drive_id": 9},
    }


def test_vaccine_create_failure():
    record = VaccineInsertionRecord(
        record=VaccineRecord(student_id=4, drive_id=9), error_reason="no drive exists with drive_id : 9"
    )
    resp = process_vaccine_record_response(VaccineRecordCreateRequest(), [record])
    assert resp["message"] == "Vaccination Record addition failed"
    assert resp["error"] == "no drive exists with drive_id : 9"
    assert "id" not in resp["data"]


def test_vaccine_listing_response():
    request = GetStudentVaccineRecordRequest(pagination=Pagination(limit=5, offset=0))
    details = [GetStudentDetails(id=1, name="Mira"), GetStudentDetails(id=2, name="Ravi")]
    resp = process_vaccine_record_response(request, details)
    assert resp["message"] == "student record fetched successfully"
    assert resp["data"] == [item.to_dict() for item in details]
    assert resp["limit"] == 5
    assert "offset" not in resp


def test_vaccine_listing_empty_is_null():
    request = GetStudentVaccineRecordRequest(pagination=Pagination(limit=5, offset=10))
    resp = process_vaccine_record_response(request, [])
    assert resp["data"] is None
    assert resp["offset"] == 10