"""HTTP API for students, vaccination records and bulk uploads."""

from __future__ import annotations

import dataclasses
import datetime as _dt
import enum
import json
import logging
import os
import tempfile
import uuid
from typing import Any, Callable, Mapping

from flask import Flask, Response, request
from werkzeug.exceptions import BadRequest, HTTPException, UnsupportedMediaType

from .adapters import Settings, create_db_engine, create_storage, open_rabbit_channel
from .binding import (
    GenerateReportRequest,
    GetStudentVaccineRecordRequest,
    Pagination,
    StudentCreateRequest,
    StudentUpdateRequest,
    VaccineRecordCreateRequest,
    get_pagination,
)
from .bulk_service import BulkUploadService
from .bulkupload_repository import BulkUploadRepository
from .models import BulkUploadModel, RequestType, Student, UploadStatus, VaccineRecord
from .responses import (
    process_error_response,
    process_student_response,
    process_vaccine_record_response,
)
from .student_repository import StudentRepository
from .student_service import StudentService
from .vaccine_repository import VaccineRecordRepository
from .vaccine_service import VaccineRecordService
from .validation import ValidationError, validate

log = logging.getLogger(__name__)

DEFAULT_PORT = 8081
ALLOWED_METHODS = ("GET", "HEAD", "PUT", "PATCH", "POST", "DELETE")
ACCEPTED_MESSAGE = "Request Accepted! Please check after sometime"
BULK_DETAILS_MESSAGE = "bulk_upload details fetched successfully"

_BIND_ERRORS = (HTTPException, ValidationError, ValueError)


def _encode(value: Any) -> Any:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (_dt.datetime, _dt.date)):
        return value.isoformat()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    raise TypeError(f"cannot serialise {type(value).__name__}")


def _json(status: int, body: Any) -> Response:
    return Response(json.dumps(body, default=_encode), status=status, mimetype="application/json")


def _bad_request(error: Exception) -> Response:
    log.info("error in binding request: %s", error)
    return _json(400, process_error_response(error))


def _server_error(error: Exception) -> Response:
    log.error("error processing request: %s", error)
    return _json(500, process_error_response(error))


def _json_body() -> Mapping[str, Any]:
    raw = request.get_data()
    if not raw:
        return {}
    if request.mimetype != "application/json":
        raise UnsupportedMediaType()
    try:
        payload = json.loads(raw)
    except ValueError as exc:
        raise BadRequest(f"invalid JSON body: {exc}") from exc
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise BadRequest("request body must be a JSON object")
    return payload


def _string(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise BadRequest(f"field {key} must be a string")
    return value


def _integer(data: Mapping[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise BadRequest(f"field {key} must be an integer")
    return value


def _parse_int(name: str, text: str) -> int:
    if not text:
        return 0
    try:
        return int(text, 10)
    except ValueError as exc:
        raise BadRequest(f"invalid value for {name}: {text!r}") from exc


def _query_pagination() -> Pagination:
    return Pagination(
        limit=_parse_int("limit", request.args.get("limit", "")),
        offset=_parse_int("offset", request.args.get("offset", "")),
    )


def _strip_trailing_slash(wsgi_app: Callable) -> Callable:
    def wrapper(environ, start_response):
        path = environ.get("PATH_INFO", "")
        if len(path) > 1 and path.endswith("/"):
            environ = {**environ, "PATH_INFO": path[:-1]}
        return wsgi_app(environ, start_response)

    return wrapper


def create_app(student_service, vaccine_service, bulk_service) -> Flask:
    """Build the web application around the given services."""
    app = Flask(__name__)
    app.wsgi_app = _strip_trailing_slash(app.wsgi_app)

    @app.before_request
    def _preflight():
        if request.method == "OPTIONS":
            response = Response(status=204)
            response.headers["Access-Control-Allow-Methods"] = ",".join(ALLOWED_METHODS)
            requested = request.headers.get("Access-Control-Request-Headers")
            if requested:
                response.headers["Access-Control-Allow-Headers"] = requested
            return response
        return None

    @app.after_request
    def _cors(response: Response) -> Response:
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers.add("Vary", "Origin")
        return response

    def create_student():
        try:
            payload = _json_body()
            req = StudentCreateRequest(
                name=_string(payload, "name"),
                class_name=_string(payload, "class"),
                gender=_string(payload, "gender"),
                roll_no=_string(payload, "roll_no"),
                phone_no=_string(payload, "phone_no"),
            )
            validate(req)
        except _BIND_ERRORS as exc:
            return _bad_request(exc)
        student = Student(
            name=req.name,
            class_name=req.class_name,
            gender=req.gender,
            roll_number=req.roll_no,
            phone_no=req.phone_no,
        )
        log.info("request for adding student record is %s", student)
        results = student_service.create_student_records([student])
        status = 201 if results[0].status else 400
        return _json(status, process_student_response(req, results))

    def edit_student():
        try:
            payload = _json_body()
            req = StudentUpdateRequest(
                id=_integer(payload, "id"),
                name=_string(payload, "name"),
                class_name=_string(payload, "class"),
                gender=_string(payload, "gender"),
                roll_no=_string(payload, "roll_no"),
                phone_no=_string(payload, "phone_no"),
            )
            validate(req)
        except _BIND_ERRORS as exc:
            return _bad_request(exc)
        student = Student(
            id=req.id,
            name=req.name,
            class_name=req.class_name,
            gender=req.gender,
            roll_number=req.roll_no,
            phone_no=req.phone_no,
        )
        try:
            updated = student_service.update_student_record(student)
        except Exception as exc:
            return _server_error(exc)
        return _json(200, process_student_response(req, updated))

    def create_vaccine_record():
        try:
            payload = _json_body()
            req = VaccineRecordCreateRequest(
                student_id=_integer(payload, "student_id"),
                drive_id=_integer(payload, "drive_id"),
            )
            validate(req)
        except _BIND_ERRORS as exc:
            return _bad_request(exc)
        record = VaccineRecord(student_id=req.student_id, drive_id=req.drive_id)
        log.info("request for adding vaccine record is %s", record)
        results = vaccine_service.create_vaccination_records([record])
        status = 201 if results[0].status else 400
        return _json(status, process_vaccine_record_response(req, results))

    def student_vaccination_records(student_id: str = ""):
        try:
            req = GetStudentVaccineRecordRequest(
                id=_parse_int("id", student_id),
                roll_no=request.args.get("roll_no", ""),
                vaccine_name=request.args.get("vaccine_name", ""),
                class_name=request.args.get("class", ""),
                name=request.args.get("name", ""),
                pagination=get_pagination(_query_pagination()),
            )
            validate(req)
        except _BIND_ERRORS as exc:
            return _bad_request(exc)
        try:
            total, details = vaccine_service.get_student_vaccination_records(req)
        except Exception as exc:
            return _server_error(exc)
        body = process_vaccine_record_response(req, details)
        if total:
            body["total"] = total
        else:
            body.pop("total", None)
        return _json(200, body)

    def dashboard():
        try:
            total, vaccinated = vaccine_service.get_dashboard()
        except Exception as exc:
            return _server_error(exc)
        return _json(200, {"total_students": total, "vaccinated_students": vaccinated})

    def generate_report():
        try:
            req = GenerateReportRequest(
                class_name=request.args.get("class", ""),
                vaccine_name=request.args.get("vaccine_name", ""),
                request_id=str(uuid.uuid4()),
            )
            validate(req)
        except _BIND_ERRORS as exc:
            return _bad_request(exc)
        try:
            location = vaccine_service.generate_report(req)
        except Exception as exc:
            return _server_error(exc)
        return _json(200, {"file": location})

    def _accept_upload(request_type: str) -> Response:
        upload = request.files.get("file")
        if upload is None:
            return _bad_request(ValueError("file not received"))
        filename = os.path.basename(upload.filename or "") or "upload"
        path = os.path.join(tempfile.gettempdir(), filename)
        try:
            upload.save(path)
        except OSError as exc:
            return _bad_request(ValueError(f"unable to create temp file {exc}"))
        model = BulkUploadModel(
            request_id=str(uuid.uuid4()),
            file_name=filename,
            file_path=path,
            status=UploadStatus.PENDING.value,
            request_type=request_type,
        )
        try:
            bulk_service.upload_request_file(model)
        except Exception as exc:
            return _server_error(exc)
        return _json(
            202,
            {
                "message": ACCEPTED_MESSAGE,
                "data": {"request_id": model.request_id, "status": _encode_status(model.status)},
            },
        )

    def bulk_students():
        return _accept_upload(RequestType.STUDENT_RECORD.value)

    def bulk_vaccine_records():
        return _accept_upload(RequestType.VACCINE_RECORD.value)

    def bulk_upload_status(request_id: str = ""):
        try:
            pagination = get_pagination(_query_pagination())
        except _BIND_ERRORS as exc:
            return _bad_request(exc)
        try:
            total, jobs = bulk_service.get_bulk_upload_details(request_id, pagination)
        except Exception as exc:
            return _server_error(exc)
        return _json(
            200,
            {
                "message": BULK_DETAILS_MESSAGE,
                "data": jobs,
                "limit": pagination.limit,
                "offset": pagination.offset,
                "total": total,
            },
        )

    app.add_url_rule("/students/bulk-upload", "students_bulk_edit", edit_student, methods=["POST"])
    app.add_url_rule("/students", "create_student", create_student, methods=["POST"])
    app.add_url_rule("/students", "edit_student", edit_student, methods=["PATCH"])

    app.add_url_rule(
        "/vaccine-records", "create_vaccine_record", create_vaccine_record, methods=["POST"]
    )
    app.add_url_rule(
        "/vaccine-records/students/<student_id>",
        "student_vaccination_records",
        student_vaccination_records,
        methods=["GET"],
    )
    app.add_url_rule(
        "/vaccine-records/students",
        "student_vaccination_records",
        student_vaccination_records,
        methods=["GET"],
        defaults={"student_id": ""},
    )
    app.add_url_rule("/vaccine-records/dashboard", "dashboard", dashboard, methods=["GET"])
    app.add_url_rule(
        "/vaccine-records/genrate-report", "generate_report", generate_report, methods=["GET"]
    )

    app.add_url_rule("/bulk-upload/students", "bulk_students", bulk_students, methods=["POST"])
    app.add_url_rule(
        "/bulk-upload/vaccine-records",
        "bulk_vaccine_records",
        bulk_vaccine_records,
        methods=["POST"],
    )
    app.add_url_rule(
        "/bulk-upload/<request_id>", "bulk_upload_status", bulk_upload_status, methods=["GET"]
    )
    app.add_url_rule(
        "/bulk-upload",
        "bulk_upload_status",
        bulk_upload_status,
        methods=["GET"],
        defaults={"request_id": ""},
    )
    return app


def _encode_status(status: Any) -> Any:
    return status.value if isinstance(status, enum.Enum) else status


def build_app(settings: Settings | None = None) -> Flask:
    """Connect to the backing services and build the application."""
    settings = settings or Settings.from_env()
    engine = create_db_engine(settings)
    storage = create_storage(settings)
    channel = open_rabbit_channel(settings)

    student_repository = StudentRepository(engine)
    student_service = StudentService(student_repository)
    bulk_repository = BulkUploadRepository(engine, storage, channel)
    vaccine_service = VaccineRecordService(
        VaccineRecordRepository(engine), student_repository, bulk_repository, settings
    )
    bulk_service = BulkUploadService(bulk_repository, None, None, settings)
    return create_app(student_service, vaccine_service, bulk_service)


def run_server(settings: Settings | None = None, port: int = DEFAULT_PORT) -> None:
    """Serve the API on ``port`` until interrupted."""
    app = build_app(settings)
    app.run(host="0.0.0.0", port=port)