"""Use cases for vaccination records, listings, the dashboard and reports."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence
from urllib.parse import quote_plus

import requests

from .adapters import Settings
from .apiclient import make_api_call
from .binding import GenerateReportRequest, GetStudentVaccineRecordRequest, Pagination
from .bulkupload_repository import BulkUploadRepository
from .models import (
    GetStudentDetails,
    StudentVaccinationDetail,
    VaccineInsertionRecord,
    VaccineRecord,
)
from .spreadsheet import write_report
from .student_repository import StudentRepository
from .vaccine_repository import VaccineRecordRepository

log = logging.getLogger(__name__)

LEFT_JOIN = "LEFT JOIN vaccination_records v ON s.id = v.student_id"
INNER_JOIN = "INNER JOIN vaccination_records v ON s.id = v.student_id"
REPORT_HEADERS = (
    "Name",
    "Class",
    "Gender",
    "Roll Number",
    "Phone Number",
    "Vaccination Status",
    "Vaccine Name",
    "Vaccination Date",
)


class DriveLookupError(Exception):
    """Raised when vaccination drives cannot be looked up or do not exist."""


def _as_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise DriveLookupError(f"drive field {key!r} must be a string")
    return value


def _as_int(data: Mapping[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise DriveLookupError(f"drive field {key!r} must be an integer")
    return value


@dataclass
class VaccineDrive:
    """A vaccination drive as described by the vaccine service."""

    id: int = 0
    vaccine_name: str = ""
    drive_date: str = ""
    doses: int = 0
    classes: str = ""
    created_at: str = ""
    updated_at: str = ""
    links: Any = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "VaccineDrive":
        if not isinstance(data, Mapping):
            raise DriveLookupError("drive must be a JSON object")
        return cls(
            id=_as_int(data, "id"),
            vaccine_name=_as_str(data, "vaccine_name"),
            drive_date=_as_str(data, "drive_date"),
            doses=_as_int(data, "doses"),
            classes=_as_str(data, "classes"),
            created_at=_as_str(data, "created_at"),
            updated_at=_as_str(data, "updated_at"),
            links=data.get("_links"),
        )


def fetch_drives(base_url: str, drive_id: int = 0, vaccine_name: str = "") -> list[VaccineDrive]:
    """Look up drives by id, or by vaccine name when one is given.

    A reply other than 200 yields no drives; an unreadable reply raises.
    """
    if vaccine_name:
        url = f"{base_url}/vaccine/drives?vaccine_name={quote_plus(vaccine_name)}"
    else:
        url = f"{base_url}/vaccine/drives/{drive_id}"
    log.info("resource being requested at %s", url)
    code, body = make_api_call("GET", url, {"Content-Type": "application/json"}, None)
    if code != 200:
        log.info("drive doesn't exist: %s %r", code, body)
        return []
    try:
        envelope = json.loads(body)
    except ValueError as exc:
        raise DriveLookupError(f"unreadable drive information: {exc}") from exc
    if not isinstance(envelope, Mapping) or "data" not in envelope:
        raise DriveLookupError("inavlid drive")
    data = envelope["data"]
    if data is None:
        return []
    if isinstance(data, list):
        return [VaccineDrive.from_dict(item) for item in data]
    if isinstance(data, Mapping):
        return [VaccineDrive.from_dict(data)]
    raise DriveLookupError("inavlid drive")


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "''")


def _join(conditions: Iterable[str]) -> str:
    return " AND ".join(conditions)


class VaccineRecordService:
    """Vaccination operations combining the database and the vaccine service."""

    def __init__(
        self,
        vaccine_repository: VaccineRecordRepository,
        student_repository: StudentRepository,
        bulk_upload_repository: BulkUploadRepository,
        settings: Settings,
    ):
        self.vaccine_repository = vaccine_repository
        self.student_repository = student_repository
        self.bulk_upload_repository = bulk_upload_repository
        self.settings = settings

    def _drives(self, drive_id: int = 0, vaccine_name: str = "") -> list[VaccineDrive]:
        return fetch_drives(self.settings.vaccine_service, drive_id, vaccine_name)

    def create_vaccination_records(
        self, records: Iterable[VaccineRecord]
    ) -> list[VaccineInsertionRecord]:
        """Insert records whose drive and student exist; report the rest as rejected."""
        valid: list[VaccineRecord] = []
        invalid: list[VaccineInsertionRecord] = []
        for record in records:
            try:
                drives = self._drives(record.drive_id)
            except (DriveLookupError, requests.RequestException) as exc:
                log.info("drive lookup failed: %s", exc)
                drives = []
            if not drives:
                invalid.append(
                    VaccineInsertionRecord(
                        record=record,
                        error_reason=f"no drive exists with drive_id : {record.drive_id}",
                    )
                )
                continue
            try:
                students = self.student_repository.get_students(f"id = {int(record.student_id)}")
            except Exception as exc:
                log.info("student lookup failed: %s", exc)
                students = []
            if len(students) != 1:
                invalid.append(
                    VaccineInsertionRecord(
                        record=record,
                        error_reason=f"no student exists with student_id : {record.student_id}",
                    )
                )
                continue
            valid.append(record)
        return self.vaccine_repository.create_vaccination_records(valid) + invalid

    def _drive_condition(self, vaccine_name: str, register: dict[int, VaccineDrive]) -> str:
        for drive in self._drives(0, vaccine_name):
            register[drive.id] = drive
        if not register:
            return ""
        return f"v.drive_id IN ({', '.join(str(drive_id) for drive_id in register)})"

    def _describe(
        self, rows: Sequence[StudentVaccinationDetail], register: dict[int, VaccineDrive]
    ) -> tuple[list[GetStudentDetails], Exception | None]:
        details: list[GetStudentDetails] = []
        last_error: Exception | None = None
        for row in rows:
            detail = GetStudentDetails(
                id=row.id,
                name=row.name,
                class_name=row.class_name,
                gender=row.gender,
                roll_no=row.roll_number,
                phone_no=row.phone_no,
            )
            if row.drive_id:
                drive = register.get(row.drive_id)
                if drive is None:
                    try:
                        found = self._drives(row.drive_id)
                        if not found:
                            raise DriveLookupError(
                                f"no drive exists with drive_id : {row.drive_id}"
                            )
                    except (DriveLookupError, requests.RequestException) as exc:
                        log.warning("error fetching vaccination drive: %s", exc)
                        last_error = exc
                        continue
                    last_error = None
                    drive = register[row.drive_id] = found[0]
                detail.vaccination = True
                detail.vaccine_name = drive.vaccine_name
                detail.vaccine_date = drive.drive_date
            details.append(detail)
        return details, last_error

    def get_student_vaccination_records(
        self, request: GetStudentVaccineRecordRequest
    ) -> tuple[int, list[GetStudentDetails]]:
        """Return the total matching count and one page of student details."""
        register: dict[int, VaccineDrive] = {}
        conditions: list[str] = []
        if request.id:
            conditions.append(f"s.id = '{int(request.id)}'")
        if request.roll_no:
            conditions.append(f"s.roll_number = '{_quote(request.roll_no)}'")
        if request.class_name:
            conditions.append(f"s.class = '{_quote(request.class_name)}'")
        if request.name:
            conditions.append(f"s.name LIKE '%{_quote(request.name)}%'")
        if request.vaccine_name:
            clause = self._drive_condition(request.vaccine_name, register)
            if not clause:
                raise DriveLookupError(
                    f"no vaccination drive with vaccine : {request.vaccine_name}"
                )
            conditions.append(clause)
        query = _join(conditions)
        log.info("query string being used %s", query)
        total = self.vaccine_repository.count_student_vaccination_records(query, LEFT_JOIN)
        rows = self.vaccine_repository.get_student_vaccination_records(query, request.pagination)
        details, last_error = self._describe(rows, register)
        if last_error is not None:
            raise last_error
        return total, details

    def get_dashboard(self) -> tuple[int, int]:
        """Return the number of students and of vaccinated students."""
        total = self.vaccine_repository.count_student_vaccination_records("", LEFT_JOIN)
        vaccinated = self.vaccine_repository.count_student_vaccination_records("", INNER_JOIN)
        return total, vaccinated

    def generate_report(self, request: GenerateReportRequest) -> str:
        """Build a vaccination report workbook, store it and return its address."""
        register: dict[int, VaccineDrive] = {}
        conditions: list[str] = []
        if request.vaccine_name:
            clause = self._drive_condition(request.vaccine_name, register)
            if not clause:
                raise DriveLookupError(f"no data for vaccine name {request.vaccine_name}")
            conditions.append(clause)
        if request.class_name:
            conditions.append(f"s.class = '{_quote(request.class_name)}'")
        query = _join(conditions)
        log.info("query being used %s", query)
        rows = self.vaccine_repository.get_student_vaccination_records(query, Pagination())
        details, _ = self._describe(rows, register)
        table = []
        for detail in details:
            row: list[Any] = [
                detail.name,
                detail.class_name,
                detail.gender,
                detail.roll_no,
                detail.phone_no,
            ]
            if detail.vaccination:
                row += ["Vaccinated", detail.vaccine_name, detail.vaccine_date]
            else:
                row.append("Non Vaccinated")
            table.append(row)
        with tempfile.TemporaryDirectory() as workdir:
            path = os.path.join(workdir, "Report.xlsx")
            try:
                write_report(path, "Report", REPORT_HEADERS, table)
            except OSError as exc:
                log.error("unable to save report file locally: %s", exc)
                raise RuntimeError("Internal server Error") from exc
            key = self.bulk_upload_repository.upload_file(
                path, self.settings.bulk_upload_bucket, "reports/", request.request_id
            )
        return self.settings.public_file_url(key)