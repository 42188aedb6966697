"""Use cases for bulk uploads: accepting files and processing them into records."""

from __future__ import annotations

import logging
import os
import re
import tempfile
from typing import Any, Callable, Sequence

import requests

from .adapters import Settings
from .binding import Pagination, StudentCreateRequest, VaccineRecordCreateRequest
from .bulkupload_repository import BulkUploadRepository
from .models import (
    BulkUploadModel,
    InsertionRecord,
    Student,
    UploadStatus,
    VaccineInsertionRecord,
    VaccineRecord,
)
from .spreadsheet import SpreadsheetError, is_spreadsheet_file, read_rows, write_report
from .storage import StorageError
from .student_service import StudentService
from .validation import ValidationError, validate
from .vaccine_service import VaccineRecordService

log = logging.getLogger(__name__)

UPLOAD_QUEUE = "bulk_upload"
INTERNAL_ERROR = "Internal Server Error"
INVALID_FILE = "Inavlid File, Only .xlsx or .xls allowed"
MISSING_COLUMNS = "Missing Columns"
REPORT_NOT_GENERATED = "Report File Not Genrated"
STUDENT_REPORT_HEADERS = (
    "Name",
    "Class",
    "Gender",
    "Roll Number",
    "Phone Number",
    "Status",
    "Remarks",
)
VACCINE_REPORT_HEADERS = ("Student Id", "Drive Id", "Status", "Remarks")

_INTEGER = re.compile(r"[+-]?\d+")
_STORAGE_ERRORS = (StorageError, requests.RequestException, OSError)


class _Abort(Exception):
    """Stops a job, leaving it with the given message and status."""

    def __init__(self, message: str, status: str = UploadStatus.FAILED.value):
        super().__init__(message)
        self.message = message
        self.status = status


def _outcome(status: bool, reason: str) -> list[str]:
    return ["Accepted"] if status else ["Rejected", reason]


class BulkUploadService:
    """Accepts bulk upload files and turns them into student or vaccination records."""

    def __init__(
        self,
        repository: BulkUploadRepository,
        student_service: StudentService | None,
        vaccine_service: VaccineRecordService | None,
        settings: Settings,
    ):
        self.repository = repository
        self.student_service = student_service
        self.vaccine_service = vaccine_service
        self.settings = settings

    def upload_request_file(self, model: BulkUploadModel) -> None:
        """Store the uploaded file, record the job and queue it for a worker."""
        key = self.repository.upload_file(
            model.file_path, self.settings.bulk_upload_bucket, "uploads/", model.request_id
        )
        log.info("uploaded at: %s", key)
        model.file_path = key
        try:
            self.repository.create_entry(model)
        except Exception as exc:
            raise RuntimeError(f"error in creating bulk upload file entry {exc}") from exc
        self.repository.submit(model, UPLOAD_QUEUE)

    def get_bulk_upload_details(
        self, request_id: str, pagination: Pagination
    ) -> tuple[int, list[BulkUploadModel]]:
        """Return the number of matching jobs and one page of them."""
        count = self.repository.count_bulk_uploads(request_id)
        return count, self.repository.get_bulk_uploads(request_id, pagination)

    def process_student_records(self, model: BulkUploadModel) -> None:
        """Create the students listed in the job's workbook and publish a report."""
        self._run(model, self._student_job)

    def process_vaccine_records(self, model: BulkUploadModel) -> None:
        """Create the vaccination records listed in the job's workbook and publish a report."""
        self._run(model, self._vaccine_job)

    def _run(
        self,
        model: BulkUploadModel,
        job: Callable[[BulkUploadModel, list[list[str]]], None],
    ) -> None:
        self.repository.update_entry(
            BulkUploadModel(id=model.id, status=UploadStatus.PROCESSING.value)
        )
        try:
            rows = self._load_rows(model)
            job(model, rows)
        except _Abort as abort:
            log.warning("bulk upload %s stopped: %s", model.request_id, abort.message)
            model.error_message = abort.message
            model.status = abort.status
            self.repository.update_entry(model)

    def _load_rows(self, model: BulkUploadModel) -> list[list[str]]:
        try:
            path = self.repository.fetch_file(self.settings.bulk_upload_bucket, model.file_path)
        except _STORAGE_ERRORS as exc:
            log.error("unable to fetch %s: %s", model.file_path, exc)
            raise _Abort(INTERNAL_ERROR) from exc
        try:
            if not is_spreadsheet_file(path):
                raise _Abort(INVALID_FILE)
            try:
                rows = read_rows(path)
            except SpreadsheetError as exc:
                log.error("failed to open Excel file: %s", exc)
                raise _Abort(INTERNAL_ERROR) from exc
        finally:
            try:
                os.remove(path)
            except OSError:
                pass
        model.total_records = len(rows) - 1
        return rows

    def _student_job(self, model: BulkUploadModel, rows: list[list[str]]) -> None:
        accepted: list[Student] = []
        rejected: list[InsertionRecord] = []
        for row in rows[1:]:
            if len(row) != 5:
                raise _Abort(MISSING_COLUMNS)
            name, class_name, gender, roll_no, phone_no = row
            student = Student(
                name=name,
                class_name=class_name,
                gender=gender,
                roll_number=roll_no,
                phone_no=phone_no,
            )
            try:
                validate(
                    StudentCreateRequest(
                        name=name,
                        class_name=class_name,
                        gender=gender,
                        roll_no=roll_no,
                        phone_no=phone_no,
                    )
                )
            except ValidationError as exc:
                rejected.append(InsertionRecord(record=student, status=False, error_reason=str(exc)))
                continue
            accepted.append(student)
        results = self.student_service.create_student_records(accepted) + rejected
        log.info("request processing complete: %s", results)
        table = [
            [
                item.record.name,
                item.record.class_name,
                item.record.gender,
                item.record.roll_number,
                item.record.phone_no,
                *_outcome(item.status, item.error_reason),
            ]
            for item in results
        ]
        processed = sum(1 for item in results if item.status)
        self._publish_report(model, STUDENT_REPORT_HEADERS, table, processed)

    def _vaccine_job(self, model: BulkUploadModel, rows: list[list[str]]) -> None:
        accepted: list[VaccineRecord] = []
        rejected: list[VaccineInsertionRecord] = []
        for number, row in enumerate(rows[1:], start=2):
            if len(row) != 2:
                raise _Abort(MISSING_COLUMNS)
            if not all(_INTEGER.fullmatch(cell) for cell in row):
                log.warning("invalid insertion record at row %d: %r", number, row)
                raise _Abort(f"invalid entry at row {number}")
            student_id, drive_id = (int(cell) for cell in row)
            record = VaccineRecord(student_id=student_id, drive_id=drive_id)
            try:
                validate(VaccineRecordCreateRequest(student_id=student_id, drive_id=drive_id))
            except ValidationError:
                rejected.append(
                    VaccineInsertionRecord(record=record, status=False, error_reason="invalid input")
                )
                continue
            accepted.append(record)
        results = self.vaccine_service.create_vaccination_records(accepted) + rejected
        log.info("request processing complete: %s", results)
        table = [
            [item.record.student_id, item.record.drive_id, *_outcome(item.status, item.error_reason)]
            for item in results
        ]
        processed = sum(1 for item in results if item.status)
        self._publish_report(model, VACCINE_REPORT_HEADERS, table, processed)

    def _publish_report(
        self,
        model: BulkUploadModel,
        headers: Sequence[str],
        table: Sequence[Sequence[Any]],
        processed: int,
    ) -> None:
        model.processed_records = processed
        with tempfile.TemporaryDirectory() as workdir:
            path = os.path.join(workdir, "Report.xlsx")
            try:
                write_report(path, "Report", headers, table)
            except OSError as exc:
                log.error("error creating report file: %s", exc)
                raise _Abort(REPORT_NOT_GENERATED, UploadStatus.PROCESSED.value) from exc
            try:
                key = self.repository.upload_file(
                    path, self.settings.bulk_upload_bucket, "reports/", model.request_id
                )
            except _STORAGE_ERRORS as exc:
                log.error("error uploading report file: %s", exc)
                raise _Abort(REPORT_NOT_GENERATED, UploadStatus.PROCESSED.value) from exc
        model.file_path = self.settings.public_file_url(key)
        model.status = UploadStatus.PROCESSED.value
        self.repository.update_entry(model)
        log.info("processing complete: %s", model)