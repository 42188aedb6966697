"""Persistence of vaccination records and the student/vaccination join."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable

from sqlalchemy import Column, DateTime, Integer, MetaData, Table, text
from sqlalchemy.engine import Engine

from .binding import Pagination
from .models import StudentVaccinationDetail, VaccineInsertionRecord, VaccineRecord

log = logging.getLogger(__name__)

_metadata = MetaData()
_records = Table(
    "vaccination_records",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("student_id", Integer),
    Column("drive_id", Integer),
    Column("created_at", DateTime),
)

_SELECT = (
    "SELECT s.id AS id, s.name AS name, s.class AS class_name, s.roll_number AS roll_number,"
    " s.gender AS gender, s.phone_no AS phone_no, v.drive_id AS drive_id"
    " FROM students s LEFT JOIN vaccination_records v ON s.id = v.student_id"
)


class VaccineRecordRepository:
    """Reads and writes the ``vaccination_records`` table."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def create_vaccination_records(
        self, records: Iterable[VaccineRecord]
    ) -> list[VaccineInsertionRecord]:
        """Insert each record on its own; a failure is reported, not raised."""
        results = []
        for record in records:
            created = record.created_at or datetime.now()
            try:
                with self.engine.begin() as conn:
                    outcome = conn.execute(
                        _records.insert().values(
                            student_id=record.student_id,
                            drive_id=record.drive_id,
                            created_at=created,
                        )
                    )
                saved = VaccineRecord(
                    id=outcome.inserted_primary_key[0],
                    student_id=record.student_id,
                    drive_id=record.drive_id,
                    created_at=created,
                )
                results.append(VaccineInsertionRecord(record=saved, status=True))
            except Exception as exc:
                log.warning("vaccination record insert failed: %s", exc)
                results.append(
                    VaccineInsertionRecord(record=record, status=False, error_reason=str(exc))
                )
        return results

    def get_student_vaccination_records(
        self, filter_clause: str = "", pagination: Pagination | None = None
    ) -> list[StudentVaccinationDetail]:
        """Students joined with their drives; paged by id when a limit is set."""
        sql = _SELECT
        if filter_clause:
            sql += f" WHERE {filter_clause}"
        params = {}
        if pagination is not None and pagination.limit:
            sql += " ORDER BY id ASC LIMIT :limit OFFSET :offset"
            params = {"limit": pagination.limit, "offset": pagination.offset}
        with self.engine.connect() as conn:
            rows = conn.execute(text(sql), params)
            return [
                StudentVaccinationDetail(
                    id=row.id,
                    name=row.name or "",
                    class_name=row.class_name or "",
                    gender=row.gender or "",
                    roll_number=row.roll_number or "",
                    phone_no=row.phone_no or "",
                    drive_id=row.drive_id or 0,
                )
                for row in rows
            ]

    def count_student_vaccination_records(self, filter_clause: str, join: str) -> int:
        """Count rows of ``students s`` under the given join and condition."""
        sql = f"SELECT COUNT(*) FROM students s {join}"
        if filter_clause:
            sql += f" WHERE {filter_clause}"
        with self.engine.connect() as conn:
            return int(conn.execute(text(sql)).scalar_one())