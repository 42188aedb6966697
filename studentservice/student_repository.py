"""Persistence of student rows."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable

from sqlalchemy import Column, DateTime, Integer, MetaData, String, Table, select, text, update
from sqlalchemy.engine import Engine

from .models import InsertionRecord, Student

log = logging.getLogger(__name__)

_metadata = MetaData()
_students = Table(
    "students",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255)),
    Column("class", String(64)),
    Column("gender", String(32)),
    Column("roll_number", String(64)),
    Column("created_at", DateTime),
    Column("updated_at", DateTime),
    Column("phone_no", String(32)),
)


def _to_student(row) -> Student:
    data = row._mapping
    return Student(
        id=data["id"],
        name=data["name"] or "",
        class_name=data["class"] or "",
        gender=data["gender"] or "",
        roll_number=data["roll_number"] or "",
        created_at=data["created_at"],
        updated_at=data["updated_at"],
        phone_no=data["phone_no"] or "",
    )


class StudentRepository:
    """Reads and writes the ``students`` table."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def create_student_records(self, records: Iterable[Student]) -> list[InsertionRecord]:
        """Insert each student on its own; a failure is reported, not raised."""
        results = []
        for student in records:
            now = datetime.now()
            try:
                with self.engine.begin() as conn:
                    outcome = conn.execute(
                        _students.insert().values(
                            name=student.name,
                            **{"class": student.class_name},
                            gender=student.gender,
                            roll_number=student.roll_number,
                            created_at=student.created_at or now,
                            updated_at=student.updated_at or now,
                            phone_no=student.phone_no,
                        )
                    )
                saved = Student(
                    id=outcome.inserted_primary_key[0],
                    name=student.name,
                    class_name=student.class_name,
                    gender=student.gender,
                    roll_number=student.roll_number,
                    created_at=student.created_at or now,
                    updated_at=student.updated_at or now,
                    phone_no=student.phone_no,
                )
                results.append(InsertionRecord(record=saved, status=True))
            except Exception as exc:
                log.warning("student insert failed: %s", exc)
                results.append(InsertionRecord(record=student, status=False, error_reason=str(exc)))
        return results

    def get_students(self, filter_clause: str = "") -> list[Student]:
        """All students, or those matching a raw SQL condition."""
        query = select(_students)
        if filter_clause:
            query = query.where(text(filter_clause))
        with self.engine.connect() as conn:
            return [_to_student(row) for row in conn.execute(query)]

    def update_student(self, student: Student) -> None:
        """Set the non-empty fields of ``student`` on the row with its id."""
        changes = {
            column: value
            for column, value in (
                ("name", student.name),
                ("roll_number", student.roll_number),
                ("class", student.class_name),
                ("gender", student.gender),
                ("phone_no", student.phone_no),
            )
            if value
        }
        if not changes:
            return
        with self.engine.begin() as conn:
            conn.execute(update(_students).where(_students.c.id == student.id).values(**changes))