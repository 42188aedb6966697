"""Use cases for creating and updating students."""

from __future__ import annotations

import logging
from typing import Iterable

from .models import InsertionRecord, Student
from .student_repository import StudentRepository

log = logging.getLogger(__name__)


class StudentNotFoundError(LookupError):
    """Raised when no student exists with the requested id."""

    def __init__(self, student_id: int):
        super().__init__(f"student with id {student_id} is not available")
        self.student_id = student_id


class StudentService:
    """Student operations on top of a student repository."""

    def __init__(self, repository: StudentRepository):
        self.repository = repository

    def create_student_records(self, records: Iterable[Student]) -> list[InsertionRecord]:
        """Insert the students and report the outcome of each."""
        return self.repository.create_student_records(records)

    def update_student_record(self, student: Student) -> Student:
        """Apply the non-empty fields of ``student`` and return the stored row."""
        condition = f"id = {int(student.id)}"
        try:
            existing = self.repository.get_students(condition)
        except Exception:
            log.exception("error in getting student with id %d", student.id)
            raise
        if not existing or existing[0].id != student.id:
            raise StudentNotFoundError(student.id)
        try:
            self.repository.update_student(student)
        except Exception:
            log.exception("could not update student record")
            raise
        updated = self.repository.get_students(condition)
        if not updated:
            raise StudentNotFoundError(student.id)
        return updated[0]