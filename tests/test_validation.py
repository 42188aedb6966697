import pytest

from studentservice.binding import (
    StudentCreateRequest,
    StudentUpdateRequest,
    VaccineRecordCreateRequest,
)
from studentservice.validation import ValidationError, is_valid_grade, validate

GRADE_MESSAGE = "invalid class value,please enter valid grade. e.g Grade 1, Grade 2".lower()


def _valid_create(**changes):
    values = dict(name="Asha", class_name="Grade 4", gender="F", roll_no="R1", phone_no="555")
    values.update(changes)
    return StudentCreateRequest(**values)


@pytest.mark.parametrize("value", ["Grade 1", "Grade 9", "Grade 10", "Grade 12", "Grade\t5"])
def test_valid_grades(value):
    assert is_valid_grade(value) is True


@pytest.mark.parametrize(
    "value", ["Grade 0", "Grade 13", "grade 1", "Grade 1\n", "Grade  1", "", None, 3]
)
def test_invalid_grades(value):
    assert is_valid_grade(value) is False


def test_missing_required_field_reports_tag():
    with pytest.raises(ValidationError) as info:
        validate(_valid_create(name=""))
    assert set(info.value.fields) == {"name"}
    assert "failed on the 'required' tag" in info.value.fields["name"]
    assert info.value.fields["name"] == info.value.fields["name"].lower()


def test_invalid_class_uses_translated_message():
    with pytest.raises(ValidationError) as info:
        validate(_valid_create(class_name="Grade 20"))
    assert info.value.fields == {"class": GRADE_MESSAGE}
    assert str(info.value) == GRADE_MESSAGE


def test_empty_class_fails_on_create():
    with pytest.raises(ValidationError) as info:
        validate(_valid_create(class_name=""))
    assert info.value.fields["class"] == GRADE_MESSAGE


def test_message_is_last_failing_field():
    with pytest.raises(ValidationError) as info:
        validate(_valid_create(name="", phone_no=""))
    assert set(info.value.fields) == {"name", "phoneno"}
    assert info.value.message == info.value.fields["phoneno"]


def test_update_skips_empty_class_but_requires_id():
    with pytest.raises(ValidationError) as info:
        validate(StudentUpdateRequest(id=0, class_name=""))
    assert set(info.value.fields) == {"id"}


def test_update_rejects_bad_class():
    with pytest.raises(ValidationError) as info:
        validate(StudentUpdateRequest(id=3, class_name="Grade 0"))
    assert info.value.fields == {"class": GRADE_MESSAGE}


def test_vaccine_record_requires_both_ids():
    with pytest.raises(ValidationError) as info:
        validate(VaccineRecordCreateRequest(student_id=0, drive_id=0))
    assert set(info.value.fields) == {"studentid", "driveid"}