import json

import pytest
from sqlalchemy import create_engine, text

from studentservice.binding import Pagination
from studentservice.bulkupload_repository import BulkUploadRepository
from studentservice.models import BulkUploadModel
from studentservice.storage import StorageError


class FakeStorage:
    def __init__(self, fail=False):
        self.fail = fail
        self.puts = []

    def put_file(self, bucket, key, path):
        if self.fail:
            raise StorageError("denied")
        self.puts.append((bucket, key, path))
        return key

    def get_to_file(self, bucket, key):
        return f"/tmp/{bucket}-{key.replace('/', '_')}"


class FakeChannel:
    def __init__(self):
        self.published = []

    def basic_publish(self, exchange, routing_key, body, properties):
        self.published.append((exchange, routing_key, body, properties))


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(f"sqlite:///{tmp_path / 'db.sqlite'}")
    with eng.begin() as conn:
        conn.execute(text(
            "CREATE TABLE bulk_upload_jobs (id INTEGER PRIMARY KEY AUTOINCREMENT, file_name TEXT,"
            " file_path TEXT, status TEXT, error_message TEXT, created_at DATETIME,"
            " updated_at DATETIME, processed_records INTEGER, total_records INTEGER,"
            " request_id TEXT, request_type TEXT)"
        ))
    return eng


def _model(request_id):
    return BulkUploadModel(
        file_name="s.xlsx", file_path="uploads/x/s.xlsx", status="PENDING",
        request_id=request_id, request_type="STUDENT_RECORD",
    )


def test_create_get_count_update(engine):
    repo = BulkUploadRepository(engine, FakeStorage(), FakeChannel())
    first, second = _model("r1"), _model("r2")
    repo.create_entry(first)
    repo.create_entry(second)
    assert first.id > 0 and second.id > first.id
    assert repo.count_bulk_uploads("") == 2
    assert repo.count_bulk_uploads("r2") == 1
    repo.update_entry(BulkUploadModel(id=first.id, status="PROCESSING"))
    rows = repo.get_bulk_uploads("", Pagination(limit=5))
    assert [r.request_id for r in rows] == ["r1", "r2"]
    assert [r.status for r in rows] == ["PROCESSING", "PENDING"]
    assert rows[0].file_path == "uploads/x/s.xlsx"
    paged = repo.get_bulk_uploads("", Pagination(limit=1, offset=1))
    assert [r.id for r in paged] == [second.id]


def test_submit_publishes_persistent_json(engine):
    channel = FakeChannel()
    model = _model("r1")
    BulkUploadRepository(engine, FakeStorage(), channel).submit(model, "bulk_upload")
    exchange, routing_key, body, props = channel.published[0]
    assert (exchange, routing_key) == ("", "bulk-upload")
    assert props.delivery_mode == 2
    assert BulkUploadModel.from_dict(json.loads(body)) == model


def test_upload_file_builds_key_and_removes_file(engine, tmp_path):
    local = tmp_path / "sheet.xlsx"
    local.write_bytes(b"x")
    storage = FakeStorage()
    key = BulkUploadRepository(engine, storage, FakeChannel()).upload_file(
        str(local), "bulk", "uploads/", "abc"
    )
    assert key == "uploads/abc/sheet.xlsx"
    assert storage.puts[0][0] == "bulk"
    assert not local.exists()


def test_upload_failure_still_removes_file(engine, tmp_path):
    local = tmp_path / "sheet.xlsx"
    local.write_bytes(b"x")
    repo = BulkUploadRepository(engine, FakeStorage(fail=True), FakeChannel())
    with pytest.raises(StorageError):
        repo.upload_file(str(local), "bulk", "reports/", "abc")
    assert not local.exists()


def test_fetch_file_delegates(engine):
    repo = BulkUploadRepository(engine, FakeStorage(), FakeChannel())
    assert repo.fetch_file("bulk", "uploads/a.xlsx") == "/tmp/bulk-uploads_a.xlsx"