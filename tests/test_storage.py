import hashlib
import re
from pathlib import Path

import pytest
import responses

from studentservice.storage import ObjectStorage, StorageError

ENDPOINT = "minio.local:9000"


def _storage():
    return ObjectStorage(ENDPOINT, "placeholder", "secret")


@pytest.fixture
def mocked():
    with responses.RequestsMock() as rsps:
        yield rsps


def test_put_file_signs_and_returns_key(mocked, tmp_path):
    source = tmp_path / "data.xlsx"
    source.write_bytes(b"contents")
    mocked.add(responses.PUT, f"http://{ENDPOINT}/bucket/uploads/r1/data.xlsx", status=200)
    key = _storage().put_file("bucket", "uploads/r1/data.xlsx", str(source))
    assert key == "uploads/r1/data.xlsx"
    sent = mocked.calls[0].request
    assert sent.body == b"contents"
    assert sent.headers["x-amz-content-sha256"] == hashlib.sha256(b"contents").hexdigest()
    auth = sent.headers["Authorization"]
    assert auth.startswith("AWS4-HMAC-SHA256 Credential=placeholder/")
    assert "/us-east-1/s3/aws4_request" in auth
    assert re.search(r"Signature=[0-9a-f]{64}$", auth)


def test_put_file_rejected(mocked, tmp_path):
    source = tmp_path / "a.xlsx"
    source.write_bytes(b"x")
    mocked.add(responses.PUT, f"http://{ENDPOINT}/bucket/k", status=403)
    with pytest.raises(StorageError):
        _storage().put_file("bucket", "k", str(source))


def test_put_missing_file(tmp_path):
    with pytest.raises(StorageError):
        _storage().put_file("bucket", "k", str(tmp_path / "missing"))


def test_get_to_file_writes_temp_file(mocked):
    mocked.add(responses.GET, f"http://{ENDPOINT}/bucket/uploads/f.xlsx", body=b"payload")
    path = Path(_storage().get_to_file("bucket", "uploads/f.xlsx"))
    try:
        assert path.read_bytes() == b"payload"
        assert path.name.startswith("school-vaccine-bulk-")
    finally:
        path.unlink()


def test_get_missing_object(mocked):
    mocked.add(responses.GET, f"http://{ENDPOINT}/bucket/nope", status=404)
    with pytest.raises(StorageError):
        _storage().get_to_file("bucket", "nope")