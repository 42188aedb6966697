"""S3-compatible object storage client signing requests with AWS Signature V4."""

from __future__ import annotations

import datetime as _dt
import hashlib
import hmac
import logging
import tempfile
from pathlib import Path
from urllib.parse import quote

import requests

log = logging.getLogger(__name__)

_ALGORITHM = "AWS4-HMAC-SHA256"
_SERVICE = "s3"


class StorageError(Exception):
    """Raised when the object store rejects a request or a file cannot be read."""


def _hmac(key: bytes, message: str) -> bytes:
    return hmac.new(key, message.encode(), hashlib.sha256).digest()


class ObjectStorage:
    """Put and get objects in path-style buckets of an S3-compatible server."""

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        region: str = "us-east-1",
        secure: bool = False,
        session: requests.Session | None = None,
    ):
        self.endpoint = endpoint
        self.access_key = access_key
        self.secret_key = secret_key
        self.region = region or "us-east-1"
        self.secure = secure
        self.session = session or requests.Session()

    def _url_and_path(self, bucket: str, key: str) -> tuple[str, str]:
        path = "/" + quote(bucket, safe="") + "/" + quote(key, safe="/")
        scheme = "https" if self.secure else "http"
        return f"{scheme}://{self.endpoint}{path}", path

    def _headers(self, method: str, path: str, payload: bytes) -> dict[str, str]:
        now = _dt.datetime.now(_dt.timezone.utc)
        amz_date = now.strftime("%Y%m%dT%H%M%SZ")
        datestamp = now.strftime("%Y%m%d")
        payload_hash = hashlib.sha256(payload).hexdigest()
        headers = {
            "host": self.endpoint,
            "x-amz-content-sha256": payload_hash,
            "x-amz-date": amz_date,
        }
        signed = ";".join(sorted(headers))
        canonical_headers = "".join(f"{name}:{headers[name]}\n" for name in sorted(headers))
        canonical_request = "\n".join(
            [method, path, "", canonical_headers, signed, payload_hash]
        )
        scope = f"{datestamp}/{self.region}/{_SERVICE}/aws4_request"
        string_to_sign = "\n".join(
            [_ALGORITHM, amz_date, scope, hashlib.sha256(canonical_request.encode()).hexdigest()]
        )
        key = _hmac(("AWS4" + self.secret_key).encode(), datestamp)
        key = _hmac(key, self.region)
        key = _hmac(key, _SERVICE)
        key = _hmac(key, "aws4_request")
        signature = hmac.new(key, string_to_sign.encode(), hashlib.sha256).hexdigest()
        headers["Authorization"] = (
            f"{_ALGORITHM} Credential={self.access_key}/{scope}, "
            f"SignedHeaders={signed}, Signature={signature}"
        )
        return headers

    def put_file(self, bucket: str, key: str, path: str) -> str:
        """Upload a local file and return the object key."""
        try:
            data = Path(path).read_bytes()
        except OSError as exc:
            raise StorageError(f"unable to read {path}: {exc}") from exc
        url, url_path = self._url_and_path(bucket, key)
        response = self.session.put(url, data=data, headers=self._headers("PUT", url_path, data))
        if response.status_code >= 300:
            raise StorageError(f"upload of {key} failed with {response.status_code}: {response.text}")
        return key

    def get_to_file(self, bucket: str, key: str) -> str:
        """Download an object into a new temporary file and return its path."""
        url, url_path = self._url_and_path(bucket, key)
        response = self.session.get(url, headers=self._headers("GET", url_path, b""))
        if response.status_code >= 300:
            log.error("error fetching %s from object storage", key)
            raise StorageError(f"download of {key} failed with {response.status_code}: {response.text}")
        with tempfile.NamedTemporaryFile(prefix="school-vaccine-bulk-", delete=False) as target:
            target.write(response.content)
            return target.name