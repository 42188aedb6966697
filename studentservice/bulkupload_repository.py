"""Storage, queueing and bookkeeping of bulk upload jobs."""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from typing import Any, Callable

import pika
from sqlalchemy import Column, DateTime, Integer, MetaData, String, Table, func, select, update
from sqlalchemy.engine import Engine

from .binding import Pagination
from .models import BulkUploadModel
from .storage import ObjectStorage

log = logging.getLogger(__name__)

BULK_UPLOAD_QUEUE = "bulk-upload"

_metadata = MetaData()
_jobs = Table(
    "bulk_upload_jobs",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("file_name", String(255)),
    Column("file_path", String(1024)),
    Column("status", String(32)),
    Column("error_message", String(1024)),
    Column("created_at", DateTime),
    Column("updated_at", DateTime),
    Column("processed_records", Integer),
    Column("total_records", Integer),
    Column("request_id", String(64)),
    Column("request_type", String(32)),
)


def _plain(value: Any) -> Any:
    return getattr(value, "value", value)


class BulkUploadRepository:
    """Bulk upload jobs: files in object storage, rows in the database, messages on a queue."""

    def __init__(self, engine: Engine, storage: ObjectStorage, channel: Any):
        self.engine = engine
        self.storage = storage
        self.channel = channel

    def upload_file(self, file_path: str, bucket_name: str, root: str, unique_id: str) -> str:
        """Store a local file under ``root + unique_id``; the local file is removed."""
        key = f"{root}{unique_id}/{os.path.basename(file_path)}"
        try:
            return self.storage.put_file(bucket_name, key, file_path)
        finally:
            try:
                os.remove(file_path)
            except OSError:
                pass

    def fetch_file(self, bucket_name: str, location: str) -> str:
        return self.storage.get_to_file(bucket_name, location)

    def create_entry(self, model: BulkUploadModel) -> None:
        """Insert the job and fill in its id and timestamps."""
        now = datetime.now()
        model.created_at = model.created_at or now
        model.updated_at = model.updated_at or now
        with self.engine.begin() as conn:
            outcome = conn.execute(
                _jobs.insert().values(
                    file_name=model.file_name,
                    file_path=model.file_path,
                    status=_plain(model.status),
                    error_message=model.error_message,
                    created_at=model.created_at,
                    updated_at=model.updated_at,
                    processed_records=model.processed_records,
                    total_records=model.total_records,
                    request_id=model.request_id,
                    request_type=_plain(model.request_type),
                )
            )
        model.id = outcome.inserted_primary_key[0]

    def update_entry(self, model: BulkUploadModel) -> None:
        """Write the non-empty fields of ``model`` to its job row."""
        changes = {
            column: _plain(value)
            for column, value in (
                ("status", model.status),
                ("file_path", model.file_path),
                ("total_records", model.total_records),
                ("processed_records", model.processed_records),
                ("error_message", model.error_message),
            )
            if value
        }
        if not changes:
            return
        with self.engine.begin() as conn:
            conn.execute(update(_jobs).where(_jobs.c.id == model.id).values(**changes))

    def submit(self, model: BulkUploadModel, queue_name: str) -> None:
        """Publish the job persistently; it always goes to the bulk upload queue."""
        log.info("submitting job %s (requested queue %s)", model.request_id, queue_name)
        self.channel.basic_publish(
            exchange="",
            routing_key=BULK_UPLOAD_QUEUE,
            body=json.dumps(model.to_dict()).encode(),
            properties=pika.BasicProperties(delivery_mode=2, content_type="text/plain"),
        )

    def subscribe(self, queue_name: str, callback: Callable[..., Any]) -> None:
        """Consume the queue with manual acknowledgement until stopped."""
        log.info("initiating consumption on %s", queue_name)
        self.channel.basic_consume(queue=queue_name, on_message_callback=callback, auto_ack=False)
        self.channel.start_consuming()

    def get_bulk_uploads(self, request_id: str, pagination: Pagination) -> list[BulkUploadModel]:
        query = select(_jobs).order_by(_jobs.c.id.asc())
        if request_id:
            query = query.where(_jobs.c.request_id == request_id)
        query = query.limit(pagination.limit).offset(pagination.offset)
        with self.engine.connect() as conn:
            rows = conn.execute(query)
            return [
                BulkUploadModel(
                    id=row.id,
                    file_name=row.file_name or "",
                    file_path=row.file_path or "",
                    status=row.status or "",
                    error_message=row.error_message or "",
                    created_at=row.created_at,
                    updated_at=row.updated_at,
                    processed_records=row.processed_records or 0,
                    total_records=row.total_records or 0,
                    request_id=row.request_id or "",
                    request_type=row.request_type or "",
                )
                for row in rows
            ]

    def count_bulk_uploads(self, request_id: str) -> int:
        query = select(func.count()).select_from(_jobs)
        if request_id:
            query = query.where(_jobs.c.request_id == request_id)
        with self.engine.connect() as conn:
            return int(conn.execute(query).scalar_one())