"""Worker that takes bulk upload jobs off the queue and processes them."""

from __future__ import annotations

import json
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Mapping

from .bulk_service import BulkUploadService
from .bulkupload_repository import BulkUploadRepository
from .models import BulkUploadModel, RequestType

log = logging.getLogger(__name__)


def _report_failure(future: Future) -> None:
    error = future.exception()
    if error is not None:
        log.error("bulk upload processing failed: %s", error)


class BulkUploadConsumer:
    """Dispatches queued bulk upload jobs to the bulk upload service."""

    def __init__(self, service: BulkUploadService, repository: BulkUploadRepository):
        self.service = service
        self.repository = repository
        self._executor = ThreadPoolExecutor(thread_name_prefix="bulk-upload")

    def handle_message(self, body: bytes | str) -> Future | None:
        """Start processing the job in ``body`` in the background.

        Returns the running job, or None for an unknown request type.
        Raises ValueError when the message cannot be read.
        """
        try:
            data = json.loads(body)
            if not isinstance(data, Mapping):
                raise ValueError("bulk upload message must be a JSON object")
            model = BulkUploadModel.from_dict(data)
        except (ValueError, TypeError) as exc:
            raise ValueError(f"unable to read bulk upload message: {exc}") from exc
        handlers = {
            RequestType.STUDENT_RECORD.value: self.service.process_student_records,
            RequestType.VACCINE_RECORD.value: self.service.process_vaccine_records,
        }
        handler = handlers.get(model.request_type)
        if handler is None:
            log.warning("unknown request type %r", model.request_type)
            return None
        future = self._executor.submit(handler, model)
        future.add_done_callback(_report_failure)
        return future

    def subscribe(self, queue_name: str) -> None:
        """Consume ``queue_name`` until stopped, acknowledging handled messages."""

        def on_message(channel: Any, method: Any, properties: Any, body: bytes) -> None:
            try:
                future = self.handle_message(body)
            except ValueError as exc:
                log.warning("dropping unreadable message: %s", exc)
                channel.basic_ack(delivery_tag=method.delivery_tag)
                return
            if future is not None:
                channel.basic_ack(delivery_tag=method.delivery_tag)

        self.repository.subscribe(queue_name, on_message)