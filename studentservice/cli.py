"""Command line entry point: run the HTTP server or the bulk upload worker."""

from __future__ import annotations

import argparse
import logging
from typing import Sequence

from .adapters import Settings, create_db_engine, create_storage, load_env, open_rabbit_channel
from .bulk_service import BulkUploadService
from .bulkupload_repository import BULK_UPLOAD_QUEUE, BulkUploadRepository
from .consumer import BulkUploadConsumer
from .student_repository import StudentRepository
from .student_service import StudentService
from .vaccine_repository import VaccineRecordRepository
from .vaccine_service import VaccineRecordService
from .webapp import run_server

log = logging.getLogger(__name__)


def start_bulk_processor(settings: Settings | None = None, queue_name: str = BULK_UPLOAD_QUEUE) -> None:
    """Consume bulk upload jobs from ``queue_name`` until stopped."""
    settings = settings or Settings.from_env()
    engine = create_db_engine(settings)
    storage = create_storage(settings)
    channel = open_rabbit_channel(settings)

    student_repository = StudentRepository(engine)
    student_service = StudentService(student_repository)
    bulk_repository = BulkUploadRepository(engine, storage, channel)
    vaccine_service = VaccineRecordService(
        VaccineRecordRepository(engine), student_repository, bulk_repository, settings
    )
    bulk_service = BulkUploadService(bulk_repository, student_service, vaccine_service, settings)
    BulkUploadConsumer(bulk_service, bulk_repository).subscribe(queue_name)


def main(argv: Sequence[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO)
    load_env(".env")
    parser = argparse.ArgumentParser(description="Student vaccination service.")
    parser.add_argument(
        "-service",
        "--service",
        dest="service",
        default="",
        help="Service Being Requested: server, bulkProcessor",
    )
    args = parser.parse_args(argv)
    settings = Settings.from_env()
    if args.service == "server":
        run_server(settings)
    else:
        log.info("Starting Bulk processor")
        start_bulk_processor(settings, BULK_UPLOAD_QUEUE)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())