"""Configuration and connections to the database, message broker and object store."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping
from urllib.parse import quote_plus

import pika
from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from .storage import ObjectStorage

log = logging.getLogger(__name__)


@dataclass
class Settings:
    """Service configuration, normally read from the environment."""

    db_user: str = ""
    db_pass: str = ""
    db_host: str = ""
    db_port: str = ""
    db_name: str = ""
    rabbit_user: str = ""
    rabbit_pass: str = ""
    rabbit_host: str = ""
    rabbit_port: str = ""
    minio_server: str = ""
    minio_port: str = ""
    minio_username: str = ""
    minio_password: str = ""
    minio_region: str = ""
    bulk_upload_bucket: str = ""
    vaccine_service: str = ""

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            db_user=env.get("DB_USER", ""),
            db_pass=env.get("DB_PASS", ""),
            db_host=env.get("DB_HOST", ""),
            db_port=env.get("DB_PORT", ""),
            db_name=env.get("DB_NAME", ""),
            rabbit_user=env.get("RABBIT_USER", ""),
            rabbit_pass=env.get("RABBIT_PASS", ""),
            rabbit_host=env.get("RABBIT_HOST", ""),
            rabbit_port=env.get("RABBIT_PORT", ""),
            minio_server=env.get("MINIO_SERVER", ""),
            minio_port=env.get("MINIO_PORT", ""),
            minio_username=env.get("MINIO_USERNAME", ""),
            minio_password=env.get("MINIO_PASSWORD", ""),
            minio_region=env.get("MINIO_REGION", ""),
            bulk_upload_bucket=env.get("MINIO_BULK_UPLOAD_BUCKET", ""),
            vaccine_service=env.get("VACCINE_SERVICE", ""),
        )

    def mysql_url(self) -> str:
        return (
            f"mysql+pymysql://{quote_plus(self.db_user)}:{quote_plus(self.db_pass)}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}?charset=utf8mb4"
        )

    def amqp_url(self) -> str:
        return (
            f"amqp://{quote_plus(self.rabbit_user)}:{quote_plus(self.rabbit_pass)}"
            f"@{self.rabbit_host}:{self.rabbit_port}"
        )

    def public_file_url(self, key: str) -> str:
        """Address at which a stored object of the bulk upload bucket is served."""
        return f"http://{self.minio_server}:{self.minio_port}/{self.bulk_upload_bucket}/{key}"


def load_env(path: str = ".env") -> bool:
    """Load variables from an env file; False if it could not be loaded."""
    loaded = load_dotenv(path)
    if not loaded:
        log.warning("Error loading env file %s", path)
    return loaded


def create_db_engine(settings: Settings) -> Engine:
    engine = create_engine(settings.mysql_url(), pool_pre_ping=True)
    log.info("MySQL engine configured")
    return engine


def open_rabbit_channel(settings: Settings):
    """Connect to the broker and open a channel."""
    connection = pika.BlockingConnection(pika.URLParameters(settings.amqp_url()))
    return connection.channel()


def create_storage(settings: Settings) -> ObjectStorage:
    return ObjectStorage(
        f"{settings.minio_server}:{settings.minio_port}",
        settings.minio_username,
        settings.minio_password,
        region=settings.minio_region,
        secure=False,
    )