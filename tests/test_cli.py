from unittest import mock

import flask
import pytest

from studentservice.adapters import Settings
from studentservice.cli import main, start_bulk_processor


@pytest.fixture
def environment(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    values = {
        "DB_USER": "user",
        "DB_PASS": "password",
        "DB_HOST": "localhost",
        "DB_PORT": "3306",
        "DB_NAME": "school",
        "RABBIT_USER": "user",
        "RABBIT_PASS": "password",
        "RABBIT_HOST": "localhost",
        "RABBIT_PORT": "5672",
        "MINIO_SERVER": "localhost",
        "MINIO_PORT": "9000",
        "MINIO_USERNAME": "user",
        "MINIO_PASSWORD": "password",
        "MINIO_REGION": "us-east-1",
        "MINIO_BULK_UPLOAD_BUCKET": "uploads",
        "VACCINE_SERVICE": "http://localhost:8082",
    }
    for key, value in values.items():
        monkeypatch.setenv(key, value)
    return tmp_path


def test_start_bulk_processor_consumes_named_queue(environment):
    with mock.patch("pika.BlockingConnection") as connection:
        channel = connection.return_value.channel.return_value
        result = start_bulk_processor(Settings.from_env(), "jobs")
    assert result is None
    assert connection.call_count == 1
    assert channel.basic_consume.call_args.kwargs["queue"] == "jobs"
    assert channel.basic_consume.call_args.kwargs["auto_ack"] is False
    assert channel.start_consuming.call_count == 1


@pytest.mark.parametrize("argv", [[], ["-service", "bulkProcessor"], ["--service=other"]])
def test_main_defaults_to_bulk_processor(environment, argv):
    with mock.patch("pika.BlockingConnection") as connection, mock.patch.object(
        flask.Flask, "run"
    ) as run:
        channel = connection.return_value.channel.return_value
        assert main(argv) == 0
    assert channel.basic_consume.call_args.kwargs["queue"] == "bulk-upload"
    assert run.call_count == 0


def test_main_starts_server(environment):
    with mock.patch("pika.BlockingConnection") as connection, mock.patch.object(
        flask.Flask, "run"
    ) as run:
        channel = connection.return_value.channel.return_value
        assert main(["-service", "server"]) == 0
    assert run.call_count == 1
    assert run.call_args.kwargs["port"] == 8081
    assert channel.basic_consume.call_count == 0


def test_main_reads_env_file(environment, monkeypatch):
    monkeypatch.delenv("RABBIT_HOST")
    (environment / ".env").write_text("RABBIT_HOST=queue.example.com\n")
    with mock.patch("pika.BlockingConnection") as connection:
        assert main([]) == 0
    parameters = connection.call_args.args[0]
    assert parameters.host == "queue.example.com"
    assert parameters.port == 5672