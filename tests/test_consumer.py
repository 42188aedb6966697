import json
from types import SimpleNamespace

import pytest

from studentservice.consumer import BulkUploadConsumer
from studentservice.models import BulkUploadModel


class FakeService:
    def __init__(self):
        self.students = []
        self.vaccines = []

    def process_student_records(self, model):
        self.students.append(model)

    def process_vaccine_records(self, model):
        self.vaccines.append(model)


class FakeChannel:
    def __init__(self):
        self.acked = []

    def basic_ack(self, delivery_tag):
        self.acked.append(delivery_tag)


class FakeRepository:
    def __init__(self, messages):
        self.messages = messages
        self.queue = None
        self.channel = FakeChannel()

    def subscribe(self, queue_name, callback):
        self.queue = queue_name
        for tag, body in self.messages:
            callback(self.channel, SimpleNamespace(delivery_tag=tag), None, body)


def _body(request_type, request_id="req-1"):
    model = BulkUploadModel(id=3, request_id=request_id, request_type=request_type)
    return json.dumps(model.to_dict()).encode()


def test_student_job_dispatched():
    service = FakeService()
    consumer = BulkUploadConsumer(service, FakeRepository([]))

    future = consumer.handle_message(_body("STUDENT_RECORD"))
    future.result(timeout=5)

    assert [m.request_id for m in service.students] == ["req-1"]
    assert service.students[0].id == 3
    assert service.vaccines == []


def test_vaccine_job_dispatched():
    service = FakeService()
    consumer = BulkUploadConsumer(service, FakeRepository([]))

    consumer.handle_message(_body("VACCINE_RECORD", "req-2")).result(timeout=5)

    assert [m.request_id for m in service.vaccines] == ["req-2"]
    assert service.students == []


def test_unknown_type_not_dispatched():
    service = FakeService()
    consumer = BulkUploadConsumer(service, FakeRepository([]))

    assert consumer.handle_message(_body("OTHER")) is None
    assert service.students == [] and service.vaccines == []


@pytest.mark.parametrize("body", [b"not json", b"[1, 2]", b'{"Id": "x"}'])
def test_unreadable_message_raises(body):
    consumer = BulkUploadConsumer(FakeService(), FakeRepository([]))

    with pytest.raises(ValueError):
        consumer.handle_message(body)


def test_subscribe_acks_handled_and_unreadable_messages():
    repo = FakeRepository(
        [(1, _body("STUDENT_RECORD")), (2, _body("OTHER")), (3, b"garbage")]
    )
    service = FakeService()
    consumer = BulkUploadConsumer(service, repo)

    consumer.subscribe("bulk-upload")
    consumer._executor.shutdown(wait=True)

    assert repo.queue == "bulk-upload"
    assert repo.channel.acked == [1, 3]
    assert [m.request_id for m in service.students] == ["req-1"]