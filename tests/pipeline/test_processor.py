import queue

import pytest

from reflow.contracts import ContractViolation
from reflow.pipeline.processor import UploadEvent, UploadProcessor

pytestmark = [pytest.mark.unit, pytest.mark.pipeline]


@pytest.fixture
def processor(processor_queues, pipeline, tracker):
    in_q, out_q = processor_queues
    return UploadProcessor(in_q, pipeline, output_queue=out_q, tracker=tracker)


def test_upload_event_factories(make_upload):
    record = make_upload("a\n1\n")
    upload = UploadEvent.upload(record)
    option = UploadEvent.set_option("remove_empty", True)

    assert upload.kind == "upload" and upload.record is record
    assert option.kind == "option" and option.option == "remove_empty" and option.value is True
    assert upload.upload_id != option.upload_id


def test_upload_event_warms_and_reports(processor, processor_queues, make_upload, sample_csv):
    _, out_q = processor_queues

    ok = processor.process_event(UploadEvent.upload(make_upload(sample_csv, name="survey.csv")))

    assert ok is True
    assert processor.processed == 1
    summary = out_q.get_nowait()
    assert summary["session_id"] == "test"
    assert summary["filename"] == "survey_clean.csv"
    assert summary["num_rows"] == 3
    assert summary["columns"] == ["first_name", "age", "notes", "country"]
    assert len(summary["preview"]) == 3


def test_upload_event_tracked(processor, tracker, make_upload, sample_csv):
    event = UploadEvent.upload(make_upload(sample_csv))
    processor.process_event(event)

    status = tracker.get_upload_status(event.upload_id)
    assert status["session_id"] == "test"
    assert status["status"] == "processing"
    assert status["parsed_at"] is not None
    assert status["cleaned_at"] is not None
    assert status["num_rows"] == 3
    assert "uploads" in status["staged_path"]
    assert processor.current_upload_id == event.upload_id


def test_option_event_before_upload_is_fine(processor, processor_queues):
    _, out_q = processor_queues

    ok = processor.process_event(UploadEvent.set_option("remove_empty", True))

    assert ok is True
    assert out_q.empty()
    assert processor.pipeline.read("remove_empty") is True


def test_option_event_after_upload_reports_new_shape(processor, processor_queues, make_upload, sample_csv):
    _, out_q = processor_queues
    processor.process_event(UploadEvent.upload(make_upload(sample_csv)))
    out_q.get_nowait()

    processor.process_event(UploadEvent.set_option("remove_empty", True))

    assert out_q.get_nowait()["columns"] == ["first_name", "age", "country"]


def test_invalid_option_counts_as_failure(processor):
    ok = processor.process_event(UploadEvent.set_option("skip_rows", "many"))

    assert ok is False
    assert processor.failed == 1
    assert processor.stopped() is False


def test_rejected_upload_tracked(processor, tracker, make_upload):
    event = UploadEvent.upload(make_upload("a,b\n", name="photo.png"))

    ok = processor.process_event(event)

    assert ok is False
    status = tracker.get_upload_status(event.upload_id)
    assert status["status"] == "failed"
    assert "extension" in status["error_message"]
    assert processor.pipeline.is_ready() is False


def test_parse_failure_tracked(processor, tracker, processor_queues, make_upload):
    _, out_q = processor_queues
    event = UploadEvent.upload(make_upload("report title\na,b,c\n1,2,3\n"))

    ok = processor.process_event(event)

    assert ok is False
    assert out_q.empty()
    assert tracker.get_upload_status(event.upload_id)["status"] == "failed"
    assert processor.stopped() is False


def test_parse_failure_recovers_after_option(processor, tracker, make_upload):
    event = UploadEvent.upload(make_upload("report title\na,b,c\n1,2,3\n"))
    processor.process_event(event)

    ok = processor.process_event(UploadEvent.set_option("skip_rows", 1))

    assert ok is True
    assert tracker.get_upload_status(event.upload_id)["status"] == "processing"


def test_warm_cache_disabled(processor_queues, pipeline, make_upload, sample_csv):
    in_q, out_q = processor_queues
    proc = UploadProcessor(in_q, pipeline, output_queue=out_q, warm_cache=False)

    assert proc.process_event(UploadEvent.upload(make_upload(sample_csv))) is True
    assert out_q.empty()
    assert pipeline.graph.evaluations("parsed_table") == 0


def test_contract_violation_stops_processor(monkeypatch, processor, make_upload, sample_csv):
    def broken(name):
        raise ContractViolation("Parse contract violated: table has no columns")

    monkeypatch.setattr(processor.pipeline, "read", broken)

    ok = processor.process_event(UploadEvent.upload(make_upload(sample_csv)))

    assert ok is False
    assert processor.stopped() is True


def test_unknown_event_kind(processor):
    assert processor.process_event(UploadEvent(kind="resize")) is False


def test_thread_drains_queue_until_sentinel(processor_queues, pipeline, make_upload, sample_csv):
    in_q, out_q = processor_queues
    proc = UploadProcessor(in_q, pipeline, output_queue=out_q)
    proc.start()

    in_q.put(UploadEvent.upload(make_upload(sample_csv)))
    in_q.put(UploadEvent.set_option("remove_constant", True))
    in_q.put(None)
    proc.join(timeout=5)

    assert not proc.is_alive()
    assert proc.processed == 2
    assert in_q.unfinished_tasks == 0
    summaries = [out_q.get_nowait() for _ in range(out_q.qsize())]
    assert summaries[-1]["columns"] == ["first_name", "age"]


def test_stop_ends_idle_thread(processor_queues, pipeline):
    in_q, _ = processor_queues
    proc = UploadProcessor(in_q, pipeline)
    proc.start()

    proc.stop()
    proc.join(timeout=5)

    assert not proc.is_alive()


def test_events_queued_after_fatal_error_are_released(monkeypatch, processor_queues, pipeline):
    in_q, _ = processor_queues
    proc = UploadProcessor(in_q, pipeline)

    def broken(event):
        raise ContractViolation("Clean contract violated: columns grew")

    monkeypatch.setattr(proc, "_apply_option", broken)

    in_q.put(UploadEvent.set_option("remove_empty", True))
    in_q.put(UploadEvent.set_option("remove_constant", True))
    in_q.put(UploadEvent.set_option("snake_case", False))
    proc.start()
    proc.join(timeout=5)

    assert not proc.is_alive()
    assert proc.stopped() is True
    assert proc.failed == 1
    assert in_q.unfinished_tasks == 0
    in_q.join()  # returns at once
