import queue
from pathlib import Path

import pytest

from reflow.contracts import ContractViolation
from reflow.graph import NotReady
from reflow.pipeline.orchestrator import SessionOrchestrator
from reflow.pipeline.transform import TransformPipeline
from reflow.setup_directories import session_dir_name

pytestmark = [pytest.mark.unit, pytest.mark.pipeline]


@pytest.fixture
def orch(pipeline_config, temp_dir):
    o = SessionOrchestrator(pipeline_config, base_dir=temp_dir / "work")
    o.start(configure_logging=False)
    yield o
    o.stop()


def test_orchestrator_initialization(pipeline_config, temp_dir):
    orch = SessionOrchestrator(pipeline_config, base_dir=temp_dir / "base")

    assert orch.config == pipeline_config
    assert orch.base_dir == (temp_dir / "base").resolve()
    assert orch.base_dir.is_dir()
    assert orch.tracker is None
    assert orch.sessions() == []


def test_base_dir_defaults_to_config(pipeline_config):
    orch = SessionOrchestrator(pipeline_config)
    assert orch.base_dir == Path(pipeline_config.base_dir).resolve()


def test_orchestrator_logging_and_tracker(pipeline_config, temp_dir, restore_logging):
    orch = SessionOrchestrator(pipeline_config, base_dir=temp_dir / "work")
    orch.start()

    assert orch.tracker is not None
    assert (orch.base_dir / "logs" / "reflow.log").exists()
    assert (orch.base_dir / pipeline_config.processor.tracker_filename).exists()
    orch.stop()


def test_start_is_idempotent(orch):
    tracker = orch.tracker
    orch.start()
    assert orch.tracker is tracker


def test_open_session_wiring(orch):
    sid = orch.open_session("alpha")

    assert sid == "alpha"
    assert orch.sessions() == ["alpha"]
    assert isinstance(orch.get_pipeline(sid), TransformPipeline)
    assert (orch.base_dir / "sessions" / session_dir_name("alpha") / "uploads").is_dir()

    session = orch._sessions[sid]
    assert isinstance(session.events, queue.Queue)
    assert session.events.maxsize == orch.config.processor.queue_size
    assert session.processor.is_alive()


def test_generated_session_ids_are_unique(orch):
    assert orch.open_session() != orch.open_session()


def test_duplicate_session_rejected(orch):
    orch.open_session("alpha")
    with pytest.raises(ValueError, match="already open"):
        orch.open_session("alpha")


def test_unknown_session(orch):
    with pytest.raises(KeyError):
        orch.get_pipeline("nope")


def test_upload_then_download(orch, make_upload, sample_csv):
    sid = orch.open_session("alpha")
    upload_id = orch.submit_upload(sid, make_upload(sample_csv, name="survey.csv"))
    orch.set_option(sid, "remove_empty", True)
    orch.set_option(sid, "remove_constant", True)

    assert orch.wait(sid, timeout=5) is True

    summaries = orch.drain_results(sid)
    assert summaries[0]["upload_id"] == upload_id
    assert summaries[-1]["columns"] == ["first_name", "age"]

    artifact = orch.download(sid)
    assert artifact.filename == "survey_clean.csv"
    assert artifact.data == b"first_name,age\nAda,36\nGrace,45\nLinus,28\n"
    assert orch.tracker.get_upload_status(upload_id)["status"] == "completed"


def test_download_save_writes_file(orch, make_upload, sample_csv):
    sid = orch.open_session("alpha")
    orch.submit_upload(sid, make_upload(sample_csv, name="survey.csv"))
    orch.wait(sid, timeout=5)

    artifact = orch.download(sid, save=True)

    saved = orch._sessions[sid].dirs["downloads"] / "survey_clean.csv"
    assert saved.read_bytes() == artifact.data


def test_download_before_upload_not_ready(orch):
    sid = orch.open_session("alpha")
    with pytest.raises(NotReady):
        orch.download(sid)


def test_wait_without_timeout(orch, make_upload, sample_csv):
    sid = orch.open_session("alpha")
    orch.submit_upload(sid, make_upload(sample_csv))

    assert orch.wait(sid) is True
    assert orch.get_pipeline(sid).graph.has_value("cleaned_table")


def test_sessions_are_isolated(orch, make_upload, sample_csv):
    a = orch.open_session("a")
    b = orch.open_session("b")

    orch.submit_upload(a, make_upload(sample_csv))
    orch.set_option(b, "remove_empty", True)
    orch.wait(a, timeout=5)
    orch.wait(b, timeout=5)

    assert orch.get_pipeline(a).is_ready() is True
    assert orch.get_pipeline(b).is_ready() is False
    assert orch.read(a, "remove_empty") is False
    assert orch.read(b, "remove_empty") is True


def test_close_session_removes_directory(orch, make_upload, sample_csv):
    sid = orch.open_session("alpha")
    orch.submit_upload(sid, make_upload(sample_csv))
    orch.wait(sid, timeout=5)
    processor = orch._sessions[sid].processor
    session_dir = orch._sessions[sid].dirs["session"]

    orch.close_session(sid)

    assert orch.sessions() == []
    assert not processor.is_alive()
    assert not session_dir.exists()
    orch.close_session(sid)  # unknown now; no error


def test_orchestrator_stop_is_idempotent(pipeline_config, temp_dir):
    orch = SessionOrchestrator(pipeline_config, base_dir=temp_dir / "work")
    orch.start(configure_logging=False)
    orch.open_session("alpha")

    assert orch._stop_event is False
    orch.stop()
    orch.stop()  # should not raise

    assert orch._stop_event is True
    assert orch.sessions() == []


def test_stop_without_start(pipeline_config, temp_dir):
    orch = SessionOrchestrator(pipeline_config, base_dir=temp_dir / "work")
    orch.stop()


def test_open_after_stop_rejected(pipeline_config, temp_dir):
    orch = SessionOrchestrator(pipeline_config, base_dir=temp_dir / "work")
    orch.start(configure_logging=False)
    orch.stop()

    with pytest.raises(RuntimeError, match="stopped"):
        orch.open_session()


def test_log_status(orch, caplog):
    orch.open_session("alpha")
    with caplog.at_level("INFO"):
        orch.log_status()
    assert "Session alpha" in caplog.text


def test_ids_that_sanitize_alike_get_separate_directories(orch, make_upload, sample_csv):
    a = orch.open_session("team/a")
    b = orch.open_session("team_a")
    assert orch._sessions[a].dirs["session"] != orch._sessions[b].dirs["session"]

    orch.submit_upload(b, make_upload(sample_csv, name="x.csv"))
    assert orch.wait(b, timeout=5) is True
    staged = orch.get_pipeline(b).current_upload().content_path

    orch.close_session(a)

    assert staged.exists()
    orch.set_option(b, "header", False)
    assert orch.wait(b, timeout=5) is True
    assert len(orch.read(b, "parsed_table")) == 4


def test_open_session_rejects_directory_of_live_session(orch, monkeypatch):
    import reflow.pipeline.orchestrator as orchestrator_module

    orch.open_session("alpha")
    monkeypatch.setattr(orchestrator_module, "session_dir_name", lambda sid: session_dir_name("alpha"))

    with pytest.raises(ValueError, match="would share directory"):
        orch.open_session("beta")
    assert orch.sessions() == ["alpha"]


def test_fatal_pipeline_error_does_not_hang_wait(orch, monkeypatch):
    sid = orch.open_session("alpha")
    processor = orch._sessions[sid].processor

    def broken(event):
        raise ContractViolation("Clean contract violated: columns grew")

    monkeypatch.setattr(processor, "_apply_option", broken)

    orch.set_option(sid, "remove_empty", True)
    assert orch.wait(sid) is False
    processor.join(timeout=5)
    assert not processor.is_alive()
    assert orch._sessions[sid].events.unfinished_tasks == 0

    with pytest.raises(RuntimeError, match="has stopped"):
        orch.set_option(sid, "remove_constant", True)
    with pytest.raises(RuntimeError, match="has stopped"):
        orch.submit_upload(sid, None)

    orch.close_session(sid)
    assert orch.sessions() == []
