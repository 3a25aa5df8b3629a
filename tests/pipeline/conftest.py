import pytest
import queue

from reflow.pipeline.file_tracker import UploadTracker
from reflow.pipeline.transform import TransformPipeline
from reflow.schemas import InternalConfig, ParamConfig, resolve_config


@pytest.fixture
def tracker(temp_dir):
    t = UploadTracker(temp_dir / "tracker.db")
    yield t
    t.close()


@pytest.fixture
def pipeline_config(temp_dir) -> InternalConfig:
    """InternalConfig for pipeline tests, rooted in a temp directory."""
    param = ParamConfig()
    param.base_dir = str(temp_dir / "work")
    param.processor.join_timeout_sec = 2.0
    return resolve_config(param, None, None)


@pytest.fixture
def pipeline(pipeline_config, temp_dir):
    return TransformPipeline(pipeline_config, uploads_dir=temp_dir / "uploads", session_id="test")


# made for processor tests
@pytest.fixture
def processor_queues():
    return queue.Queue(), queue.Queue()
