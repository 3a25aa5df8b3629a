"""Root-level pytest fixtures for the reflow test suite.

Provides shared configuration fixtures following the Pydantic-based
architecture. Tests use these fixtures instead of creating raw dict configs.
"""

import pytest
from pathlib import Path
import tempfile
import shutil

from reflow.schemas import ParamConfig, UserConfig, resolve_config
from reflow.table import UploadRecord


# =============================================================================
# Configuration Fixtures (Pydantic-based)
# =============================================================================

@pytest.fixture
def param_config():
    """Expert configuration with all defaults."""
    return ParamConfig()


@pytest.fixture
def internal_config(param_config):
    """Fully validated runtime configuration (no overrides).

    Examples
    --------
    >>> def test_pipeline_init(internal_config):
    ...     pipeline = TransformPipeline(internal_config)
    ...     assert pipeline.read("delimiter") == ","
    """
    return resolve_config(param_config, None, None)


@pytest.fixture
def make_config(param_config):
    """Factory fixture for creating custom test configs.

    Returns a callable that accepts UserConfig-compatible kwargs.

    Examples
    --------
    >>> def test_tab_delimiter(make_config):
    ...     config = make_config(DELIMITER="tab")
    ...     assert config.reader.delimiter == "\\t"
    """
    def _make(**user_overrides):
        """Create InternalConfig with user overrides."""
        if user_overrides:
            user = UserConfig(**user_overrides)
            return resolve_config(param_config, user, None)
        return resolve_config(param_config, None, None)

    return _make


# =============================================================================
# Directory and File Fixtures
# =============================================================================

@pytest.fixture
def temp_dir():
    """Temporary directory that is cleaned up after test."""
    d = tempfile.mkdtemp()
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def write_file(temp_dir):
    """Factory writing text content to a file inside ``temp_dir``.

    Examples
    --------
    >>> path = write_file("a,b\\n1,2\\n", name="small.csv")
    """
    def _write(content: str, name: str = "data.csv", encoding: str = "utf-8") -> Path:
        path = temp_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding=encoding)
        return path

    return _write


@pytest.fixture
def make_upload(write_file):
    """Factory returning an UploadRecord for the given file content."""
    def _make(content: str, name: str = "data.csv") -> UploadRecord:
        return UploadRecord.from_path(write_file(content, name=name))

    return _make


SAMPLE_CSV = (
    "First Name,Age,Notes,Country\n"
    "Ada,36,,UK\n"
    "Grace,45,,UK\n"
    "Linus,28,,UK\n"
)


@pytest.fixture
def sample_csv():
    """Three rows: one all-empty column (Notes), one constant column (Country)."""
    return SAMPLE_CSV


@pytest.fixture
def restore_logging():
    """Undo root-logger changes made by SessionOrchestrator.start()."""
    import logging

    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in saved_handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in saved_handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(saved_level)
