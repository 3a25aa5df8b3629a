import pytest
from pathlib import Path

from reflow.setup_directories import (
    get_download_path,
    safe_session_id,
    session_dir_name,
    setup_session_directories,
)

pytestmark = pytest.mark.unit


def test_setup_creates_all_directories(temp_dir):
    dirs = setup_session_directories(temp_dir, "s1")

    assert set(dirs) == {"base", "session", "uploads", "downloads", "logs"}
    for path in dirs.values():
        assert path.is_dir()
    assert dirs["session"] == temp_dir.resolve() / "sessions" / session_dir_name("s1")
    assert dirs["session"].name.startswith("s1_")
    assert dirs["uploads"].parent == dirs["session"]
    assert dirs["logs"] == temp_dir.resolve() / "logs"


def test_setup_is_idempotent(temp_dir):
    first = setup_session_directories(temp_dir, "s1")
    second = setup_session_directories(temp_dir, "s1")
    assert first == second


def test_sessions_are_separate(temp_dir):
    a = setup_session_directories(temp_dir, "a")
    b = setup_session_directories(temp_dir, "b")

    assert a["uploads"] != b["uploads"]
    assert a["logs"] == b["logs"]


def test_setup_without_base_uses_temp_dir():
    import shutil

    dirs = setup_session_directories(None, "s1")
    try:
        assert dirs["base"].name.startswith("reflow_")
        assert dirs["uploads"].is_dir()
    finally:
        shutil.rmtree(dirs["base"], ignore_errors=True)


@pytest.mark.parametrize("raw,expected", [
    ("abc-123", "abc-123"),
    ("../evil", "evil"),
    ("user@example.com", "user_example.com"),
    ("a b", "a_b"),
])
def test_safe_session_id(raw, expected):
    assert safe_session_id(raw) == expected


def test_safe_session_id_rejects_empty():
    with pytest.raises(ValueError):
        safe_session_id("///")


def test_session_dir_name_distinguishes_ids_that_sanitize_alike(temp_dir):
    assert safe_session_id("team/a") == safe_session_id("team_a")
    assert session_dir_name("team/a") != session_dir_name("team_a")

    a = setup_session_directories(temp_dir, "team/a")
    b = setup_session_directories(temp_dir, "team_a")
    assert a["session"] != b["session"]
    assert a["session"].parent == b["session"].parent == temp_dir.resolve() / "sessions"


def test_session_dir_name_is_stable():
    assert session_dir_name("alpha") == session_dir_name("alpha")


def test_download_path_strips_directories(temp_dir):
    dirs = setup_session_directories(temp_dir, "s1")
    path = get_download_path(dirs, "../../escape.csv")

    assert path == dirs["downloads"] / "escape.csv"


def test_download_path_rejects_empty(temp_dir):
    dirs = setup_session_directories(temp_dir, "s1")
    with pytest.raises(ValueError):
        get_download_path(dirs, "")
