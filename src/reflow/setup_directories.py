"""
Directory setup for upload sessions.

One directory per session under a common base:
- uploads/   staged copies of uploaded files (owned by the session)
- downloads/ files written by the CLI or an explicit save
- logs/      pipeline log files
"""

import hashlib
import logging
import re
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

_SAFE_ID = re.compile(r"[^A-Za-z0-9_.-]+")


def safe_session_id(session_id: str) -> str:
    """Make a session id usable as a directory name."""
    cleaned = _SAFE_ID.sub("_", str(session_id)).strip("._")
    if not cleaned:
        raise ValueError(f"Session id {session_id!r} has no usable characters")
    return cleaned


def session_dir_name(session_id: str) -> str:
    """Directory name for a session: the sanitized id plus a short digest of the raw id.

    Ids that sanitize to the same text ('team/a' and 'team_a') still get
    different directories.
    """
    digest = hashlib.sha1(str(session_id).encode("utf-8")).hexdigest()[:8]
    return f"{safe_session_id(session_id)}_{digest}"


def setup_session_directories(base_dir=None, session_id: str = "default"):
    """
    Set up the directory structure for one session.

    Parameters
    ----------
    base_dir : str or Path, optional
        Base output directory. If None, a fresh temporary directory is used.
    session_id : str
        Session identifier; mapped to a directory name by ``session_dir_name``.

    Returns
    -------
    dict
        Paths keyed 'base', 'session', 'uploads', 'downloads', 'logs'.
    """
    if base_dir is None:
        base_dir = tempfile.mkdtemp(prefix="reflow_")

    base_dir = Path(base_dir).expanduser().resolve()
    session_dir = base_dir / "sessions" / session_dir_name(session_id)

    directories = {
        "base": base_dir,
        "session": session_dir,
        "uploads": session_dir / "uploads",
        "downloads": session_dir / "downloads",
        "logs": base_dir / "logs",
    }

    for path in directories.values():
        path.mkdir(parents=True, exist_ok=True)

    logger.debug("Session directories for %s: %s", session_id,
                 {k: str(v) for k, v in directories.items()})
    return directories


def get_download_path(output_dirs, filename: str) -> Path:
    """Path inside the session's downloads directory for ``filename``."""
    name = Path(filename).name
    if not name:
        raise ValueError(f"Invalid download filename: {filename!r}")
    return Path(output_dirs["downloads"]) / name
