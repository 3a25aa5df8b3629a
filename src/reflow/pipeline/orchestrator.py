"""Per-session pipeline orchestration.

Creates one TransformPipeline, event queue and UploadProcessor thread per
user session. Sessions share nothing but the upload tracker (which locks
internally) and the logging configuration.
"""

import queue
import shutil
import tempfile
import time
import logging
import threading
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from reflow.pipeline.file_tracker import UploadTracker
from reflow.pipeline.processor import UploadEvent, UploadProcessor
from reflow.pipeline.transform import DownloadArtifact, TransformPipeline
from reflow.setup_directories import get_download_path, session_dir_name, setup_session_directories
from reflow.table import UploadRecord

if TYPE_CHECKING:
    from reflow.schemas import InternalConfig

__all__ = ['SessionOrchestrator']

logger = logging.getLogger(__name__)


@dataclass
class _Session:
    session_id: str
    pipeline: TransformPipeline
    events: queue.Queue
    results: queue.Queue
    processor: UploadProcessor
    dirs: Dict[str, Path]
    opened_at: float


class SessionOrchestrator:
    """Manages upload sessions, each with its own reactive pipeline.

    This is the main entry point for embedding ``reflow`` in a server. Each
    session gets:

    - a ``TransformPipeline`` (its own Graph; nothing shared across sessions)
    - an event queue drained by a dedicated ``UploadProcessor`` thread, so
      concurrent uploads and option changes for the same session are applied
      one at a time
    - a directory under ``{base_dir}/sessions/`` named by ``session_dir_name``
      for staged uploads and saved downloads, removed when the session closes

    **Logging:**

    ``start()`` configures the root logger with a console handler and a file
    handler at ``{base_dir}/logs/reflow.log``, at the level from
    ``config.logging.level``.

    **Upload Tracking:**

    The UploadTracker SQLite database at ``{base_dir}/{tracker_filename}``
    records every upload and how far it got.

    Example usage::

        orch = SessionOrchestrator(config)
        orch.start()
        sid = orch.open_session()
        orch.submit_upload(sid, UploadRecord.from_path("survey.csv"))
        orch.set_option(sid, "remove_empty", True)
        orch.wait(sid)
        artifact = orch.download(sid)
        orch.stop()
    """

    def __init__(self, config: "InternalConfig", base_dir=None):
        """Initialize orchestrator.

        Parameters
        ----------
        config : InternalConfig
            Fully validated runtime configuration.
        base_dir : str or Path, optional
            Root directory for sessions, logs and the tracker database.
            Defaults to ``config.base_dir``; a temporary directory if both
            are None.
        """
        self.config = config
        base = base_dir if base_dir is not None else config.base_dir
        if base is None:
            base = tempfile.mkdtemp(prefix="reflow_")
        self.base_dir = Path(base).expanduser().resolve()
        self.base_dir.mkdir(parents=True, exist_ok=True)

        self.tracker: Optional[UploadTracker] = None
        self._sessions: Dict[str, _Session] = {}
        self._lock = threading.Lock()

        # Lifecycle state
        self._started = False
        self._stop_event = False
        self._start_time = None

    def _setup_logging(self):
        """Configure logging and the upload tracker."""
        log_level = getattr(logging, self.config.logging.level.upper(), logging.INFO)

        log_dir = self.base_dir / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / "reflow.log"

        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # Clear existing handlers and add new ones
        root = logging.getLogger()
        root.setLevel(log_level)
        for handler in root.handlers[:]:
            root.removeHandler(handler)

        fh = logging.FileHandler(log_path)
        fh.setLevel(log_level)
        fh.setFormatter(formatter)
        root.addHandler(fh)

        ch = logging.StreamHandler()
        ch.setLevel(log_level)
        ch.setFormatter(formatter)
        root.addHandler(ch)

        logger.info("Logging: level=%s, file=%s", logging.getLevelName(log_level), log_path)

        tracker_path = self.base_dir / self.config.processor.tracker_filename
        self.tracker = UploadTracker(tracker_path)
        logger.info("Upload tracker: %s", tracker_path)

    def start(self, configure_logging: bool = True):
        """Prepare logging and tracking. Safe to call more than once."""
        if self._started:
            return
        if configure_logging:
            self._setup_logging()
        else:
            self.tracker = UploadTracker(self.base_dir / self.config.processor.tracker_filename)
        self._started = True
        self._start_time = time.time()
        logger.info("Session orchestrator started (base_dir=%s)", self.base_dir)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def open_session(self, session_id: Optional[str] = None) -> str:
        """Create a session and start its processor thread. Returns the id."""
        if self._stop_event:
            raise RuntimeError("Orchestrator is stopped")
        if not self._started:
            self.start()

        session_id = session_id or uuid.uuid4().hex[:12]
        with self._lock:
            if session_id in self._sessions:
                raise ValueError(f"Session '{session_id}' already open")
            dir_name = session_dir_name(session_id)
            for other in self._sessions.values():
                if other.dirs["session"].name == dir_name:
                    raise ValueError(
                        f"Session '{session_id}' would share directory {dir_name} "
                        f"with open session '{other.session_id}'"
                    )

            dirs = setup_session_directories(self.base_dir, session_id)
            pipeline = TransformPipeline(self.config, uploads_dir=dirs["uploads"],
                                         session_id=session_id)
            events = queue.Queue(maxsize=self.config.processor.queue_size)
            results = queue.Queue(maxsize=self.config.processor.queue_size)
            processor = UploadProcessor(
                input_queue=events,
                pipeline=pipeline,
                output_queue=results,
                tracker=self.tracker,
                warm_cache=self.config.processor.warm_cache,
            )
            processor.start()

            self._sessions[session_id] = _Session(
                session_id=session_id,
                pipeline=pipeline,
                events=events,
                results=results,
                processor=processor,
                dirs=dirs,
                opened_at=time.time(),
            )

        logger.info("Opened session %s", session_id)
        return session_id

    def _get(self, session_id: str) -> _Session:
        with self._lock:
            try:
                return self._sessions[session_id]
            except KeyError:
                raise KeyError(f"Unknown session '{session_id}'") from None

    def get_pipeline(self, session_id: str) -> TransformPipeline:
        return self._get(session_id).pipeline

    def sessions(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    def _enqueue(self, session_id: str, event: UploadEvent):
        session = self._get(session_id)
        if session.processor.stopped() or not session.processor.is_alive():
            raise RuntimeError(
                f"Processor for session '{session_id}' has stopped; close and reopen the session"
            )
        session.events.put(event)

    def submit_upload(self, session_id: str, record: UploadRecord) -> str:
        """Queue a new upload for the session. Returns the upload id."""
        event = UploadEvent.upload(record)
        self._enqueue(session_id, event)
        logger.debug("Queued upload %s (%s) for session %s", event.upload_id, record.name, session_id)
        return event.upload_id

    def set_option(self, session_id: str, name: str, value: Any):
        """Queue an option change (applied after any earlier queued events)."""
        self._enqueue(session_id, UploadEvent.set_option(name, value))

    def wait(self, session_id: str, timeout: Optional[float] = None) -> bool:
        """Block until every queued event for the session has been applied.

        Returns False if ``timeout`` seconds pass first, or if the processor
        stopped on a pipeline error (later events are then discarded).
        """
        session = self._get(session_id)
        deadline = time.time() + timeout if timeout is not None else None
        while session.events.unfinished_tasks:
            timed_out = deadline is not None and time.time() > deadline
            if timed_out or not session.processor.is_alive():
                break
            time.sleep(0.01)
        return session.events.unfinished_tasks == 0 and not session.processor.stopped()

    def drain_results(self, session_id: str) -> List[dict]:
        """Summaries pushed by the processor since the last call."""
        results = self._get(session_id).results
        items = []
        while True:
            try:
                items.append(results.get_nowait())
            except queue.Empty:
                return items

    def read(self, session_id: str, name: str):
        return self._get(session_id).pipeline.read(name)

    def download(self, session_id: str, save: bool = False) -> DownloadArtifact:
        """Produce the download artifact and record the download.

        Raises ``NotReady`` before the first upload and ``ParseError`` for a
        malformed upload, for the caller to render as user guidance.
        """
        session = self._get(session_id)
        upload_id = session.processor.current_upload_id
        try:
            artifact = session.pipeline.download()
        except Exception as e:
            if self.tracker and upload_id:
                self.tracker.mark_stage_complete(upload_id, "downloaded", error=str(e))
            raise

        if save:
            path = get_download_path(session.dirs, artifact.filename)
            path.write_bytes(artifact.data)
            logger.info("[%s] Saved download: %s", session_id, path)

        if self.tracker and upload_id:
            self.tracker.mark_stage_complete(upload_id, "downloaded")
        logger.info("[%s] Download %s (%d bytes)", session_id, artifact.filename, artifact.size_bytes)
        return artifact

    def close_session(self, session_id: str, timeout: Optional[float] = None):
        """Stop the session's processor and delete its directory."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return

        timeout = timeout if timeout is not None else self.config.processor.join_timeout_sec
        processor = session.processor
        if processor.is_alive():
            processor.stop()
            try:
                session.events.put_nowait(None)
            except queue.Full:
                pass  # stop() alone ends the loop
            processor.join(timeout=timeout)
            if processor.is_alive():
                logger.warning("Processor for session %s did not stop cleanly", session_id)

        shutil.rmtree(session.dirs["session"], ignore_errors=True)
        logger.info("Closed session %s (processed=%d, failed=%d)",
                    session_id, processor.processed, processor.failed)

    def stop(self):
        """Close every session and the tracker. Safe to call multiple times."""
        if self._stop_event:
            return

        self._stop_event = True
        logger.info("Stopping orchestrator...")

        for session_id in self.sessions():
            self.close_session(session_id)

        elapsed = time.time() - self._start_time if self._start_time else 0
        logger.info("=" * 60)
        logger.info("Orchestrator stopped. Runtime: %.1f seconds", elapsed)

        if self.tracker:
            stats = self.tracker.get_statistics()
            logger.info("Uploads: total=%d, completed=%d, failed=%d",
                        stats.get('total', 0), stats.get('completed', 0), stats.get('failed', 0))
            self.tracker.close()

        logger.info("=" * 60)

    def log_status(self):
        """Log one status line per open session."""
        with self._lock:
            sessions = list(self._sessions.values())
        for s in sessions:
            logger.info(
                "Session %s: P=%s Q=%d ready=%s processed=%d failed=%d",
                s.session_id,
                "✓" if s.processor.is_alive() else "✗",
                s.events.qsize(),
                s.pipeline.is_ready(),
                s.processor.processed,
                s.processor.failed,
            )
