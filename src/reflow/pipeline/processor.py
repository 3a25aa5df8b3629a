"""Upload processor thread.

Applies upload and option events to one session's pipeline strictly one at
a time, so that every invalidation finishes before the next event (or any
read) starts. Optionally warms the cleaned table after each event and
reports the result on an output queue.
"""

import logging
import queue
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional, TYPE_CHECKING

from reflow.contracts import ContractViolation
from reflow.graph import CyclicDependency, InvalidOperation, NotReady
from reflow.table import ParseError, UploadRecord, UploadRejected

if TYPE_CHECKING:
    from reflow.pipeline.file_tracker import UploadTracker
    from reflow.pipeline.transform import TransformPipeline

__all__ = ['UploadProcessor', 'UploadEvent']

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadEvent:
    """One external change for a session: a new upload or an option change."""
    kind: str  # "upload" or "option"
    record: Optional[UploadRecord] = None
    option: Optional[str] = None
    value: Any = None
    upload_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    @classmethod
    def upload(cls, record: UploadRecord) -> "UploadEvent":
        return cls(kind="upload", record=record)

    @classmethod
    def set_option(cls, name: str, value: Any) -> "UploadEvent":
        return cls(kind="option", option=name, value=value)


class UploadProcessor(threading.Thread):
    """Serializes external events for one session's TransformPipeline.

    Reads ``UploadEvent`` items from ``input_queue`` until ``None`` (the
    stop sentinel) arrives or ``stop()`` is called.

    **Per upload event:**

    1. Register the upload with the tracker
    2. Validate and stage it (``TransformPipeline.set_upload``)
    3. If ``warm_cache``: read ``cleaned_table`` and ``preview_table`` and
       push a summary dict to ``output_queue``

    **Failure handling:**

    - ``UploadRejected`` / ``ParseError``: user errors. Logged at WARNING,
      recorded in the tracker; the processor keeps running.
    - ``NotReady``: normal before the first upload, logged at DEBUG.
    - ``ContractViolation`` / ``CyclicDependency``: pipeline bugs. Logged
      at CRITICAL and the processor stops.

    Example usage (typically created by SessionOrchestrator)::

        processor = UploadProcessor(events, pipeline, tracker=tracker)
        processor.start()
        events.put(UploadEvent.upload(record))
        ...
        events.put(None)
        processor.join()
    """

    def __init__(self, input_queue: queue.Queue, pipeline: "TransformPipeline",
                 output_queue: Optional[queue.Queue] = None,
                 tracker: Optional["UploadTracker"] = None,
                 warm_cache: bool = True,
                 name: Optional[str] = None):
        super().__init__(daemon=True, name=name or f"UploadProcessor-{pipeline.session_id}")

        self.input_queue = input_queue
        self.pipeline = pipeline
        self.output_queue = output_queue
        self.tracker = tracker
        self.warm_cache = warm_cache
        self.session_id = pipeline.session_id
        self.current_upload_id: Optional[str] = None
        self.processed = 0
        self.failed = 0
        self._stop_event = threading.Event()

    def stop(self):
        """Signal processor to stop gracefully."""
        self._stop_event.set()

    def stopped(self) -> bool:
        return self._stop_event.is_set()

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------

    def process_event(self, event: UploadEvent) -> bool:
        """Apply one event. Returns True on success, False on a handled failure."""
        try:
            if event.kind == "upload":
                ok = self._apply_upload(event)
            elif event.kind == "option":
                ok = self._apply_option(event)
            else:
                logger.error("[%s] Unknown event kind: %r", self.session_id, event.kind)
                ok = False

        except (ContractViolation, CyclicDependency) as e:
            logger.critical("[%s] CRITICAL: pipeline wiring broken: %s", self.session_id, e)
            logger.critical("This indicates a bug in pipeline logic. Stopping processor.")
            self.stop()
            self._track_failure("cleaned", f"{type(e).__name__}: {e}")
            ok = False

        if ok:
            self.processed += 1
        else:
            self.failed += 1
        return ok

    def _apply_upload(self, event: UploadEvent) -> bool:
        record = event.record
        upload_id = event.upload_id
        if self.tracker:
            self.tracker.register_upload(upload_id, self.session_id, record)

        try:
            staged = self.pipeline.set_upload(record)
        except UploadRejected as e:
            logger.warning("[%s] Upload rejected: %s", self.session_id, e)
            self._track_failure("parsed", str(e), upload_id)
            return False

        self.current_upload_id = upload_id
        if self.tracker:
            self.tracker.set_staged_path(upload_id, staged.content_path)

        return self._warm()

    def _apply_option(self, event: UploadEvent) -> bool:
        try:
            self.pipeline.set_option(event.option, event.value)
        except InvalidOperation as e:
            logger.error("[%s] Rejected option change: %s", self.session_id, e)
            return False
        return self._warm()

    def _warm(self) -> bool:
        """Evaluate parsed/cleaned/preview so the next user read is a cache hit."""
        if not self.warm_cache:
            return True

        try:
            parsed = self.pipeline.read("parsed_table")
        except NotReady as e:
            logger.debug("[%s] Nothing to warm yet: %s", self.session_id, e)
            return True
        except ParseError as e:
            logger.warning("[%s] Could not parse upload: %s", self.session_id, e)
            self._track_failure("parsed", str(e))
            return False

        if self.tracker and self.current_upload_id:
            self.tracker.mark_stage_complete(self.current_upload_id, "parsed",
                                             num_rows=parsed.shape[0], num_columns=parsed.shape[1])

        cleaned = self.pipeline.read("cleaned_table")
        if self.tracker and self.current_upload_id:
            self.tracker.mark_stage_complete(self.current_upload_id, "cleaned",
                                             num_rows=cleaned.shape[0], num_columns=cleaned.shape[1])

        logger.info("[%s] Ready: %d rows x %d columns (parsed %d columns)",
                    self.session_id, cleaned.shape[0], cleaned.shape[1], parsed.shape[1])

        if self.output_queue is not None:
            item = {
                "session_id": self.session_id,
                "upload_id": self.current_upload_id,
                "filename": self.pipeline.read("download_filename"),
                "num_rows": int(cleaned.shape[0]),
                "num_columns": int(cleaned.shape[1]),
                "columns": list(cleaned.columns),
                "preview": self.pipeline.read("preview_table"),
            }
            try:
                self.output_queue.put_nowait(item)
            except queue.Full:
                logger.debug("[%s] Output queue full, dropping summary", self.session_id)
        return True

    def _track_failure(self, stage: str, message: str, upload_id: Optional[str] = None):
        upload_id = upload_id or self.current_upload_id
        if self.tracker and upload_id:
            self.tracker.mark_stage_complete(upload_id, stage, error=message)

    def _drain_pending(self) -> int:
        """Mark every event still queued as done so ``join()`` on the queue returns."""
        dropped = 0
        while True:
            try:
                event = self.input_queue.get_nowait()
            except queue.Empty:
                return dropped
            if event is not None:
                dropped += 1
            self.input_queue.task_done()

    # ------------------------------------------------------------------
    # Thread loop
    # ------------------------------------------------------------------

    def run(self):
        """Main processor loop (runs in thread).

        Exits when ``None`` is received or ``stop()`` was called. Events
        still queued at exit are discarded.
        """
        logger.info("[%s] Upload processor started", self.session_id)

        while not self.stopped():
            try:
                event = self.input_queue.get(timeout=0.5)
            except queue.Empty:
                continue

            try:
                if event is None:
                    break
                self.process_event(event)
            except Exception:
                logger.exception("[%s] Unexpected error processing event", self.session_id)
                self.failed += 1
            finally:
                # Always mark done so join() on the queue never blocks
                self.input_queue.task_done()

        dropped = self._drain_pending()
        if dropped:
            logger.warning("[%s] Dropped %d queued event(s) after stop", self.session_id, dropped)

        logger.info("[%s] Upload processor stopped (processed=%d, failed=%d)",
                    self.session_id, self.processed, self.failed)
