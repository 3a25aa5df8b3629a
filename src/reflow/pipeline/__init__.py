"""Pipeline modules.

- transform: Reactive upload/parse/clean/preview/download pipeline
- orchestrator: Per-session controller
- processor: Upload event processor thread
- file_tracker: SQLite-based upload tracking
"""

from reflow.pipeline.transform import TransformPipeline, DownloadArtifact
from reflow.pipeline.orchestrator import SessionOrchestrator
from reflow.pipeline.processor import UploadProcessor, UploadEvent
from reflow.pipeline.file_tracker import UploadTracker

__all__ = [
    "TransformPipeline",
    "DownloadArtifact",
    "SessionOrchestrator",
    "UploadProcessor",
    "UploadEvent",
    "UploadTracker",
]
