"""Upload records and staging.

The upload source hands the pipeline an ``UploadRecord`` whose
``content_path`` is only valid until the next upload event. Staging copies
the content into a session-owned directory so derived cells never hold a
handle that the source may recycle.
"""

import logging
import mimetypes
import shutil
import uuid
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional, Sequence

from reflow.table.errors import UploadRejected

__all__ = ['UploadRecord', 'validate_upload', 'stage_upload']

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadRecord:
    """One uploaded file as described by the upload source.

    Attributes
    ----------
    name : str
        Original client-side filename (e.g. ``survey.csv``).
    size_bytes : int
        Size reported by the upload source.
    mime_type : str
        MIME type reported by the client.
    content_path : Path
        Server-side location of the bytes.
    """
    name: str
    size_bytes: int
    mime_type: str
    content_path: Path

    @classmethod
    def from_path(cls, path, name: Optional[str] = None) -> "UploadRecord":
        """Build a record for a local file (CLI use and tests)."""
        path = Path(path)
        name = name or path.name
        mime_type = mimetypes.guess_type(name)[0] or "application/octet-stream"
        return cls(
            name=name,
            size_bytes=path.stat().st_size,
            mime_type=mime_type,
            content_path=path,
        )

    @property
    def extension(self) -> str:
        return Path(self.name).suffix.lower()


def validate_upload(record: UploadRecord, max_bytes: int,
                    accepted_extensions: Sequence[str] = ()) -> None:
    """Reject uploads that exceed the size limit or use another extension.

    Raises
    ------
    UploadRejected
        With a message suitable for display to the user.
    """
    if record.size_bytes > max_bytes:
        raise UploadRejected(
            f"'{record.name}' is {record.size_bytes} bytes; maximum upload size is {max_bytes} bytes"
        )
    accepted = [ext.lower() for ext in accepted_extensions]
    if accepted and record.extension not in accepted:
        raise UploadRejected(
            f"'{record.name}' has extension '{record.extension}'; accepted: {', '.join(accepted)}"
        )


def stage_upload(record: UploadRecord, staging_dir, max_bytes: Optional[int] = None) -> UploadRecord:
    """Copy the upload into ``staging_dir`` and return a record pointing at the copy.

    With ``max_bytes`` the size on disk is checked too; the reported
    ``size_bytes`` comes from the client and may understate it.
    """
    staging_dir = Path(staging_dir)
    staging_dir.mkdir(parents=True, exist_ok=True)

    source = Path(record.content_path)
    if not source.exists():
        raise UploadRejected(f"Upload content for '{record.name}' is no longer available")

    actual = source.stat().st_size
    if max_bytes is not None and actual > max_bytes:
        raise UploadRejected(
            f"'{record.name}' is {actual} bytes; maximum upload size is {max_bytes} bytes"
        )

    # Unique prefix so a re-upload of the same name never overwrites a staged copy
    target = staging_dir / f"{uuid.uuid4().hex[:8]}_{Path(record.name).name}"
    shutil.copy2(source, target)
    logger.debug("Staged upload %s -> %s", source, target)

    return replace(record, content_path=target)
