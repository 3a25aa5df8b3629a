"""Reactive upload -> parse -> clean -> preview -> download pipeline.

Builds one dependency Graph per session. Input cells hold the staged upload
and the user's options; derived cells hold the parsed table, cleaned table,
preview, serialized download bytes and download filename. Changing any
input invalidates exactly the cells that read it, and the next read
recomputes only what is stale.
"""

import logging
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, TYPE_CHECKING

import pandas as pd

from reflow.contracts import assert_cleaned_table, assert_download_bytes, assert_parsed_table
from reflow.graph import Graph, InvalidOperation, NotReady, ReadContext
from reflow.schemas.normalize import normalize_delimiter
from reflow.table import (
    UploadRecord,
    clean_table,
    download_filename,
    parse_delimited,
    preview,
    stage_upload,
    validate_upload,
    write_delimited,
)

if TYPE_CHECKING:
    from reflow.schemas import InternalConfig

__all__ = ['TransformPipeline', 'DownloadArtifact', 'OPTION_CELLS', 'DERIVED_CELLS']

logger = logging.getLogger(__name__)

FILE_CELL = "file"

# Option cell -> expected python type
OPTION_CELLS: Dict[str, type] = {
    "delimiter": str,
    "skip_rows": int,
    "header": bool,
    "snake_case": bool,
    "remove_empty": bool,
    "remove_constant": bool,
    "preview_rows": int,
}

DERIVED_CELLS = (
    "parsed_table",
    "cleaned_table",
    "preview_table",
    "download_bytes",
    "download_filename",
)


@dataclass(frozen=True)
class DownloadArtifact:
    """What the download sink receives."""
    filename: str
    data: bytes

    @property
    def size_bytes(self) -> int:
        return len(self.data)


class TransformPipeline:
    """Per-session reactive file-transform pipeline.

    **Cells:**

    - Inputs: ``file`` (staged UploadRecord) and option cells
      ``delimiter``, ``skip_rows``, ``header``, ``snake_case``,
      ``remove_empty``, ``remove_constant``, ``preview_rows``.
    - Derived: ``parsed_table`` (file, delimiter, skip_rows, header),
      ``cleaned_table`` (parsed_table + cleaning flags), ``preview_table``
      (cleaned_table, preview_rows), ``download_bytes`` (cleaned_table),
      ``download_filename`` (file).

    Option cells start with the configured defaults; only ``file`` starts
    empty, so every table read before the first upload raises ``NotReady``.

    **Upload handling:**

    ``set_upload()`` validates the record against the upload rules and copies
    the content into the session's uploads directory before the ``file`` cell
    changes. The graph only ever sees staged copies. Without ``uploads_dir``
    the pipeline stages into a temporary directory of its own, removed by
    ``close()``.

    Example usage::

        pipeline = TransformPipeline(config, uploads_dir="/tmp/s1/uploads")
        pipeline.set_upload(UploadRecord.from_path("survey.csv"))
        pipeline.set_option("remove_empty", True)
        artifact = pipeline.download()
        artifact.filename  # 'survey_clean.csv'
    """

    def __init__(self, config: "InternalConfig", uploads_dir=None, session_id: str = "default"):
        self.config = config
        self.session_id = session_id
        self._owns_uploads_dir = uploads_dir is None
        if uploads_dir is None:
            uploads_dir = tempfile.mkdtemp(prefix="reflow_uploads_")
        self.uploads_dir = Path(uploads_dir)
        self.graph = Graph(name=session_id)
        self._build()

    # ------------------------------------------------------------------
    # Graph construction
    # ------------------------------------------------------------------

    def _build(self):
        g = self.graph
        reader = self.config.reader
        cleaning = self.config.cleaning

        g.register_input(FILE_CELL)
        g.register_input("delimiter", reader.delimiter)
        g.register_input("skip_rows", reader.skip_rows)
        g.register_input("header", reader.header)
        g.register_input("snake_case", cleaning.snake_case)
        g.register_input("remove_empty", cleaning.remove_empty)
        g.register_input("remove_constant", cleaning.remove_constant)
        g.register_input("preview_rows", self.config.preview.rows)

        g.register_derived("parsed_table", self._compute_parsed,
                           [FILE_CELL, "delimiter", "skip_rows", "header"])
        g.register_derived("cleaned_table", self._compute_cleaned,
                           ["parsed_table", "snake_case", "remove_empty", "remove_constant"])
        g.register_derived("preview_table", self._compute_preview,
                           ["cleaned_table", "preview_rows"])
        g.register_derived("download_bytes", self._compute_download_bytes,
                           ["cleaned_table"])
        g.register_derived("download_filename", self._compute_download_filename,
                           [FILE_CELL])

    def _compute_parsed(self, ctx: ReadContext) -> pd.DataFrame:
        record: UploadRecord = ctx.read(FILE_CELL)
        df = parse_delimited(
            record.content_path,
            delimiter=ctx.read("delimiter"),
            skip_rows=ctx.read("skip_rows"),
            header=ctx.read("header"),
            quote_char=self.config.reader.quote_char,
            encoding=self.config.reader.encoding,
        )
        assert_parsed_table(df)
        return df

    def _compute_cleaned(self, ctx: ReadContext) -> pd.DataFrame:
        parsed = ctx.read("parsed_table")
        snake = ctx.read("snake_case")
        cleaned = clean_table(
            parsed,
            snake_case_columns=snake,
            remove_empty=ctx.read("remove_empty"),
            remove_constant=ctx.read("remove_constant"),
            ignore_na_in_constant=self.config.cleaning.ignore_na_in_constant,
        )
        assert_cleaned_table(cleaned, parsed, snake_case_columns=snake)
        logger.debug("[%s] Cleaned table: %s -> %s columns",
                     self.session_id, parsed.shape[1], cleaned.shape[1])
        return cleaned

    def _compute_preview(self, ctx: ReadContext) -> pd.DataFrame:
        return preview(ctx.read("cleaned_table"), ctx.read("preview_rows"))

    def _compute_download_bytes(self, ctx: ReadContext) -> bytes:
        writer = self.config.writer
        data = write_delimited(
            ctx.read("cleaned_table"),
            delimiter=writer.delimiter,
            include_index=writer.include_index,
            encoding=writer.encoding,
            na_rep=writer.na_rep,
        )
        assert_download_bytes(data)
        return data

    def _compute_download_filename(self, ctx: ReadContext) -> str:
        record: UploadRecord = ctx.read(FILE_CELL)
        writer = self.config.writer
        return download_filename(record.name, suffix=writer.filename_suffix,
                                 extension=writer.extension)

    # ------------------------------------------------------------------
    # External API
    # ------------------------------------------------------------------

    def set_upload(self, record: UploadRecord) -> UploadRecord:
        """Validate, stage and publish a new upload.

        Returns
        -------
        UploadRecord
            The staged record now held by the ``file`` cell.

        Raises
        ------
        UploadRejected
            Upload too large, wrong extension, or content already gone.
        """
        upload = self.config.upload
        validate_upload(record, upload.max_bytes, upload.accepted_extensions)

        staged = stage_upload(record, self.uploads_dir, max_bytes=upload.max_bytes)

        previous = self.current_upload()
        invalidated = self.graph.set(FILE_CELL, staged)
        logger.info("[%s] Upload '%s' (%d bytes) staged; invalidated %s",
                    self.session_id, record.name, record.size_bytes, invalidated)

        if previous is not None:
            self._discard_staged(previous)
        return staged

    def set_option(self, name: str, value: Any) -> list:
        """Change one option cell (checkbox, radio button, numeric input)."""
        if name not in OPTION_CELLS:
            raise InvalidOperation(
                f"Unknown option '{name}'; expected one of {sorted(OPTION_CELLS)}",
                cell_id=name,
            )
        value = _validate_option(name, value)
        invalidated = self.graph.set(name, value)
        logger.debug("[%s] Option %s=%r; invalidated %s", self.session_id, name, value, invalidated)
        return invalidated

    def read(self, name: str) -> Any:
        """Current value of any cell (``NotReady`` before the first upload)."""
        return self.graph.read(name)

    def download(self) -> DownloadArtifact:
        """Filename and bytes for the download sink."""
        return DownloadArtifact(
            filename=self.graph.read("download_filename"),
            data=self.graph.read("download_bytes"),
        )

    def current_upload(self) -> Optional[UploadRecord]:
        """The staged upload, or None if nothing has been uploaded yet."""
        try:
            return self.graph.read(FILE_CELL)
        except NotReady:
            return None

    def is_ready(self) -> bool:
        return self.graph.has_value(FILE_CELL)

    def close(self):
        """Remove the staging directory if the pipeline created it."""
        if self._owns_uploads_dir:
            shutil.rmtree(self.uploads_dir, ignore_errors=True)

    def _discard_staged(self, record: UploadRecord):
        path = Path(record.content_path)
        if self.uploads_dir in path.parents:
            path.unlink(missing_ok=True)
            logger.debug("[%s] Removed previous staged upload %s", self.session_id, path)


def _validate_option(name: str, value: Any) -> Any:
    """Type-check an option value; delimiter names are normalized."""
    expected = OPTION_CELLS[name]
    if name == "delimiter":
        try:
            return normalize_delimiter(value)
        except ValueError as e:
            raise InvalidOperation(str(e), cell_id=name) from e
    if expected is int:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise InvalidOperation(f"Option '{name}' expects a non-negative int, got {value!r}", cell_id=name)
    elif not isinstance(value, expected):
        raise InvalidOperation(
            f"Option '{name}' expects {expected.__name__}, got {type(value).__name__}",
            cell_id=name,
        )
    return value
