"""Table collaborators used inside pipeline computations.

- upload: UploadRecord, validation and staging
- reader: delimited-text parsing (pandas)
- cleaning: snake_case names, empty/constant column removal
- writer: serialization, download filename, preview
"""

from reflow.table.errors import ParseError, UploadRejected
from reflow.table.upload import UploadRecord, validate_upload, stage_upload
from reflow.table.reader import parse_delimited, sniff_delimiter
from reflow.table.cleaning import (
    to_snake_case_columns,
    remove_empty_columns,
    remove_constant_columns,
    clean_table,
)
from reflow.table.writer import write_delimited, download_filename, preview

__all__ = [
    "ParseError",
    "UploadRejected",
    "UploadRecord",
    "validate_upload",
    "stage_upload",
    "parse_delimited",
    "sniff_delimiter",
    "to_snake_case_columns",
    "remove_empty_columns",
    "remove_constant_columns",
    "clean_table",
    "write_delimited",
    "download_filename",
    "preview",
]
