"""Serialize cleaned tables for download."""

import logging
from pathlib import PurePath

import pandas as pd

__all__ = ['write_delimited', 'download_filename', 'preview']

logger = logging.getLogger(__name__)


def write_delimited(df: pd.DataFrame, delimiter: str = ",", include_index: bool = False,
                    encoding: str = "utf-8", na_rep: str = "") -> bytes:
    """Serialize a DataFrame to delimited text bytes (header row included)."""
    text = df.to_csv(sep=delimiter, index=include_index, na_rep=na_rep, lineterminator="\n")
    data = text.encode(encoding)
    logger.debug("Serialized %d rows x %d columns to %d bytes", df.shape[0], df.shape[1], len(data))
    return data


def download_filename(upload_name: str, suffix: str = "_clean", extension: str | None = None) -> str:
    """Derive the download filename from the uploaded file's name.

    >>> download_filename("survey.csv")
    'survey_clean.csv'
    >>> download_filename("reports/data.tsv", extension=".csv")
    'data_clean.csv'
    """
    # Browsers on Windows may send a full path; keep the final component only
    base = PurePath(upload_name.replace("\\", "/")).name or "upload"
    stem = PurePath(base).stem or "upload"
    ext = extension if extension is not None else (PurePath(base).suffix or ".csv")
    if ext and not ext.startswith("."):
        ext = f".{ext}"
    return f"{stem}{suffix}{ext}"


def preview(df: pd.DataFrame, n_rows: int) -> pd.DataFrame:
    """First ``n_rows`` rows of a table, as shown under the upload widget."""
    if n_rows < 0:
        raise ValueError(f"n_rows must be >= 0, got {n_rows}")
    return df.head(n_rows).copy()
