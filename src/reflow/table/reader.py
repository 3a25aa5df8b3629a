"""Read uploaded delimited text into a pandas DataFrame.

Key capabilities:
- Comma, tab, semicolon or pipe delimiters, or sniffed when not given
- Optional header row and leading rows to skip
- Every failure mode (missing file, empty content, bad encoding, ragged
  rows) raised as ``ParseError`` so the user can fix the upload
"""

import csv
import logging
from pathlib import Path
from typing import Optional

import pandas as pd

from reflow.table.errors import ParseError

__all__ = ['parse_delimited', 'sniff_delimiter', 'CANDIDATE_DELIMITERS']

logger = logging.getLogger(__name__)

CANDIDATE_DELIMITERS = ",\t;|"
_SNIFF_BYTES = 64 * 1024


def sniff_delimiter(content_path, skip_rows: int = 0, encoding: str = "utf-8",
                    default: str = ",") -> str:
    """Guess the delimiter from the first lines of a file.

    Falls back to ``default`` when the sample is ambiguous (for example a
    single-column file).
    """
    path = Path(content_path)
    try:
        with path.open("r", encoding=encoding, newline="") as fh:
            lines = fh.read(_SNIFF_BYTES).splitlines()
    except UnicodeDecodeError as e:
        raise ParseError(f"Cannot decode '{path.name}' as {encoding}: {e}", path=path) from e

    sample = "\n".join(lines[skip_rows:skip_rows + 20])
    if not sample.strip():
        return default
    try:
        dialect = csv.Sniffer().sniff(sample, delimiters=CANDIDATE_DELIMITERS)
    except csv.Error:
        return default
    return dialect.delimiter


def parse_delimited(content_path, delimiter: Optional[str] = None, skip_rows: int = 0,
                    header: bool = True, quote_char: str = '"',
                    encoding: str = "utf-8") -> pd.DataFrame:
    """Parse a delimited text file.

    Parameters
    ----------
    content_path : str or Path
        Location of the (staged) upload.
    delimiter : str, optional
        Field separator. ``None`` sniffs it from the content.
    skip_rows : int
        Number of leading lines to ignore before the header.
    header : bool
        If False, columns are named ``column_1``, ``column_2``, ...
    quote_char : str
        Quoting character.
    encoding : str
        Text encoding of the upload.

    Returns
    -------
    pd.DataFrame

    Raises
    ------
    ParseError
        If the file is missing, empty, undecodable or malformed.
    """
    path = Path(content_path)
    if skip_rows < 0:
        raise ParseError(f"skip_rows must be >= 0, got {skip_rows}", path=path)
    if not path.is_file():
        raise ParseError(f"Upload content not found: {path}", path=path)

    if delimiter is None:
        delimiter = sniff_delimiter(path, skip_rows=skip_rows, encoding=encoding)
        logger.debug("Sniffed delimiter %r for %s", delimiter, path.name)

    try:
        df = pd.read_csv(
            path,
            sep=delimiter,
            skiprows=skip_rows,
            header=0 if header else None,
            quotechar=quote_char,
            encoding=encoding,
        )
    except pd.errors.EmptyDataError as e:
        raise ParseError(f"'{path.name}' contains no data after skipping {skip_rows} rows", path=path) from e
    except UnicodeDecodeError as e:
        raise ParseError(f"Cannot decode '{path.name}' as {encoding}: {e}", path=path) from e
    except (pd.errors.ParserError, ValueError) as e:
        raise ParseError(f"Malformed delimited content in '{path.name}': {e}", path=path) from e

    if not header:
        df.columns = [f"column_{i + 1}" for i in range(df.shape[1])]

    logger.info("Parsed %s: %d rows x %d columns (delimiter=%r)",
                path.name, df.shape[0], df.shape[1], delimiter)
    return df
