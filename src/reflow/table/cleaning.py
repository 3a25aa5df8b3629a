"""Table-cleaning operations.

All functions are pure: they return a new DataFrame and never modify
their input. Row order and row count are always preserved; only columns
are renamed or dropped.
"""

import re
import unicodedata
from typing import Iterable, List

import numpy as np
import pandas as pd

__all__ = [
    'snake_case',
    'to_snake_case_columns',
    'remove_empty_columns',
    'remove_constant_columns',
    'clean_table',
]

_SYMBOLS = {"%": "_percent_", "#": "_number_", "&": "_and_", "@": "_at_"}


def snake_case(name) -> str:
    """Convert one column label to snake_case.

    >>> snake_case("First Name")
    'first_name'
    >>> snake_case("HeightCM")
    'height_cm'
    >>> snake_case("% Complete")
    'percent_complete'
    """
    text = str(name)
    for symbol, word in _SYMBOLS.items():
        text = text.replace(symbol, word)
    text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    text = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", text)
    text = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", text)
    text = re.sub(r"[^0-9A-Za-z]+", "_", text).strip("_").lower()
    if not text:
        return "x"
    if text[0].isdigit():
        return f"x{text}"
    return text


def _dedupe(names: Iterable[str]) -> List[str]:
    used = set()
    result = []
    for name in names:
        candidate = name
        suffix = 2
        while candidate in used:
            candidate = f"{name}_{suffix}"
            suffix += 1
        used.add(candidate)
        result.append(candidate)
    return result


def to_snake_case_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Rename every column to unique snake_case (clashes get ``_2``, ``_3``...)."""
    out = df.copy()
    out.columns = _dedupe(snake_case(c) for c in df.columns)
    return out


def _blank_mask(series: pd.Series) -> pd.Series:
    mask = series.isna()
    if series.dtype == object or pd.api.types.is_string_dtype(series):
        stripped = series.astype(str).str.strip()
        mask = mask | stripped.eq("")
    return mask


def remove_empty_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Drop columns whose every value is missing or whitespace-only.

    A table with no rows is returned unchanged: without rows there is no
    evidence that a column is empty.
    """
    if df.shape[0] == 0:
        return df.copy()
    keep = np.array([not _blank_mask(df.iloc[:, i]).all() for i in range(df.shape[1])], dtype=bool)
    return df.loc[:, keep].copy()


def remove_constant_columns(df: pd.DataFrame, ignore_na: bool = False) -> pd.DataFrame:
    """Drop columns holding a single distinct value.

    With ``ignore_na=False`` a missing value counts as a value of its own,
    so a column of ``[1, NaN, 1]`` is kept. A table with no rows is
    returned unchanged.
    """
    if df.shape[0] == 0:
        return df.copy()
    keep = np.array(
        [df.iloc[:, i].nunique(dropna=ignore_na) > 1 for i in range(df.shape[1])],
        dtype=bool,
    )
    return df.loc[:, keep].copy()


def clean_table(df: pd.DataFrame, snake_case_columns: bool = True,
                remove_empty: bool = False, remove_constant: bool = False,
                ignore_na_in_constant: bool = False) -> pd.DataFrame:
    """Apply the selected cleaning steps in a fixed order.

    Order: snake_case names, then empty-column removal, then constant-column
    removal.
    """
    out = df
    if snake_case_columns:
        out = to_snake_case_columns(out)
    if remove_empty:
        out = remove_empty_columns(out)
    if remove_constant:
        out = remove_constant_columns(out, ignore_na=ignore_na_in_constant)
    if out is df:
        out = df.copy()
    return out
