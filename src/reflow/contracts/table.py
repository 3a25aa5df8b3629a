"""Table stage contracts.

Enforce what the parse and clean stages guarantee to downstream cells.
"""

import pandas as pd

from reflow.contracts.base import require


def assert_parsed_table(df: pd.DataFrame) -> None:
    """Enforce parse stage contract.

    Called inside the parsed-table cell after the reader returns.

    Raises
    ------
    ContractViolation
        If the reader returned something other than a DataFrame with
        at least one column.
    """
    require(
        isinstance(df, pd.DataFrame),
        f"Parse contract violated: got {type(df).__name__}, expected DataFrame"
    )
    require(
        df.shape[1] > 0,
        "Parse contract violated: table has no columns"
    )


def assert_cleaned_table(cleaned: pd.DataFrame, parsed: pd.DataFrame,
                         snake_case_columns: bool) -> None:
    """Enforce clean stage contract.

    Cleaning only renames or drops columns: the row count is unchanged and
    the result never has more columns than the input. With snake_case
    enabled every column name is unique.
    """
    require(
        isinstance(cleaned, pd.DataFrame),
        f"Clean contract violated: got {type(cleaned).__name__}, expected DataFrame"
    )
    require(
        cleaned.shape[0] == parsed.shape[0],
        f"Clean contract violated: {cleaned.shape[0]} rows, expected {parsed.shape[0]}"
    )
    require(
        cleaned.shape[1] <= parsed.shape[1],
        f"Clean contract violated: {cleaned.shape[1]} columns from {parsed.shape[1]}"
    )
    if snake_case_columns:
        require(
            cleaned.columns.is_unique,
            "Clean contract violated: duplicate column names after snake_case"
        )
