"""Reflow User Configuration.

This is the user-facing configuration file. Modify settings here to customize
how uploads are parsed and cleaned. Advanced settings are in
src/reflow/schemas/param.py

Usage:
    python scripts/run_transform.py data/survey.csv -c scripts/user_config.py
    python scripts/run_transform.py data/survey.csv -c scripts/user_config.py --remove-empty
"""

CONFIG = {
    # ========================================================================
    # WORKING DIRECTORY
    # ========================================================================
    "BASE_DIR": None,             # Sessions, logs and tracker DB (None = temp dir)
    "LOG_LEVEL": "INFO",

    # ========================================================================
    # READING
    # ========================================================================
    "DELIMITER": "comma",         # comma, tab, semicolon, pipe, auto, or a character
    "SKIP_ROWS": 0,               # Lines to skip before the header
    "HEADER": True,               # First (non-skipped) row holds column names
    "ENCODING": "utf-8",

    # ========================================================================
    # CLEANING
    # ========================================================================
    "SNAKE_CASE": True,           # "First Name" -> first_name
    "REMOVE_EMPTY": False,        # Drop columns with no values
    "REMOVE_CONSTANT": False,     # Drop columns with a single distinct value

    # ========================================================================
    # UPLOADS
    # ========================================================================
    "MAX_UPLOAD_MB": 5,
    "ACCEPT": [".csv", ".tsv", ".txt"],

    # ========================================================================
    # OUTPUT
    # ========================================================================
    "PREVIEW_ROWS": 10,
    "OUTPUT_DELIMITER": "comma",
    "FILENAME_SUFFIX": "_clean",  # survey.csv -> survey_clean.csv

    # Nested sections override the flat keys above
    # "reader": {"quote_char": "'"},
    # "cleaning": {"ignore_na_in_constant": True},
}
