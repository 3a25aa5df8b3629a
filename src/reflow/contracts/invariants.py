"""Formal pipeline invariants.

This file documents what each stage MUST produce. Use it as a reviewer
anchor; enforcement lives in the neighbouring contract modules.
"""

PIPELINE_INVARIANTS = {
    "graph": [
        "Cell dependencies form a DAG; re-entering a cell mid-evaluation is an error",
        "A fresh derived cell's cached value equals a recomputation from current inputs",
        "set() on an input completes invalidation before any dependent read",
        "A failed evaluation caches nothing and leaves the cell stale",
    ],

    "parse": [
        "Output is a DataFrame with at least one column",
        "Malformed or missing content raises ParseError, never a partial table",
    ],

    "clean": [
        "Row count equals the parsed row count",
        "Column count never grows",
        "Column names are unique when snake_case is enabled",
    ],

    "download": [
        "Serialized output is non-empty bytes",
        "Filename is a pure function of the upload name",
    ],
}

STAGE_REQUIREMENTS = {
    "parse": "REQUIRED",
    "clean": "REQUIRED",     # May be a no-op when every option is off
    "preview": "OPTIONAL",
    "download": "REQUIRED",
}
