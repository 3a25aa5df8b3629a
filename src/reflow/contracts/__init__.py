"""Pipeline contracts: fail-fast enforcement of stage invariants.

Contracts fail immediately and loudly when a stage does not produce its
promised invariants.

Key principle:
- Pydantic validates config correctness
- Contracts validate pipeline correctness
- Table collaborators handle user-content edge cases (ParseError)
"""

from reflow.contracts.failure import ContractViolation
from reflow.contracts.base import require
from reflow.contracts.table import assert_parsed_table, assert_cleaned_table
from reflow.contracts.download import assert_download_bytes

__all__ = [
    "ContractViolation",
    "require",
    "assert_parsed_table",
    "assert_cleaned_table",
    "assert_download_bytes",
]
