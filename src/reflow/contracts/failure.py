"""Centralized failure type for contract violations.

Contracts fail fast, loud, and once. All violations raise the same
exception type, so callers can tell pipeline bugs from user errors.
"""


class ContractViolation(RuntimeError):
    """Raised when a pipeline stage breaks the guarantee it promised.

    This indicates a bug in pipeline logic, not a bad upload.

    Key distinction:
    - ValidationError: configuration error (handled by Pydantic)
    - ParseError / UploadRejected: user error (fix the upload)
    - ContractViolation: pipeline bug (programmer error)
    """
    pass
