"""User-facing failures of the table collaborators.

Both are recoverable by the user (re-upload with different content or
options) and are surfaced to the caller of ``read()`` unchanged.
"""


class ParseError(ValueError):
    """Uploaded content could not be parsed as a delimited table."""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path


class UploadRejected(ValueError):
    """Upload refused before parsing (too large, wrong extension)."""
    pass
