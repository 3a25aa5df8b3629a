"""Download stage contract."""

from reflow.contracts.base import require


def assert_download_bytes(data) -> None:
    """Serialized output is non-empty bytes (a header row at minimum)."""
    require(
        isinstance(data, bytes),
        f"Download contract violated: got {type(data).__name__}, expected bytes"
    )
    require(
        len(data) > 0,
        "Download contract violated: serialized table is empty"
    )
