"""Shared normalizers used by field validators across config schemas."""

DELIMITER_ALIASES = {
    "comma": ",",
    "tab": "\t",
    "\\t": "\t",
    "semicolon": ";",
    "pipe": "|",
    "auto": None,
}


def normalize_delimiter(v):
    """Accept a single character or a named delimiter ("comma", "tab", ...).

    ``None`` and ``"auto"`` mean the delimiter is sniffed from the content.
    """
    if v is None:
        return None
    if not isinstance(v, str):
        raise ValueError(f"delimiter must be a string, got {type(v).__name__}")
    key = v.lower() if len(v) > 1 else v
    if key in DELIMITER_ALIASES:
        return DELIMITER_ALIASES[key]
    if len(v) != 1:
        raise ValueError(f"delimiter must be a single character or one of {sorted(DELIMITER_ALIASES)}, got {v!r}")
    return v


def normalize_extensions(v):
    """Lower-case extensions and make sure each starts with a dot."""
    if v is None:
        return v
    if isinstance(v, str):
        v = [part for part in v.replace(";", ",").split(",")]
    result = []
    for ext in v:
        ext = str(ext).strip().lower()
        if not ext:
            continue
        result.append(ext if ext.startswith(".") else f".{ext}")
    return result
