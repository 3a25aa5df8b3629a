"""InternalConfig: authoritative runtime configuration.

This is the ONLY config schema that runtime code sees. It is fully
validated, normalized, and frozen. Runtime code accesses fields directly;
``.get()`` calls and fallback defaults are not needed downstream.
"""

from typing import Literal, Optional
from pydantic import ConfigDict, Field
from reflow.schemas.base import ReflowBaseModel


# =============================================================================
# Nested Configuration Models (Runtime)
# =============================================================================

class InternalReaderConfig(ReflowBaseModel):
    """Runtime reader configuration."""
    delimiter: Optional[str]
    skip_rows: int = Field(ge=0)
    header: bool
    quote_char: str
    encoding: str

    model_config = ReflowBaseModel.model_config.copy()
    model_config.update({"str_strip_whitespace": False})


class InternalCleaningConfig(ReflowBaseModel):
    """Runtime cleaning configuration."""
    snake_case: bool
    remove_empty: bool
    remove_constant: bool
    ignore_na_in_constant: bool


class InternalWriterConfig(ReflowBaseModel):
    """Runtime writer configuration."""
    delimiter: str
    include_index: bool
    na_rep: str
    encoding: str
    filename_suffix: str
    extension: Optional[str]

    model_config = ReflowBaseModel.model_config.copy()
    model_config.update({"str_strip_whitespace": False})


class InternalUploadConfig(ReflowBaseModel):
    """Runtime upload acceptance rules."""
    max_bytes: int = Field(ge=1)
    accepted_extensions: list[str]


class InternalPreviewConfig(ReflowBaseModel):
    """Runtime preview settings."""
    rows: int = Field(ge=0)


class InternalProcessorConfig(ReflowBaseModel):
    """Runtime upload processor settings."""
    queue_size: int = Field(ge=1)
    warm_cache: bool
    join_timeout_sec: float = Field(gt=0)
    tracker_filename: str


class InternalLoggingConfig(ReflowBaseModel):
    """Runtime logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


# =============================================================================
# Main InternalConfig
# =============================================================================

class InternalConfig(ReflowBaseModel):
    """Authoritative runtime configuration.

    Usage
    -----
    Runtime modules receive InternalConfig and access fields directly:

        def __init__(self, config: InternalConfig):
            self.skip_rows = config.reader.skip_rows  # NOT .get()

    Rules
    -----
    - NO .get() calls
    - NO fallback defaults
    - NO validation in runtime code
    """

    base_dir: Optional[str]
    reader: InternalReaderConfig
    cleaning: InternalCleaningConfig
    writer: InternalWriterConfig
    upload: InternalUploadConfig
    preview: InternalPreviewConfig
    processor: InternalProcessorConfig
    logging: InternalLoggingConfig

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        frozen=True,  # Immutable after construction
    )
