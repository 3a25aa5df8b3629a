"""ParamConfig: expert defaults for the reflow pipeline.

ALL pipeline parameters must have defaults here. No runtime code should
define fallback values; this is the single source of truth for defaults.

Runtime code NEVER reads from ParamConfig directly; it only receives
InternalConfig.
"""

from typing import Literal, Optional
from pydantic import Field, field_validator
from reflow.schemas.base import ReflowBaseModel
from reflow.schemas.normalize import normalize_delimiter, normalize_extensions


# =============================================================================
# Nested Configuration Models
# =============================================================================

class ReaderConfig(ReflowBaseModel):
    """Delimited-text parsing options (initial values of the option cells)."""
    delimiter: Optional[str] = Field(",", description="Field separator; None sniffs it")
    skip_rows: int = Field(0, ge=0, description="Leading lines to skip before the header")
    header: bool = True
    quote_char: str = Field('"', min_length=1, max_length=1)
    encoding: str = "utf-8"

    model_config = ReflowBaseModel.model_config.copy()
    model_config.update({"str_strip_whitespace": False})  # tab is a valid delimiter

    @field_validator("delimiter", mode="before")
    @classmethod
    def coerce_delimiter(cls, v):
        """Allow named delimiters such as "tab" or "semicolon"."""
        return normalize_delimiter(v)


class CleaningConfig(ReflowBaseModel):
    """Cleaning steps applied to the parsed table."""
    snake_case: bool = True
    remove_empty: bool = False
    remove_constant: bool = False
    ignore_na_in_constant: bool = False


class WriterConfig(ReflowBaseModel):
    """Download serialization settings."""
    delimiter: str = ","
    include_index: bool = False
    na_rep: str = ""
    encoding: str = "utf-8"
    filename_suffix: str = "_clean"
    extension: Optional[str] = Field(None, description="Force a download extension; None keeps the upload's")

    model_config = ReflowBaseModel.model_config.copy()
    model_config.update({"str_strip_whitespace": False})

    @field_validator("delimiter", mode="before")
    @classmethod
    def coerce_delimiter(cls, v):
        v = normalize_delimiter(v)
        if v is None:
            raise ValueError("writer delimiter cannot be auto")
        return v


class UploadConfig(ReflowBaseModel):
    """Upload acceptance rules."""
    max_bytes: int = Field(5 * 1024 * 1024, ge=1, description="Maximum upload size in bytes")
    accepted_extensions: list[str] = Field(
        default_factory=lambda: [".csv", ".tsv", ".txt"]
    )

    @field_validator("accepted_extensions", mode="before")
    @classmethod
    def coerce_extensions(cls, v):
        return normalize_extensions(v)


class PreviewConfig(ReflowBaseModel):
    """Preview table settings."""
    rows: int = Field(10, ge=0)


class ProcessorConfig(ReflowBaseModel):
    """Upload processor thread settings."""
    queue_size: int = Field(100, ge=1)
    warm_cache: bool = Field(True, description="Evaluate cleaned table right after each upload")
    join_timeout_sec: float = Field(5.0, gt=0)
    tracker_filename: str = "upload_tracker.db"


class LoggingConfig(ReflowBaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


# =============================================================================
# Main ParamConfig
# =============================================================================

class ParamConfig(ReflowBaseModel):
    """Complete expert configuration with all defaults.

    Usage
    -----
    This config is NOT used directly by runtime code. It serves as the
    base layer in config resolution:

        internal_cfg = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    base_dir: Optional[str] = None
    reader: ReaderConfig = Field(default_factory=ReaderConfig)
    cleaning: CleaningConfig = Field(default_factory=CleaningConfig)
    writer: WriterConfig = Field(default_factory=WriterConfig)
    upload: UploadConfig = Field(default_factory=UploadConfig)
    preview: PreviewConfig = Field(default_factory=PreviewConfig)
    processor: ProcessorConfig = Field(default_factory=ProcessorConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
