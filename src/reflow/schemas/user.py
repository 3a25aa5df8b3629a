"""UserConfig: forgiving, minimal user-facing configuration.

This schema accepts user inputs in a variety of formats, with upper-case
aliases for the common flat keys (e.g. DELIMITER -> delimiter,
REMOVE_EMPTY -> remove_empty).

UserConfig is intentionally minimal: users only specify what they want to
override from the expert defaults.
"""

from typing import Optional
from pydantic import Field, field_validator
from reflow.schemas.base import ReflowBaseModel
from reflow.schemas.normalize import normalize_delimiter, normalize_extensions


class UserReaderConfig(ReflowBaseModel):
    """User-facing reader config."""
    delimiter: Optional[str] = None
    skip_rows: Optional[int] = None
    header: Optional[bool] = None
    quote_char: Optional[str] = None
    encoding: Optional[str] = None

    model_config = ReflowBaseModel.model_config.copy()
    model_config.update({"str_strip_whitespace": False})

    @field_validator("delimiter", mode="before")
    @classmethod
    def coerce_delimiter(cls, v):
        return normalize_delimiter(v)


class UserCleaningConfig(ReflowBaseModel):
    """User-facing cleaning config."""
    snake_case: Optional[bool] = None
    remove_empty: Optional[bool] = None
    remove_constant: Optional[bool] = None
    ignore_na_in_constant: Optional[bool] = None


class UserWriterConfig(ReflowBaseModel):
    """User-facing writer config."""
    delimiter: Optional[str] = None
    include_index: Optional[bool] = None
    na_rep: Optional[str] = None
    encoding: Optional[str] = None
    filename_suffix: Optional[str] = None
    extension: Optional[str] = None

    model_config = ReflowBaseModel.model_config.copy()
    model_config.update({"str_strip_whitespace": False})

    @field_validator("delimiter", mode="before")
    @classmethod
    def coerce_delimiter(cls, v):
        return normalize_delimiter(v)


class UserUploadConfig(ReflowBaseModel):
    """User-facing upload config."""
    max_bytes: Optional[int] = None
    accepted_extensions: Optional[list[str]] = None

    @field_validator("accepted_extensions", mode="before")
    @classmethod
    def coerce_extensions(cls, v):
        return normalize_extensions(v)


class UserConfig(ReflowBaseModel):
    """User-facing configuration schema.

    Minimal, forgiving, and uses common aliases. Converted to internal
    overrides during resolution.

    Usage
    -----
        user_cfg = UserConfig(
            DELIMITER="semicolon",
            SKIP_ROWS=2,
            REMOVE_EMPTY=True,
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)

    Notes
    -----
    ``delimiter`` is tri-state: absent keeps the expert default, ``"auto"``
    (or an explicit None) switches to sniffing, anything else is used as is.
    """

    base_dir: Optional[str] = Field(None, alias="BASE_DIR")
    log_level: Optional[str] = Field(None, alias="LOG_LEVEL")

    # Reader settings (flat aliases)
    delimiter: Optional[str] = Field(None, alias="DELIMITER")
    skip_rows: Optional[int] = Field(None, ge=0, alias="SKIP_ROWS")
    header: Optional[bool] = Field(None, alias="HEADER")
    encoding: Optional[str] = Field(None, alias="ENCODING")

    # Cleaning settings (flat aliases)
    snake_case: Optional[bool] = Field(None, alias="SNAKE_CASE")
    remove_empty: Optional[bool] = Field(None, alias="REMOVE_EMPTY")
    remove_constant: Optional[bool] = Field(None, alias="REMOVE_CONSTANT")

    # Upload / preview / output settings (flat aliases)
    max_upload_mb: Optional[float] = Field(None, gt=0, alias="MAX_UPLOAD_MB")
    accept: Optional[list[str]] = Field(None, alias="ACCEPT")
    preview_rows: Optional[int] = Field(None, ge=0, alias="PREVIEW_ROWS")
    output_delimiter: Optional[str] = Field(None, alias="OUTPUT_DELIMITER")
    filename_suffix: Optional[str] = Field(None, alias="FILENAME_SUFFIX")

    # Nested overrides (advanced users)
    reader: Optional[UserReaderConfig] = None
    cleaning: Optional[UserCleaningConfig] = None
    writer: Optional[UserWriterConfig] = None
    upload: Optional[UserUploadConfig] = None

    model_config = ReflowBaseModel.model_config.copy()
    # Forgiving input dictionaries: ignore unknown keys, accept field names too
    model_config.update({
        "populate_by_name": True,
        "extra": "ignore",
        "str_strip_whitespace": False,
    })

    @field_validator("delimiter", "output_delimiter", mode="before")
    @classmethod
    def coerce_delimiter(cls, v):
        return normalize_delimiter(v)

    @field_validator("accept", mode="before")
    @classmethod
    def coerce_extensions(cls, v):
        return normalize_extensions(v)

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @property
    def delimiter_set(self) -> bool:
        return "delimiter" in self.model_fields_set

    def to_internal_overrides(self) -> dict:
        """Convert flat UserConfig to nested InternalConfig structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        if self.base_dir is not None:
            overrides["base_dir"] = str(self.base_dir)

        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        # Reader section
        reader = {}
        if self.delimiter_set:
            reader["delimiter"] = self.delimiter
        if self.skip_rows is not None:
            reader["skip_rows"] = self.skip_rows
        if self.header is not None:
            reader["header"] = self.header
        if self.encoding is not None:
            reader["encoding"] = self.encoding
        if self.reader is not None:
            reader.update(self.reader.model_dump(exclude_unset=True))
        if reader:
            overrides["reader"] = reader

        # Cleaning section
        cleaning = {}
        if self.snake_case is not None:
            cleaning["snake_case"] = self.snake_case
        if self.remove_empty is not None:
            cleaning["remove_empty"] = self.remove_empty
        if self.remove_constant is not None:
            cleaning["remove_constant"] = self.remove_constant
        if self.cleaning is not None:
            cleaning.update(self.cleaning.model_dump(exclude_none=True))
        if cleaning:
            overrides["cleaning"] = cleaning

        # Writer section
        writer = {}
        if self.output_delimiter is not None:
            writer["delimiter"] = self.output_delimiter
        if self.filename_suffix is not None:
            writer["filename_suffix"] = self.filename_suffix
        if self.writer is not None:
            writer.update(self.writer.model_dump(exclude_none=True))
        if writer:
            overrides["writer"] = writer

        # Upload section
        upload = {}
        if self.max_upload_mb is not None:
            upload["max_bytes"] = int(self.max_upload_mb * 1024 * 1024)
        if self.accept is not None:
            upload["accepted_extensions"] = self.accept
        if self.upload is not None:
            upload.update(self.upload.model_dump(exclude_none=True))
        if upload:
            overrides["upload"] = upload

        if self.preview_rows is not None:
            overrides["preview"] = {"rows": self.preview_rows}

        return overrides
