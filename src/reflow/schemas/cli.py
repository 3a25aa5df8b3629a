"""CLIConfig: command-line operational overrides.

Minimal configuration for parameters that commonly change between runs:
delimiter, rows to skip, cleaning switches, output location, verbosity.
"""

from typing import Literal, Optional
from pydantic import field_validator
from reflow.schemas.base import ReflowBaseModel
from reflow.schemas.normalize import normalize_delimiter


class CLIConfig(ReflowBaseModel):
    """Command-line configuration overrides.

    Highest priority in config resolution. Boolean switches are tri-state:
    None means "not given on the command line".

    Usage
    -----
        cli_cfg = CLIConfig(delimiter="tab", remove_empty=True)
        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    base_dir: Optional[str] = None
    delimiter: Optional[str] = None
    skip_rows: Optional[int] = None
    no_header: Optional[bool] = None
    remove_empty: Optional[bool] = None
    remove_constant: Optional[bool] = None
    keep_names: Optional[bool] = None
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = None

    model_config = ReflowBaseModel.model_config.copy()
    model_config.update({"str_strip_whitespace": False})

    @field_validator("delimiter", mode="before")
    @classmethod
    def coerce_delimiter(cls, v):
        return normalize_delimiter(v)

    def to_internal_overrides(self) -> dict:
        """Convert CLI config to internal config structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        if self.base_dir is not None:
            overrides["base_dir"] = str(self.base_dir)

        reader = {}
        if "delimiter" in self.model_fields_set:
            reader["delimiter"] = self.delimiter
        if self.skip_rows is not None:
            reader["skip_rows"] = self.skip_rows
        if self.no_header:
            reader["header"] = False
        if reader:
            overrides["reader"] = reader

        cleaning = {}
        if self.remove_empty is not None:
            cleaning["remove_empty"] = self.remove_empty
        if self.remove_constant is not None:
            cleaning["remove_constant"] = self.remove_constant
        if self.keep_names:
            cleaning["snake_case"] = False
        if cleaning:
            overrides["cleaning"] = cleaning

        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        return overrides
