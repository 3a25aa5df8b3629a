"""Pydantic configuration schemas for the reflow pipeline.

Exports
-------
resolve_config : function
    Single entrypoint for configuration resolution
InternalConfig : class
    Fully validated, authoritative runtime configuration
ParamConfig : class
    Expert defaults (complete)
UserConfig : class
    User-facing configuration (forgiving, minimal)
CLIConfig : class
    Command-line operational overrides
"""

from reflow.schemas.resolve import resolve_config
from reflow.schemas.internal import InternalConfig
from reflow.schemas.param import ParamConfig
from reflow.schemas.user import UserConfig
from reflow.schemas.cli import CLIConfig

__all__ = [
    'resolve_config',
    'InternalConfig',
    'ParamConfig',
    'UserConfig',
    'CLIConfig',
]
