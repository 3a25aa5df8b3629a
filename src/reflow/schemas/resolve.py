"""Layered configuration for the transform pipeline.

``resolve_config()`` turns the three config layers into one frozen
InternalConfig. A command-line flag beats the user file, which beats the
expert defaults in ParamConfig. Layers are combined section by section, so
a user file that only sets ``reader.delimiter`` keeps every other reader
default.
"""

from functools import reduce
from typing import Union, Optional
from reflow.schemas.param import ParamConfig
from reflow.schemas.user import UserConfig
from reflow.schemas.cli import CLIConfig
from reflow.schemas.internal import InternalConfig


def _overlay(lower: dict, upper: dict) -> dict:
    combined = dict(lower)
    for key, value in upper.items():
        below = combined.get(key)
        if isinstance(below, dict) and isinstance(value, dict):
            combined[key] = _overlay(below, value)
        else:
            combined[key] = value
    return combined


def deep_merge(base: dict, *overrides: dict) -> dict:
    """Overlay ``overrides`` onto ``base`` in order and return a new dict.

    Sections present on both sides are combined key by key; any other
    value from a later layer replaces the earlier one. No input is mutated.

    >>> deep_merge({"reader": {"delimiter": ",", "skip_rows": 0}},
    ...            {"reader": {"delimiter": "\\t"}}, {"preview": {"rows": 5}})
    {'reader': {'delimiter': '\\t', 'skip_rows': 0}, 'preview': {'rows': 5}}
    """
    return reduce(_overlay, overrides, dict(base))


def resolve_config(
    param_cfg: Union[dict, ParamConfig],
    user_cfg: Optional[Union[dict, UserConfig]] = None,
    cli_cfg: Optional[Union[dict, CLIConfig]] = None,
) -> InternalConfig:
    """Build the frozen runtime config from the three layers.

    Each layer may be given as a model or as a raw dict; ``None`` or ``{}``
    for the user or CLI layer means "no overrides".

    Raises
    ------
    pydantic.ValidationError
        If a layer, or the merged result, is invalid.

    Examples
    --------
    >>> config = resolve_config(ParamConfig(), UserConfig(DELIMITER="tab"))
    >>> config.reader.delimiter
    '\\t'
    """
    param = _as_model(ParamConfig, param_cfg)
    user = _as_model(UserConfig, user_cfg)
    cli = _as_model(CLIConfig, cli_cfg)

    layers = [param.model_dump(), user.to_internal_overrides(), cli.to_internal_overrides()]
    return InternalConfig.model_validate(deep_merge(*layers))


def _as_model(model_cls, value):
    if isinstance(value, model_cls):
        return value
    return model_cls.model_validate(value or {})
