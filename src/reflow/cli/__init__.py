"""Command-line interface modules for reflow.

This package contains core execution logic, making scripts/ optional and deletable.
"""

from reflow.cli.run_transform import run_transform, load_user_config_dict

__all__ = ['run_transform', 'load_user_config_dict']
