"""
Configuration loading for commitsmith.

See :mod:`commitsmith.config.loader` for the file format.
"""

from .loader import ConfigError, GeneratorConfig, load_config  # noqa: F401
