"""
Top-level package for commitsmith.

The command line entry point lives in :mod:`commitsmith.cli`; the batch
pipeline in :mod:`commitsmith.pipeline`.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
