# src/Epochipy/shared/__init__.py
"""
Shared utilities for Epochipy.

This module contains:
- Analysis and plotting constants
- Logging configuration
- Error handling utilities
"""

from . import constants
from . import error_handling
from . import logging_config

from .logging_config import setup_logging, get_logger
from .error_handling import EpochipyError

__all__ = [
    'constants',
    'error_handling',
    'logging_config',
    'setup_logging',
    'get_logger',
    'EpochipyError',
]
