"""Utility modules for configuration, logging, and validation."""

from .config import SecondCheckConfig
from .logging import setup_logger, get_logger, log_block
from .validation import (
    SecondCheckError,
    ParseError,
    InputError,
    RangeError,
    TableDomainError,
    TableFormatError,
    InvalidConfigurationError,
    validate_positive,
    validate_config
)
from .path_utils import PathValidationError, validate_path

__all__ = [
    'SecondCheckConfig',
    'setup_logger',
    'get_logger',
    'log_block',
    'SecondCheckError',
    'ParseError',
    'InputError',
    'RangeError',
    'TableDomainError',
    'TableFormatError',
    'InvalidConfigurationError',
    'validate_positive',
    'validate_config',
    'PathValidationError',
    'validate_path'
]
