"""Error taxonomy and validation utilities for calculation inputs and configuration."""

import math
from pathlib import Path
from typing import Optional

from .config import SecondCheckConfig
from .logging import get_logger


logger = get_logger()


class SecondCheckError(Exception):
    """Base exception for all second-check failures."""
    pass


class ParseError(SecondCheckError):
    """Raised when a required field is missing or malformed in report text."""
    
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class InputError(SecondCheckError):
    """Raised when caller-supplied input is missing or semantically invalid."""
    pass


class RangeError(SecondCheckError):
    """Raised when dose, depth, or field size is not positive."""
    pass


class TableDomainError(SecondCheckError):
    """Raised when a correction factor cannot be interpolated from its table."""
    pass


class TableFormatError(SecondCheckError):
    """Raised when a correction table file has an invalid layout."""
    pass


class InvalidConfigurationError(SecondCheckError):
    """Raised when configuration parameters are invalid."""
    pass


def validate_positive(value, name: str) -> float:
    """Validate that a required clinical input is a finite positive number.
    
    Args:
        value: Value to check
        name: Human-readable input name used in the error message
        
    Returns:
        The value as float
        
    Raises:
        RangeError: If the value is missing, not finite, or not positive
    """
    if value is None:
        raise RangeError(f"A {name} input must be provided")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise RangeError(f"A {name} input must be numeric, got {value!r}")
    if math.isnan(number) or number <= 0:
        raise RangeError(f"A {name} input must be provided (got {value})")
    if math.isinf(number):
        raise RangeError(f"The {name} input must be finite")
    return number


def validate_config(config: SecondCheckConfig) -> None:
    """Validate a configuration before it is used by a calculator.
    
    Field-level checks run in ``SecondCheckConfig.__post_init__``; this
    function adds runtime checks against the file system.
    
    Args:
        config: Second-check configuration
        
    Raises:
        InvalidConfigurationError: If the configured table files are missing
    """
    for label, table_path in (
        ('TPR', config.tpr_table_path),
        ('Scp', config.scp_table_path),
    ):
        if not Path(table_path).is_file():
            raise InvalidConfigurationError(
                f"{label} table not found: {table_path}"
            )
    
    logger.debug("Configuration validation passed")
