"""Path validation utilities for report and table files."""

from pathlib import Path
from typing import Iterable, Optional, Union


class PathValidationError(Exception):
    """Raised when path validation fails."""
    pass


def validate_path(
    path: Union[str, Path],
    must_exist: bool = False,
    suffixes: Optional[Iterable[str]] = None
) -> Path:
    """Validate and resolve a file path.
    
    Args:
        path: Path to validate
        must_exist: If True, path must exist and be a file
        suffixes: Optional allowed file extensions (e.g. ['.csv'])
        
    Returns:
        Resolved Path object
        
    Raises:
        PathValidationError: If path is invalid, missing, or has the wrong type
    """
    if path is None or str(path).strip() == '':
        raise PathValidationError("Empty path")
    
    try:
        path_obj = Path(path).expanduser().resolve()
    except (ValueError, OSError) as e:
        raise PathValidationError(f"Invalid path: {path}") from e
    
    if must_exist:
        if not path_obj.exists():
            raise PathValidationError(f"Path does not exist: {path}")
        if not path_obj.is_file():
            raise PathValidationError(f"Path is not a file: {path}")
    
    if suffixes is not None:
        allowed = [s.lower() for s in suffixes]
        if path_obj.suffix.lower() not in allowed:
            raise PathValidationError(
                f"Unsupported file type '{path_obj.suffix}' for {path}, "
                f"expected one of {allowed}"
            )
    
    return path_obj


def validate_output_path(path: Union[str, Path], create_parents: bool = True) -> Path:
    """Validate and prepare an output path.
    
    Args:
        path: Output path to validate
        create_parents: If True, create parent directories
        
    Returns:
        Validated Path object
        
    Raises:
        PathValidationError: If path is invalid
    """
    path_obj = validate_path(path, must_exist=False)
    
    if create_parents:
        try:
            path_obj.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PathValidationError(
                f"Cannot create parent directories for: {path}"
            ) from e
    
    return path_obj
