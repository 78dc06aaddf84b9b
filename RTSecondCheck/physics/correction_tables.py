"""Tabulated TPR and output factor (Scp) correction tables."""

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import numpy as np

from ..physics_data import DEFAULT_TPR_TABLE, DEFAULT_SCP_TABLE
from ..utils.logging import get_logger
from ..utils.path_utils import validate_path, PathValidationError
from ..utils.validation import TableFormatError


logger = get_logger()


def interpolate_linear(axis: np.ndarray, values: np.ndarray, x: float) -> float:
    """Linearly interpolate a 1D curve.
    
    Queries outside [axis[0], axis[-1]] (including NaN) return 0.0
    instead of extrapolating.
    
    Args:
        axis: Strictly increasing sample positions
        values: Sample values, same length as axis
        x: Query position
        
    Returns:
        Interpolated value, or 0.0 outside the table domain
    """
    if not axis[0] <= x <= axis[-1]:
        return 0.0
    return float(np.interp(x, axis, values))


def _bracket(axis: np.ndarray, x: float) -> Tuple[int, float]:
    """Return the lower cell index and fractional position of x in axis."""
    i = int(np.searchsorted(axis, x, side='right')) - 1
    i = min(max(i, 0), len(axis) - 2)
    t = (x - axis[i]) / (axis[i + 1] - axis[i])
    return i, t


def interpolate_bilinear(
    x_axis: np.ndarray,
    y_axis: np.ndarray,
    values: np.ndarray,
    x: float,
    y: float
) -> float:
    """Bilinearly interpolate a 2D grid.
    
    Args:
        x_axis: Strictly increasing positions of the grid rows
        y_axis: Strictly increasing positions of the grid columns
        values: Grid of shape (len(x_axis), len(y_axis))
        x: Query position along x_axis
        y: Query position along y_axis
        
    Returns:
        Interpolated value, or 0.0 if (x, y) is outside the grid
    """
    if not (x_axis[0] <= x <= x_axis[-1] and y_axis[0] <= y <= y_axis[-1]):
        return 0.0
    
    i, tx = _bracket(x_axis, x)
    j, ty = _bracket(y_axis, y)
    
    value = (
        values[i, j] * (1 - tx) * (1 - ty)
        + values[i + 1, j] * tx * (1 - ty)
        + values[i, j + 1] * (1 - tx) * ty
        + values[i + 1, j + 1] * tx * ty
    )
    return float(value)


def _readonly(data, name: str, ndim: int) -> np.ndarray:
    """Copy data into a read-only float array of the given dimensionality."""
    try:
        array = np.array(data, dtype=float)
    except (TypeError, ValueError) as e:
        raise TableFormatError(f"{name} must be numeric: {e}")
    if array.ndim != ndim:
        raise TableFormatError(f"{name} must be {ndim}D, got {array.ndim}D")
    if not np.all(np.isfinite(array)):
        raise TableFormatError(f"{name} contains empty or non-numeric entries")
    array.setflags(write=False)
    return array


def _check_axis(axis: np.ndarray, name: str) -> None:
    if axis.size < 2:
        raise TableFormatError(f"{name} must contain at least two entries")
    if np.any(np.diff(axis) <= 0):
        raise TableFormatError(f"{name} must be strictly increasing: {axis.tolist()}")


@dataclass(frozen=True, eq=False)
class CorrectionTables:
    """Immutable TPR grid and Scp curve.
    
    The TPR grid is indexed by (depth, equivalent square field size); the
    Scp curve by equivalent square field size. All arrays are read-only
    after construction and the object may be shared between threads.
    
    Attributes:
        depths: TPR depth axis in cm
        tpr_field_sizes: TPR field size axis in cm
        tpr_values: TPR values [depth, field size]
        scp_field_sizes: Scp field size axis in cm
        scp_values: Output factors per field size
        tpr_source: Where the TPR table was loaded from
        scp_source: Where the Scp table was loaded from
    """
    depths: np.ndarray
    tpr_field_sizes: np.ndarray
    tpr_values: np.ndarray
    scp_field_sizes: np.ndarray
    scp_values: np.ndarray
    tpr_source: Optional[str] = None
    scp_source: Optional[str] = None
    
    def __post_init__(self):
        """Freeze arrays and validate table layout."""
        for name, ndim in (
            ('depths', 1), ('tpr_field_sizes', 1), ('tpr_values', 2),
            ('scp_field_sizes', 1), ('scp_values', 1),
        ):
            object.__setattr__(self, name, _readonly(getattr(self, name), name, ndim))
        
        _check_axis(self.depths, 'TPR depth axis')
        _check_axis(self.tpr_field_sizes, 'TPR field size axis')
        _check_axis(self.scp_field_sizes, 'Scp field size axis')
        
        expected = (self.depths.size, self.tpr_field_sizes.size)
        if self.tpr_values.shape != expected:
            raise TableFormatError(
                f"TPR grid shape {self.tpr_values.shape} does not match axes {expected}"
            )
        if self.scp_values.shape != self.scp_field_sizes.shape:
            raise TableFormatError(
                f"Scp has {self.scp_values.size} factors for "
                f"{self.scp_field_sizes.size} field sizes"
            )
        if np.any(self.tpr_values <= 0) or np.any(self.scp_values <= 0):
            raise TableFormatError("Tabulated TPR and Scp factors must be positive")
    
    @classmethod
    def from_arrays(cls, tpr_data, scp_data, tpr_source: Optional[str] = None,
                    scp_source: Optional[str] = None) -> 'CorrectionTables':
        """Build tables from raw grids in the CSV layout.
        
        Args:
            tpr_data: 2D array whose first row holds field sizes (first entry
                ignored) and whose first column holds depths
            scp_data: 2D array with field sizes in row 0 and factors in row 1
            
        Returns:
            CorrectionTables instance
        """
        tpr = np.asarray(tpr_data, dtype=float)
        scp = np.asarray(scp_data, dtype=float)
        if tpr.ndim != 2 or tpr.shape[0] < 3 or tpr.shape[1] < 3:
            raise TableFormatError(f"TPR table must be at least 3x3, got shape {tpr.shape}")
        if scp.ndim != 2 or scp.shape[0] != 2:
            raise TableFormatError(f"Scp table must have exactly two rows, got shape {scp.shape}")
        
        return cls(
            depths=tpr[1:, 0],
            tpr_field_sizes=tpr[0, 1:],
            tpr_values=tpr[1:, 1:],
            scp_field_sizes=scp[0, :],
            scp_values=scp[1, :],
            tpr_source=tpr_source,
            scp_source=scp_source
        )
    
    @classmethod
    def from_csv(cls, tpr_path: Union[str, Path], scp_path: Union[str, Path]) -> 'CorrectionTables':
        """Load tables from comma separated files.
        
        Args:
            tpr_path: Path to TPR CSV (blank first cell, field sizes across,
                depths down)
            scp_path: Path to Scp CSV (field sizes row, factors row)
            
        Returns:
            CorrectionTables instance
            
        Raises:
            TableFormatError: If a file is missing or malformed
        """
        try:
            tpr_file = validate_path(tpr_path, must_exist=True, suffixes=['.csv'])
            scp_file = validate_path(scp_path, must_exist=True, suffixes=['.csv'])
        except PathValidationError as e:
            raise TableFormatError(str(e)) from e
        
        logger.info(f"Loading TPR table from {tpr_file}")
        tpr_data = np.genfromtxt(tpr_file, delimiter=',', ndmin=2)
        logger.info(f"Loading Scp table from {scp_file}")
        scp_data = np.genfromtxt(scp_file, delimiter=',', ndmin=2)
        
        tables = cls.from_arrays(tpr_data, scp_data, str(tpr_file), str(scp_file))
        logger.info(
            f"Correction tables loaded: TPR {tables.depths.size} depths x "
            f"{tables.tpr_field_sizes.size} field sizes, "
            f"Scp {tables.scp_field_sizes.size} field sizes"
        )
        return tables
    
    def tpr(self, depth: float, field_size: float) -> float:
        """Interpolate TPR at (depth, field size); 0.0 outside the grid."""
        return interpolate_bilinear(
            self.depths, self.tpr_field_sizes, self.tpr_values, depth, field_size
        )
    
    def scp(self, field_size: float) -> float:
        """Interpolate the output factor at field size; 0.0 outside the curve."""
        return interpolate_linear(self.scp_field_sizes, self.scp_values, field_size)
    
    @property
    def depth_range(self) -> Tuple[float, float]:
        return float(self.depths[0]), float(self.depths[-1])
    
    @property
    def field_size_range(self) -> Tuple[float, float]:
        """Field sizes covered by both the TPR grid and the Scp curve."""
        low = max(self.tpr_field_sizes[0], self.scp_field_sizes[0])
        high = min(self.tpr_field_sizes[-1], self.scp_field_sizes[-1])
        return float(low), float(high)


_TABLE_CACHE: Dict[Tuple[str, str], CorrectionTables] = {}
_TABLE_CACHE_LOCK = threading.Lock()


def get_default_tables(
    tpr_path: Optional[Union[str, Path]] = None,
    scp_path: Optional[Union[str, Path]] = None
) -> CorrectionTables:
    """Return process-wide cached tables, loading them on first use.
    
    The first caller for a given pair of paths loads the files while holding
    the cache lock; concurrent and later callers receive the same object.
    
    Args:
        tpr_path: TPR CSV path (default: bundled ViewRay table)
        scp_path: Scp CSV path (default: bundled ViewRay table)
        
    Returns:
        Shared CorrectionTables instance
    """
    tpr_path = tpr_path if tpr_path is not None else DEFAULT_TPR_TABLE
    scp_path = scp_path if scp_path is not None else DEFAULT_SCP_TABLE
    if tpr_path is None or scp_path is None:
        raise TableFormatError("Bundled correction tables not found")
    
    key = (str(Path(tpr_path).resolve()), str(Path(scp_path).resolve()))
    with _TABLE_CACHE_LOCK:
        tables = _TABLE_CACHE.get(key)
        if tables is None:
            tables = CorrectionTables.from_csv(*key)
            _TABLE_CACHE[key] = tables
        else:
            logger.debug("Using cached correction tables")
    return tables


def clear_table_cache() -> None:
    """Drop all cached tables (subsequent calls reload from disk)."""
    with _TABLE_CACHE_LOCK:
        _TABLE_CACHE.clear()
