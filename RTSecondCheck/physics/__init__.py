"""Physics modules for correction tables and source decay."""

from .correction_tables import (
    CorrectionTables,
    interpolate_linear,
    interpolate_bilinear,
    get_default_tables,
    clear_table_cache
)
from .decay import DecayCalculator, decay_factor, decay_calibration_constant, find_exchange_dates

__all__ = [
    'CorrectionTables',
    'interpolate_linear',
    'interpolate_bilinear',
    'get_default_tables',
    'clear_table_cache',
    'DecayCalculator',
    'decay_factor',
    'decay_calibration_constant',
    'find_exchange_dates'
]
