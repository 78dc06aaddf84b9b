"""
Independent Beam-On Time Second Check for Co-60 Radiotherapy

Parses treatment plan and source activity reports, decay-corrects the
source calibration and recomputes each beam's beam-on time from tabulated
TPR and output factors for comparison with the treatment planning system.
"""

__version__ = "0.1.0"

from .core import (
    SecondCheck,
    CalculationInputs,
    compute_beam_time,
    parse_plan_report_text,
    parse_plan_report_pdf,
    parse_source_tracking,
    validate
)
from .physics import CorrectionTables, decay_calibration_constant
from .utils.config import SecondCheckConfig

__all__ = [
    'SecondCheck',
    'SecondCheckConfig',
    'CalculationInputs',
    'CorrectionTables',
    'compute_beam_time',
    'decay_calibration_constant',
    'parse_plan_report_text',
    'parse_plan_report_pdf',
    'parse_source_tracking',
    'validate'
]
