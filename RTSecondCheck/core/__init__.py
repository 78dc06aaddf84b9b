"""Core report parsing, calculation and cross-check components."""

from .data_models import (
    Point,
    Beam,
    PlanReport,
    SourceActivityEntry,
    SourceTrackingRecord,
    CalculationInputs,
    CalculationResult,
    Verdict,
    VerdictStatus,
    SecondCheckReport
)
from .report_parser import (
    PlanReportGrammar,
    parse_plan_report,
    parse_plan_report_text,
    parse_plan_report_pdf,
    parse_source_tracking,
    read_plan_report,
    read_source_tracking,
    render_plan_report
)
from .beam_time_calculator import (
    BeamTimeCalculator,
    compute_beam_time,
    equivalent_square,
    couch_factor_for_angle
)
from .cross_check import validate, compare_values, verdicts_to_frame
from .second_check import SecondCheck

__all__ = [
    'Point',
    'Beam',
    'PlanReport',
    'SourceActivityEntry',
    'SourceTrackingRecord',
    'CalculationInputs',
    'CalculationResult',
    'Verdict',
    'VerdictStatus',
    'SecondCheckReport',
    'PlanReportGrammar',
    'parse_plan_report',
    'parse_plan_report_text',
    'parse_plan_report_pdf',
    'parse_source_tracking',
    'read_plan_report',
    'read_source_tracking',
    'render_plan_report',
    'BeamTimeCalculator',
    'compute_beam_time',
    'equivalent_square',
    'couch_factor_for_angle',
    'validate',
    'compare_values',
    'verdicts_to_frame',
    'SecondCheck'
]
