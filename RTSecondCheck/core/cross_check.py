"""Comparison of computed beam-on times against planned values."""

from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from .data_models import Beam, CalculationResult, PlanReport, Verdict, VerdictStatus
from ..physics.constants import TOLERANCE
from ..utils.logging import get_logger
from ..utils.validation import InputError


logger = get_logger()


def relative_difference(computed: float, planned: float) -> float:
    """(computed - planned) / planned."""
    return (computed - planned) / planned


def compare_values(
    computed: float,
    planned: Optional[float],
    tolerance: float = 0.03
) -> Tuple[VerdictStatus, Optional[float]]:
    """Classify agreement between a computed and a planned value.

    Args:
        computed: Independently computed value
        planned: Value stated in the plan (None if absent)
        tolerance: Accepted relative difference, inclusive

    Returns:
        (status, relative difference or None)
    """
    if planned is None or not np.isfinite(planned) or planned <= 0:
        return VerdictStatus.NOT_COMPARABLE, None
    diff = relative_difference(computed, planned)
    if abs(diff) <= tolerance + TOLERANCE:
        return VerdictStatus.WITHIN_TOLERANCE, diff
    return VerdictStatus.OUT_OF_TOLERANCE, diff


def _find_beam(result: CalculationResult, plan: PlanReport) -> Beam:
    if result.beam_number is not None:
        try:
            return plan.get_beam(result.beam_number)
        except KeyError:
            raise InputError(f"Plan has no beam {result.beam_number} to compare against")
    if len(plan.beams) == 1:
        return plan.beams[0]
    raise InputError("Calculation result has no beam number and the plan has several beams")


def validate(
    result: CalculationResult,
    plan: PlanReport,
    tolerance: float = 0.03,
    mu_per_second: Optional[float] = None
) -> Verdict:
    """Compare a calculation result against the planned values of its beam.

    The planned beam-on time is compared when present; otherwise planned
    monitor units are compared if an MU-per-second conversion is given.
    Out-of-tolerance verdicts are logged and returned unchanged for review.

    Args:
        result: Calculation result for one beam
        plan: Plan report the beam belongs to
        tolerance: Accepted relative difference (0.03 = 3%)
        mu_per_second: Monitor units delivered per second of beam-on time

    Returns:
        Verdict for the beam
    """
    if not 0 < tolerance < 1:
        raise InputError(f"tolerance must be in (0, 1), got {tolerance}")
    beam = _find_beam(result, plan)

    if beam.planned_time is not None:
        quantity, computed, planned = 'time', result.time, beam.planned_time
    elif beam.planned_mu is not None and mu_per_second is not None:
        quantity, computed, planned = 'mu', result.time * mu_per_second, beam.planned_mu
    else:
        message = f"Beam {beam.number}: no planned time or comparable MU in plan"
        logger.info(message)
        return Verdict(
            beam_number=beam.number,
            status=VerdictStatus.NOT_COMPARABLE,
            tolerance=tolerance,
            computed=result.time,
            message=message
        )

    status, diff = compare_values(computed, planned, tolerance)
    if status is VerdictStatus.NOT_COMPARABLE:
        message = f"Beam {beam.number}: planned {quantity} {planned!r} cannot be compared"
        logger.info(message)
        return Verdict(
            beam_number=beam.number, status=status, tolerance=tolerance,
            quantity=quantity, computed=computed, planned=planned, message=message
        )

    message = (
        f"Beam {beam.number}: computed {quantity} {computed:.2f} vs planned {planned:.2f} "
        f"({diff * 100:+.2f}%, tolerance {tolerance * 100:.1f}%)"
    )
    if status is VerdictStatus.OUT_OF_TOLERANCE:
        logger.warning(f"{message} OUT OF TOLERANCE")
    else:
        logger.info(message)

    return Verdict(
        beam_number=beam.number,
        status=status,
        tolerance=tolerance,
        quantity=quantity,
        computed=computed,
        planned=planned,
        relative_difference=diff,
        message=message
    )


def verdicts_to_frame(
    verdicts: List[Verdict],
    results: Optional[Dict[int, CalculationResult]] = None,
    errors: Optional[Dict[int, str]] = None
) -> pd.DataFrame:
    """Tabulate verdicts (and optionally results and failures) per beam.

    Args:
        verdicts: Verdicts to tabulate
        results: Calculation results by beam number
        errors: Failure messages by beam number

    Returns:
        DataFrame with one row per beam, sorted by beam number
    """
    results = results or {}
    rows = []
    for verdict in verdicts:
        result = results.get(verdict.beam_number)
        rows.append({
            'Beam': verdict.beam_number,
            'Status': verdict.status.value,
            'Quantity': verdict.quantity,
            'Computed': verdict.computed,
            'Planned': verdict.planned,
            'Difference (%)': (
                np.nan if verdict.relative_difference is None
                else 100.0 * verdict.relative_difference
            ),
            'Tolerance (%)': 100.0 * verdict.tolerance,
            'TPR': result.tpr if result else np.nan,
            'Scp': result.scp if result else np.nan,
            'CF': result.couch_factor if result else np.nan,
            'Time (s)': result.time if result else np.nan,
            'Message': verdict.message,
        })
    for beam_number, error in (errors or {}).items():
        rows.append({'Beam': beam_number, 'Status': 'error', 'Message': error})

    columns = [
        'Beam', 'Status', 'Quantity', 'Computed', 'Planned', 'Difference (%)',
        'Tolerance (%)', 'TPR', 'Scp', 'CF', 'Time (s)', 'Message',
    ]
    df = pd.DataFrame(rows, columns=columns)
    if not df.empty:
        df = df.sort_values('Beam', kind='stable').reset_index(drop=True)
    return df
