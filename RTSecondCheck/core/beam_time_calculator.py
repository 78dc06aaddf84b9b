"""Beam-on time calculation using a two-dimensional SAD formalism.

    time = dose / (K * TPR * Scp * OAR * CF * (SCD / SAD)^2) * 60

TPR is interpolated bilinearly at (depth, equivalent square), Scp linearly at
the equivalent square. Requests outside the tabulated domain are rejected
rather than extrapolated.
"""

import math
from typing import Optional, Tuple

from .data_models import CalculationInputs, CalculationResult
from ..physics.constants import (
    OFF_AXIS_RATIO,
    SECONDS_PER_MINUTE,
    MIN_GANTRY_ANGLE,
    MAX_GANTRY_ANGLE
)
from ..physics.correction_tables import CorrectionTables, get_default_tables
from ..utils.config import SecondCheckConfig
from ..utils.logging import get_logger, log_block
from ..utils.validation import InputError, RangeError, TableDomainError, validate_positive


logger = get_logger()


def equivalent_square(a: float, b: float) -> float:
    """Equivalent square of an a x b rectangular field, 2ab / (a + b).

    Raises:
        RangeError: If either edge length is not positive
    """
    a = validate_positive(a, 'field size')
    b = validate_positive(b, 'field size')
    return 2 * a * b / (a + b)


def couch_factor_for_angle(
    angle: Optional[float],
    couch_factor: float,
    angle_range: Tuple[float, float] = (130.0, 240.0)
) -> float:
    """Couch factor for a gantry angle.

    The couch attenuates beams whose angle lies in the closed interval
    angle_range; all other beams (and beams without an angle) get 1.
    """
    if angle is None:
        return 1.0
    low, high = angle_range
    if low <= angle <= high:
        return couch_factor
    return 1.0


class BeamTimeCalculator:
    """Computes beam-on times from shared correction tables.

    Attributes:
        tables: Correction tables, shared read-only
        config: Defaults for factors not given in the inputs
    """

    def __init__(
        self,
        tables: Optional[CorrectionTables] = None,
        config: Optional[SecondCheckConfig] = None
    ):
        self.config = config if config is not None else SecondCheckConfig()
        if tables is None:
            tables = get_default_tables(self.config.tpr_table_path, self.config.scp_table_path)
        self.tables = tables

    def resolve_field_size(self, inputs: CalculationInputs) -> float:
        """Equivalent square field size of the inputs.

        Raises:
            InputError: If both a scalar and a rectangular size are given
            RangeError: If no positive field size is given
        """
        if inputs.rectangular_dims is not None:
            if inputs.field_size is not None:
                raise InputError(
                    "Provide either an equivalent square or rectangular dimensions, not both"
                )
            if len(inputs.rectangular_dims) != 2:
                raise InputError(
                    f"Rectangular field size needs two edge lengths, got {inputs.rectangular_dims}"
                )
            return equivalent_square(*inputs.rectangular_dims)
        if inputs.field_size is None:
            raise RangeError("A field size must be provided")
        return validate_positive(inputs.field_size, 'field size')

    def resolve(self, inputs: CalculationInputs) -> CalculationInputs:
        """Fill factors left unset with the configured defaults."""
        return inputs.with_defaults(
            calibration_constant=self.config.calibration_constant,
            couch_factor=self.config.couch_factor,
            source_axis_distance=self.config.source_axis_distance,
            source_calibration_distance=self.config.source_calibration_distance
        )

    def compute(self, inputs: CalculationInputs) -> CalculationResult:
        """Compute the beam-on time for one set of inputs.

        Args:
            inputs: Calculation inputs

        Returns:
            CalculationResult with resolved inputs, factors and time

        Raises:
            RangeError: If dose, depth, or field size is not positive
            InputError: If an optional factor is invalid
            TableDomainError: If TPR or Scp falls outside its table
        """
        inputs = self.resolve(inputs)

        dose = validate_positive(inputs.dose, 'prescription dose')
        depth = validate_positive(inputs.depth, 'prescription depth')
        field_size = self.resolve_field_size(inputs)

        for name in ('calibration_constant', 'couch_factor',
                     'source_axis_distance', 'source_calibration_distance'):
            value = getattr(inputs, name)
            if not (isinstance(value, (int, float)) and math.isfinite(value) and value > 0):
                raise InputError(f"{name} must be a positive number, got {value!r}")

        angle = inputs.gantry_angle
        if angle is not None and not MIN_GANTRY_ANGLE <= angle <= MAX_GANTRY_ANGLE:
            raise InputError(
                f"Gantry angle must be within [{MIN_GANTRY_ANGLE:g}, {MAX_GANTRY_ANGLE:g}], got {angle}"
            )
        cf = couch_factor_for_angle(angle, inputs.couch_factor, self.config.couch_angle_range)

        tpr = self.tables.tpr(depth, field_size)
        if tpr <= 0:
            raise TableDomainError(
                f"TPR could not be computed in the provided table "
                f"(depth {depth:g} cm, field size {field_size:g} cm)"
            )
        scp = self.tables.scp(field_size)
        if scp <= 0:
            raise TableDomainError(
                f"Scp could not be computed in the provided table (field size {field_size:g} cm)"
            )

        k = inputs.calibration_constant
        scd = inputs.source_calibration_distance
        sad = inputs.source_axis_distance
        time = dose / (k * tpr * scp * OFF_AXIS_RATIO * cf * (scd / sad) ** 2) * SECONDS_PER_MINUTE

        result = CalculationResult(
            dose=dose,
            depth=depth,
            field_size=field_size,
            off_axis_distance=inputs.off_axis_distance,
            gantry_angle=angle,
            calibration_constant=k,
            couch_factor=cf,
            source_axis_distance=sad,
            source_calibration_distance=scd,
            tpr=tpr,
            scp=scp,
            oar=OFF_AXIS_RATIO,
            time=time,
            beam_number=inputs.beam_number
        )
        log_block(logger, result.summary())
        return result


def compute_beam_time(
    inputs: CalculationInputs,
    tables: Optional[CorrectionTables] = None,
    config: Optional[SecondCheckConfig] = None
) -> CalculationResult:
    """Compute one beam-on time. See BeamTimeCalculator.compute."""
    return BeamTimeCalculator(tables=tables, config=config).compute(inputs)
