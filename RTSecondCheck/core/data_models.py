"""Core data models for plan reports, source records, and calculation results."""

from dataclasses import dataclass, field, asdict, replace
from datetime import date
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..utils.validation import InputError


@dataclass(frozen=True)
class Point:
    """Dose calculation point of a beam.

    Attributes:
        name: Point label as printed in the plan report
        ssd: Source-to-Surface Distance in cm
        depth: Geometric depth in cm
        effective_depth: Radiological (water equivalent) depth in cm
        off_axis_distance: Distance from the central axis in cm
    """
    name: str
    ssd: float
    depth: float
    effective_depth: float
    off_axis_distance: Optional[float] = None

    @property
    def source_axis_distance(self) -> float:
        """Source-to-axis distance at this point (SSD + depth) in cm."""
        return self.ssd + self.depth


@dataclass(frozen=True)
class Beam:
    """Treatment beam parsed from a plan report.

    Attributes:
        number: Beam number within the plan
        angle: Gantry angle in degrees [0, 360]
        dose: Beam contribution to the fraction dose in Gy
        points: Calculation points, in report order
        name: Optional beam label
        field_size: Rectangular field edge lengths (a, b) in cm
        equivalent_square: Equivalent square field size as stated in the report
        planned_time: Planned beam-on time in seconds
        planned_mu: Planned monitor units
    """
    number: int
    angle: float
    dose: float
    points: Tuple[Point, ...]
    name: Optional[str] = None
    field_size: Optional[Tuple[float, float]] = None
    equivalent_square: Optional[float] = None
    planned_time: Optional[float] = None
    planned_mu: Optional[float] = None

    @property
    def equivalent_square_cm(self) -> float:
        """Equivalent square field size in cm.

        Derived from the rectangular dimensions when available, since the
        stated value is rounded in printed reports.

        Raises:
            InputError: If the beam has neither a field size nor an
                equivalent square
        """
        if self.field_size is not None:
            from .beam_time_calculator import equivalent_square
            return equivalent_square(*self.field_size)
        if self.equivalent_square is None:
            raise InputError(f"Beam {self.number} has no field size")
        return self.equivalent_square

    def get_point(self, index: int = 0) -> Point:
        """Get a calculation point by index.

        Raises:
            InputError: If the beam has no such point
        """
        if not 0 <= index < len(self.points):
            raise InputError(
                f"Beam {self.number} has {len(self.points)} point(s), "
                f"point index {index} requested"
            )
        return self.points[index]


@dataclass(frozen=True)
class PlanReport:
    """Structured content of a treatment plan report.

    Attributes:
        beams: Beams in report order
        patient_name: Patient name
        patient_id: Patient identifier
        plan_name: Plan name
        plan_date: Plan approval/print date
        prescription_dose: Dose per fraction in Gy
        fractions: Number of fractions
    """
    beams: Tuple[Beam, ...]
    patient_name: Optional[str] = None
    patient_id: Optional[str] = None
    plan_name: Optional[str] = None
    plan_date: Optional[date] = None
    prescription_dose: Optional[float] = None
    fractions: Optional[int] = None

    @property
    def points(self) -> List[Point]:
        """All calculation points of all beams."""
        return [point for beam in self.beams for point in beam.points]

    def get_beam(self, number: int) -> Beam:
        """Get a beam by its number.

        Raises:
            KeyError: If the plan has no beam with that number
        """
        for beam in self.beams:
            if beam.number == number:
                return beam
        raise KeyError(f"Plan has no beam {number}")


@dataclass(frozen=True)
class SourceActivityEntry:
    """One (date, activity) row of a source activity history."""
    date: date
    activity: float


@dataclass(frozen=True)
class SourceTrackingRecord:
    """Source calibration and activity history from a source activity report.

    Attributes:
        calibration_date: Reference date of the calibration
        calibration_activity: Source activity on the calibration date
        calibration_dose_rate: Dose rate K at calibration geometry on the
            calibration date, in Gy/min
        isotope: Source isotope label
        serial_number: Source serial number
        activity_unit: Unit label of the activity values (e.g. 'Ci')
        history: Measured/decayed (date, activity) entries sorted by date
        exchange_dates: Dates on which the source was replaced
    """
    calibration_date: date
    calibration_activity: float
    calibration_dose_rate: Optional[float] = None
    isotope: str = 'Co-60'
    serial_number: Optional[str] = None
    activity_unit: Optional[str] = None
    history: Tuple[SourceActivityEntry, ...] = ()
    exchange_dates: Tuple[date, ...] = ()

    @property
    def reference_entries(self) -> List[SourceActivityEntry]:
        """Calibration point plus history, sorted by date, without duplicates."""
        entries = {entry.date: entry for entry in self.history}
        entries.setdefault(
            self.calibration_date,
            SourceActivityEntry(self.calibration_date, self.calibration_activity)
        )
        return [entries[d] for d in sorted(entries)]


@dataclass(frozen=True)
class CalculationInputs:
    """Inputs for a single beam-on time calculation.

    Exactly one of field_size and rectangular_dims should be given. Optional
    factors left as None are taken from the calculator configuration.

    Attributes:
        dose: Prescribed dose in Gy
        depth: Prescription (effective) depth in cm
        field_size: Equivalent square field size in cm
        rectangular_dims: Rectangular field edge lengths (a, b) in cm
        off_axis_distance: Off-axis distance in cm (reported only, see OAR)
        gantry_angle: Gantry angle in degrees; None means no couch factor
        calibration_constant: Calibration dose rate K in Gy/min
        couch_factor: Couch attenuation factor
        source_axis_distance: Source-Axis Distance in cm
        source_calibration_distance: Source-Calibration Distance in cm
        beam_number: Beam the inputs were derived from
    """
    dose: float
    depth: float
    field_size: Optional[float] = None
    rectangular_dims: Optional[Tuple[float, float]] = None
    off_axis_distance: float = 0.0
    gantry_angle: Optional[float] = None
    calibration_constant: Optional[float] = None
    couch_factor: Optional[float] = None
    source_axis_distance: Optional[float] = None
    source_calibration_distance: Optional[float] = None
    beam_number: Optional[int] = None

    @classmethod
    def from_beam(
        cls,
        beam: Beam,
        dose: Optional[float] = None,
        calc_point: int = 0,
        iso_point: int = 0,
        **overrides
    ) -> 'CalculationInputs':
        """Build inputs from a parsed beam.

        Args:
            beam: Parsed beam
            dose: Dose in Gy (default: the beam's dose contribution)
            calc_point: Index of the point the dose is calculated to
            iso_point: Index of the point the off-axis distance is taken from
            **overrides: Any other CalculationInputs field

        Returns:
            CalculationInputs for the beam
        """
        point = beam.get_point(calc_point)
        oad = beam.get_point(iso_point).off_axis_distance
        values = dict(
            dose=beam.dose if dose is None else dose,
            depth=point.effective_depth,
            field_size=beam.equivalent_square_cm,
            off_axis_distance=0.0 if oad is None else oad,
            gantry_angle=beam.angle,
            source_axis_distance=point.source_axis_distance,
            beam_number=beam.number,
        )
        values.update(overrides)
        return cls(**values)

    def with_defaults(self, **defaults) -> 'CalculationInputs':
        """Return a copy with None-valued fields filled from defaults."""
        missing = {
            name: value for name, value in defaults.items()
            if getattr(self, name) is None
        }
        return replace(self, **missing)


@dataclass(frozen=True)
class CalculationResult:
    """Resolved inputs and outcome of one beam-on time calculation.

    Attributes:
        dose: Prescribed dose in Gy
        depth: Prescription depth in cm
        field_size: Equivalent square field size in cm
        off_axis_distance: Off-axis distance in cm
        gantry_angle: Gantry angle in degrees, if given
        calibration_constant: Calibration dose rate K in Gy/min
        couch_factor: Couch factor applied
        source_axis_distance: Source-Axis Distance in cm
        source_calibration_distance: Source-Calibration Distance in cm
        tpr: Interpolated Tissue-Phantom Ratio
        scp: Interpolated output factor
        oar: Off-axis ratio (fixed placeholder)
        time: Beam-on time in seconds
        beam_number: Beam the calculation belongs to
    """
    dose: float
    depth: float
    field_size: float
    off_axis_distance: float
    gantry_angle: Optional[float]
    calibration_constant: float
    couch_factor: float
    source_axis_distance: float
    source_calibration_distance: float
    tpr: float
    scp: float
    oar: float
    time: float
    beam_number: Optional[int] = None

    def to_dict(self) -> Dict:
        return asdict(self)

    def summary(self) -> str:
        """Multi-line description of the calculation for logs and records."""
        angle = 'n/a' if self.gantry_angle is None else f"{self.gantry_angle:g} deg"
        return (
            "Beam on time calculation:\n"
            "Energy = Co-60\n"
            f"K = {self.calibration_constant:g} Gy/min\n"
            f"SCD = {self.source_calibration_distance:g} cm\n"
            f"SAD = {self.source_axis_distance:g} cm\n"
            f"Dose = {self.dose:g} Gy\n"
            f"Depth = {self.depth:g} cm\n"
            f"Field Size (r) = {self.field_size:g} cm x {self.field_size:g} cm (equiv)\n"
            f"OAD = {self.off_axis_distance:g} cm\n"
            f"Angle = {angle}\n"
            f"TPR = {self.tpr:g}\n"
            f"Scp = {self.scp:g}\n"
            f"OAR = {self.oar:g}\n"
            f"CF = {self.couch_factor:g}\n"
            f"Time = {self.time:0.3f} sec"
        )


class VerdictStatus(Enum):
    """Agreement classes of a cross-check."""
    WITHIN_TOLERANCE = 'within_tolerance'
    OUT_OF_TOLERANCE = 'out_of_tolerance'
    NOT_COMPARABLE = 'not_comparable'


@dataclass(frozen=True)
class Verdict:
    """Outcome of comparing a computed beam-on time with the plan.

    Attributes:
        beam_number: Beam the verdict belongs to
        status: Agreement class
        tolerance: Relative tolerance used
        quantity: Compared quantity ('time' or 'mu'), None if not comparable
        computed: Computed value of the compared quantity
        planned: Planned value of the compared quantity
        relative_difference: (computed - planned) / planned
        message: Human-readable explanation
    """
    beam_number: Optional[int]
    status: VerdictStatus
    tolerance: float
    quantity: Optional[str] = None
    computed: Optional[float] = None
    planned: Optional[float] = None
    relative_difference: Optional[float] = None
    message: str = ''

    @property
    def passed(self) -> bool:
        return self.status is VerdictStatus.WITHIN_TOLERANCE


@dataclass
class SecondCheckReport:
    """Per-beam results of a full plan verification.

    Attributes:
        plan: Verified plan
        calculation_date: Date the calibration constant was decayed to
        calibration_constant: Decay-corrected calibration constant in Gy/min
        results: Calculation results by beam number
        verdicts: Verdicts by beam number
        errors: Error messages by beam number for beams that failed
    """
    plan: PlanReport
    calculation_date: Optional[date]
    calibration_constant: float
    results: Dict[int, CalculationResult] = field(default_factory=dict)
    verdicts: Dict[int, Verdict] = field(default_factory=dict)
    errors: Dict[int, str] = field(default_factory=dict)

    @property
    def all_within_tolerance(self) -> bool:
        """True only if every beam was computed and agrees with the plan."""
        if self.errors or len(self.verdicts) != len(self.plan.beams):
            return False
        return all(v.passed for v in self.verdicts.values())

    def to_frame(self):
        """Tabulate verdicts and results as a pandas DataFrame."""
        from .cross_check import verdicts_to_frame
        return verdicts_to_frame(
            list(self.verdicts.values()), results=self.results, errors=self.errors
        )
