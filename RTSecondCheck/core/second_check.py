"""Main second-check orchestration class."""

from datetime import date, datetime
from typing import Optional, Union

from .beam_time_calculator import BeamTimeCalculator
from .cross_check import validate
from .data_models import CalculationInputs, PlanReport, SecondCheckReport, SourceTrackingRecord
from .report_parser import parse_plan_report, parse_source_tracking
from ..physics.correction_tables import CorrectionTables, get_default_tables
from ..physics.decay import DecayCalculator
from ..utils.config import SecondCheckConfig
from ..utils.logging import setup_logger
from ..utils.validation import SecondCheckError, validate_config


class SecondCheck:
    """Independent beam-on time verification of a treatment plan.

    The pipeline is:
    - Plan and source report parsing
    - Decay correction of the calibration constant
    - Beam-on time calculation per beam
    - Cross-check against the planned values

    The correction tables are loaded once when the checker is built and
    passed by reference to every calculation.

    Attributes:
        config: Second-check configuration
        tables: Shared correction tables
        decay_calculator: Decay calculator
        calculator: Beam-on time calculator
        logger: Logger instance
    """

    def __init__(
        self,
        config: Optional[SecondCheckConfig] = None,
        tables: Optional[CorrectionTables] = None
    ):
        """Initialize SecondCheck.

        Args:
            config: Configuration (default: ViewRay defaults)
            tables: Pre-loaded correction tables (default: loaded from the
                configured paths through the process-wide cache)
        """
        config = config if config is not None else SecondCheckConfig()
        if tables is None:
            validate_config(config)
            tables = get_default_tables(config.tpr_table_path, config.scp_table_path)
        self.config = config
        self.tables = tables

        self.logger = setup_logger(log_file=config.log_file)
        self.logger.info("SecondCheck initialized")
        self.logger.info(
            f"Configuration: K={config.calibration_constant:g} Gy/min, "
            f"SAD={config.source_axis_distance:g} cm, SCD={config.source_calibration_distance:g} cm, "
            f"tolerance={config.tolerance * 100:g}%"
        )

        self.decay_calculator = DecayCalculator(
            dose_rate_per_activity=config.dose_rate_per_activity,
            max_backward_days=config.max_backward_days
        )
        self.calculator = BeamTimeCalculator(tables=self.tables, config=config)

    def calibration_constant(
        self,
        source_record: Optional[SourceTrackingRecord],
        calculation_date: Optional[Union[date, datetime]]
    ) -> float:
        """Calibration constant for the calculation date.

        Without a source record the configured constant is used as is.
        """
        if source_record is None:
            self.logger.info(
                f"No source record supplied, using configured K = "
                f"{self.config.calibration_constant:g} Gy/min"
            )
            return self.config.calibration_constant
        if calculation_date is None:
            calculation_date = date.today()
        return self.decay_calculator.calibration_constant(source_record, calculation_date)

    def run(
        self,
        plan: PlanReport,
        source_record: Optional[SourceTrackingRecord] = None,
        calculation_date: Optional[Union[date, datetime]] = None
    ) -> SecondCheckReport:
        """Verify every beam of a plan.

        A failure on one beam is recorded in the report and does not stop
        the remaining beams.

        Args:
            plan: Parsed plan report
            source_record: Parsed source activity report
            calculation_date: Date to decay the calibration to (default: today)

        Returns:
            SecondCheckReport with results, verdicts and per-beam errors

        Raises:
            InputError: If the calibration constant cannot be derived
        """
        self.logger.info("=" * 60)
        self.logger.info(f"Starting second check of plan '{plan.plan_name or ''}'")
        self.logger.info("=" * 60)

        if calculation_date is None:
            calculation_date = date.today()
        elif isinstance(calculation_date, datetime):
            calculation_date = calculation_date.date()
        k = self.calibration_constant(source_record, calculation_date)
        report = SecondCheckReport(
            plan=plan, calculation_date=calculation_date, calibration_constant=k
        )

        for beam in plan.beams:
            try:
                inputs = CalculationInputs.from_beam(beam, calibration_constant=k)
                result = self.calculator.compute(inputs)
                report.results[beam.number] = result
                report.verdicts[beam.number] = validate(
                    result, plan,
                    tolerance=self.config.tolerance,
                    mu_per_second=self.config.mu_per_second
                )
            except SecondCheckError as e:
                self.logger.error(f"Beam {beam.number}: {e}")
                report.errors[beam.number] = str(e)

        passed = sum(v.passed for v in report.verdicts.values())
        self.logger.info(
            f"Second check complete: {passed}/{len(plan.beams)} beam(s) within tolerance, "
            f"{len(report.errors)} failed"
        )
        return report

    def run_texts(
        self,
        plan_text: str,
        source_text: Optional[str] = None,
        calculation_date: Optional[Union[date, datetime]] = None,
        pdf: bool = False
    ) -> SecondCheckReport:
        """Parse report texts and verify the plan.

        Args:
            plan_text: Plan report text
            source_text: Source activity report text
            calculation_date: Date to decay the calibration to
            pdf: True if plan_text was extracted from the PDF report

        Raises:
            ParseError: If either report cannot be parsed
        """
        plan = parse_plan_report(plan_text, source='pdf' if pdf else 'text')
        source_record = parse_source_tracking(source_text) if source_text is not None else None
        return self.run(plan, source_record, calculation_date)
