"""
Basic usage example for the beam-on time second check.

This example demonstrates how to:
1. Compute a single beam-on time
2. Decay-correct the calibration constant from a source activity report
3. Verify a complete plan report and export the verdicts
"""

from datetime import date

from RTSecondCheck import SecondCheck, CalculationInputs, compute_beam_time, parse_source_tracking
from RTSecondCheck.utils import SecondCheckConfig, SecondCheckError, setup_logger
from RTSecondCheck.utils.path_utils import validate_output_path


PLAN_REPORT = """Treatment Plan Report
Patient Name: Phantom
Patient ID: QA-001
Plan Name: Box
Plan Date: 2016-03-01
Prescription Dose: 200 cGy

Beam: 1 - AP    Angle: 0 deg
Field Size: 4 x 10 cm    Beam Dose: 2 Gy
Beam On Time: 1:18
Point: Iso    SSD: 100 cm
Depth: 5 cm    Effective Depth: 5 cm

Beam: 2 - PA    Angle: 180 deg
Field Size: 4 x 10 cm    Beam Dose: 2 Gy
Beam On Time: 94.6 sec
Point: Iso    SSD: 100 cm
Depth: 5 cm    Effective Depth: 5 cm
"""

SOURCE_REPORT = """Source Activity Report
Isotope: Co-60
Calibration Date: 2016-01-01
Calibration Activity: 15000 Ci
Calibration Dose Rate: 1.85 Gy/min
"""


def example_single_beam():
    """Compute one beam-on time from explicit inputs."""
    print("\n=== Example 1: Single beam ===\n")
    
    inputs = CalculationInputs(
        dose=2.0,                     # Gy
        depth=5.0,                    # cm
        rectangular_dims=(4.0, 10.0), # cm
        gantry_angle=180.0            # through the couch
    )
    result = compute_beam_time(inputs)
    print(result.summary())

    print("\nRecord fields:")
    for key, value in result.to_dict().items():
        print(f"  {key}: {value}")


def example_decay():
    """Derive the calibration constant for a treatment date."""
    print("\n=== Example 2: Source decay ===\n")
    
    record = parse_source_tracking(SOURCE_REPORT)
    checker = SecondCheck()
    for when in (date(2016, 1, 1), date(2016, 7, 1), date(2017, 1, 1)):
        k = checker.calibration_constant(record, when)
        print(f"{when}: K = {k:.4f} Gy/min")


def example_plan(output_file: str = './second_check_output/verdicts.csv'):
    """Verify a full plan and write the verdict table."""
    print("\n=== Example 3: Plan verification ===\n")
    
    config = SecondCheckConfig(tolerance=0.03)
    checker = SecondCheck(config)
    
    try:
        report = checker.run_texts(PLAN_REPORT, SOURCE_REPORT, calculation_date=date(2016, 3, 1))
    except SecondCheckError as e:
        print(f"Second check failed: {e}")
        return
    
    df = report.to_frame()
    print(df[['Beam', 'Status', 'Computed', 'Planned', 'Difference (%)']].to_string(index=False))
    print(f"\nAll beams within tolerance: {report.all_within_tolerance}")
    
    output_path = validate_output_path(output_file)
    df.to_csv(output_path, index=False)
    print(f"Verdicts written to {output_path}")


if __name__ == '__main__':
    setup_logger(level=20)  # INFO level
    
    example_single_beam()
    example_decay()
    example_plan()
