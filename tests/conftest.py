"""Shared fixtures: bundled tables, small synthetic tables and report texts."""

from datetime import date

import numpy as np
import pytest

from RTSecondCheck.core.data_models import SourceActivityEntry, SourceTrackingRecord
from RTSecondCheck.physics.correction_tables import CorrectionTables, get_default_tables


PLAN_TEXT = """Treatment Plan Report
Patient Name: Doe, Jane
Patient ID: 123456
Plan Name: Pelvis
Plan Date: 2016-03-01
Prescription Dose: 200 cGy
Number of Fractions: 25

Beam: 1 - AP
Angle: 0 deg
Field Size: 4 x 10 cm
Beam Dose: 2 Gy
Beam On Time: 78.2 sec
Point: Iso
SSD: 100 cm
Depth: 5 cm
Effective Depth: 5 cm

Beam: 2 - PA
Angle: 180 deg
Field Size: 4 x 10 cm
Beam Dose: 2 Gy
Beam On Time: 94.6 sec
Point: Iso
SSD: 100 cm
Depth: 5 cm
Effective Depth: 5 cm
"""

# Same content as PLAN_TEXT laid out the way PDF text extraction returns it
PLAN_PDF_TEXT = (
    "Treatment Plan Report\n"
    "Patient Name: Doe, Jane    Patient ID: 123456\n"
    "Plan Name: Pelvis    Plan Date: 2016-03-01\n"
    "Prescription Dose: 200 cGy    Number of Fractions: 25\n"
    "\n"
    "Beam: 1 - AP    Angle: 0 deg\n"
    "Field Size: 4 x 10 cm    Beam Dose: 2 Gy\n"
    "Beam On\n"
    "Time: 78.2 sec\n"
    "Point: Iso    SSD: 100 cm\n"
    "Depth: 5 cm\n"
    "Effective Depth:\n"
    "5 cm\n"
    "Page 1 of 2\n"
    "\f"
    "Treatment Plan Report\n"
    "Beam: 2 - PA    Angle: 180 deg\n"
    "Field Size: 4 x 10 cm    Beam Dose: 2 Gy\n"
    "Beam On Time: 94.6 sec\n"
    "Point: Iso    SSD: 100 cm    Depth: 5 cm\n"
    "Effective\n"
    "Depth: 5 cm\n"
    "Page 2 of 2\n"
)

SOURCE_TEXT = """Source Activity Report
Isotope: Co-60
Serial Number: S-1234
Calibration Date: 2016-01-01
Calibration Activity: 15000 Ci
Calibration Dose Rate: 185 cGy/min

Date\tActivity
2016-02-01\t14838 Ci
"""


@pytest.fixture(scope="session")
def viewray_tables() -> CorrectionTables:
    return get_default_tables()


@pytest.fixture
def small_tables() -> CorrectionTables:
    """3 x 3 TPR grid and 3-point Scp curve with easy numbers."""
    tpr = np.array([
        [0.0, 2.0, 4.0, 6.0],
        [1.0, 1.00, 1.00, 1.00],
        [5.0, 0.80, 0.84, 0.88],
        [10.0, 0.60, 0.66, 0.72],
    ])
    scp = np.array([
        [2.0, 4.0, 6.0],
        [0.90, 0.95, 1.00],
    ])
    return CorrectionTables.from_arrays(tpr, scp)


@pytest.fixture
def source_record() -> SourceTrackingRecord:
    return SourceTrackingRecord(
        calibration_date=date(2016, 1, 1),
        calibration_activity=15000.0,
        calibration_dose_rate=1.85,
        activity_unit='Ci',
    )


@pytest.fixture
def source_record_with_history() -> SourceTrackingRecord:
    return SourceTrackingRecord(
        calibration_date=date(2016, 1, 1),
        calibration_activity=15000.0,
        calibration_dose_rate=1.85,
        activity_unit='Ci',
        history=(SourceActivityEntry(date(2016, 2, 1), 14838.0),),
    )


@pytest.fixture
def plan_text() -> str:
    return PLAN_TEXT


@pytest.fixture
def plan_pdf_text() -> str:
    return PLAN_PDF_TEXT


@pytest.fixture
def source_text() -> str:
    return SOURCE_TEXT
