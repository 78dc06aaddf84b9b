"""Cross-check of computed beam-on times against planned values."""

import math

import pandas as pd
import pytest

from RTSecondCheck.core.cross_check import compare_values, validate, verdicts_to_frame
from RTSecondCheck.core.data_models import Beam, CalculationResult, PlanReport, Point, VerdictStatus
from RTSecondCheck.utils.validation import InputError


POINT = Point(name='Iso', ssd=100.0, depth=5.0, effective_depth=5.0)


def _result(time: float, beam_number=1) -> CalculationResult:
    return CalculationResult(
        dose=2.0, depth=5.0, field_size=10.0, off_axis_distance=0.0, gantry_angle=0.0,
        calibration_constant=1.85, couch_factor=1.0, source_axis_distance=105.0,
        source_calibration_distance=105.0, tpr=0.8, scp=1.0, oar=1.0, time=time,
        beam_number=beam_number,
    )


def _plan(*beams: Beam) -> PlanReport:
    return PlanReport(beams=beams)


def _beam(number=1, planned_time=None, planned_mu=None) -> Beam:
    return Beam(number=number, angle=0.0, dose=2.0, points=(POINT,), equivalent_square=10.0,
                planned_time=planned_time, planned_mu=planned_mu)


class TestCompareValues:

    def test_exact_agreement(self):
        status, diff = compare_values(100.0, 100.0)
        assert status is VerdictStatus.WITHIN_TOLERANCE
        assert diff == 0.0

    @pytest.mark.parametrize("computed", [97.0, 103.0])
    def test_boundary_is_within(self, computed):
        status, diff = compare_values(computed, 100.0, tolerance=0.03)
        assert status is VerdictStatus.WITHIN_TOLERANCE
        assert abs(diff) == pytest.approx(0.03)

    @pytest.mark.parametrize("computed", [96.9, 103.1])
    def test_beyond_boundary(self, computed):
        status, _ = compare_values(computed, 100.0, tolerance=0.03)
        assert status is VerdictStatus.OUT_OF_TOLERANCE

    def test_sign_of_difference(self):
        _, diff = compare_values(110.0, 100.0)
        assert diff == pytest.approx(0.1)

    @pytest.mark.parametrize("planned", [None, 0.0, -5.0, math.nan, math.inf])
    def test_not_comparable(self, planned):
        status, diff = compare_values(100.0, planned)
        assert status is VerdictStatus.NOT_COMPARABLE
        assert diff is None


class TestValidate:

    def test_within_tolerance(self):
        verdict = validate(_result(95.0), _plan(_beam(planned_time=94.6)))
        assert verdict.status is VerdictStatus.WITHIN_TOLERANCE
        assert verdict.passed
        assert verdict.quantity == 'time'
        assert verdict.relative_difference == pytest.approx((95.0 - 94.6) / 94.6)

    def test_out_of_tolerance(self):
        verdict = validate(_result(110.0), _plan(_beam(planned_time=94.6)))
        assert verdict.status is VerdictStatus.OUT_OF_TOLERANCE
        assert not verdict.passed
        assert verdict.computed == 110.0
        assert verdict.planned == 94.6

    def test_custom_tolerance(self):
        verdict = validate(_result(110.0), _plan(_beam(planned_time=100.0)), tolerance=0.15)
        assert verdict.passed

    def test_no_planned_values(self):
        verdict = validate(_result(95.0), _plan(_beam()))
        assert verdict.status is VerdictStatus.NOT_COMPARABLE
        assert verdict.computed == 95.0
        assert verdict.relative_difference is None

    def test_mu_not_compared_without_conversion(self):
        verdict = validate(_result(95.0), _plan(_beam(planned_mu=190.0)))
        assert verdict.status is VerdictStatus.NOT_COMPARABLE

    def test_mu_compared_with_conversion(self):
        verdict = validate(_result(95.0), _plan(_beam(planned_mu=190.0)), mu_per_second=2.0)
        assert verdict.quantity == 'mu'
        assert verdict.computed == pytest.approx(190.0)
        assert verdict.passed

    def test_time_preferred_over_mu(self):
        verdict = validate(_result(95.0), _plan(_beam(planned_time=95.0, planned_mu=10.0)), mu_per_second=2.0)
        assert verdict.quantity == 'time'
        assert verdict.passed

    def test_picks_beam_by_number(self):
        plan = _plan(_beam(1, planned_time=50.0), _beam(2, planned_time=95.0))
        assert validate(_result(95.0, beam_number=2), plan).passed
        assert not validate(_result(95.0, beam_number=1), plan).passed

    def test_unknown_beam(self):
        with pytest.raises(InputError):
            validate(_result(95.0, beam_number=7), _plan(_beam(planned_time=95.0)))

    def test_unnumbered_result_single_beam(self):
        assert validate(_result(95.0, beam_number=None), _plan(_beam(planned_time=95.0))).passed

    def test_unnumbered_result_several_beams(self):
        with pytest.raises(InputError):
            validate(_result(95.0, beam_number=None), _plan(_beam(1), _beam(2)))

    @pytest.mark.parametrize("tolerance", [0.0, 1.0, -0.03])
    def test_invalid_tolerance(self, tolerance):
        with pytest.raises(InputError):
            validate(_result(95.0), _plan(_beam(planned_time=95.0)), tolerance=tolerance)


class TestVerdictFrame:

    def test_columns_and_order(self):
        plan = _plan(_beam(1, planned_time=95.0), _beam(2, planned_time=50.0))
        results = {2: _result(95.0, 2), 1: _result(95.0, 1)}
        verdicts = [validate(results[2], plan), validate(results[1], plan)]
        df = verdicts_to_frame(verdicts, results=results)
        assert isinstance(df, pd.DataFrame)
        assert list(df['Beam']) == [1, 2]
        assert list(df['Status']) == ['within_tolerance', 'out_of_tolerance']
        assert df.loc[1, 'Difference (%)'] == pytest.approx(90.0)
        assert df.loc[0, 'Tolerance (%)'] == pytest.approx(3.0)
        assert df.loc[0, 'Time (s)'] == pytest.approx(95.0)

    def test_errors_listed(self):
        plan = _plan(_beam(1, planned_time=95.0))
        verdict = validate(_result(95.0), plan)
        df = verdicts_to_frame([verdict], errors={2: 'TPR could not be computed'})
        assert list(df['Status']) == ['within_tolerance', 'error']
        assert df.loc[1, 'Message'] == 'TPR could not be computed'
        assert pd.isna(df.loc[0, 'TPR'])

    def test_empty(self):
        assert verdicts_to_frame([]).empty
