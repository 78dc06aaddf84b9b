"""Co-60 decay correction of the calibration constant."""

from datetime import date, datetime, timedelta

import pytest

from RTSecondCheck.core.data_models import SourceActivityEntry, SourceTrackingRecord
from RTSecondCheck.physics.constants import CO60_HALF_LIFE_DAYS
from RTSecondCheck.physics.decay import (
    DecayCalculator,
    decay_calibration_constant,
    decay_factor,
    find_exchange_dates,
)
from RTSecondCheck.utils.validation import InputError


class TestDecayFactor:

    def test_no_elapsed_time(self):
        assert decay_factor(0.0) == 1.0

    def test_one_half_life(self):
        assert decay_factor(CO60_HALF_LIFE_DAYS) == pytest.approx(0.5)

    def test_two_half_lives(self):
        assert decay_factor(2 * CO60_HALF_LIFE_DAYS) == pytest.approx(0.25)

    def test_backwards_is_above_one(self):
        assert decay_factor(-30.0) > 1.0

    def test_half_life_in_days(self):
        assert CO60_HALF_LIFE_DAYS == pytest.approx(5.2714 * 365.25)


class TestCalibrationConstant:

    def test_on_calibration_date(self, source_record):
        assert decay_calibration_constant(source_record, date(2016, 1, 1)) == pytest.approx(1.85)

    def test_one_half_life_halves_constant(self, source_record):
        calculator = DecayCalculator(half_life_days=100.0)
        k = calculator.calibration_constant(source_record, date(2016, 1, 1) + timedelta(days=100))
        assert k == pytest.approx(1.85 / 2)

    def test_decays_with_time(self, source_record):
        k = decay_calibration_constant(source_record, date(2016, 3, 1))
        assert k == pytest.approx(1.85 * 2 ** (-60 / CO60_HALF_LIFE_DAYS))

    def test_datetime_accepted(self, source_record):
        k = decay_calibration_constant(source_record, datetime(2016, 3, 1, 14, 30))
        assert k == pytest.approx(decay_calibration_constant(source_record, date(2016, 3, 1)))

    def test_latest_history_entry_is_reference(self, source_record_with_history):
        k = decay_calibration_constant(source_record_with_history, date(2016, 3, 1))
        activity = 14838.0 * 2 ** (-29 / CO60_HALF_LIFE_DAYS)
        assert k == pytest.approx(1.85 * activity / 15000.0)

    def test_later_history_entry_ignored(self, source_record_with_history):
        """A history entry after the target date is not used as reference."""
        k = decay_calibration_constant(source_record_with_history, date(2016, 1, 15))
        assert k == pytest.approx(1.85 * 2 ** (-14 / CO60_HALF_LIFE_DAYS))

    def test_dose_rate_per_activity(self):
        record = SourceTrackingRecord(calibration_date=date(2016, 1, 1), calibration_activity=15000.0)
        k = decay_calibration_constant(record, date(2016, 1, 1), dose_rate_per_activity=1.85 / 15000.0)
        assert k == pytest.approx(1.85)

    def test_no_dose_conversion(self):
        record = SourceTrackingRecord(calibration_date=date(2016, 1, 1), calibration_activity=15000.0)
        with pytest.raises(InputError, match="dose_rate_per_activity"):
            decay_calibration_constant(record, date(2016, 2, 1))


class TestStaleRecords:

    def test_slightly_before_reference(self, source_record):
        k = decay_calibration_constant(source_record, date(2015, 12, 20))
        assert k == pytest.approx(1.85 * 2 ** (12 / CO60_HALF_LIFE_DAYS))
        assert k > 1.85

    def test_at_backward_limit(self, source_record):
        target = date(2016, 1, 1) - timedelta(days=30)
        assert decay_calibration_constant(source_record, target) > 1.85

    def test_far_before_reference(self, source_record):
        with pytest.raises(InputError, match="stale"):
            decay_calibration_constant(source_record, date(2015, 10, 1))

    def test_custom_backward_limit(self, source_record):
        with pytest.raises(InputError):
            decay_calibration_constant(source_record, date(2015, 12, 20), max_backward_days=5)

    def test_negative_limit_rejected(self):
        with pytest.raises(InputError):
            DecayCalculator(max_backward_days=-1)


class TestSourceExchange:

    @pytest.fixture
    def exchanged_record(self):
        return SourceTrackingRecord(
            calibration_date=date(2016, 1, 1),
            calibration_activity=15000.0,
            calibration_dose_rate=1.85,
            history=(
                SourceActivityEntry(date(2016, 2, 1), 14838.0),
                SourceActivityEntry(date(2016, 2, 15), 20000.0),
            ),
        )

    def test_activity_rise_is_exchange(self, exchanged_record):
        assert find_exchange_dates(exchanged_record) == [date(2016, 2, 15)]

    def test_decay_only_is_not_exchange(self, source_record_with_history):
        assert find_exchange_dates(source_record_with_history) == []

    def test_explicit_exchange_date(self, source_record):
        record = SourceTrackingRecord(
            calibration_date=source_record.calibration_date,
            calibration_activity=source_record.calibration_activity,
            calibration_dose_rate=source_record.calibration_dose_rate,
            exchange_dates=(date(2016, 2, 10),),
        )
        assert find_exchange_dates(record) == [date(2016, 2, 10)]
        with pytest.raises(InputError, match="exchange"):
            decay_calibration_constant(record, date(2016, 3, 1))

    def test_calibration_across_exchange_refused(self, exchanged_record):
        with pytest.raises(InputError, match="exchange"):
            decay_calibration_constant(exchanged_record, date(2016, 3, 1))

    def test_before_exchange_allowed(self, exchanged_record):
        k = decay_calibration_constant(exchanged_record, date(2016, 2, 10))
        assert k == pytest.approx(1.85 * 14838.0 / 15000.0 * 2 ** (-9 / CO60_HALF_LIFE_DAYS))

    def test_activity_only_record_after_exchange(self):
        """Without a calibration dose rate only the new source's history is used."""
        record = SourceTrackingRecord(
            calibration_date=date(2016, 1, 1),
            calibration_activity=15000.0,
            history=(SourceActivityEntry(date(2016, 2, 15), 20000.0),),
        )
        k = decay_calibration_constant(record, date(2016, 3, 1), dose_rate_per_activity=1e-4)
        assert k == pytest.approx(1e-4 * 20000.0 * 2 ** (-15 / CO60_HALF_LIFE_DAYS))
