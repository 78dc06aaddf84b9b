"""Decay correction of the source calibration constant."""

from datetime import date, datetime
from typing import TYPE_CHECKING, List, Optional, Union

from .constants import CO60_HALF_LIFE_DAYS
from ..utils.logging import get_logger
from ..utils.validation import InputError

if TYPE_CHECKING:
    from ..core.data_models import SourceTrackingRecord, SourceActivityEntry


logger = get_logger()

# Relative activity rise between consecutive history rows that can only be
# explained by a new source.
EXCHANGE_ACTIVITY_RISE = 0.01


def decay_factor(elapsed_days: float, half_life_days: float = CO60_HALF_LIFE_DAYS) -> float:
    """Fraction of activity remaining after elapsed_days.

    A(t) = A0 * 2^(-(t - t0) / T½). Negative elapsed times give factors
    above one.
    """
    return 2.0 ** (-elapsed_days / half_life_days)


def _as_date(value: Union[date, datetime]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise InputError(f"Expected a date, got {value!r}")


def find_exchange_dates(record: 'SourceTrackingRecord') -> List[date]:
    """Source exchange dates stated in, or implied by, a tracking record.

    Besides explicit exchange dates, any rise in activity between two
    consecutive history entries marks an exchange on the later entry's date.

    Args:
        record: Source tracking record

    Returns:
        Sorted list of exchange dates
    """
    exchanges = set(record.exchange_dates)
    entries = record.reference_entries
    for previous, current in zip(entries, entries[1:]):
        if current.activity > previous.activity * (1 + EXCHANGE_ACTIVITY_RISE):
            logger.debug(
                f"Activity rises from {previous.activity:g} ({previous.date}) to "
                f"{current.activity:g} ({current.date}); treating as source exchange"
            )
            exchanges.add(current.date)
    return sorted(exchanges)


class DecayCalculator:
    """Derives the calibration constant valid on a calculation date.

    The calibration constant scales linearly with activity, so
    K(t) = K_cal * A(t) / A_cal, with A(t) decayed from the most recent
    activity reference on or before t.

    Attributes:
        dose_rate_per_activity: Gy/min per unit activity, used when a record
            has no calibration dose rate
        max_backward_days: Largest allowed lag of the calculation date behind
            the earliest reference date
        half_life_days: Source half-life in days
    """

    def __init__(
        self,
        dose_rate_per_activity: Optional[float] = None,
        max_backward_days: float = 30.0,
        half_life_days: float = CO60_HALF_LIFE_DAYS
    ):
        if dose_rate_per_activity is not None and dose_rate_per_activity <= 0:
            raise InputError(
                f"dose_rate_per_activity must be positive, got {dose_rate_per_activity}"
            )
        if max_backward_days < 0:
            raise InputError(f"max_backward_days must be non-negative, got {max_backward_days}")
        if half_life_days <= 0:
            raise InputError(f"half_life_days must be positive, got {half_life_days}")
        self.dose_rate_per_activity = dose_rate_per_activity
        self.max_backward_days = max_backward_days
        self.half_life_days = half_life_days

    def select_reference(
        self,
        record: 'SourceTrackingRecord',
        target_date: date
    ) -> 'SourceActivityEntry':
        """Pick the activity reference to decay from.

        Uses the latest entry on or before target_date. If the target
        precedes every entry, the earliest entry is used provided the gap is
        within max_backward_days.

        Raises:
            InputError: If the target date is too far before the record
        """
        target_date = _as_date(target_date)
        entries = record.reference_entries
        earlier = [entry for entry in entries if entry.date <= target_date]
        if earlier:
            return earlier[-1]

        reference = entries[0]
        lag = (reference.date - target_date).days
        if lag > self.max_backward_days:
            raise InputError(
                f"Calculation date {target_date} precedes the source reference date "
                f"{reference.date} by {lag} days (limit {self.max_backward_days:g}); "
                f"the source record is stale or corrupted"
            )
        return reference

    def check_exchanges(
        self,
        record: 'SourceTrackingRecord',
        target_date: date,
        reference: 'SourceActivityEntry'
    ) -> None:
        """Refuse to decay across a source exchange.

        Raises:
            InputError: If an exchange lies between the dates the calculation
                connects (calibration, reference, target)
        """
        dates = [_as_date(target_date), reference.date]
        if record.calibration_dose_rate is not None:
            dates.append(record.calibration_date)
        start, end = min(dates), max(dates)
        for exchange in find_exchange_dates(record):
            if start < exchange <= end:
                raise InputError(
                    f"Source exchange on {exchange} lies between {start} and {end}; "
                    f"the source record does not describe the source in use "
                    f"on {target_date}"
                )

    def calibration_constant(
        self,
        record: 'SourceTrackingRecord',
        target_date: Union[date, datetime]
    ) -> float:
        """Calibration constant (Gy/min) valid on target_date.

        Args:
            record: Parsed source tracking record
            target_date: Calculation date

        Returns:
            Decay-corrected calibration constant in Gy/min

        Raises:
            InputError: If the record is stale, spans a source exchange, or
                gives no way to convert activity to dose rate
        """
        target_date = _as_date(target_date)
        reference = self.select_reference(record, target_date)
        self.check_exchanges(record, target_date, reference)

        elapsed = (target_date - reference.date).days
        activity = reference.activity * decay_factor(elapsed, self.half_life_days)

        if record.calibration_dose_rate is not None:
            constant = record.calibration_dose_rate * activity / record.calibration_activity
        elif self.dose_rate_per_activity is not None:
            constant = self.dose_rate_per_activity * activity
        else:
            raise InputError(
                "Source record has no calibration dose rate and no "
                "dose_rate_per_activity conversion is configured"
            )

        logger.info(
            f"Calibration constant on {target_date}: {constant:.4f} Gy/min "
            f"(reference {reference.date}, {elapsed} days, activity {activity:.4g})"
        )
        return constant


def decay_calibration_constant(
    record: 'SourceTrackingRecord',
    target_date: Union[date, datetime],
    dose_rate_per_activity: Optional[float] = None,
    max_backward_days: float = 30.0
) -> float:
    """Calibration constant valid on target_date. See DecayCalculator."""
    calculator = DecayCalculator(
        dose_rate_per_activity=dose_rate_per_activity,
        max_backward_days=max_backward_days
    )
    return calculator.calibration_constant(record, target_date)
