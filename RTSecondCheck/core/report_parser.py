"""Parsers for treatment plan reports and source activity reports.

Plan reports arrive either as text extracted from the printed PDF or as a
plain-text export. Both are reduced to a list of ``Label: value`` lines by a
small input adapter and then interpreted by the same ``PlanReportGrammar``,
so the two paths always yield the same ``PlanReport`` for the same content.

Parsing is tolerant of layout (spacing, case, several fields on one line,
page breaks, wrapped labels) but strict about content: a missing or
unreadable dose, depth, field size, angle or SSD is a ``ParseError``.
"""

import re
from datetime import date, datetime
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

from .data_models import Beam, PlanReport, Point, SourceActivityEntry, SourceTrackingRecord
from ..physics.constants import CGY_TO_GY, MM_TO_CM, MIN_GANTRY_ANGLE, MAX_GANTRY_ANGLE
from ..utils.logging import get_logger
from ..utils.path_utils import validate_path, PathValidationError
from ..utils.validation import ParseError, InputError


logger = get_logger()

_NUMBER = r'[+-]?(?:\d+(?:,\d+)*(?:\.\d*)?|[.,]\d+)(?:[eE][+-]?\d+)?'
# "1,234.5" and "1,234,567" group thousands; "15,000" could be 15 or 15000
_GROUPED_RE = re.compile(r'^[+-]?\d{1,3}(?:,\d{3})+(?:\.\d*)?(?:[eE][+-]?\d+)?$')
_AMBIGUOUS_COMMA_RE = re.compile(r'^[+-]?\d{1,3},\d{3}$')
_QUANTITY_RE = re.compile(r'^\s*(' + _NUMBER + r')\s*(.*)$')
_FIELD_SIZE_RE = re.compile(
    r'^\s*(' + _NUMBER + r')\s*(?:cm|mm)?\s*[xX×*]\s*(' + _NUMBER + r')\s*(cm|mm)?',
    re.I
)
_CLOCK_RE = re.compile(r'^\s*(\d+):(\d{2})(?::(\d{2}))?\s*$')
_BEAM_ID_RE = re.compile(r'^\s*(\d+)\s*(?:[-:.)]\s*)?(.*)$')

# Several "Label: value" pairs may share a line when separated by 2+ spaces
_LABEL = r'[A-Za-z][A-Za-z #()/.\-]'
_PAIR_SPLIT_RE = re.compile(r'\s{2,}(?=' + _LABEL + r'{0,40}:)')
_PAIR_RE = re.compile(r'^\s*(' + _LABEL + r'*?)\s*:\s*(.*?)\s*$')
_LABEL_ONLY_RE = re.compile(r'^' + _LABEL + r'*:?$')

_PAGE_FOOTER_RE = re.compile(r'^\s*page\s+\d+(?:\s*(?:of|/)\s*\d+)?\s*$', re.I)
_TRAILING_TIME_RE = re.compile(r'[\sT]+\d{1,2}:\d{2}(?::\d{2})?(?:\.\d+)?\s*(?:[AP]M)?\s*$', re.I)

DATE_FORMATS = (
    '%Y-%m-%d', '%Y/%m/%d', '%m/%d/%Y', '%m/%d/%y', '%d-%b-%Y', '%d %b %Y',
    '%b %d %Y', '%b %d, %Y', '%B %d %Y', '%B %d, %Y', '%Y%m%d',
)

DOSE_UNITS = {'gy': 1.0, 'cgy': CGY_TO_GY}
LENGTH_UNITS = {'cm': 1.0, 'mm': MM_TO_CM}
ANGLE_UNITS = {'deg': 1.0, 'degree': 1.0, 'degrees': 1.0, '°': 1.0}
TIME_UNITS = {
    's': 1.0, 'sec': 1.0, 'secs': 1.0, 'second': 1.0, 'seconds': 1.0,
    'min': 60.0, 'mins': 60.0, 'minute': 60.0, 'minutes': 60.0,
}
MU_UNITS = {'mu': 1.0}
DOSE_RATE_UNITS = {'gy/min': 1.0, 'cgy/min': CGY_TO_GY}
# Activity conversions to Ci
ACTIVITY_UNITS = {
    'ci': 1.0, 'mci': 1e-3, 'tbq': 1 / 0.037, 'gbq': 1 / 37.0, 'mbq': 1 / 37000.0, 'bq': 1 / 3.7e10,
}


def normalize_label(label: str) -> str:
    """Canonical form of a report label: lower case, no units, single spaces."""
    label = re.sub(r'\([^)]*\)', ' ', label)
    label = re.sub(r'[-_/.#]', ' ', label)
    return ' '.join(label.lower().split())


def split_pairs(line: str) -> List[Tuple[str, str]]:
    """Split a line into (label, value) pairs; lines without labels give []."""
    pairs = []
    for segment in _PAIR_SPLIT_RE.split(line):
        match = _PAIR_RE.match(segment)
        if match:
            pairs.append((match.group(1), match.group(2)))
    return pairs


def parse_date(value: str, field: str = 'date') -> date:
    """Parse a report date in any of DATE_FORMATS, ignoring a trailing time.

    Raises:
        ParseError: If the value is not a recognised date
    """
    text = ' '.join(value.split())
    for candidate in (text, _TRAILING_TIME_RE.sub('', text)):
        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(candidate, fmt).date()
            except ValueError:
                continue
    raise ParseError(f"Could not read {field} from {value!r}", field)


def parse_number(text: str, field: str, context: str = 'Report') -> float:
    """Convert a printed number to float.

    A comma groups thousands when the number also has a decimal point or
    several comma groups ('1,234.5', '1,234,567') and is a decimal comma
    otherwise ('1,5'). A single comma followed by exactly three digits
    ('15,000') reads either way and is rejected.

    Raises:
        ParseError: If the number is ambiguous or malformed
    """
    if ',' in text:
        if '.' in text or text.count(',') > 1:
            if not _GROUPED_RE.match(text):
                raise ParseError(f"{context}: malformed number {text!r} for {field}", field)
            text = text.replace(',', '')
        elif _AMBIGUOUS_COMMA_RE.match(text):
            raise ParseError(
                f"{context}: ambiguous number {text!r} for {field}, "
                f"print it without a thousands separator", field
            )
        else:
            text = text.replace(',', '.')
    return float(text)


def parse_quantity(
    value: str,
    field: str,
    units: Dict[str, float],
    default_unit: str,
    context: str = 'Report'
) -> float:
    """Read a number with an optional unit and convert it to the base unit.

    Args:
        value: Raw value text, e.g. '200 cGy'
        field: Field name for error messages
        units: Unit label (lower case) to conversion factor
        default_unit: Unit assumed when none is printed
        context: Location prefix for error messages (e.g. 'Beam 2')

    Raises:
        ParseError: If no number is found or the unit is unknown
    """
    match = _QUANTITY_RE.match(value or '')
    if not match:
        raise ParseError(f"{context}: could not read {field} from {value!r}", field)
    number = parse_number(match.group(1), field, context)
    rest = match.group(2).strip()
    unit = rest.split()[0].lower().rstrip('.,;') if rest else default_unit
    if unit not in units:
        raise ParseError(f"{context}: unknown unit {unit!r} for {field} in {value!r}", field)
    return number * units[unit]


def parse_time(value: str, field: str, context: str) -> float:
    """Read a beam-on time in seconds ('45.2 sec', '1.5 min' or 'm:ss')."""
    clock = _CLOCK_RE.match(value)
    if clock:
        minutes, seconds, extra = clock.groups()
        if extra is not None:
            return int(minutes) * 3600 + int(seconds) * 60 + int(extra)
        return int(minutes) * 60 + int(seconds)
    return parse_quantity(value, field, TIME_UNITS, 's', context)


def parse_field_size(value: str, context: str) -> Tuple[float, float]:
    """Read rectangular field dimensions 'a x b' in cm."""
    match = _FIELD_SIZE_RE.match(value or '')
    if not match:
        raise ParseError(f"{context}: could not read field size from {value!r}", 'field_size')
    scale = LENGTH_UNITS[(match.group(3) or 'cm').lower()]
    return (
        parse_number(match.group(1), 'field_size', context) * scale,
        parse_number(match.group(2), 'field_size', context) * scale,
    )


class PlanReportGrammar:
    """Shared interpretation of plan report ``Label: value`` lines.

    The report is read as a sequence of scopes: plan metadata, then one
    scope per beam (opened by a ``Beam`` label) containing one scope per
    calculation point (opened by a ``Point`` label). Labels are looked up in
    the innermost scope first.
    """

    PLAN_LABELS = {
        'patient name': 'patient_name',
        'patient id': 'patient_id',
        'mrn': 'patient_id',
        'medical record number': 'patient_id',
        'plan name': 'plan_name',
        'plan date': 'plan_date',
        'approval date': 'plan_date',
        'date': 'plan_date',
        'prescription dose': 'prescription_dose',
        'prescribed dose': 'prescription_dose',
        'dose per fraction': 'prescription_dose',
        'fraction dose': 'prescription_dose',
        'dose': 'prescription_dose',
        'number of fractions': 'fractions',
        'fractions': 'fractions',
    }

    BEAM_LABELS = {
        'beam': 'beam',
        'beam number': 'beam',
        'beam name': 'name',
        'field name': 'name',
        'angle': 'angle',
        'gantry angle': 'angle',
        'beam angle': 'angle',
        'field size': 'field_size',
        'field dimensions': 'field_size',
        'equivalent square': 'equivalent_square',
        'equiv square': 'equivalent_square',
        'equivalent square field size': 'equivalent_square',
        'beam dose': 'dose',
        'dose contribution': 'dose',
        'dose': 'dose',
        'beam on time': 'planned_time',
        'planned time': 'planned_time',
        'treatment time': 'planned_time',
        'monitor units': 'planned_mu',
        'mu': 'planned_mu',
    }

    POINT_LABELS = {
        'point': 'point',
        'point name': 'point',
        'calculation point': 'point',
        'ssd': 'ssd',
        'source to surface distance': 'ssd',
        'depth': 'depth',
        'geometric depth': 'depth',
        'effective depth': 'effective_depth',
        'eff depth': 'effective_depth',
        'radiological depth': 'effective_depth',
        'off axis distance': 'off_axis_distance',
        'oad': 'off_axis_distance',
    }

    _SEARCH_ORDER = {
        'plan': ('plan', 'beam', 'point'),
        'beam': ('beam', 'point', 'plan'),
        'point': ('point', 'beam', 'plan'),
    }

    def _tables(self) -> Dict[str, Dict[str, str]]:
        return {'plan': self.PLAN_LABELS, 'beam': self.BEAM_LABELS, 'point': self.POINT_LABELS}

    def is_known_label(self, label: str) -> bool:
        """True if the label means something in any scope."""
        key = normalize_label(label)
        return any(key in table for table in self._tables().values())

    def lookup(self, label: str, scope: str) -> Optional[Tuple[str, str]]:
        """Resolve a label to (scope, field) from the given scope outward."""
        key = normalize_label(label)
        tables = self._tables()
        for level in self._SEARCH_ORDER[scope]:
            if key in tables[level]:
                return level, tables[level][key]
        return None

    def parse(self, lines: Iterable[str]) -> PlanReport:
        """Interpret normalised report lines.

        Raises:
            ParseError: If a required field is missing or malformed
        """
        plan: Dict[str, str] = {}
        beams: List[Dict] = []
        scope = 'plan'

        for line in lines:
            for label, value in split_pairs(line):
                resolved = self.lookup(label, scope)
                if resolved is None:
                    logger.debug(f"Ignoring unrecognised label {label!r}")
                    continue
                level, name = resolved

                if level == 'plan':
                    if name in plan and plan[name] != value:
                        logger.debug(f"Keeping first value of {name}: {plan[name]!r}")
                    plan.setdefault(name, value)
                elif name == 'beam':
                    beams.append({'beam': value, 'points': []})
                    scope = 'beam'
                elif not beams:
                    logger.warning(f"Ignoring {label!r} found before the first beam")
                elif level == 'beam':
                    beam = beams[-1]
                    if name in beam and beam[name] != value:
                        raise ParseError(
                            f"Beam {beam['beam']}: conflicting values for {name}: "
                            f"{beam[name]!r} and {value!r}", name
                        )
                    beam[name] = value
                else:
                    points = beams[-1]['points']
                    if name == 'point' or not points or name in points[-1]:
                        points.append({})
                        scope = 'point'
                    points[-1][name] = value

        if not beams:
            raise ParseError("No beams found in plan report", 'beam')

        built = [self._build_beam(raw, index) for index, raw in enumerate(beams, start=1)]
        numbers = [beam.number for beam in built]
        duplicates = sorted({n for n in numbers if numbers.count(n) > 1})
        if duplicates:
            raise ParseError(f"Duplicate beam numbers in plan report: {duplicates}", 'beam')

        report = self._build_plan(plan, tuple(built))
        logger.info(
            f"Parsed plan report '{report.plan_name or ''}' with {len(report.beams)} beam(s) "
            f"and {len(report.points)} point(s)"
        )
        return report

    @staticmethod
    def _require(raw: Dict, name: str, context: str) -> str:
        value = raw.get(name)
        if value is None or not value.strip():
            raise ParseError(f"{context}: missing required field '{name}'", name)
        return value

    @staticmethod
    def _optional(raw: Dict, name: str) -> Optional[str]:
        value = raw.get(name)
        if value is None or not value.strip():
            return None
        return value

    def _build_point(self, raw: Dict, context: str, index: int) -> Point:
        name = self._optional(raw, 'point') or f"Point {index}"
        context = f"{context}, point {name}"

        def length(field):
            value = parse_quantity(self._require(raw, field, context), field, LENGTH_UNITS, 'cm', context)
            if value <= 0:
                raise ParseError(f"{context}: {field} must be positive, got {value:g}", field)
            return value

        oad = self._optional(raw, 'off_axis_distance')
        return Point(
            name=name.strip(),
            ssd=length('ssd'),
            depth=length('depth'),
            effective_depth=length('effective_depth'),
            off_axis_distance=(
                None if oad is None
                else parse_quantity(oad, 'off_axis_distance', LENGTH_UNITS, 'cm', context)
            ),
        )

    def _build_beam(self, raw: Dict, index: int) -> Beam:
        identifier = raw['beam'].strip()
        match = _BEAM_ID_RE.match(identifier)
        if match:
            number = int(match.group(1))
            label = match.group(2).strip() or None
        else:
            number = index
            label = identifier or None
        context = f"Beam {number}"

        angle = parse_quantity(self._require(raw, 'angle', context), 'angle', ANGLE_UNITS, 'deg', context)
        if not MIN_GANTRY_ANGLE <= angle <= MAX_GANTRY_ANGLE:
            raise ParseError(f"{context}: gantry angle {angle:g} outside [0, 360]", 'angle')

        dose = parse_quantity(self._require(raw, 'dose', context), 'dose', DOSE_UNITS, 'gy', context)
        if dose <= 0:
            raise ParseError(f"{context}: dose must be positive, got {dose:g}", 'dose')

        field_size = None
        if self._optional(raw, 'field_size') is not None:
            field_size = parse_field_size(raw['field_size'], context)
            if min(field_size) <= 0:
                raise ParseError(f"{context}: field size must be positive, got {field_size}", 'field_size')
        equivalent_square = None
        if self._optional(raw, 'equivalent_square') is not None:
            equivalent_square = parse_quantity(
                raw['equivalent_square'], 'equivalent_square', LENGTH_UNITS, 'cm', context
            )
            if equivalent_square <= 0:
                raise ParseError(
                    f"{context}: equivalent square must be positive, got {equivalent_square:g}",
                    'equivalent_square'
                )
        if field_size is None and equivalent_square is None:
            raise ParseError(f"{context}: missing required field 'field_size'", 'field_size')

        if not raw['points']:
            raise ParseError(f"{context}: no calculation point (SSD/depth) found", 'point')
        points = tuple(
            self._build_point(point, context, i) for i, point in enumerate(raw['points'], start=1)
        )

        planned_time = self._optional(raw, 'planned_time')
        planned_mu = self._optional(raw, 'planned_mu')
        return Beam(
            number=number,
            angle=angle,
            dose=dose,
            points=points,
            name=(self._optional(raw, 'name') or label or '').strip() or None,
            field_size=field_size,
            equivalent_square=equivalent_square,
            planned_time=None if planned_time is None else parse_time(planned_time, 'planned_time', context),
            planned_mu=(
                None if planned_mu is None
                else parse_quantity(planned_mu, 'planned_mu', MU_UNITS, 'mu', context)
            ),
        )

    def _build_plan(self, raw: Dict, beams: Tuple[Beam, ...]) -> PlanReport:
        plan_date = None
        if self._optional(raw, 'plan_date') is not None:
            try:
                plan_date = parse_date(raw['plan_date'], 'plan_date')
            except ParseError:
                logger.warning(f"Unreadable plan date {raw['plan_date']!r}")

        prescription = self._optional(raw, 'prescription_dose')
        fractions = self._optional(raw, 'fractions')
        if fractions is not None:
            match = re.match(r'\s*(\d+)', fractions)
            if not match:
                raise ParseError(f"Plan: could not read fractions from {fractions!r}", 'fractions')
            fractions = int(match.group(1))

        return PlanReport(
            beams=beams,
            patient_name=self._optional(raw, 'patient_name'),
            patient_id=self._optional(raw, 'patient_id'),
            plan_name=self._optional(raw, 'plan_name'),
            plan_date=plan_date,
            prescription_dose=(
                None if prescription is None
                else parse_quantity(prescription, 'prescription_dose', DOSE_UNITS, 'gy', 'Plan')
            ),
            fractions=fractions,
        )


_GRAMMAR = PlanReportGrammar()


def _split_lines(text: str) -> List[str]:
    if text is None:
        raise ParseError("No report text provided")
    text = text.lstrip('\ufeff')
    return text.replace('\r\n', '\n').replace('\r', '\n').split('\n')


def text_export_lines(text: str) -> List[str]:
    """Adapt a plain-text export: tab separated cells become labelled pairs."""
    lines = []
    for line in _split_lines(text):
        cells = [cell.strip() for cell in line.split('\t') if cell.strip()]
        if (len(cells) >= 2 and len(cells) % 2 == 0
                and all(_LABEL_ONLY_RE.match(label) for label in cells[0::2])):
            line = '  '.join(
                f"{label.rstrip(':').strip()}: {value}"
                for label, value in zip(cells[0::2], cells[1::2])
            )
        else:
            line = line.replace('\t', '  ')
        lines.append(line.rstrip())
    return lines


def pdf_text_lines(text: str, grammar: PlanReportGrammar = _GRAMMAR) -> List[str]:
    """Adapt text extracted from a paginated PDF.

    Removes form feeds, page footers, blank lines and repeated page headers,
    and rejoins labels or values that the extraction wrapped onto the next
    line.
    """
    raw_lines = [
        line.rstrip() for line in _split_lines(text.replace('\f', '\n') if text else text)
        if line.strip() and not _PAGE_FOOTER_RE.match(line)
    ]

    joined_lines: List[str] = []
    i = 0
    while i < len(raw_lines):
        line = raw_lines[i]
        following = raw_lines[i + 1] if i + 1 < len(raw_lines) else None
        if following is not None:
            # "Beam On" / "Time: 45 sec" or "Effective" / "Depth: 7 cm"
            if ':' not in line:
                joined = f"{line.strip()} {following.strip()}"
                pairs = split_pairs(joined)
                if pairs and grammar.is_known_label(pairs[0][0]):
                    joined_lines.append(joined)
                    i += 2
                    continue
            # "Effective Depth:" / "10.25 cm"
            if line.endswith(':') and not split_pairs(following):
                joined_lines.append(f"{line} {following.strip()}")
                i += 2
                continue
        joined_lines.append(line)
        i += 1

    lines = []
    seen_headers = set()
    for line in joined_lines:
        if not split_pairs(line):
            header = ' '.join(line.split()).lower()
            if header in seen_headers:
                continue
            seen_headers.add(header)
        lines.append(line)
    return lines


def parse_plan_report_text(text: str) -> PlanReport:
    """Parse a plan report from its plain-text export.

    Raises:
        ParseError: If a required field is missing or malformed
    """
    return _GRAMMAR.parse(text_export_lines(text))


def parse_plan_report_pdf(text: str) -> PlanReport:
    """Parse a plan report from text extracted from the PDF report.

    Raises:
        ParseError: If a required field is missing or malformed
    """
    return _GRAMMAR.parse(pdf_text_lines(text))


def parse_plan_report(text: str, source: str = 'text') -> PlanReport:
    """Parse a plan report from 'text' export or 'pdf' extracted text."""
    if source == 'pdf':
        return parse_plan_report_pdf(text)
    if source == 'text':
        return parse_plan_report_text(text)
    raise InputError(f"Unknown plan report source {source!r}, expected 'text' or 'pdf'")


SOURCE_LABELS = {
    'isotope': 'isotope',
    'nuclide': 'isotope',
    'source serial number': 'serial_number',
    'serial number': 'serial_number',
    'source id': 'serial_number',
    'calibration date': 'calibration_date',
    'reference date': 'calibration_date',
    'cal date': 'calibration_date',
    'calibration activity': 'calibration_activity',
    'reference activity': 'calibration_activity',
    'source activity': 'calibration_activity',
    'source strength': 'calibration_activity',
    'activity': 'calibration_activity',
    'calibration dose rate': 'calibration_dose_rate',
    'reference dose rate': 'calibration_dose_rate',
    'dose rate': 'calibration_dose_rate',
    'k': 'calibration_dose_rate',
    'source exchange': 'exchange',
    'source exchange date': 'exchange',
    'exchange date': 'exchange',
    'source change': 'exchange',
}

_HISTORY_ROW_RE = re.compile(r'^\s*(?P<date>.+?)\s+(?P<activity>' + _NUMBER + r')\s*(?P<unit>[A-Za-z]+)?\s*$')


def _activity(number: float, unit: Optional[str], default_unit: str, context: str) -> float:
    unit = (unit or default_unit).lower()
    if unit not in ACTIVITY_UNITS:
        raise ParseError(f"{context}: unknown activity unit {unit!r}", 'activity')
    return number * ACTIVITY_UNITS[unit] / ACTIVITY_UNITS[default_unit.lower()]


def parse_source_tracking(text: str) -> SourceTrackingRecord:
    """Parse a source activity report.

    Activities in the history table are converted to the unit of the
    calibration activity.

    Raises:
        ParseError: If the calibration date or activity is missing or malformed
    """
    fields: Dict[str, str] = {}
    exchanges: List[date] = []
    rows: List[Tuple[str, str, Optional[str]]] = []

    if text is None:
        raise ParseError("No source report text provided")
    for line in text_export_lines(text.replace('\f', '\n')):
        pairs = split_pairs(line)
        if not pairs:
            match = _HISTORY_ROW_RE.match(line)
            if match:
                rows.append((match.group('date'), match.group('activity'), match.group('unit')))
            continue
        for label, value in pairs:
            name = SOURCE_LABELS.get(normalize_label(label))
            if name is None:
                logger.debug(f"Ignoring unrecognised label {label!r}")
            elif name == 'exchange':
                exchanges.append(parse_date(value, 'source exchange date'))
            else:
                fields.setdefault(name, value)

    for name in ('calibration_date', 'calibration_activity'):
        if not fields.get(name, '').strip():
            raise ParseError(f"Source report: missing required field '{name}'", name)

    calibration_date = parse_date(fields['calibration_date'], 'calibration_date')
    match = _QUANTITY_RE.match(fields['calibration_activity'])
    if not match:
        raise ParseError(
            f"Source report: could not read calibration activity from "
            f"{fields['calibration_activity']!r}", 'calibration_activity'
        )
    activity_value = parse_number(match.group(1), 'calibration_activity', 'Source report')
    unit = match.group(2).split()[0] if match.group(2).strip() else 'Ci'
    if unit.lower() not in ACTIVITY_UNITS:
        raise ParseError(f"Source report: unknown activity unit {unit!r}", 'calibration_activity')
    if activity_value <= 0:
        raise ParseError(
            f"Source report: calibration activity must be positive, got {activity_value:g}",
            'calibration_activity'
        )

    dose_rate = None
    if fields.get('calibration_dose_rate', '').strip():
        dose_rate = parse_quantity(
            fields['calibration_dose_rate'], 'calibration_dose_rate',
            DOSE_RATE_UNITS, 'gy/min', 'Source report'
        )
        if dose_rate <= 0:
            raise ParseError(
                f"Source report: calibration dose rate must be positive, got {dose_rate:g}",
                'calibration_dose_rate'
            )

    history = []
    for raw_date, raw_activity, raw_unit in rows:
        try:
            entry_date = parse_date(raw_date, 'history date')
        except ParseError:
            logger.debug(f"Skipping non-history line {raw_date!r} {raw_activity!r}")
            continue
        number = parse_number(raw_activity, 'history', f"Source history {entry_date}")
        value = _activity(number, raw_unit, unit, 'Source history')
        if value <= 0:
            raise ParseError(f"Source history: activity on {entry_date} must be positive", 'history')
        history.append(SourceActivityEntry(entry_date, value))
    history.sort(key=lambda entry: entry.date)

    record = SourceTrackingRecord(
        calibration_date=calibration_date,
        calibration_activity=activity_value,
        calibration_dose_rate=dose_rate,
        isotope=(fields.get('isotope') or 'Co-60').strip(),
        serial_number=(fields.get('serial_number') or '').strip() or None,
        activity_unit=unit,
        history=tuple(history),
        exchange_dates=tuple(sorted(set(exchanges))),
    )
    logger.info(
        f"Parsed source report: {record.isotope} {record.calibration_activity:g} {unit} "
        f"on {record.calibration_date}, {len(history)} history entries, "
        f"{len(record.exchange_dates)} exchange(s)"
    )
    return record


def _read_text(path: Union[str, Path], suffixes: Iterable[str]) -> Path:
    try:
        return validate_path(path, must_exist=True, suffixes=suffixes)
    except PathValidationError as e:
        raise InputError(str(e)) from e


def read_plan_report(
    path: Union[str, Path],
    extractor: Optional[Callable[[Path], str]] = None
) -> PlanReport:
    """Read and parse a plan report file.

    Args:
        path: Path to a '.txt' export or a '.pdf' report
        extractor: Callable returning the text of a PDF file; required for
            PDF reports

    Returns:
        Parsed PlanReport
    """
    file_path = _read_text(path, ['.txt', '.pdf'])
    if file_path.suffix.lower() == '.pdf':
        if extractor is None:
            raise InputError(f"A text extractor is required to read PDF report {file_path}")
        logger.info(f"Extracting plan report text from {file_path}")
        return parse_plan_report_pdf(extractor(file_path))
    logger.info(f"Reading plan report export {file_path}")
    return parse_plan_report_text(file_path.read_text(encoding='utf-8', errors='replace'))


def read_source_tracking(
    path: Union[str, Path],
    extractor: Optional[Callable[[Path], str]] = None
) -> SourceTrackingRecord:
    """Read and parse a source activity report file ('.txt' or '.pdf')."""
    file_path = _read_text(path, ['.txt', '.pdf'])
    if file_path.suffix.lower() == '.pdf':
        if extractor is None:
            raise InputError(f"A text extractor is required to read PDF report {file_path}")
        return parse_source_tracking(extractor(file_path))
    return parse_source_tracking(file_path.read_text(encoding='utf-8', errors='replace'))


def _fmt(value: float) -> str:
    return repr(float(value))


def render_plan_report(plan: PlanReport) -> str:
    """Serialise a PlanReport in the plain-text export layout."""
    lines = ['Treatment Plan Report']
    for label, value in (
        ('Patient Name', plan.patient_name),
        ('Patient ID', plan.patient_id),
        ('Plan Name', plan.plan_name),
        ('Plan Date', plan.plan_date.isoformat() if plan.plan_date else None),
        ('Prescription Dose', None if plan.prescription_dose is None else f"{_fmt(plan.prescription_dose)} Gy"),
        ('Number of Fractions', plan.fractions),
    ):
        if value is not None:
            lines.append(f"{label}: {value}")

    for beam in plan.beams:
        lines.append('')
        lines.append(f"Beam: {beam.number}")
        if beam.name:
            lines.append(f"Beam Name: {beam.name}")
        lines.append(f"Angle: {_fmt(beam.angle)} deg")
        if beam.field_size is not None:
            lines.append(f"Field Size: {_fmt(beam.field_size[0])} x {_fmt(beam.field_size[1])} cm")
        if beam.equivalent_square is not None:
            lines.append(f"Equivalent Square: {_fmt(beam.equivalent_square)} cm")
        lines.append(f"Beam Dose: {_fmt(beam.dose)} Gy")
        if beam.planned_time is not None:
            lines.append(f"Beam On Time: {_fmt(beam.planned_time)} sec")
        if beam.planned_mu is not None:
            lines.append(f"Monitor Units: {_fmt(beam.planned_mu)}")
        for point in beam.points:
            lines.append(f"Point: {point.name}")
            lines.append(f"SSD: {_fmt(point.ssd)} cm")
            lines.append(f"Depth: {_fmt(point.depth)} cm")
            lines.append(f"Effective Depth: {_fmt(point.effective_depth)} cm")
            if point.off_axis_distance is not None:
                lines.append(f"Off Axis Distance: {_fmt(point.off_axis_distance)} cm")
    return '\n'.join(lines) + '\n'
