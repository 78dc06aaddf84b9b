"""Physical constants for Co-60 beam-on time calculation."""

# Radioactive decay
CO60_HALF_LIFE_YEARS = 5.2714  # Co-60 half-life in years
DAYS_PER_YEAR = 365.25  # Julian year
CO60_HALF_LIFE_DAYS = CO60_HALF_LIFE_YEARS * DAYS_PER_YEAR  # ~1925.4 days

# Off-axis ratio. Not modeled: the calculation assumes the point lies on the
# central axis regardless of the off-axis distance reported for it.
OFF_AXIS_RATIO = 1.0

# Unit conversions
SECONDS_PER_MINUTE = 60.0
CGY_TO_GY = 0.01  # Conversion from cGy to Gy
MM_TO_CM = 0.1  # Conversion from mm to cm

# Numerical constants
TOLERANCE = 1e-9  # Numerical tolerance for axis and boundary comparisons

# Gantry angle limits in degrees
MIN_GANTRY_ANGLE = 0.0
MAX_GANTRY_ANGLE = 360.0
