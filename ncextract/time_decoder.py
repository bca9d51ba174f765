"""
============================================================================
TIME DECODER MODULE: NetCDF Table Extractor
============================================================================

MODULE PURPOSE:
Converts raw numeric time-dimension values into calendar dates and
timestamps. Decoding is best-effort: on any failure the caller receives
None and keeps the raw values.

KEY FUNCTIONS:
- decode_time_values: Decode raw values given a units string and calendar
- decode_time_dimension: Decode a dimension using its own attributes
- julian_day_to_date: Julian Day Number to calendar date

============================================================================
"""

import logging
from datetime import date, timedelta
from typing import List, NamedTuple, Optional, Sequence

import cftime
import numpy as np
import pandas as pd

JULIAN_DAY_UNITS = 'julian_day'
# Julian Day Number of 1970-01-01
JULIAN_DAY_UNIX_EPOCH = 2440588
UNIX_EPOCH = date(1970, 1, 1)


class TimeColumns(NamedTuple):
    """Decoded time values. `datetime` is None for julian_day units."""
    date: List[date]
    datetime: Optional[List[pd.Timestamp]]


def julian_day_to_date(value: float) -> date:
    return UNIX_EPOCH + timedelta(days=int(value) - JULIAN_DAY_UNIX_EPOCH)


def _calendar_to_timestamps(
    values: np.ndarray,
    units: str,
    calendar: str
) -> List[pd.Timestamp]:
    # Timestamps are rebuilt from calendar fields. Days that do not exist in
    # the Gregorian calendar (30 February in 360_day) roll into the next month.
    decoded = cftime.num2date(values, units, calendar=calendar)
    return [
        pd.Timestamp(d.year, d.month, 1)
        + pd.Timedelta(days=d.day - 1, hours=d.hour, minutes=d.minute,
                       seconds=d.second, microseconds=d.microsecond)
        for d in np.ravel(decoded)
    ]


def decode_time_values(
    raw_values: Sequence[float],
    units: Optional[str],
    logger: logging.Logger,
    calendar: Optional[str] = None
) -> Optional[TimeColumns]:
    """
    Decode raw time values into dates and timestamps.

    INPUTS:
    - raw_values (sequence): Raw numeric values of a time dimension
    - units (str): The dimension's `units` attribute
    - logger (logging.Logger): Logger instance
    - calendar (str, optional): The dimension's `calendar` attribute

    OUTPUTS:
    - TimeColumns or None: None when the values cannot be decoded

    FUNCTIONALITY:
    `julian_day` units are day counts from Julian Day Number 0 and yield
    dates only. Any other units string ("days since 1850-01-01", ...) is
    decoded with cftime in the given calendar, giving a timestamp and its
    date.
    """
    if units is None:
        logger.debug("Time dimension has no units attribute, keeping raw values")
        return None

    try:
        values = np.asarray(raw_values, dtype=float).ravel()

        if str(units).strip() == JULIAN_DAY_UNITS:
            return TimeColumns([julian_day_to_date(v) for v in values], None)

        if np.isnan(values).any():
            logger.debug(f"Time values with units '{units}' contain missing values")
            return None

        timestamps = _calendar_to_timestamps(values, str(units), calendar or 'standard')
        return TimeColumns([ts.date() for ts in timestamps], timestamps)

    except (ValueError, TypeError, OverflowError, pd.errors.OutOfBoundsDatetime) as e:
        logger.debug(f"Could not decode time values with units '{units}': {e}")
        return None


def decode_time_dimension(
    nc,
    dim_name: str,
    raw_values: Sequence[float],
    logger: logging.Logger
) -> Optional[TimeColumns]:
    """Decode values of `dim_name` using its `units` and `calendar` attributes."""
    units = nc.get_attribute(dim_name, 'units')
    calendar = nc.get_attribute(dim_name, 'calendar')
    return decode_time_values(
        raw_values,
        units.value if units.has_attribute else None,
        logger,
        calendar=calendar.value if calendar.has_attribute else None
    )
