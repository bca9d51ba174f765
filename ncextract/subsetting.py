"""
============================================================================
SUBSETTING MODULE: NetCDF Table Extractor
============================================================================

MODULE PURPOSE:
Decides which hyperslab(s) to read. Converts a rectangular boundary into a
contiguous index window per dimension, and a list of query points into one
nearest-grid-cell window per point.

KEY FUNCTIONS:
- subset_nc_dimensions: Boundary to (start, count) per dimension
- subset_nc_by_points: Query points to one Window per point
- point_distances: Distance from a point to every grid candidate

============================================================================
"""

import logging
from numbers import Real
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Sequence

import numpy as np
import pandas as pd
from pyproj import Geod

from .time_decoder import decode_time_dimension

WGS84 = Geod(ellps='WGS84')


class SubsetResult(NamedTuple):
    """Window bounds from a boundary, aligned with the variable's dimensions."""
    start: List[int]
    count: List[int]
    dim_values: Dict[str, np.ndarray]


class Window(NamedTuple):
    """
    One hyperslab to read.

    `start` is 0-based, `count` of -1 means all remaining values.
    `requested` holds scalar columns echoed for this window only.
    """
    start: List[int]
    count: List[int]
    dim_values: Dict[str, np.ndarray]
    requested: Dict[str, Any]


def _to_date(value: Any, dim_name: str):
    if isinstance(value, Real):
        raise ValueError(
            f"Boundary for time dimension {dim_name} must be dates such as '2000-01-01', "
            f"got {value!r}"
        )
    try:
        return pd.Timestamp(value).date()
    except (ValueError, TypeError) as e:
        raise ValueError(
            f"Boundary for time dimension {dim_name} must be dates, got {value!r}"
        ) from e


def _to_number(value: Any, dim_name: str) -> float:
    try:
        return float(value)
    except (ValueError, TypeError) as e:
        raise ValueError(f"Boundary for {dim_name} must be numeric, got {value!r}") from e


def _time_indices(nc, dim_name: str, values: np.ndarray, lower: Any, upper: Any,
                  logger: logging.Logger) -> np.ndarray:
    decoded = decode_time_dimension(nc, dim_name, values, logger)
    if decoded is None:
        logger.warning(f"Could not decode time dimension {dim_name} to filter by date")
        return np.array([], dtype=int)

    dates = np.array(decoded.date, dtype=object)
    lower_date, upper_date = _to_date(lower, dim_name), _to_date(upper, dim_name)
    return np.flatnonzero((dates >= lower_date) & (dates <= upper_date))


def _single_value_matches(values: np.ndarray, lower: Any, upper: Any) -> bool:
    # Single-slice dimensions often differ from the requested value only by
    # floating point noise from a round trip through text.
    if len(values) != 1 or not (isinstance(lower, Real) and isinstance(upper, Real)):
        return False
    value = round(float(values[0]), 3)
    return value == round(float(lower), 3) and value == round(float(upper), 3)


def subset_nc_dimensions(
    nc,
    dim_axes: Mapping[str, Optional[str]],
    dim_values: Mapping[str, np.ndarray],
    boundary: Mapping[str, Sequence[Any]],
    has_points: bool,
    logger: logging.Logger
) -> SubsetResult:
    """
    Compute the contiguous index window selected by a boundary.

    INPUTS:
    - nc (NcDataset): Open dataset handle (used to decode time dimensions)
    - dim_axes (dict): Dimension name to axis role ('X', 'Y', 'Z', 'T', 'S' or None)
    - dim_values (dict): Dimension name to values, in the variable's dimension order
    - boundary (dict): Dimension name to (min, max), inclusive
    - has_points (bool): If True, X and Y are left to the point locator
    - logger (logging.Logger): Logger instance

    OUTPUTS:
    - SubsetResult: 0-based start, count and the selected values per dimension

    RAISES:
    - ValueError: If a constrained dimension has no values in range, or the
                  values in range are not contiguous

    FUNCTIONALITY:
    Time dimensions are compared as decoded dates; all others as raw numbers.
    A dimension holding a single value matches a boundary whose endpoints
    both equal it to 3 decimal places.
    """
    start: List[int] = []
    count: List[int] = []
    selected = dict(dim_values)

    for dim_name, values in dim_values.items():
        values = np.asarray(values)
        axis = dim_axes.get(dim_name)
        start.append(0)
        count.append(len(values))

        if dim_name not in boundary:
            continue
        if axis is None:
            logger.warning(
                f"Cannot subset {dim_name} because its axis cannot be identified. "
                f"All values will be used."
            )
            continue
        if has_points and axis in ('X', 'Y'):
            continue

        lower, upper = boundary[dim_name]
        if axis == 'T':
            ind = _time_indices(nc, dim_name, values, lower, upper, logger)
        else:
            lower, upper = _to_number(lower, dim_name), _to_number(upper, dim_name)
            ind = np.flatnonzero((values >= lower) & (values <= upper))

        if len(ind) == 0 and _single_value_matches(values, lower, upper):
            ind = np.array([0])

        if len(ind) == 0:
            raise ValueError(f"No values within the range specified for {dim_name}.")
        if ind[-1] - ind[0] + 1 != len(ind):
            raise ValueError(
                f"Values within the range specified for {dim_name} are not contiguous. "
                f"Check that {dim_name} is sorted and has no duplicates."
            )

        start[-1] = int(ind[0])
        count[-1] = len(ind)
        selected[dim_name] = values[ind]
        logger.debug(f"Boundary on {dim_name}: start={start[-1]}, count={count[-1]}")

    return SubsetResult(start, count, selected)


def point_distances(
    xs: np.ndarray,
    ys: np.ndarray,
    lon: float,
    lat: float,
    great_circle_dist: bool = True
) -> np.ndarray:
    """
    Distance from (lon, lat) to every candidate (xs[i], ys[i]).

    Great-circle distances are WGS84 geodesics in metres; otherwise the
    planar Euclidean distance in coordinate units.
    """
    xs = np.asarray(xs, dtype=float)
    ys = np.asarray(ys, dtype=float)
    if great_circle_dist:
        _, _, distance = WGS84.inv(
            xs, ys, np.full_like(xs, lon), np.full_like(ys, lat)
        )
        return np.asarray(distance)
    return np.hypot(xs - lon, ys - lat)


def _single_axis_dim(dim_axes: Mapping[str, Optional[str]], axis: str,
                     dim_values: Mapping[str, np.ndarray]) -> Optional[str]:
    names = [name for name, role in dim_axes.items() if role == axis and name in dim_values]
    return names[0] if len(names) == 1 else None


def subset_nc_by_points(
    dim_axes: Mapping[str, Optional[str]],
    dim_values: Mapping[str, np.ndarray],
    lon_points: Sequence[float],
    lat_points: Sequence[float],
    id_points: Optional[Sequence[Any]],
    start: Sequence[int],
    count: Sequence[int],
    show_requested_points: bool = True,
    great_circle_dist: bool = True
) -> List[Window]:
    """
    Build one window per query point at the nearest grid cell.

    INPUTS:
    - dim_axes (dict): Dimension name to axis role
    - dim_values (dict): Dimension name to values, in the variable's dimension order
    - lon_points, lat_points (sequence): Query coordinates
    - id_points (sequence, optional): Station identifiers, one per point
    - start, count (sequence): Base window for the non X/Y dimensions
    - show_requested_points (bool): Echo requested coordinates as columns
    - great_circle_dist (bool): Geodesic distance if True, planar otherwise

    OUTPUTS:
    - list[Window]: One window per point, in input order

    RAISES:
    - ValueError: If there is not exactly one X and one Y dimension

    FUNCTIONALITY:
    Candidates are every (x, y) pair with x varying fastest. The closest one
    wins; ties go to the first candidate in that order. Points that resolve to
    the same cell still produce separate windows.
    """
    x_var = _single_axis_dim(dim_axes, 'X', dim_values)
    y_var = _single_axis_dim(dim_axes, 'Y', dim_values)
    if x_var is None or y_var is None:
        raise ValueError(
            "Cannot select points because dimensions are not labelled correctly "
            "in the nc file. Modify the nc file or remove the points to import all data."
        )

    dim_order = list(dim_values)
    x_pos, y_pos = dim_order.index(x_var), dim_order.index(y_var)
    xs = np.asarray(dim_values[x_var])
    ys = np.asarray(dim_values[y_var])

    # Cross product of candidates, x varying fastest
    grid_x = np.tile(xs, len(ys))
    grid_y = np.repeat(ys, len(xs))

    windows = []
    for i, (lon, lat) in enumerate(zip(lon_points, lat_points)):
        distances = point_distances(grid_x, grid_y, lon, lat, great_circle_dist)
        nearest = int(np.argmin(distances))

        x_ind = int(np.flatnonzero(xs == grid_x[nearest])[0])
        y_ind = int(np.flatnonzero(ys == grid_y[nearest])[0])

        curr_start = list(start)
        curr_count = list(count)
        curr_start[x_pos] = int(start[x_pos]) + x_ind
        curr_count[x_pos] = 1
        curr_start[y_pos] = int(start[y_pos]) + y_ind
        curr_count[y_pos] = 1

        curr_dim_values = dict(dim_values)
        curr_dim_values[x_var] = xs[x_ind:x_ind + 1]
        curr_dim_values[y_var] = ys[y_ind:y_ind + 1]

        requested: Dict[str, Any] = {}
        if show_requested_points:
            requested[f"{x_var}_point"] = lon
            requested[f"{y_var}_point"] = lat
            if id_points is not None:
                requested['station'] = id_points[i]

        windows.append(Window(curr_start, curr_count, curr_dim_values, requested))

    return windows
