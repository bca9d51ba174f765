"""
============================================================================
DATA PROCESSOR MODULE: NetCDF Table Extractor
============================================================================

MODULE PURPOSE:
Flattens hyperslabs of NetCDF variables into tabular rows. Creates the
Cartesian product of the selected coordinates, appends variable values,
joins decoded dates, stacks the windows and attaches attributes.

KEY FUNCTIONS:
- nc_as_data_frame: Main function to extract variables into a DataFrame
- create_coordinate_mesh: Generate all coordinate combinations of a window
- read_window: Read one window into a DataFrame
- annotate_metadata: Attach variable and global attributes

============================================================================
"""

import logging
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
import xarray as xr

from .config import ExtractionOptions
from .logger import get_logger, log_dimension_info, log_variable_info
from .nc_reader import NcDataset, get_dim_axes
from .subsetting import Window, subset_nc_by_points, subset_nc_dimensions
from .time_decoder import decode_time_dimension


def create_coordinate_mesh(
    dim_values: Mapping[str, np.ndarray],
    logger: logging.Logger
) -> pd.DataFrame:
    """
    Create Cartesian product of all coordinate combinations.

    INPUTS:
    - dim_values (dict): Dimension name to selected values, in dimension order
    - logger (logging.Logger): Logger instance

    OUTPUTS:
    - pd.DataFrame: One column per dimension, one row per combination

    FUNCTIONALITY:
    The last dimension varies fastest, matching the C-order flattening of a
    hyperslab read with the same dimension order.
    """
    if not dim_values:
        return pd.DataFrame(index=range(1))

    meshes = np.meshgrid(*dim_values.values(), indexing='ij')
    df = pd.DataFrame({name: mesh.ravel() for name, mesh in zip(dim_values, meshes)})

    logger.debug(f"Created coordinate mesh with {len(df):,} rows")
    return df


def _join_time_columns(
    df: pd.DataFrame,
    nc: NcDataset,
    time_dim: str,
    raw_time: np.ndarray,
    logger: logging.Logger
) -> Tuple[pd.DataFrame, bool]:
    decoded = decode_time_dimension(nc, time_dim, raw_time, logger)
    if decoded is None:
        return df, False

    time_df = pd.DataFrame({time_dim: raw_time, 'date': decoded.date})
    if decoded.datetime is not None:
        time_df['datetime'] = decoded.datetime
    time_df = time_df.drop_duplicates(subset=time_dim)

    return df.merge(time_df, on=time_dim, how='left'), True


def read_window(
    nc: NcDataset,
    variables: Sequence[str],
    dim_names: Sequence[str],
    window: Window,
    time_dim: Optional[str],
    keep_raw_time: bool,
    logger: logging.Logger
) -> Tuple[pd.DataFrame, List[str]]:
    """
    Read one window of the requested variables into a DataFrame.

    INPUTS:
    - nc (NcDataset): Open dataset handle
    - variables (list): Variables to read
    - dim_names (list): Reference dimensions, in the order of the window
    - window (Window): Start, count and coordinate values to read
    - time_dim (str, optional): The single time dimension, if any
    - keep_raw_time (bool): Keep the raw time column next to the dates
    - logger (logging.Logger): Logger instance

    OUTPUTS:
    - Tuple[pd.DataFrame, list]: The window's table and the dimension and
      variable columns it holds

    FUNCTIONALITY:
    Variables whose dimensions differ from the reference set are dropped with
    a warning. Decoded `date` and `datetime` columns are joined on the raw
    time value; if decoding fails the raw values stay and no date columns
    are added.
    """
    log_dimension_info(logger, {dim: len(window.dim_values[dim]) for dim in dim_names})

    df = create_coordinate_mesh(window.dim_values, logger)
    for column, value in window.requested.items():
        df[column] = value

    included = list(dim_names)
    reference = set(dim_names)
    for var in variables:
        if set(nc.dim_names(var)) != reference:
            logger.warning(
                f"The dimensions of {var} do not match the other variables. "
                f"{var} will be dropped."
            )
            continue
        values = nc.read_hyperslab(var, window.start, window.count, dim_names)
        df[var] = values.ravel()
        included.append(var)

    if time_dim is not None:
        df, decoded = _join_time_columns(df, nc, time_dim, window.dim_values[time_dim], logger)
        if decoded and not keep_raw_time:
            df = df.drop(columns=time_dim)
            included.remove(time_dim)

    return df, included


def annotate_metadata(
    nc: NcDataset,
    df: pd.DataFrame,
    columns: Sequence[str],
    logger: logging.Logger
) -> pd.DataFrame:
    """
    Attach attributes to the table without touching its data.

    Column attributes go to ``df.attrs['column_attributes'][column]`` and
    global attributes to ``df.attrs['global_attributes']``.
    """
    df.attrs['column_attributes'] = {
        column: nc.get_attribute(column) for column in columns if column in df.columns
    }
    df.attrs['global_attributes'] = nc.get_attribute(None)
    logger.debug(f"Attached attributes for {len(df.attrs['column_attributes'])} columns")
    return df


def _validate_points(
    lon_points: Optional[Sequence[float]],
    lat_points: Optional[Sequence[float]],
    id_points: Optional[Sequence[Any]]
) -> bool:
    if (lon_points is None) != (lat_points is None):
        raise ValueError("You must specify both lon_points and lat_points")
    if lon_points is None:
        return False
    if len(lon_points) != len(lat_points):
        raise ValueError("lon_points and lat_points have unequal lengths.")
    if id_points is not None and len(id_points) != len(lat_points):
        raise ValueError(
            "id_points (if specified) must have the same length as lon_points and lat_points."
        )
    return len(lon_points) > 0


def _resolve_vars(nc: NcDataset, variables: Optional[Union[str, Sequence[str]]]) -> List[str]:
    if variables is None:
        candidates = nc.variables
        if not candidates:
            raise ValueError(f"No data variables found in {nc.name}")
        reference = set(nc.dim_names(candidates[0]))
        return [var for var in candidates if set(nc.dim_names(var)) == reference]

    variables = [variables] if isinstance(variables, str) else list(variables)
    if not variables:
        raise ValueError("At least one variable must be requested")
    missing = [var for var in variables if var not in nc.dataset.variables]
    if missing:
        raise ValueError(f"Variables not found in {nc.name}: {', '.join(missing)}")
    return variables


def _validate_boundary(
    boundary: Mapping[str, Sequence[Any]],
    dim_names: Sequence[str],
    reference_var: str
) -> None:
    unknown = [name for name in boundary if name not in dim_names]
    if unknown:
        raise ValueError(
            f"boundary contains dimensions not associated with {reference_var}: "
            f"{', '.join(unknown)}"
        )
    for name, bounds in boundary.items():
        if len(bounds) != 2:
            raise ValueError(f"boundary for {name} must be a (min, max) pair")


def nc_as_data_frame(
    nc: Union[NcDataset, xr.Dataset],
    variables: Optional[Union[str, Sequence[str]]] = None,
    keep_raw_time: bool = True,
    include_metadata: bool = True,
    boundary: Optional[Mapping[str, Sequence[Any]]] = None,
    lon_points: Optional[Sequence[float]] = None,
    lat_points: Optional[Sequence[float]] = None,
    id_points: Optional[Sequence[Any]] = None,
    show_requested_points: bool = True,
    great_circle_dist: bool = True,
    logger: Optional[logging.Logger] = None
) -> pd.DataFrame:
    """
    Main function to flatten NetCDF variables into a DataFrame.

    INPUTS:
    - nc (NcDataset | xr.Dataset): Open dataset
    - variables (str | list, optional): Variables to extract. All variables that
      share the first variable's dimensions if omitted
    - keep_raw_time (bool): Keep the raw time column next to date columns
    - include_metadata (bool): Attach attributes to the result
    - boundary (dict, optional): Dimension name to inclusive (min, max)
    - lon_points, lat_points (sequence, optional): Query points
    - id_points (sequence, optional): Station identifiers for the points
    - show_requested_points (bool): Echo requested points as columns
    - great_circle_dist (bool): Geodesic distance for nearest cell search
    - logger (logging.Logger, optional): Logger instance

    OUTPUTS:
    - pd.DataFrame: Structure [dims..., *_point, station, variables..., date, datetime]

    RAISES:
    - ValueError: On invalid points, boundary or variables, or an empty
                  boundary match

    FUNCTIONALITY:
    1. Plans the window from the boundary (full range without one)
    2. In point mode, splits it into one window per point
    3. Reads each window and stacks the tables
    4. Attaches attributes
    """
    logger = get_logger(logger)
    if isinstance(nc, xr.Dataset):
        nc = NcDataset(nc)

    has_points = _validate_points(lon_points, lat_points, id_points)
    variables = _resolve_vars(nc, variables)
    log_variable_info(logger, len(variables), variables)

    dim_names = nc.dim_names(variables[0])
    dim_values = {dim: nc.dim_values(dim) for dim in dim_names}
    dim_axes = get_dim_axes(nc, variables[0])

    if boundary:
        _validate_boundary(boundary, dim_names, variables[0])
        subset = subset_nc_dimensions(nc, dim_axes, dim_values, boundary, has_points, logger)
        start, count, dim_values = subset.start, subset.count, subset.dim_values
    else:
        start = [0] * len(dim_names)
        count = [-1] * len(dim_names)

    if has_points:
        windows = subset_nc_by_points(
            dim_axes, dim_values, lon_points, lat_points, id_points,
            start, count, show_requested_points, great_circle_dist
        )
    else:
        windows = [Window(start, count, dim_values, {})]

    time_dims = [dim for dim in dim_names if dim_axes.get(dim) == 'T']
    time_dim = time_dims[0] if len(time_dims) == 1 else None

    frames = []
    included: List[str] = []
    for window in windows:
        frame, included = read_window(nc, variables, dim_names, window, time_dim,
                                      keep_raw_time, logger)
        frames.append(frame)

    var_data = frames[0] if len(frames) == 1 else pd.concat(frames, ignore_index=True)

    if include_metadata:
        var_data = annotate_metadata(nc, var_data, included, logger)

    logger.info(f"Extraction complete. DataFrame shape: {var_data.shape}")
    return var_data


def extract(
    nc: Union[NcDataset, xr.Dataset],
    variables: Optional[Union[str, Sequence[str]]] = None,
    options: Optional[ExtractionOptions] = None,
    logger: Optional[logging.Logger] = None
) -> pd.DataFrame:
    """Extract `variables` from an open dataset using an ExtractionOptions bundle."""
    options = options or ExtractionOptions()
    return nc_as_data_frame(nc, variables, logger=logger, **options.extract_kwargs())
