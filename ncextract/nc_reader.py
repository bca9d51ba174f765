"""
============================================================================
NC READER MODULE: NetCDF Table Extractor
============================================================================

MODULE PURPOSE:
Handles opening NetCDF files, the dataset handle used by the extraction
engine, classification of dimensions into axis roles, attribute lookup,
and discovery of NetCDF files on disk.

KEY FUNCTIONS:
- open_nc_file: Open a NetCDF file and return an NcDataset handle
- NcDataset: Dimensions, variables, attributes and hyperslab reads
- get_dim_axes: Classify dimensions as X, Y, Z, T, S (or None if unknown)
- nc_get_dim_min_max: Minimum and maximum of a dimension's values
- list_nc_files: Find NetCDF files in a directory

============================================================================
"""

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple, Union

import cftime
import numpy as np
import xarray as xr

from .time_decoder import decode_time_dimension

AXES = ('X', 'Y', 'Z', 'T', 'S')

# Name and unit conventions used when a coordinate carries no `axis` attribute
LON_NAMES = ['lon', 'longitude', 'long', 'x', 'nav_lon', 'rlon']
LAT_NAMES = ['lat', 'latitude', 'y', 'nav_lat', 'rlat']
TIME_NAMES = ['time', 't', 'date', 'times']
LEVEL_NAMES = ['lev', 'level', 'levels', 'plev', 'depth', 'height', 'z',
               'alt', 'altitude', 'pressure', 'bottom_top']
LON_UNITS = ['degrees_east', 'degree_east', 'degree_e', 'degrees_e',
             'degreee', 'degreese']
LAT_UNITS = ['degrees_north', 'degree_north', 'degree_n', 'degrees_n',
             'degreen', 'degreesn']
TIME_UNITS_PATTERN = re.compile(r'^\s*\w+\s+since\s+', re.IGNORECASE)
STANDARD_NAME_AXES = {
    'longitude': 'X',
    'grid_longitude': 'X',
    'projection_x_coordinate': 'X',
    'latitude': 'Y',
    'grid_latitude': 'Y',
    'projection_y_coordinate': 'Y',
    'time': 'T',
    'height': 'Z',
    'depth': 'Z',
    'altitude': 'Z',
    'air_pressure': 'Z',
    'model_level_number': 'Z',
}


class AttributeResult(NamedTuple):
    """Outcome of an attribute lookup: whether it exists, and its value."""
    has_attribute: bool
    value: Any


def _is_decoded_time(coord: xr.DataArray) -> bool:
    if coord.dtype.kind in 'mM':
        return True
    return coord.dtype.kind == 'O' and coord.size > 0 and \
        isinstance(coord.values.flat[0], cftime.datetime)


class NcDataset:
    """
    Handle bound to one open dataset.

    Wraps an ``xarray.Dataset`` opened without time decoding, so dimension
    values are the raw numbers stored in the file. Use as a context manager
    to guarantee the underlying file is closed.
    """

    def __init__(self, dataset: xr.Dataset, path: Optional[Union[str, Path]] = None):
        self.dataset = dataset
        self.path = Path(path) if path is not None else None
        self._check_raw_coordinates()

    def _check_raw_coordinates(self) -> None:
        for dim in self.dataset.dims:
            if dim in self.dataset.variables and _is_decoded_time(self.dataset[dim]):
                raise ValueError(
                    f"Dimension {dim} of {self.name} holds decoded times. Open the "
                    f"dataset with decode_times=False so the raw values and their "
                    f"units are kept."
                )

    @property
    def name(self) -> str:
        return self.path.name if self.path is not None else '<in-memory>'

    @property
    def dimensions(self) -> List[str]:
        return [str(dim) for dim in self.dataset.sizes]

    @property
    def variables(self) -> List[str]:
        """
        Data variables, excluding coordinate variables of dimensions, cell
        boundary variables named by a `bounds` or `climatology` attribute, and
        dimensionless variables such as grid mappings.
        """
        cell_bounds = set()
        for var in self.dataset.variables.values():
            for source in (var.attrs, var.encoding):
                for key in ('bounds', 'climatology'):
                    if key in source:
                        cell_bounds.add(source[key])

        return [str(var) for var, data in self.dataset.data_vars.items()
                if var not in self.dataset.dims
                and var not in cell_bounds
                and data.ndim > 0]

    def dim_names(self, var: str) -> List[str]:
        if var not in self.dataset.variables:
            raise ValueError(f"Variable '{var}' not found in {self.name}.")
        return [str(dim) for dim in self.dataset[var].dims]

    def dim_values(self, dim: str) -> np.ndarray:
        """Raw numeric values of a dimension (index positions if it has no coordinate)."""
        if dim not in self.dataset.dims:
            raise ValueError(f"{dim} not found in file.")
        if dim in self.dataset.variables:
            return np.asarray(self.dataset[dim].values, dtype=float).ravel()
        return np.arange(self.dataset.sizes[dim], dtype=float)

    def get_attribute(
        self,
        target: Optional[str] = None,
        name: Optional[str] = None
    ) -> Union[AttributeResult, Dict[str, Any]]:
        """
        Look up attributes of a variable, or global attributes if target is None.

        With a name, returns an AttributeResult; without, the full mapping.
        """
        if target is None or target == 0:
            attrs = dict(self.dataset.attrs)
        elif target in self.dataset.variables:
            attrs = dict(self.dataset[target].attrs)
        else:
            attrs = {}

        if name is None:
            return attrs
        if name in attrs:
            return AttributeResult(True, attrs[name])
        return AttributeResult(False, None)

    def read_hyperslab(
        self,
        var: str,
        start: Sequence[int],
        count: Sequence[int],
        dim_names: Optional[Sequence[str]] = None
    ) -> np.ndarray:
        """
        Read a rectangular block of `var`.

        `start` and `count` are aligned with `dim_names` (defaults to the
        variable's own dimension order); a count of -1 reads to the end.
        The block is returned with its axes in `dim_names` order.
        """
        if dim_names is None:
            dim_names = self.dim_names(var)
        if not (len(start) == len(count) == len(dim_names)):
            raise ValueError(
                f"start and count must have one entry per dimension of '{var}'"
            )

        selection = {}
        for dim, offset, n in zip(dim_names, start, count):
            stop = None if n == -1 else int(offset) + int(n)
            selection[dim] = slice(int(offset), stop)

        block = self.dataset[var].isel(selection).transpose(*dim_names)
        return np.asarray(block.values)

    def close(self) -> None:
        self.dataset.close()

    def __enter__(self) -> 'NcDataset':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def open_nc_file(filepath: Union[str, Path], logger: logging.Logger) -> NcDataset:
    """
    Open a NetCDF file and return an NcDataset handle.

    INPUTS:
    - filepath (str | Path): Path to NetCDF file
    - logger (logging.Logger): Logger instance for status messages

    OUTPUTS:
    - NcDataset: Handle over the opened xarray Dataset

    RAISES:
    - FileNotFoundError: If file doesn't exist
    - ValueError: If file is not valid NetCDF format

    FUNCTIONALITY:
    Opens the file with time decoding disabled so that raw time values are
    available to the time decoder. Scale factors and fill values are applied.
    """
    filepath = Path(filepath)

    if not filepath.exists():
        raise FileNotFoundError(f"File not found: {filepath}")

    logger.debug(f"Opening NetCDF file: {filepath.name}")

    try:
        dataset = xr.open_dataset(
            filepath,
            decode_times=False,
            decode_timedelta=False,
            mask_and_scale=True
        )
    except (OSError, ValueError) as e:
        raise ValueError(f"Failed to open NetCDF file: {e}") from e

    logger.debug(f"Successfully opened file: {filepath.name}")
    return NcDataset(dataset, filepath)


def _normalise(text: Any) -> str:
    return str(text).strip().lower().replace(' ', '')


def _classify_dimension(nc: NcDataset, dim: str) -> Optional[str]:
    attrs = nc.get_attribute(dim) if dim in nc.dataset.variables else {}

    axis = str(attrs.get('axis', '')).strip().upper()
    if axis in AXES:
        return axis

    units = attrs.get('units')
    if units is not None:
        norm_units = _normalise(units)
        if norm_units in LON_UNITS:
            return 'X'
        if norm_units in LAT_UNITS:
            return 'Y'
        if norm_units == 'julian_day' or TIME_UNITS_PATTERN.match(str(units)):
            return 'T'

    standard_name = attrs.get('standard_name')
    if standard_name is not None and _normalise(standard_name) in STANDARD_NAME_AXES:
        return STANDARD_NAME_AXES[_normalise(standard_name)]

    if 'positive' in attrs:
        return 'Z'

    name = dim.lower()
    if name in LON_NAMES:
        return 'X'
    if name in LAT_NAMES:
        return 'Y'
    if name in TIME_NAMES:
        return 'T'
    if name in LEVEL_NAMES:
        return 'Z'

    return None


def get_dim_axes(nc: NcDataset, var: Optional[str] = None) -> Dict[str, Optional[str]]:
    """
    Classify dimensions by axis role.

    INPUTS:
    - nc (NcDataset): Open dataset handle
    - var (str, optional): Restrict to the dimensions of this variable

    OUTPUTS:
    - dict: Mapping of dimension name to 'X', 'Y', 'Z', 'T', 'S', or None
            when the role cannot be identified

    FUNCTIONALITY:
    Follows CF conventions: an explicit `axis` attribute wins, then units
    (degrees_east/north, "<unit> since <date>"), standard_name, a `positive`
    attribute, and finally common dimension names.
    """
    dims = nc.dim_names(var) if var is not None else nc.dimensions
    return {dim: _classify_dimension(nc, dim) for dim in dims}


def nc_get_dim_min_max(
    nc: NcDataset,
    dimension: str,
    logger: logging.Logger,
    time_as_date: bool = True
) -> Tuple[Any, Any]:
    """
    Return the minimum and maximum value of a dimension.

    For time dimensions the decoded dates are used when `time_as_date` is set
    and the dimension can be decoded; otherwise the raw numeric values.
    """
    if dimension not in nc.dimensions:
        raise ValueError(f"{dimension} not found in file.")

    values = nc.dim_values(dimension)
    if time_as_date and get_dim_axes(nc).get(dimension) == 'T':
        decoded = decode_time_dimension(nc, dimension, values, logger)
        if decoded is not None:
            return min(decoded.date), max(decoded.date)

    return float(np.nanmin(values)), float(np.nanmax(values))


def list_nc_files(
    path: Union[str, Path],
    logger: logging.Logger,
    pattern: str = '*.nc'
) -> List[Path]:
    """
    Find all NetCDF files matching the pattern.

    INPUTS:
    - path (str | Path): Directory to search OR path to single file
    - logger (logging.Logger): Logger instance
    - pattern (str): Glob pattern (ignored if path is a file)

    OUTPUTS:
    - List[Path]: Sorted list of matching file paths

    RAISES:
    - FileNotFoundError: If the path does not exist
    """
    input_path = Path(path)

    if not input_path.exists():
        raise FileNotFoundError(f"Input path does not exist: {path}")

    if input_path.is_file():
        logger.info(f"Processing single file: {input_path.name}")
        return [input_path]

    files = sorted(p for p in input_path.glob(pattern) if p.is_file())
    logger.info(f"Found {len(files)} files matching pattern '{pattern}'")
    return files
