"""
Pytest configuration and shared fixtures for ncextract tests.

Datasets are built in memory with xarray; file-based fixtures write them
to a temporary directory with the netCDF4 engine.
"""

import logging

import numpy as np
import pytest
import xarray as xr

from ncextract import NcDataset


@pytest.fixture
def logger():
    """Package logger, propagating so caplog sees its records."""
    log = logging.getLogger('ncextract.tests')
    log.setLevel(logging.DEBUG)
    return log


def make_grid_dataset():
    lon = np.array([10.0, 20.0, 30.0])
    lat = np.array([40.0, 50.0])
    return xr.Dataset(
        data_vars={
            'temp': (('lon', 'lat'), np.arange(6, dtype=float).reshape(3, 2),
                     {'units': 'K', 'long_name': 'Air Temperature'}),
        },
        coords={
            'lon': ('lon', lon, {'units': 'degrees_east'}),
            'lat': ('lat', lat, {'units': 'degrees_north'}),
        },
        attrs={'title': 'Test grid', 'institution': 'Test'},
    )


def make_time_dataset(time_units='days since 2000-01-01', calendar='standard'):
    time = np.array([0.0, 1.0, 2.0, 3.0])
    lat = np.array([40.0, 50.0])
    lon = np.array([10.0, 20.0, 30.0])
    shape = (4, 2, 3)
    time_attrs = {'units': time_units, 'calendar': calendar}
    return xr.Dataset(
        data_vars={
            'tas': (('time', 'lat', 'lon'), np.arange(24, dtype=float).reshape(shape),
                    {'units': 'K'}),
            'pr': (('time', 'lat', 'lon'), np.arange(24, dtype=float).reshape(shape) / 10,
                   {'units': 'mm/day'}),
            'orog': (('lat', 'lon'), np.ones((2, 3)), {'units': 'm'}),
        },
        coords={
            'time': ('time', time, time_attrs),
            'lat': ('lat', lat, {'units': 'degrees_north'}),
            'lon': ('lon', lon, {'units': 'degrees_east'}),
        },
        attrs={'source': 'unit test'},
    )


@pytest.fixture
def grid_dataset():
    """lon=[10,20,30], lat=[40,50], temp(lon, lat) = 0..5."""
    return make_grid_dataset()


@pytest.fixture
def grid_nc(grid_dataset):
    return NcDataset(grid_dataset)


@pytest.fixture
def time_dataset():
    """tas and pr on (time=4 days from 2000-01-01, lat=2, lon=3), orog on (lat, lon)."""
    return make_time_dataset()


@pytest.fixture
def time_nc(time_dataset):
    return NcDataset(time_dataset)


@pytest.fixture
def nc_directory(tmp_path):
    """Directory holding three NetCDF files with the same layout."""
    for i, name in enumerate(['run_a', 'run_b', 'run_c']):
        ds = make_time_dataset()
        ds['tas'] = ds['tas'] + 100 * i
        ds.attrs['run'] = name
        ds.to_netcdf(tmp_path / f"{name}.nc", engine='netcdf4')
    (tmp_path / 'notes.txt').write_text('not a dataset')
    return tmp_path
