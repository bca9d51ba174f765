"""
Unit tests for the dataset handle, axis classification and file discovery.
"""

from datetime import date
from unittest.mock import Mock

import numpy as np
import pandas as pd
import pytest
import xarray as xr

from ncextract import NcDataset, get_dim_axes, list_nc_files, nc_get_dim_min_max, open_nc_file


class TestNcDataset:
    """Test suite for NcDataset accessors."""

    def test_dimensions_and_variables(self, time_nc):
        assert time_nc.dimensions == ['time', 'lat', 'lon']
        assert time_nc.variables == ['tas', 'pr', 'orog']
        assert time_nc.dim_names('orog') == ['lat', 'lon']

    def test_variables_skip_bounds_and_grid_mapping(self, time_dataset):
        ds = xr.Dataset(
            {
                'time_bnds': (('time', 'bnds'), np.zeros((4, 2))),
                'crs': ((), 0),
                **time_dataset.data_vars,
            },
            coords=time_dataset.coords,
        )
        ds['time'].attrs['bounds'] = 'time_bnds'

        assert NcDataset(ds).variables == ['tas', 'pr', 'orog']

    def test_decoded_time_rejected(self):
        ds = xr.Dataset(
            {'v': (('time',), np.arange(3.0))},
            coords={'time': pd.to_datetime(['2000-01-01', '2000-01-02', '2000-01-03'])},
        )

        with pytest.raises(ValueError, match="decode_times=False"):
            NcDataset(ds)

    def test_unknown_variable(self, time_nc):
        with pytest.raises(ValueError, match="missing"):
            time_nc.dim_names('missing')

    def test_dim_values_are_float(self, grid_nc):
        values = grid_nc.dim_values('lon')
        assert values.dtype == float
        np.testing.assert_array_equal(values, [10.0, 20.0, 30.0])

    def test_dim_values_without_coordinate(self):
        nc = NcDataset(xr.Dataset({'v': (('x', 'band'), np.zeros((2, 3)))}))
        np.testing.assert_array_equal(nc.dim_values('band'), [0.0, 1.0, 2.0])

    def test_get_attribute(self, grid_nc):
        units = grid_nc.get_attribute('temp', 'units')
        assert units.has_attribute
        assert units.value == 'K'

        missing = grid_nc.get_attribute('temp', 'scale')
        assert not missing.has_attribute
        assert missing.value is None

    def test_get_all_attributes(self, grid_nc):
        assert grid_nc.get_attribute('temp') == {'units': 'K', 'long_name': 'Air Temperature'}
        assert grid_nc.get_attribute(None)['title'] == 'Test grid'
        assert grid_nc.get_attribute(0) == grid_nc.get_attribute(None)

    def test_read_hyperslab(self, grid_nc):
        block = grid_nc.read_hyperslab('temp', [1, 0], [2, 1])
        np.testing.assert_array_equal(block, [[2.0], [4.0]])

    def test_read_hyperslab_count_all(self, grid_nc):
        block = grid_nc.read_hyperslab('temp', [1, 0], [-1, -1])
        np.testing.assert_array_equal(block, [[2.0, 3.0], [4.0, 5.0]])

    def test_read_hyperslab_in_requested_order(self, grid_nc):
        block = grid_nc.read_hyperslab('temp', [0, 0], [2, 3], dim_names=['lat', 'lon'])
        assert block.shape == (2, 3)
        np.testing.assert_array_equal(block[:, 1], [2.0, 3.0])

    def test_read_hyperslab_length_mismatch(self, grid_nc):
        with pytest.raises(ValueError, match="one entry per dimension"):
            grid_nc.read_hyperslab('temp', [0], [1, 1])

    def test_context_manager_closes(self):
        dataset = Mock(dims=[], variables={})
        with NcDataset(dataset) as nc:
            assert nc.dataset is dataset
        dataset.close.assert_called_once()

    def test_context_manager_closes_on_error(self):
        dataset = Mock(dims=[], variables={})
        with pytest.raises(RuntimeError):
            with NcDataset(dataset):
                raise RuntimeError("boom")
        dataset.close.assert_called_once()


class TestGetDimAxes:
    """Test suite for axis classification."""

    def test_units_and_names(self, time_nc):
        assert get_dim_axes(time_nc) == {'time': 'T', 'lat': 'Y', 'lon': 'X'}

    def test_restricted_to_variable(self, time_nc):
        assert get_dim_axes(time_nc, 'orog') == {'lat': 'Y', 'lon': 'X'}

    def test_axis_attribute_wins(self):
        ds = xr.Dataset(
            {'v': (('a', 'b', 'c', 'd'), np.zeros((1, 1, 1, 1)))},
            coords={
                'a': ('a', [0.0], {'axis': 'X'}),
                'b': ('b', [0.0], {'axis': 'y'}),
                'c': ('c', [0.0], {'axis': 'Z'}),
                'd': ('d', [0.0], {'axis': 'S'}),
            },
        )
        assert get_dim_axes(NcDataset(ds)) == {'a': 'X', 'b': 'Y', 'c': 'Z', 'd': 'S'}

    def test_standard_name_and_positive(self):
        ds = xr.Dataset(
            {'v': (('xc', 'yc', 'depth_level', 'when'), np.zeros((1, 1, 1, 1)))},
            coords={
                'xc': ('xc', [0.0], {'standard_name': 'longitude'}),
                'yc': ('yc', [0.0], {'standard_name': 'latitude'}),
                'depth_level': ('depth_level', [5.0], {'positive': 'down', 'units': 'm'}),
                'when': ('when', [0.0], {'units': 'hours since 2000-01-01'}),
            },
        )
        assert get_dim_axes(NcDataset(ds)) == {
            'xc': 'X', 'yc': 'Y', 'depth_level': 'Z', 'when': 'T'
        }

    def test_julian_day_units(self):
        ds = xr.Dataset(coords={'day': ('day', [2451545.0], {'units': 'julian_day'})})
        assert get_dim_axes(NcDataset(ds)) == {'day': 'T'}

    def test_unknown_dimension(self):
        ds = xr.Dataset({'v': (('member', 'lat'), np.zeros((2, 1)))},
                        coords={'lat': ('lat', [1.0])})
        assert get_dim_axes(NcDataset(ds)) == {'member': None, 'lat': 'Y'}


class TestDimMinMax:
    """Test suite for nc_get_dim_min_max."""

    def test_numeric(self, grid_nc, logger):
        assert nc_get_dim_min_max(grid_nc, 'lon', logger) == (10.0, 30.0)

    def test_time_as_date(self, time_nc, logger):
        assert nc_get_dim_min_max(time_nc, 'time', logger) == (date(2000, 1, 1), date(2000, 1, 4))

    def test_time_raw(self, time_nc, logger):
        assert nc_get_dim_min_max(time_nc, 'time', logger, time_as_date=False) == (0.0, 3.0)

    def test_missing_dimension(self, grid_nc, logger):
        with pytest.raises(ValueError, match="depth not found in file"):
            nc_get_dim_min_max(grid_nc, 'depth', logger)


class TestFiles:
    """Test suite for opening and discovering files."""

    def test_open_missing_file(self, tmp_path, logger):
        with pytest.raises(FileNotFoundError):
            open_nc_file(tmp_path / 'absent.nc', logger)

    def test_open_invalid_file(self, tmp_path, logger):
        bad = tmp_path / 'bad.nc'
        bad.write_text('definitely not netcdf')
        with pytest.raises(ValueError, match="Failed to open NetCDF file"):
            open_nc_file(bad, logger)

    def test_open_keeps_raw_time(self, nc_directory, logger):
        with open_nc_file(nc_directory / 'run_a.nc', logger) as nc:
            np.testing.assert_array_equal(nc.dim_values('time'), [0.0, 1.0, 2.0, 3.0])
            assert nc.get_attribute('time', 'units').value == 'days since 2000-01-01'
            assert nc.name == 'run_a.nc'

    def test_list_directory(self, nc_directory, logger):
        files = list_nc_files(nc_directory, logger)
        assert [f.name for f in files] == ['run_a.nc', 'run_b.nc', 'run_c.nc']

    def test_list_single_file(self, nc_directory, logger):
        assert list_nc_files(nc_directory / 'run_b.nc', logger) == [nc_directory / 'run_b.nc']

    def test_list_pattern(self, nc_directory, logger):
        assert [f.name for f in list_nc_files(nc_directory, logger, '*.txt')] == ['notes.txt']

    def test_list_missing(self, tmp_path, logger):
        with pytest.raises(FileNotFoundError):
            list_nc_files(tmp_path / 'nowhere', logger)
