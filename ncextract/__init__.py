"""
============================================================================
NCEXTRACT PACKAGE: NetCDF Table Extractor
============================================================================

MODULE PURPOSE:
Package initialization file exposing core functionality from submodules.

AVAILABLE MODULES:
- logger: Logging and progress tracking
- nc_reader: Dataset handle, axis classification and file discovery
- time_decoder: Raw time values to dates
- subsetting: Boundary and point window planning
- data_processor: Window reading, stacking and metadata
- batch: Multi-file extraction and merge
- csv_writer: CSV file output generation

============================================================================
"""

from .logger import (
    setup_logger,
    log_file_processing,
    log_batch_summary,
    log_variable_info,
    log_dimension_info
)

from .config import ExtractionOptions

from .nc_reader import (
    NcDataset,
    open_nc_file,
    get_dim_axes,
    nc_get_dim_min_max,
    list_nc_files
)

from .time_decoder import (
    decode_time_values,
    decode_time_dimension
)

from .subsetting import (
    subset_nc_dimensions,
    subset_nc_by_points
)

from .data_processor import (
    nc_as_data_frame,
    extract,
    create_coordinate_mesh,
    read_window,
    annotate_metadata
)

from .batch import (
    multiple_nc_as_data_frame,
    extract_many
)

from .csv_writer import (
    write_csv,
    resolve_output_path
)

__all__ = [
    # Logger functions
    'setup_logger',
    'log_file_processing',
    'log_batch_summary',
    'log_variable_info',
    'log_dimension_info',

    # Options
    'ExtractionOptions',

    # NetCDF reader
    'NcDataset',
    'open_nc_file',
    'get_dim_axes',
    'nc_get_dim_min_max',
    'list_nc_files',

    # Time decoding
    'decode_time_values',
    'decode_time_dimension',

    # Window planning
    'subset_nc_dimensions',
    'subset_nc_by_points',

    # Extraction
    'nc_as_data_frame',
    'extract',
    'create_coordinate_mesh',
    'read_window',
    'annotate_metadata',
    'multiple_nc_as_data_frame',
    'extract_many',

    # CSV Writer functions
    'write_csv',
    'resolve_output_path'
]

__version__ = '1.0.0'
