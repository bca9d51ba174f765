"""
============================================================================
BATCH MODULE: NetCDF Table Extractor
============================================================================

MODULE PURPOSE:
Runs the single-file extraction over a set of NetCDF files, one file at a
time, and merges the results into one table tagged with the source file.

KEY FUNCTIONS:
- multiple_nc_as_data_frame: Extract and merge every file in a directory
- extract_many: Same, configured with an ExtractionOptions bundle

FAILURE POLICY:
By default the first file that fails aborts the batch and the error is
re-raised. With skip_failed=True the file is logged and skipped.

============================================================================
"""

import logging
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence, Union

import pandas as pd
from tqdm import tqdm

from .config import DEFAULT_ID_COLUMN, DEFAULT_PATTERN, ExtractionOptions
from .data_processor import nc_as_data_frame
from .logger import get_logger, log_batch_summary, log_file_processing
from .nc_reader import list_nc_files, open_nc_file

FileSet = Union[str, Path, Sequence[Union[str, Path]]]


def _resolve_files(files: FileSet, pattern: str, logger: logging.Logger) -> List[Path]:
    if isinstance(files, (str, Path)):
        return list_nc_files(files, logger, pattern)
    return [Path(f) for f in files]


def multiple_nc_as_data_frame(
    path: FileSet,
    variables: Optional[Union[str, Sequence[str]]] = None,
    keep_raw_time: bool = True,
    include_metadata: bool = True,
    boundary: Optional[Mapping[str, Sequence[Any]]] = None,
    lon_points: Optional[Sequence[float]] = None,
    lat_points: Optional[Sequence[float]] = None,
    id_points: Optional[Sequence[Any]] = None,
    show_requested_points: bool = True,
    great_circle_dist: bool = True,
    id_column: str = DEFAULT_ID_COLUMN,
    skip_failed: bool = False,
    pattern: str = DEFAULT_PATTERN,
    show_progress: bool = True,
    logger: Optional[logging.Logger] = None
) -> pd.DataFrame:
    """
    Extract the same variables from many NetCDF files into one DataFrame.

    INPUTS:
    - path (str | Path | list): Directory, single file, or list of files
    - variables, keep_raw_time, ... great_circle_dist: As nc_as_data_frame
    - id_column (str): Name of the leading column holding the source file name
    - skip_failed (bool): Skip files that fail instead of aborting
    - pattern (str): Glob pattern used when `path` is a directory
    - show_progress (bool): Show a progress bar over files
    - logger (logging.Logger, optional): Logger instance

    OUTPUTS:
    - pd.DataFrame: Rows of every file, with `id_column` set to the file name
      without its extension

    RAISES:
    - FileNotFoundError: If no files are found
    - ValueError, OSError: From the first failing file unless skip_failed

    FUNCTIONALITY:
    Files are processed sequentially and each one is closed before the next
    is opened, whether or not its extraction succeeded.
    """
    logger = get_logger(logger)
    filepaths = _resolve_files(path, pattern, logger)
    if not filepaths:
        raise FileNotFoundError(f"No NetCDF files found in {path}")

    tables = []
    file_attributes = {}
    failed = 0

    iterator = tqdm(filepaths, desc="Reading files", unit="file") if show_progress else filepaths

    for filepath in iterator:
        source_id = filepath.stem
        log_file_processing(logger, filepath.name, 'start')

        try:
            with open_nc_file(filepath, logger) as nc:
                df = nc_as_data_frame(
                    nc,
                    variables,
                    keep_raw_time=keep_raw_time,
                    include_metadata=include_metadata,
                    boundary=boundary,
                    lon_points=lon_points,
                    lat_points=lat_points,
                    id_points=id_points,
                    show_requested_points=show_requested_points,
                    great_circle_dist=great_circle_dist,
                    logger=logger
                )
        except Exception as e:
            error_msg = f"{type(e).__name__}: {e}"
            if not skip_failed:
                log_file_processing(logger, filepath.name, 'error', error_msg)
                raise
            log_file_processing(logger, filepath.name, 'skip', error_msg)
            failed += 1
            continue

        if id_column in df.columns:
            raise ValueError(
                f"Column '{id_column}' already exists in {filepath.name}; choose another id_column"
            )

        if include_metadata:
            file_attributes[source_id] = dict(df.attrs)
        df.attrs = {}
        df.insert(0, id_column, source_id)
        tables.append(df)

        log_file_processing(logger, filepath.name, 'success',
                            f'{len(df):,} rows, {len(df.columns)} columns')

    if tables:
        merged_data = pd.concat(tables, ignore_index=True)
    else:
        logger.error("No files could be extracted")
        merged_data = pd.DataFrame(columns=[id_column])

    if include_metadata:
        merged_data.attrs['file_attributes'] = file_attributes

    log_batch_summary(logger, len(filepaths), len(tables), failed, len(merged_data))
    return merged_data


def extract_many(
    files: FileSet,
    variables: Optional[Union[str, Sequence[str]]] = None,
    options: Optional[ExtractionOptions] = None,
    show_progress: bool = True,
    logger: Optional[logging.Logger] = None
) -> pd.DataFrame:
    """Extract and merge many files using an ExtractionOptions bundle."""
    options = options or ExtractionOptions()
    return multiple_nc_as_data_frame(
        files,
        variables,
        id_column=options.id_column,
        skip_failed=options.skip_failed,
        pattern=options.pattern,
        show_progress=show_progress,
        logger=logger,
        **options.extract_kwargs()
    )
