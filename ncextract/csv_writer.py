"""
============================================================================
CSV WRITER MODULE: NetCDF Table Extractor
============================================================================

MODULE PURPOSE:
Handles writing extracted tables to CSV files with consistent date
formatting and UTF-8 encoding.

KEY FUNCTIONS:
- write_csv: Main function to write DataFrame to CSV
- format_datetime_columns: Convert date/datetime columns to ISO strings
- resolve_output_path: Output file for an input, given a file or directory

============================================================================
"""

import logging
from pathlib import Path
from typing import Optional

import pandas as pd

DATE_COLUMNS = {'date': '%Y-%m-%d', 'datetime': '%Y-%m-%d %H:%M:%S'}


def format_datetime_columns(
    df: pd.DataFrame,
    logger: logging.Logger
) -> pd.DataFrame:
    """
    Format decoded time columns to ISO 8601 strings.

    INPUTS:
    - df (pd.DataFrame): Extracted table
    - logger (logging.Logger): Logger instance

    OUTPUTS:
    - pd.DataFrame: Copy of the table with `date` as YYYY-MM-DD and
      `datetime` as YYYY-MM-DD HH:MM:SS strings
    """
    df = df.copy()
    for column, fmt in DATE_COLUMNS.items():
        if column not in df.columns:
            continue
        # Missing dates stay empty in the CSV
        df[column] = pd.to_datetime(df[column]).dt.strftime(fmt)
        logger.debug(f"Formatted {column} column to ISO 8601 strings")
    return df


def resolve_output_path(
    input_path: str,
    output: str,
    logger: logging.Logger
) -> Path:
    """
    Resolve where the table of `input_path` is written.

    An `output` ending in .csv is used as given. Anything else is taken as a
    directory, and the table is named after the input: `tas_2000.nc` gives
    `tas_2000.csv`, a directory `runs/` gives `runs.csv`.
    """
    output_path = Path(output)
    if output_path.suffix.lower() != '.csv':
        source = Path(input_path)
        stem = source.name if source.is_dir() else source.stem
        output_path = output_path / f"{stem}.csv"

    logger.debug(f"Output path: {output_path}")
    return output_path


def write_csv(
    df: pd.DataFrame,
    output_path: str,
    logger: logging.Logger,
    chunksize: Optional[int] = None
) -> None:
    """
    Write DataFrame to CSV file.

    INPUTS:
    - df (pd.DataFrame): DataFrame to write
    - output_path (str): Path to output CSV file
    - logger (logging.Logger): Logger instance
    - chunksize (int, optional): Write in chunks if specified (for large files)

    OUTPUTS:
    - None (writes file to disk)
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    logger.info(f"Writing CSV to: {output_path.name}")
    logger.debug(f"DataFrame shape: {df.shape}")

    df = format_datetime_columns(df, logger)

    try:
        df.to_csv(
            output_path,
            index=False,
            encoding='utf-8',
            chunksize=chunksize
        )
    except OSError as e:
        logger.error(f"Failed to write CSV file: {e}")
        raise

    file_size_mb = output_path.stat().st_size / 1024**2
    logger.info(f"CSV file written successfully ({file_size_mb:.1f} MB)")
