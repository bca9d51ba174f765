"""
============================================================================
LOGGER MODULE: NetCDF Table Extractor
============================================================================

MODULE PURPOSE:
Provides centralized logging functionality for tracking extraction progress,
partial-data warnings, and multi-file batch statistics.

KEY FUNCTIONS:
- setup_logger: Initialize logger with file and console output
- get_logger: Return the package logger (used as default by entry points)
- log_file_processing: Track individual file processing status
- log_batch_summary: Report final batch statistics

============================================================================
"""

import logging
import sys
from math import prod
from pathlib import Path
from typing import Dict, Optional

LOGGER_NAME = 'ncextract'


def setup_logger(
    log_file: Optional[str] = None,
    verbose: bool = False
) -> logging.Logger:
    """
    Setup and configure logger with both file and console handlers.

    INPUTS:
    - log_file (str, optional): Path to log file. If None, only console logging
    - verbose (bool): If True, set console level to DEBUG, otherwise INFO

    OUTPUTS:
    - logging.Logger: Configured logger instance

    FUNCTIONALITY:
    Creates logger with formatted output to both console and file (if specified).
    Console shows INFO+ messages, file shows DEBUG+ messages.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    # Clear any existing handlers
    logger.handlers.clear()

    formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # File handler - always DEBUG level
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, mode='a')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

        logger.info(f"Logging to file: {log_file}")

    return logger


def get_logger(logger: Optional[logging.Logger] = None) -> logging.Logger:
    """Return `logger` if given, else the package logger."""
    return logger if logger is not None else logging.getLogger(LOGGER_NAME)


def log_file_processing(
    logger: logging.Logger,
    filename: str,
    status: str,
    details: Optional[str] = None
) -> None:
    """
    Log the processing status of a single file.

    INPUTS:
    - logger (logging.Logger): Logger instance
    - filename (str): Name of file being processed
    - status (str): Processing status ('start', 'success', 'error', 'skip')
    - details (str, optional): Additional details or error message
    """
    status_messages = {
        'start': f"Processing file: {filename}",
        'success': f"✓ Successfully extracted: {filename}",
        'error': f"✗ Error processing: {filename}",
        'skip': f"⊗ Skipping file: {filename}"
    }

    message = status_messages.get(status, f"Unknown status for {filename}")

    if details:
        message += f" - {details}"

    if status == 'error':
        logger.error(message)
    elif status == 'skip':
        logger.warning(message)
    else:
        logger.info(message)


def log_batch_summary(
    logger: logging.Logger,
    total_files: int,
    successful: int,
    failed: int,
    total_rows: int
) -> None:
    """
    Log final summary statistics for a multi-file extraction.

    INPUTS:
    - logger (logging.Logger): Logger instance
    - total_files (int): Total number of files found
    - successful (int): Number of files extracted
    - failed (int): Number of files skipped after an error
    - total_rows (int): Row count of the merged table
    """
    logger.info("=" * 70)
    logger.info("BATCH EXTRACTION SUMMARY")
    logger.info("=" * 70)
    logger.info(f"Total files found:       {total_files}")
    logger.info(f"Successfully extracted:  {successful}")
    logger.info(f"Skipped after error:     {failed}")
    logger.info(f"Merged rows:             {total_rows:,}")
    logger.info(f"Success rate:            {(successful/total_files*100):.1f}%" if total_files > 0 else "N/A")
    logger.info("=" * 70)


def log_variable_info(
    logger: logging.Logger,
    variable_count: int,
    variable_names: list,
    max_display: int = 10
) -> None:
    """
    Log information about the variables requested for extraction.

    INPUTS:
    - logger (logging.Logger): Logger instance
    - variable_count (int): Total number of variables
    - variable_names (list): List of variable names
    - max_display (int): Maximum number of variable names to display
    """
    logger.info(f"Extracting {variable_count} variables")

    if variable_count <= max_display:
        logger.debug(f"Variables: {', '.join(variable_names)}")
    else:
        displayed = ', '.join(variable_names[:max_display])
        logger.debug(f"Variables (first {max_display}): {displayed}...")
        logger.debug(f"... and {variable_count - max_display} more")


def log_dimension_info(
    logger: logging.Logger,
    dim_sizes: Dict[str, int]
) -> None:
    """
    Log dimension sizes of a window and the number of rows it will produce.

    INPUTS:
    - logger (logging.Logger): Logger instance
    - dim_sizes (dict): Mapping of dimension name to selected length
    """
    total_points = prod(dim_sizes.values()) if dim_sizes else 0

    shape = ' × '.join(f"{size} {name}" for name, size in dim_sizes.items())
    logger.debug(f"Dimensions: {shape}")
    logger.debug(f"Total rows to generate: {total_points:,}")

    # Warn if very large window
    if total_points > 10_000_000:
        logger.warning(f"Large window detected ({total_points:,} rows). Processing may take time.")
