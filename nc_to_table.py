#!/usr/bin/env python3
"""
============================================================================
NETCDF TO TABLE EXTRACTOR
============================================================================

SCRIPT PURPOSE:
Command-line tool for extracting gridded NetCDF variables into a CSV table.
Flattens N-dimensional arrays into one row per coordinate combination,
optionally limited to a boundary or sampled at the nearest grid cell to a
list of points. A directory of files is merged into a single table.

USAGE:
    python nc_to_table.py --input /path/to/file.nc --output table.csv

REQUIRED ARGUMENTS:
    --input         NetCDF file, or directory of NetCDF files to merge
    --output        Output CSV file, or directory for <input name>.csv

OPTIONAL ARGUMENTS:
    --vars          Variables to extract (default: all sharing dimensions)
    --pattern       File pattern to match in a directory (default: *.nc)
    --boundary      DIM MIN MAX, repeatable
    --point         LON LAT [ID], repeatable
    --planar        Planar instead of great-circle distance for points
    --no-raw-time   Drop raw time values once decoded to dates
    --no-metadata   Do not attach attributes
    --no-requested-points  Do not echo requested points as columns
    --id-column     Column holding the source file name (default: id)
    --skip-failed   Skip files that fail instead of stopping
    --log-file      Log file path (default: extraction.log)
    --verbose       Enable detailed debug logging
    --no-progress   Disable progress bars

============================================================================
"""

import argparse
import sys
import traceback
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ncextract import (
    ExtractionOptions,
    extract,
    extract_many,
    open_nc_file,
    setup_logger,
    resolve_output_path,
    write_csv
)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    OUTPUTS:
    - argparse.Namespace: Parsed arguments
    """
    parser = argparse.ArgumentParser(
        description='Extract NetCDF variables into a CSV table',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Whole grid of one file
  python nc_to_table.py --input ./data/tas.nc --output ./out/tas.csv

  # Merge a directory, limited to a region and a period
  python nc_to_table.py --input ./data --output ./out/merged.csv \\
      --boundary lon 10 30 --boundary time 2000-01-01 2000-12-31

  # Nearest grid cell to two stations
  python nc_to_table.py --input ./data/tas.nc --output ./out/stations.csv \\
      --point 21.0 41.0 A --point 29.5 49.0 B
        """
    )

    parser.add_argument(
        '--input',
        required=True,
        help='NetCDF file OR directory of NetCDF files'
    )

    parser.add_argument(
        '--output',
        required=True,
        help='Output CSV file, or directory to write <input name>.csv into'
    )

    parser.add_argument(
        '--vars',
        nargs='+',
        default=None,
        help='Variables to extract (default: all variables sharing dimensions)'
    )

    parser.add_argument(
        '--pattern',
        default='*.nc',
        help='File pattern to match (default: *.nc)'
    )

    parser.add_argument(
        '--boundary',
        nargs=3,
        action='append',
        metavar=('DIM', 'MIN', 'MAX'),
        help='Inclusive range for a dimension; dates for time dimensions'
    )

    parser.add_argument(
        '--point',
        nargs='+',
        action='append',
        metavar='LON LAT [ID]',
        help='Point to sample at the nearest grid cell'
    )

    parser.add_argument('--planar', action='store_true',
                        help='Use planar instead of great-circle distance')
    parser.add_argument('--no-raw-time', action='store_true',
                        help='Drop raw time values once decoded')
    parser.add_argument('--no-metadata', action='store_true',
                        help='Do not attach attributes')
    parser.add_argument('--no-requested-points', action='store_true',
                        help='Do not echo requested points as columns')
    parser.add_argument('--id-column', default='id',
                        help='Column holding the source file name (default: id)')
    parser.add_argument('--skip-failed', action='store_true',
                        help='Skip files that fail instead of stopping')

    parser.add_argument(
        '--log-file',
        default='extraction.log',
        help='Log file path (default: extraction.log)'
    )

    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable detailed debug logging'
    )

    parser.add_argument(
        '--no-progress',
        action='store_true',
        help='Disable progress bars'
    )

    return parser.parse_args(argv)


def parse_boundary(items: Optional[List[List[str]]]) -> Optional[Dict[str, Tuple[str, str]]]:
    """
    Turn repeated DIM MIN MAX triples into a boundary mapping.

    Bounds stay as text: numeric dimensions convert them to numbers and time
    dimensions read them as dates, so `time 2000 2001` means 2000-01-01 to
    2001-01-01.
    """
    if not items:
        return None
    return {dim: (low, high) for dim, low, high in items}


def parse_points(
    items: Optional[List[List[str]]]
) -> Tuple[Optional[List[float]], Optional[List[float]], Optional[List[str]]]:
    """Split repeated LON LAT [ID] groups into lon, lat and id lists."""
    if not items:
        return None, None, None

    lons, lats, ids = [], [], []
    for item in items:
        if len(item) not in (2, 3):
            raise ValueError(f"--point expects LON LAT [ID], got: {' '.join(item)}")
        lons.append(float(item[0]))
        lats.append(float(item[1]))
        if len(item) == 3:
            ids.append(item[2])

    if ids and len(ids) != len(lons):
        raise ValueError("Either every --point has an ID or none does")
    return lons, lats, ids or None


def build_options(args: argparse.Namespace) -> ExtractionOptions:
    lon_points, lat_points, id_points = parse_points(args.point)
    return ExtractionOptions(
        keep_raw_time=not args.no_raw_time,
        include_metadata=not args.no_metadata,
        boundary=parse_boundary(args.boundary),
        lon_points=lon_points,
        lat_points=lat_points,
        id_points=id_points,
        show_requested_points=not args.no_requested_points,
        great_circle_dist=not args.planar,
        id_column=args.id_column,
        skip_failed=args.skip_failed,
        pattern=args.pattern
    )


def main(argv: Optional[List[str]] = None):
    """
    Main execution function.

    FUNCTIONALITY:
    1. Parse command-line arguments
    2. Setup logging
    3. Extract one file, or merge every file of a directory
    4. Write the table to CSV
    """
    args = parse_arguments(argv)

    logger = setup_logger(args.log_file, args.verbose)

    logger.info("=" * 70)
    logger.info("NetCDF to Table Extractor")
    logger.info("=" * 70)
    logger.info(f"Input:        {args.input}")
    logger.info(f"Output:       {args.output}")
    logger.info(f"File pattern: {args.pattern}")
    logger.info("=" * 70)

    input_path = Path(args.input)

    try:
        options = build_options(args)

        if input_path.is_file():
            with open_nc_file(input_path, logger) as nc:
                df = extract(nc, args.vars, options, logger=logger)
        else:
            df = extract_many(
                input_path,
                args.vars,
                options,
                show_progress=not args.no_progress,
                logger=logger
            )

        output_path = resolve_output_path(args.input, args.output, logger)
        write_csv(df, output_path, logger)

    except Exception as e:
        logger.error(f"{type(e).__name__}: {e}")
        logger.debug(f"Full traceback:\n{traceback.format_exc()}")
        sys.exit(1)

    logger.info(f"Wrote {len(df):,} rows, {len(df.columns)} columns")
    sys.exit(0)


if __name__ == '__main__':
    main()
