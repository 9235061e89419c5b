#!/usr/bin/env python3
"""
Convert a hospital price list (Excel or CSV) into codes.json.

The finance team's price list is expected to carry at least the columns
Code, Description and Unit Price; Code Type and Category are optional.

Usage:
    python build_code_catalog.py price_list.xlsx --output-dir ../data
"""

import argparse
import logging
import sys
from pathlib import Path

from hospital_billing.catalog_import import codes_from_frame, read_catalog_table, write_codes_json

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Convert a hospital price list into codes.json'
    )
    parser.add_argument(
        'price_list',
        type=Path,
        help='Path to the price list (Excel or CSV)'
    )
    parser.add_argument(
        '--output-dir',
        type=Path,
        default=Path('../data'),
        help='Output directory for codes.json (default: ../data)'
    )
    parser.add_argument(
        '--strict',
        action='store_true',
        help='Fail instead of skipping rows that cannot be parsed'
    )

    args = parser.parse_args()

    if not args.price_list.exists():
        logger.error(f"Price list not found: {args.price_list}")
        return 1

    try:
        df = read_catalog_table(args.price_list)
    except ValueError as e:
        logger.error(str(e))
        return 1

    codes, skipped = codes_from_frame(df)
    if skipped and args.strict:
        logger.error(f"{len(skipped)} rows could not be parsed; nothing written")
        return 1

    output = args.output_dir / 'codes.json'
    write_codes_json(codes, output)

    print(f"\nSuccess!")
    print(f"  Codes written: {len(codes)}")
    print(f"  Rows skipped:  {len(skipped)}")
    print(f"\nFile saved to:")
    print(f"  {output}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
