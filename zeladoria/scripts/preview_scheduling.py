#!/usr/bin/env python3
"""
Command-line script to preview mowing schedule changes.

Usage:
    python zeladoria/scripts/preview_scheduling.py [--reference-date YYYY-MM-DD] [--lote N] [--show-all] [--summary-only]

Options:
    --reference-date YYYY-MM-DD  First day of the recomputed schedule (defaults to today)
    --lote N                     Only preview one lote
    --show-all                   Show all areas, not just those with changes
    --summary-only               Show only summary, not detailed diffs
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from zeladoria import create_app
from zeladoria.rocagem.scheduling.preview import run_preview_script
import argparse


def main():
    parser = argparse.ArgumentParser(
        description='Preview mowing schedule changes without updating the database'
    )
    parser.add_argument(
        '--reference-date',
        type=str,
        help='First day of the schedule (YYYY-MM-DD format, defaults to today)'
    )
    parser.add_argument(
        '--lote',
        type=int,
        help='Only preview this lote'
    )
    parser.add_argument(
        '--show-all',
        action='store_true',
        help='Show all areas, not just those with changes'
    )
    parser.add_argument(
        '--summary-only',
        action='store_true',
        help='Show only summary statistics, not detailed diffs'
    )

    args = parser.parse_args()

    app = create_app()

    with app.app_context():
        try:
            run_preview_script(
                reference_date_str=args.reference_date,
                lote=args.lote,
                show_all=args.show_all,
                detailed=not args.summary_only
            )
        except Exception as e:
            print(f"\nFatal error: {e}", file=sys.stderr)
            sys.exit(1)


if __name__ == '__main__':
    main()
