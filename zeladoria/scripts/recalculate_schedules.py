#!/usr/bin/env python3
"""
Recalculate and save proxima_previsao/days_to_complete for every lote.

Usage:
    python zeladoria/scripts/recalculate_schedules.py [--reference-date YYYY-MM-DD] [--dry-run]
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from zeladoria import create_app
from zeladoria.datetime_utils import parse_iso_date
from zeladoria.rocagem.scheduling.preview import run_preview_script
from zeladoria.rocagem.scheduling.service import recalculate_all_schedules
import argparse


def main():
    parser = argparse.ArgumentParser(
        description='Recalculate mowing predictions for every lote'
    )
    parser.add_argument(
        '--reference-date',
        type=str,
        help='First day of the schedule (YYYY-MM-DD format, defaults to today)'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Only print the summary of what would change'
    )
    args = parser.parse_args()

    reference_date = None
    if args.reference_date:
        try:
            reference_date = parse_iso_date(args.reference_date)
        except ValueError:
            print(f"Invalid --reference-date '{args.reference_date}', expected YYYY-MM-DD", file=sys.stderr)
            sys.exit(2)

    app = create_app()

    with app.app_context():
        try:
            if args.dry_run:
                run_preview_script(reference_date_str=args.reference_date, detailed=False)
                return

            summary = recalculate_all_schedules(reference_date)
            print(f"Reference date: {summary['reference_date']}")
            print(f"Calculated: {summary['calculated']} areas ({summary['updated']} changed)")
            for lote, count in sorted(summary['per_lote'].items()):
                print(f"  Lote {lote}: {count} areas")
        except Exception as e:
            print(f"\nFatal error: {e}", file=sys.stderr)
            sys.exit(1)


if __name__ == '__main__':
    main()
