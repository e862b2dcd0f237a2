"""
Resolve a treatment differential-expression table into per-treatment target lists.

Usage:
    python scripts/resolve_treatments.py --treatments ./data/raw/treatments.tsv \
        --output ./data/processed/treatment_profiles.parquet
"""

import argparse
from npamodels.data.loading import load_treatments
from npamodels.data.processing import resolve_treatment_profiles, treatment_profiles_frame
from npamodels.cli_config import parse_args_with_config


def main(argv=None):
    parser = argparse.ArgumentParser(description='Resolve treatment profiles')
    parser.add_argument(
        '--treatments',
        type=str,
        default='./data/raw/treatments.tsv',
        help='Path to treatment table'
    )
    parser.add_argument(
        '--output',
        type=str,
        default=None,
        help='Optional parquet path for the resolved profiles'
    )
    parser.add_argument(
        '--treatment',
        dest='treatment_names',
        action='append',
        default=None,
        help='Treatment that must appear in the output (repeatable)'
    )

    args, _ = parse_args_with_config(parser, argv)

    profiles = resolve_treatment_profiles(load_treatments(args.treatments), args.treatment_names)
    print(f'Treatments: {len(profiles)}')
    for name, items in profiles.items():
        print(f'  {name}: {len(items)} targets')

    if args.output:
        treatment_profiles_frame(profiles).write_parquet(args.output)
        print(f'Saved to {args.output}')


if __name__ == '__main__':
    main()
