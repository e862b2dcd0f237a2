"""
Build a network model from raw tables and store it in the model registry.

Usage:
    python scripts/build_model.py --data-dir ./data/raw --registry-dir ./models \
        --species Hs --category CFA --function Apoptosis --version 1 --subversion 1
    python scripts/build_model.py --config configs/pipeline.yaml
"""

import argparse
from npamodels.pipeline import run_pipeline
from npamodels.cli_config import (
    add_identifier_arguments,
    add_threshold_arguments,
    identifier_from_args,
    parse_args_with_config,
    pipeline_config_from_args,
)


def main(argv=None):
    parser = argparse.ArgumentParser(description='Build and store a network model')
    parser.add_argument(
        '--data-dir',
        dest='data_dir',
        type=str,
        default='./data/raw',
        help='Path to raw data directory'
    )
    parser.add_argument(
        '--registry-dir',
        dest='registry_dir',
        type=str,
        default='./models',
        help='Path to model registry directory'
    )
    parser.add_argument('--interactions-file', dest='interactions_file', type=str, default='interactions.tsv')
    parser.add_argument('--knockdowns-file', dest='knockdowns_file', type=str, default='knockdowns.tsv')
    parser.add_argument(
        '--treatments-file',
        dest='treatments_file',
        type=str,
        default=None,
        help='Optional treatment table to resolve alongside the model'
    )
    add_identifier_arguments(parser)
    add_threshold_arguments(parser)

    args, _ = parse_args_with_config(parser, argv)
    identifier = identifier_from_args(args)
    config = pipeline_config_from_args(args)

    print(f'Building {identifier.key} from {args.data_dir} into {args.registry_dir}')
    run_pipeline(
        data_dir=args.data_dir,
        registry_dir=args.registry_dir,
        identifier=identifier,
        config=config,
        interactions_file=args.interactions_file,
        knockdowns_file=args.knockdowns_file,
        treatments_file=args.treatments_file,
    )
    print('Done!')


if __name__ == '__main__':
    main()
