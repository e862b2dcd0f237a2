"""
List the network models stored in a registry.

Usage:
    python scripts/list_models.py --registry-dir ./models
"""

import argparse
from npamodels.models.store import DirectoryModelStore
from npamodels.pipeline import get_model_summary
from npamodels.cli_config import parse_args_with_config


def main(argv=None):
    parser = argparse.ArgumentParser(description='List stored network models')
    parser.add_argument(
        '--registry-dir',
        dest='registry_dir',
        type=str,
        default='./models',
        help='Path to model registry directory'
    )
    parser.add_argument('--details', action='store_true', help='Load each model and print counts')

    args, _ = parse_args_with_config(parser, argv)
    store = DirectoryModelStore(args.registry_dir)

    identifiers = store.list_identifiers()
    print(f'{len(identifiers)} model(s) in {args.registry_dir}')
    for identifier in identifiers:
        if not args.details:
            print(f'  {identifier.key}')
            continue
        summary = get_model_summary(store.get(identifier))
        print(
            f"  {identifier.key}: {summary['backbone_edges']} edges, "
            f"{summary['backbone_nodes']} backbone nodes, "
            f"{summary['perturbed_nodes']} perturbed nodes, "
            f"{summary['downstream_targets']} downstream targets"
        )


if __name__ == '__main__':
    main()
