"""Utilities for YAML-driven CLI configuration of model builds."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

from .config import PipelineConfig, load_yaml
from .models.schema import ModelIdentifier


_IDENTIFIER_FIELDS = ('species', 'category', 'function', 'version', 'subversion')


def _flatten_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Flatten nested config dict by taking leaf keys.

    Example:
      {'data': {'data_dir': './raw'}, 'model': {'species': 'Hs'}}
      -> {'data_dir': './raw', 'species': 'Hs'}
    """
    out: Dict[str, Any] = {}

    def _walk(obj: Any) -> None:
        if isinstance(obj, dict):
            for key, value in obj.items():
                if isinstance(value, dict):
                    _walk(value)
                else:
                    out[key] = value

    _walk(config)
    return out


def parse_args_with_config(
    parser: argparse.ArgumentParser,
    argv: Optional[Iterable[str]] = None,
) -> Tuple[argparse.Namespace, Dict[str, Any]]:
    """
    Parse args with optional YAML config defaults.

    Priority (lowest -> highest):
      parser defaults < YAML config values < explicit CLI flags
    """
    dests = {a.dest for a in parser._actions if getattr(a, 'dest', None)}
    if 'config' not in dests:
        parser.add_argument('--config', type=str, default=None, help='Path to YAML config file')

    preload = argparse.ArgumentParser(add_help=False)
    preload.add_argument('--config', type=str, default=None)
    pre_args, _ = preload.parse_known_args(argv)

    loaded_config: Dict[str, Any] = {}
    if pre_args.config:
        cfg_path = Path(pre_args.config)
        if not cfg_path.exists():
            raise FileNotFoundError(f'Config file not found: {cfg_path}')
        loaded_config = load_yaml(cfg_path)
        valid = {k: v for k, v in _flatten_config(loaded_config).items() if k in dests}
        if valid:
            parser.set_defaults(**valid)

    return parser.parse_args(argv), loaded_config


def add_identifier_arguments(parser: argparse.ArgumentParser, required: bool = True) -> None:
    """Add --species/--category/--function/--version/--subversion."""
    group = parser.add_argument_group('model identifier')
    group.add_argument('--species', type=str, default=None, help='Species code, e.g. Hs or Mm')
    group.add_argument('--category', type=str, default=None, help='Functional category, e.g. CFA')
    group.add_argument('--function', type=str, default=None, help='Function name, e.g. Apoptosis')
    group.add_argument('--version', type=int, default=None, help='Model version')
    group.add_argument('--subversion', type=int, default=None, help='Model subversion')
    parser.set_defaults(_identifier_required=required)


def identifier_from_args(args: argparse.Namespace) -> Optional[ModelIdentifier]:
    """Build a ModelIdentifier from parsed args (None when optional and absent)."""
    values = {name: getattr(args, name, None) for name in _IDENTIFIER_FIELDS}
    missing = [name for name, value in values.items() if value is None]
    if len(missing) == len(_IDENTIFIER_FIELDS) and not getattr(args, '_identifier_required', True):
        return None
    if missing:
        raise ValueError(f'Missing model identifier fields: {missing}')
    return ModelIdentifier(
        species=str(values['species']),
        category=str(values['category']),
        function=str(values['function']),
        version=int(values['version']),
        subversion=int(values['subversion']),
    )


def add_threshold_arguments(parser: argparse.ArgumentParser) -> None:
    """Add pipeline threshold flags; unset flags fall back to YAML, then PipelineConfig defaults."""
    group = parser.add_argument_group('filtering')
    group.add_argument('--excluded-interaction-term', dest='excluded_interaction_term', type=str, default=None)
    group.add_argument('--p-value-threshold', dest='p_value_threshold', type=float, default=None)
    group.add_argument('--fold-change-threshold', dest='fold_change_threshold', type=float, default=None)
    group.add_argument(
        '--restrict-perturbed-to-backbone',
        dest='restrict_perturbed_to_backbone',
        action='store_true',
        default=None,
        help='Drop knockdown rows whose perturbed node is not a backbone node',
    )


def pipeline_config_from_args(args: argparse.Namespace) -> PipelineConfig:
    """Collect threshold values from parsed args into a validated PipelineConfig."""
    values = {
        name: getattr(args, name)
        for name in PipelineConfig.__dataclass_fields__
        if getattr(args, name, None) is not None
    }
    return PipelineConfig.from_mapping(values)
