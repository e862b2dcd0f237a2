"""
Typed records for network models and treatment profiles.

Records validate themselves on construction so that a malformed shape
fails where it is built instead of inside the scoring engine.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Dict, Mapping, Optional, Tuple

import polars as pl

if TYPE_CHECKING:
    from ..data.graph import BackboneGraph


_SIGNS = (1, -1)


def _check_node(value: str, what: str) -> None:
    if not isinstance(value, str) or not value:
        raise ValueError(f'{what} must be a non-empty string, got {value!r}')


def _check_sign(value: int, what: str) -> None:
    if isinstance(value, bool) or value not in _SIGNS:
        raise ValueError(f'{what} must be +1 or -1, got {value!r}')


class InteractionKind(str, Enum):
    """Causal relationship labels that survive interaction filtering."""

    DIRECTLY_INCREASES = 'directlyIncreases'
    INCREASES = 'increases'
    DIRECTLY_DECREASES = 'directlyDecreases'
    DECREASES = 'decreases'

    @classmethod
    def parse(cls, label: Optional[str]) -> Optional['InteractionKind']:
        if label is None:
            return None
        try:
            return cls(str(label).strip())
        except ValueError:
            return None


class TargetCategory(str, Enum):
    """Knockdown target classes carried by the Type column."""

    TRANSCRIPTION_FACTOR = 'transcriptionFactor'
    METASTATIC_SUPPRESSOR = 'metastaticSuppressor'


@dataclass(frozen=True)
class InteractionRecord:
    """One directed backbone edge."""

    source: str
    target: str
    direction: int
    kind: Optional[InteractionKind] = None

    def __post_init__(self):
        _check_node(self.source, 'source')
        _check_node(self.target, 'target')
        _check_sign(self.direction, 'direction')


@dataclass(frozen=True)
class DownstreamTarget:
    """A terminal node reached by perturbing a backbone node."""

    target: str
    direction: int

    def __post_init__(self):
        _check_node(self.target, 'target')
        _check_sign(self.direction, 'direction')


@dataclass(frozen=True)
class TreatmentTarget:
    """Differential-expression statistics of one node under one treatment."""

    target: str
    t_stat: float
    fold_change: float

    def __post_init__(self):
        _check_node(self.target, 'target')


@dataclass(frozen=True, order=True)
class ModelIdentifier:
    """Compound key naming a persisted network model, e.g. ``Hs/CFA/Apoptosis/1.1``."""

    species: str
    category: str
    function: str
    version: int
    subversion: int

    def __post_init__(self):
        for name in ('species', 'category', 'function'):
            value = getattr(self, name)
            _check_node(value, name)
            if '/' in value or '\\' in value or value in ('.', '..'):
                raise ValueError(f'{name} must not contain path separators, got {value!r}')
        for name in ('version', 'subversion'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f'{name} must be a non-negative integer, got {value!r}')

    @property
    def key(self) -> str:
        return f'{self.species}/{self.category}/{self.function}/{self.version}.{self.subversion}'

    @classmethod
    def parse(cls, key: str) -> 'ModelIdentifier':
        parts = str(key).strip().split('/')
        if len(parts) != 4 or '.' not in parts[3]:
            raise ValueError(f'Model key must look like species/category/function/version.subversion, got {key!r}')
        version, subversion = parts[3].split('.', 1)
        try:
            return cls(parts[0], parts[1], parts[2], int(version), int(subversion))
        except (TypeError, ValueError) as exc:
            raise ValueError(f'Invalid model key {key!r}: {exc}') from exc

    def __str__(self) -> str:
        return self.key


DownstreamTargets = Mapping[str, Tuple[DownstreamTarget, ...]]
TreatmentProfiles = Dict[str, Tuple[TreatmentTarget, ...]]


@dataclass(frozen=True)
class NetworkModel:
    """
    Two-layer network model handed to the scoring engine.

    Attributes:
        identifier: Compound key of the model.
        backbone_edges: Directed causal edges, in source-table order.
        downstream_targets: Backbone node -> terminal nodes with discretized direction.
        graph: Undirected weighted view of the backbone edges.
    """

    identifier: ModelIdentifier
    backbone_edges: Tuple[InteractionRecord, ...]
    downstream_targets: DownstreamTargets
    graph: 'BackboneGraph'

    def __post_init__(self):
        object.__setattr__(self, 'backbone_edges', tuple(self.backbone_edges))
        targets = {
            str(node): tuple(items) for node, items in self.downstream_targets.items()
        }
        object.__setattr__(self, 'downstream_targets', MappingProxyType(targets))

    def __hash__(self) -> int:
        # downstream_targets is a mappingproxy, which is unhashable.
        return hash((self.identifier, self.backbone_edges))

    @property
    def backbone_nodes(self) -> frozenset:
        nodes = set()
        for edge in self.backbone_edges:
            nodes.add(edge.source)
            nodes.add(edge.target)
        return frozenset(nodes)

    @property
    def terminal_nodes(self) -> frozenset:
        return frozenset(
            item.target for items in self.downstream_targets.values() for item in items
        )

    def edges_frame(self, include_kind: bool = False) -> pl.DataFrame:
        """Backbone edges as a (SOURCE_NODE, DIRECTION, TARGET_NODE) table."""
        columns = {
            'SOURCE_NODE': [e.source for e in self.backbone_edges],
            'DIRECTION': [e.direction for e in self.backbone_edges],
            'TARGET_NODE': [e.target for e in self.backbone_edges],
        }
        schema = {'SOURCE_NODE': pl.String, 'DIRECTION': pl.Int8, 'TARGET_NODE': pl.String}
        if include_kind:
            columns['INTERACTION'] = [
                e.kind.value if e.kind is not None else None for e in self.backbone_edges
            ]
            schema['INTERACTION'] = pl.String
        return pl.DataFrame(columns, schema=schema)

    def downstream_frame(self) -> pl.DataFrame:
        """Downstream targets flattened to one row per (backbone node, target)."""
        nodes, targets, directions = [], [], []
        for node, items in self.downstream_targets.items():
            for item in items:
                nodes.append(node)
                targets.append(item.target)
                directions.append(item.direction)
        return pl.DataFrame(
            {'PERTURBED_NODE': nodes, 'TARGET_GENE': targets, 'DIRECTION': directions},
            schema={'PERTURBED_NODE': pl.String, 'TARGET_GENE': pl.String, 'DIRECTION': pl.Int8},
        )
