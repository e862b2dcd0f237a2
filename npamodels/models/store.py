"""
Model registry: persistence of assembled network models.

Stores are keyed by ModelIdentifier. ``put`` replaces any model already
stored under the same identifier.
"""

from __future__ import annotations

import json
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List

import polars as pl

from ..errors import ModelNotFoundError
from .schema import (
    DownstreamTarget,
    InteractionKind,
    InteractionRecord,
    ModelIdentifier,
    NetworkModel,
)


class ModelStore(ABC):
    """Get/put interface for network models."""

    @abstractmethod
    def get(self, identifier: ModelIdentifier) -> NetworkModel:
        """Return the stored model or raise ModelNotFoundError."""

    @abstractmethod
    def put(self, identifier: ModelIdentifier, model: NetworkModel) -> None:
        """Store ``model`` under ``identifier``, replacing any previous entry."""

    @abstractmethod
    def list_identifiers(self) -> List[ModelIdentifier]:
        """Identifiers of all stored models, sorted."""

    @abstractmethod
    def delete(self, identifier: ModelIdentifier) -> None:
        """Remove a stored model or raise ModelNotFoundError."""

    def contains(self, identifier: ModelIdentifier) -> bool:
        return identifier in set(self.list_identifiers())

    def __contains__(self, identifier: ModelIdentifier) -> bool:
        return self.contains(identifier)


class InMemoryModelStore(ModelStore):
    """Dictionary-backed store, mostly for tests and single-process runs."""

    def __init__(self):
        self._models: Dict[ModelIdentifier, NetworkModel] = {}

    def get(self, identifier: ModelIdentifier) -> NetworkModel:
        try:
            return self._models[identifier]
        except KeyError:
            raise ModelNotFoundError(identifier) from None

    def put(self, identifier: ModelIdentifier, model: NetworkModel) -> None:
        self._models[identifier] = model

    def list_identifiers(self) -> List[ModelIdentifier]:
        return sorted(self._models)

    def delete(self, identifier: ModelIdentifier) -> None:
        if identifier not in self._models:
            raise ModelNotFoundError(identifier)
        del self._models[identifier]

    def contains(self, identifier: ModelIdentifier) -> bool:
        return identifier in self._models


EDGES_FILE = 'backbone_edges.parquet'
TARGETS_FILE = 'downstream_targets.parquet'
METADATA_FILE = 'metadata.json'


def _save_json(path: Path, payload: Dict[str, object]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open('w', encoding='utf-8') as f:
        json.dump(payload, f, ensure_ascii=True, indent=2)


def _load_json(path: Path) -> Dict[str, object]:
    with path.open('r', encoding='utf-8') as f:
        return json.load(f)


class DirectoryModelStore(ModelStore):
    """
    Parquet-on-disk model registry.

    Layout:
        <root>/<species>/<category>/<function>/v<version>.<subversion>/
            backbone_edges.parquet
            downstream_targets.parquet
            metadata.json

    The graph is not written; it is rebuilt from the stored edges on load.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root).expanduser()

    def path_for(self, identifier: ModelIdentifier) -> Path:
        return (
            self.root
            / identifier.species
            / identifier.category
            / identifier.function
            / f'v{identifier.version}.{identifier.subversion}'
        )

    def put(self, identifier: ModelIdentifier, model: NetworkModel) -> None:
        final_dir = self.path_for(identifier)
        tmp_dir = final_dir.with_name(final_dir.name + '.tmp')
        if tmp_dir.exists():
            shutil.rmtree(tmp_dir)
        tmp_dir.mkdir(parents=True)

        model.edges_frame(include_kind=True).write_parquet(tmp_dir / EDGES_FILE)
        model.downstream_frame().write_parquet(tmp_dir / TARGETS_FILE)
        _save_json(tmp_dir / METADATA_FILE, {
            'identifier': {
                'species': identifier.species,
                'category': identifier.category,
                'function': identifier.function,
                'version': identifier.version,
                'subversion': identifier.subversion,
            },
            'key': identifier.key,
            'counts': {
                'backbone_edges': len(model.backbone_edges),
                'backbone_nodes': len(model.backbone_nodes),
                'perturbed_nodes': len(model.downstream_targets),
                'downstream_targets': sum(len(v) for v in model.downstream_targets.values()),
            },
        })

        if final_dir.exists():
            shutil.rmtree(final_dir)
        tmp_dir.rename(final_dir)

    def get(self, identifier: ModelIdentifier) -> NetworkModel:
        from ..data.graph import build_backbone_graph

        model_dir = self.path_for(identifier)
        if not (model_dir / METADATA_FILE).exists():
            raise ModelNotFoundError(identifier)

        edges_df = pl.read_parquet(model_dir / EDGES_FILE)
        records = tuple(
            InteractionRecord(
                source=row['SOURCE_NODE'],
                target=row['TARGET_NODE'],
                direction=int(row['DIRECTION']),
                kind=InteractionKind.parse(row.get('INTERACTION')),
            )
            for row in edges_df.iter_rows(named=True)
        )

        targets: Dict[str, List[DownstreamTarget]] = {}
        for node, target, direction in pl.read_parquet(model_dir / TARGETS_FILE).select(
            ['PERTURBED_NODE', 'TARGET_GENE', 'DIRECTION']
        ).iter_rows():
            targets.setdefault(node, []).append(DownstreamTarget(target=target, direction=int(direction)))

        return NetworkModel(
            identifier=identifier,
            backbone_edges=records,
            downstream_targets={node: tuple(items) for node, items in targets.items()},
            graph=build_backbone_graph(records),
        )

    def list_identifiers(self) -> List[ModelIdentifier]:
        if not self.root.exists():
            return []
        found = []
        for meta_path in self.root.glob(f'*/*/*/v*/{METADATA_FILE}'):
            if meta_path.parent.name.endswith('.tmp'):
                continue
            ident = _load_json(meta_path)['identifier']
            found.append(ModelIdentifier(
                species=ident['species'],
                category=ident['category'],
                function=ident['function'],
                version=int(ident['version']),
                subversion=int(ident['subversion']),
            ))
        return sorted(found)

    def contains(self, identifier: ModelIdentifier) -> bool:
        return (self.path_for(identifier) / METADATA_FILE).exists()

    def delete(self, identifier: ModelIdentifier) -> None:
        model_dir = self.path_for(identifier)
        if not model_dir.exists():
            raise ModelNotFoundError(identifier)
        shutil.rmtree(model_dir)
