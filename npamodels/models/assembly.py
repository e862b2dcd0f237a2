"""
Network-model assembly.

Combines the cleaned backbone edges, the backbone graph and the resolved
downstream targets into one NetworkModel, optionally storing it.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Optional, Sequence, Tuple, Union

import polars as pl

from ..errors import ModelIntegrityError
from .schema import (
    DownstreamTarget,
    InteractionRecord,
    ModelIdentifier,
    NetworkModel,
)
from .store import ModelStore


def _as_records(edges: Union[pl.DataFrame, Iterable[InteractionRecord]]) -> Tuple[InteractionRecord, ...]:
    if isinstance(edges, pl.DataFrame):
        from ..data.processing import interaction_records
        return interaction_records(edges)
    return tuple(edges)


def check_model_integrity(
    edges: Sequence[InteractionRecord],
    downstream_targets: Mapping[str, Sequence[DownstreamTarget]],
) -> None:
    """Raise ModelIntegrityError if a downstream key is not a backbone edge endpoint."""
    endpoints = set()
    for edge in edges:
        endpoints.add(edge.source)
        endpoints.add(edge.target)
    ungrounded = [node for node in downstream_targets if node not in endpoints]
    if ungrounded:
        raise ModelIntegrityError(ungrounded)


def assemble_network_model(
    identifier: ModelIdentifier,
    edges: Union[pl.DataFrame, Iterable[InteractionRecord]],
    downstream_targets: Mapping[str, Sequence[DownstreamTarget]],
    graph=None,
    store: Optional[ModelStore] = None,
) -> NetworkModel:
    """
    Assemble (and optionally store) a network model.

    Args:
        identifier: Compound model identifier.
        edges: Cleaned backbone edges, as a table or as InteractionRecords.
        downstream_targets: Backbone node -> ordered downstream targets.
        graph: Prebuilt BackboneGraph; built from ``edges`` when omitted.
        store: When given, the model is put under ``identifier``.

    Returns:
        The assembled NetworkModel.

    Raises:
        ModelIntegrityError: A downstream key is not a backbone node. Nothing is stored.
    """
    from ..data.graph import build_backbone_graph

    records = _as_records(edges)
    check_model_integrity(records, downstream_targets)

    if graph is None:
        graph = build_backbone_graph(records)

    model = NetworkModel(
        identifier=identifier,
        backbone_edges=records,
        downstream_targets=downstream_targets,
        graph=graph,
    )

    if store is not None:
        store.put(identifier, model)
    return model
