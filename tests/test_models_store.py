import json

import pytest

from npamodels.data.graph import BackboneGraph
from npamodels.errors import ModelNotFoundError
from npamodels.models.schema import (
    DownstreamTarget,
    InteractionKind,
    InteractionRecord,
    ModelIdentifier,
    NetworkModel,
)
from npamodels.models.store import DirectoryModelStore, InMemoryModelStore


def _model(identifier, extra_target=None):
    edges = (
        InteractionRecord("A", "B", 1, InteractionKind.DIRECTLY_INCREASES),
        InteractionRecord("B", "C", -1),
        InteractionRecord("A", "B", -1),
    )
    targets = [DownstreamTarget("X", -1), DownstreamTarget("Y", 1)]
    if extra_target:
        targets.append(DownstreamTarget(extra_target, 1))
    return NetworkModel(
        identifier=identifier,
        backbone_edges=edges,
        downstream_targets={"B": tuple(targets), "A": (DownstreamTarget("Z", 1),)},
        graph=BackboneGraph.from_edges((e.source, e.target, e.direction) for e in edges),
    )


def test_directory_store_round_trip(tmp_path):
    ident = ModelIdentifier("Hs", "CFA", "Apoptosis", 1, 1)
    store = DirectoryModelStore(tmp_path)
    model = _model(ident)

    store.put(ident, model)
    loaded = store.get(ident)

    assert loaded == model
    assert loaded.backbone_edges[0].kind is InteractionKind.DIRECTLY_INCREASES
    assert list(loaded.downstream_targets) == ["B", "A"]
    assert loaded.graph.weight("A", "B") == -1


def test_directory_store_writes_expected_layout(tmp_path):
    ident = ModelIdentifier("Mm", "CPR", "Cell_Cycle", 2, 0)
    store = DirectoryModelStore(tmp_path)

    store.put(ident, _model(ident))

    model_dir = tmp_path / "Mm" / "CPR" / "Cell_Cycle" / "v2.0"
    assert store.path_for(ident) == model_dir
    assert (model_dir / "backbone_edges.parquet").exists()
    assert (model_dir / "downstream_targets.parquet").exists()
    meta = json.loads((model_dir / "metadata.json").read_text())
    assert meta["key"] == "Mm/CPR/Cell_Cycle/2.0"
    assert meta["counts"]["downstream_targets"] == 3


def test_directory_store_put_replaces_previous_model(tmp_path):
    ident = ModelIdentifier("Hs", "CFA", "Apoptosis", 1, 1)
    store = DirectoryModelStore(tmp_path)

    store.put(ident, _model(ident, extra_target="W"))
    store.put(ident, _model(ident))

    assert store.get(ident) == _model(ident)
    assert store.list_identifiers() == [ident]
    assert not (tmp_path / "Hs" / "CFA" / "Apoptosis" / "v1.1.tmp").exists()


def test_directory_store_lists_sorted_identifiers_and_deletes(tmp_path):
    store = DirectoryModelStore(tmp_path)
    b = ModelIdentifier("Hs", "CPR", "Cell_Cycle", 1, 0)
    a = ModelIdentifier("Hs", "CFA", "Apoptosis", 1, 1)
    store.put(b, _model(b))
    store.put(a, _model(a))

    assert store.list_identifiers() == [a, b]
    assert store.contains(a)

    store.delete(a)
    assert store.list_identifiers() == [b]
    assert a not in store
    with pytest.raises(ModelNotFoundError):
        store.get(a)
    with pytest.raises(ModelNotFoundError):
        store.delete(a)


def test_directory_store_empty_root(tmp_path):
    store = DirectoryModelStore(tmp_path / "missing")

    assert store.list_identifiers() == []


def test_directory_store_round_trips_model_without_targets(tmp_path):
    ident = ModelIdentifier("Hs", "TRA", "Xenobiotic_Metabolism", 1, 0)
    model = NetworkModel(
        identifier=ident,
        backbone_edges=(InteractionRecord("A", "B", 1),),
        downstream_targets={},
        graph=BackboneGraph.from_edges([("A", "B", 1)]),
    )
    store = DirectoryModelStore(tmp_path)

    store.put(ident, model)

    assert store.get(ident) == model


def test_in_memory_store_missing_identifier():
    store = InMemoryModelStore()
    ident = ModelIdentifier("Hs", "CFA", "Apoptosis", 1, 1)

    with pytest.raises(ModelNotFoundError):
        store.get(ident)
    with pytest.raises(KeyError):
        store.delete(ident)
