import pytest
import polars as pl

from npamodels.config import PipelineConfig
from npamodels.errors import ModelIntegrityError
from npamodels.models.schema import DownstreamTarget, ModelIdentifier
from npamodels.models.store import DirectoryModelStore, InMemoryModelStore
from npamodels.pipeline import build_network_model, get_model_summary, run_pipeline


IDENT = ModelIdentifier("Hs", "CFA", "Apoptosis", 1, 1)


def _interactions():
    return pl.DataFrame(
        {
            "SOURCE_NODE": ["A", "B", "A"],
            "TARGET_NODE": ["B", "C", "C"],
            "DIRECTION": [1, -1, 1],
            "INTERACTION": ["increases", "decreases", "Correlation"],
        }
    ).lazy()


def _knockdowns(extra_node=None):
    rows = {
        "PERTURBED_NODE": ["A", "A", "B"],
        "TARGET_GENE": ["X", "Y", "X"],
        "FOLD_CHANGE": [1.2, -0.9, 0.6],
        "P_VALUE": [0.001, 0.002, 0.003],
    }
    if extra_node:
        rows["PERTURBED_NODE"].append(extra_node)
        rows["TARGET_GENE"].append("W")
        rows["FOLD_CHANGE"].append(2.0)
        rows["P_VALUE"].append(0.001)
    return pl.DataFrame(rows).lazy()


def test_build_network_model_end_to_end():
    store = InMemoryModelStore()

    model = build_network_model(_interactions(), _knockdowns(), IDENT, store=store)

    assert len(model.backbone_edges) == 2
    assert model.downstream_targets["A"] == (DownstreamTarget("X", -1), DownstreamTarget("Y", 1))
    assert model.downstream_targets["B"] == (DownstreamTarget("X", -1),)
    assert store.get(IDENT) is model

    summary = get_model_summary(model)
    assert summary["identifier"] == "Hs/CFA/Apoptosis/1.1"
    assert summary["backbone_nodes"] == 3
    assert summary["perturbed_nodes"] == 2
    assert summary["downstream_targets"] == 3
    assert summary["max_targets_per_node"] == 2


def test_build_network_model_unknown_perturbed_node_permissive_vs_restricted():
    with pytest.raises(ModelIntegrityError) as excinfo:
        build_network_model(_interactions(), _knockdowns(extra_node="Z"), IDENT)
    assert excinfo.value.nodes == ("Z",)

    model = build_network_model(
        _interactions(),
        _knockdowns(extra_node="Z"),
        IDENT,
        config=PipelineConfig(restrict_perturbed_to_backbone=True),
    )
    assert "Z" not in model.downstream_targets


def _write_inputs(data_dir):
    data_dir.mkdir()
    (data_dir / "interactions.tsv").write_text(
        "Source.Node\tTarget.Node\tDirection\tInteraction\n"
        "A\tB\t+1\tincreases\n"
        "B\tC\t-1\tdecreases\n"
        "A\tC\t1\tpositiveCorrelation\n",
        encoding="utf-8",
    )
    (data_dir / "knockdowns.tsv").write_text(
        "KD\tID\tFC\tPVAL\tType\n"
        "A\tX\t1.2\t0.001\ttranscriptionFactor\n"
        "A\tB\t3.0\t0.001\ttranscriptionFactor\n"
        "B\tY\t-0.7\t0.004\ttranscriptionFactor\n",
        encoding="utf-8",
    )
    (data_dir / "treatments.tsv").write_text(
        "treatment\tID\tt\tlogFC\tP.Value\n"
        "T1\tA\t2.0\t0.5\t0.01\n"
        "T1\tA\t9.0\t9.0\t0.01\n"
        "T2\tNA\t1.0\t1.0\t0.5\n",
        encoding="utf-8",
    )


def test_run_pipeline_stores_model_and_profiles(tmp_path):
    data_dir = tmp_path / "raw"
    _write_inputs(data_dir)
    registry = tmp_path / "models"

    result = run_pipeline(
        data_dir=str(data_dir),
        registry_dir=str(registry),
        identifier=IDENT,
        config=PipelineConfig(),
    )

    model = result["model"]
    assert DirectoryModelStore(registry).get(IDENT) == model
    assert model.downstream_targets["A"] == (DownstreamTarget("X", -1),)
    assert model.downstream_targets["B"] == (DownstreamTarget("Y", 1),)

    profiles = result["treatment_profiles"]
    assert list(profiles) == ["T1", "T2"]
    assert [t.t_stat for t in profiles["T1"]] == [2.0]
    assert profiles["T2"] == ()


def test_run_pipeline_without_treatments(tmp_path):
    data_dir = tmp_path / "raw"
    _write_inputs(data_dir)

    result = run_pipeline(
        data_dir=str(data_dir),
        registry_dir=str(tmp_path / "models"),
        identifier=IDENT,
        treatments_file=None,
    )

    assert result["treatment_profiles"] is None


def test_run_pipeline_requires_identifier(tmp_path):
    with pytest.raises(ValueError):
        run_pipeline(data_dir=str(tmp_path), registry_dir=str(tmp_path))
