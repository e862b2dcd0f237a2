"""
End-to-end model build: raw tables -> stored NetworkModel + treatment profiles.
"""

import polars as pl
from typing import Dict, Optional, Union

from .config import PipelineConfig
from .data.graph import build_backbone_graph, print_graph_summary
from .data.loading import DEFAULT_FILES, load_raw_data
from .data.processing import (
    backbone_nodes,
    filter_interactions,
    resolve_perturbations,
    resolve_treatment_profiles,
    unmatched_perturbed_nodes,
)
from .models.assembly import assemble_network_model
from .models.schema import ModelIdentifier, NetworkModel
from .models.store import DirectoryModelStore, ModelStore


Frame = Union[pl.DataFrame, pl.LazyFrame]


def build_network_model(
    interactions: Frame,
    knockdowns: Frame,
    identifier: ModelIdentifier,
    config: Optional[PipelineConfig] = None,
    store: Optional[ModelStore] = None,
) -> NetworkModel:
    """
    Run interaction filtering, graph building, perturbation resolution and assembly.

    Args:
        interactions: Loaded interactions table.
        knockdowns: Loaded knockdown table.
        identifier: Compound identifier of the model.
        config: Filtering thresholds; defaults to PipelineConfig().
        store: Optional registry the model is written to.

    Returns:
        The assembled NetworkModel.
    """
    config = config or PipelineConfig()
    config.validate()

    edges = filter_interactions(interactions, excluded_term=config.excluded_interaction_term)
    graph = build_backbone_graph(edges)
    downstream = resolve_perturbations(
        knockdowns,
        backbone_nodes(edges),
        p_value_threshold=config.p_value_threshold,
        fold_change_threshold=config.fold_change_threshold,
        restrict_perturbed_to_backbone=config.restrict_perturbed_to_backbone,
    )
    return assemble_network_model(identifier, edges, downstream, graph=graph, store=store)


def get_model_summary(model: NetworkModel) -> Dict:
    """Counts describing both layers of a model."""
    sizes = [len(v) for v in model.downstream_targets.values()]
    return {
        'identifier': model.identifier.key,
        'backbone_edges': len(model.backbone_edges),
        'backbone_nodes': len(model.backbone_nodes),
        'perturbed_nodes': len(model.downstream_targets),
        'terminal_nodes': len(model.terminal_nodes),
        'downstream_targets': sum(sizes),
        'max_targets_per_node': max(sizes) if sizes else 0,
    }


def run_pipeline(
    data_dir: str = './data/raw',
    registry_dir: str = './models',
    identifier: Optional[ModelIdentifier] = None,
    config: Optional[PipelineConfig] = None,
    interactions_file: str = DEFAULT_FILES['interactions'],
    knockdowns_file: str = DEFAULT_FILES['knockdowns'],
    treatments_file: Optional[str] = DEFAULT_FILES['treatments'],
) -> Dict[str, object]:
    """
    Load raw tables, build and store the model, and resolve treatment profiles.

    Args:
        data_dir: Directory with the raw tables.
        registry_dir: Root of the DirectoryModelStore.
        identifier: Model identifier (required).
        config: Filtering thresholds.
        interactions_file: Interactions file name inside data_dir.
        knockdowns_file: Knockdown file name inside data_dir.
        treatments_file: Treatment file name inside data_dir, or None.

    Returns:
        Dictionary with 'model' and 'treatment_profiles' (None without a treatment file).
    """
    if identifier is None:
        raise ValueError('run_pipeline requires a model identifier')
    config = config or PipelineConfig()
    config.validate()

    print(f"Loading raw tables from {data_dir}...")
    raw = load_raw_data(
        data_dir,
        interactions_file=interactions_file,
        knockdowns_file=knockdowns_file,
        treatments_file=treatments_file,
    )

    print("\nFiltering interactions...")
    edges = filter_interactions(raw['interactions'], excluded_term=config.excluded_interaction_term)
    nodes = backbone_nodes(edges)
    print(f'  Backbone edges: {edges.height}')
    print(f'  Backbone nodes: {len(nodes)}')

    unmatched = unmatched_perturbed_nodes(raw['knockdowns'], nodes)
    if unmatched:
        action = 'dropping' if config.restrict_perturbed_to_backbone else 'keeping'
        print(f'  Perturbed nodes outside the backbone ({action}): {len(unmatched)}')

    print("\nResolving perturbation profiles...")
    downstream = resolve_perturbations(
        raw['knockdowns'],
        nodes,
        p_value_threshold=config.p_value_threshold,
        fold_change_threshold=config.fold_change_threshold,
        restrict_perturbed_to_backbone=config.restrict_perturbed_to_backbone,
    )

    print(f"\nAssembling model {identifier.key}...")
    store = DirectoryModelStore(registry_dir)
    model = assemble_network_model(
        identifier, edges, downstream, graph=build_backbone_graph(edges), store=store
    )
    summary = get_model_summary(model)
    print(f"  Perturbed nodes: {summary['perturbed_nodes']}")
    print(f"  Downstream targets: {summary['downstream_targets']}")
    print_graph_summary(model.graph)
    print(f'Saved to {store.path_for(identifier)}')

    profiles = None
    if 'treatments' in raw:
        print("\nResolving treatment profiles...")
        profiles = resolve_treatment_profiles(raw['treatments'])
        for name, items in profiles.items():
            print(f'  {name}: {len(items)} targets')

    return {
        'model': model,
        'treatment_profiles': profiles,
    }

