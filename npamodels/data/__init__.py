"""
Table loading and processing modules.
"""

from .loading import (
    load_interactions,
    load_knockdowns,
    load_treatments,
    load_raw_data,
)
from .processing import (
    filter_interactions,
    interaction_records,
    backbone_nodes,
    deduplicate_knockdowns,
    resolve_perturbation_table,
    partition_downstream_targets,
    resolve_perturbations,
    unmatched_perturbed_nodes,
    resolve_treatment_profiles,
    treatment_profiles_frame,
)
from .graph import (
    BackboneGraph,
    build_backbone_graph,
    get_graph_summary,
    print_graph_summary,
)
