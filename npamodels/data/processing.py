"""
Table processing for network-model construction.

This module turns loaded tables into model parts:
- Interactions -> cleaned directed backbone edges (filter_interactions)
- Knockdown profiles -> per-backbone-node downstream targets (resolve_perturbations)
- Treatment differential expression -> per-treatment target statistics
  (resolve_treatment_profiles)

Every function is a pure transform over an in-memory table. Ties are always
broken by input order, so results are reproducible for a fixed input.
"""

import warnings

import polars as pl
from typing import Dict, Iterable, List, Optional, Tuple, Union

from ..errors import EmptyResultWarning, SchemaError
from ..models.schema import (
    DownstreamTarget,
    InteractionKind,
    InteractionRecord,
    TargetCategory,
    TreatmentProfiles,
    TreatmentTarget,
)


Frame = Union[pl.DataFrame, pl.LazyFrame]

EDGE_COLUMNS = ['SOURCE_NODE', 'DIRECTION', 'TARGET_NODE']
KNOCKDOWN_REQUIRED = ['PERTURBED_NODE', 'TARGET_GENE', 'FOLD_CHANGE', 'P_VALUE']
TREATMENT_REQUIRED = ['TREATMENT', 'TARGET_NODE', 'T_STAT', 'LOG_FC']
TARGET_CATEGORIES = [c.value for c in TargetCategory]


def _collect(table: Frame, required: List[str], name: str) -> pl.DataFrame:
    """Materialize a frame after checking that the required columns exist."""
    df = table.collect() if isinstance(table, pl.LazyFrame) else table
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise SchemaError(name, missing)
    return df


def _warn_if_empty(df_or_mapping, what: str) -> None:
    if len(df_or_mapping) == 0:
        warnings.warn(f'{what} produced no rows', EmptyResultWarning, stacklevel=3)


# ---------------------------------------------------------------------------
# Interactions
# ---------------------------------------------------------------------------

def filter_interactions(
    interactions: Frame,
    excluded_term: str = 'Correlation',
) -> pl.DataFrame:
    """
    Keep only causal, directed interactions.

    Rows are dropped when DIRECTION is missing (or not exactly +1/-1, so
    ``1.0`` is kept and ``1.5`` is not) and when the
    INTERACTION label contains ``excluded_term`` (case-sensitive substring).
    Descriptive columns are dropped afterwards.

    Args:
        interactions: Frame with SOURCE_NODE, TARGET_NODE, DIRECTION and
            optionally INTERACTION.
        excluded_term: Label substring marking a correlation.

    Returns:
        DataFrame with SOURCE_NODE, DIRECTION, TARGET_NODE in input order.
    """
    df = _collect(interactions, ['SOURCE_NODE', 'TARGET_NODE', 'DIRECTION'], 'Interactions')

    df = df.with_columns(pl.col('DIRECTION').cast(pl.Float64, strict=False))
    keep = ((pl.col('DIRECTION') == 1.0) | (pl.col('DIRECTION') == -1.0)).fill_null(False)
    if 'INTERACTION' in df.columns:
        keep = keep & ~(
            pl.col('INTERACTION')
                .cast(pl.String)
                .fill_null('')
                .str.contains(excluded_term, literal=True)
        )

    edges = (
        df.filter(keep)
        .filter(pl.col('SOURCE_NODE').is_not_null() & pl.col('TARGET_NODE').is_not_null())
        .with_columns([
            pl.col('SOURCE_NODE').cast(pl.String),
            pl.col('TARGET_NODE').cast(pl.String),
            pl.col('DIRECTION').cast(pl.Int8),
        ])
        .select(EDGE_COLUMNS)
    )
    _warn_if_empty(edges, 'Interaction filtering')
    return edges


def interaction_records(edges: pl.DataFrame) -> Tuple[InteractionRecord, ...]:
    """Convert a cleaned edge table into InteractionRecord tuples."""
    has_kind = 'INTERACTION' in edges.columns
    return tuple(
        InteractionRecord(
            source=row['SOURCE_NODE'],
            target=row['TARGET_NODE'],
            direction=int(row['DIRECTION']),
            kind=InteractionKind.parse(row['INTERACTION']) if has_kind else None,
        )
        for row in edges.iter_rows(named=True)
    )


def backbone_nodes(edges: pl.DataFrame) -> frozenset:
    """All node ids that appear as a source or target of a backbone edge."""
    return frozenset(edges['SOURCE_NODE'].to_list()) | frozenset(edges['TARGET_NODE'].to_list())


# ---------------------------------------------------------------------------
# Knockdown profiles
# ---------------------------------------------------------------------------

def deduplicate_knockdowns(knockdowns: Frame) -> pl.DataFrame:
    """
    Keep one row per (PERTURBED_NODE, TARGET_GENE): the largest |FOLD_CHANGE|.

    Ties go to the row that appears first. Surviving rows keep input order.
    NaN fold changes and p-values are treated as missing, so they never win.
    """
    df = _collect(knockdowns, KNOCKDOWN_REQUIRED, 'Knockdown')

    return (
        df.with_columns([
            pl.col('PERTURBED_NODE').cast(pl.String),
            pl.col('TARGET_GENE').cast(pl.String),
            pl.col('FOLD_CHANGE').cast(pl.Float64).fill_nan(None),
            pl.col('P_VALUE').cast(pl.Float64).fill_nan(None),
        ])
        .with_row_index('_ROW')
        .with_columns(pl.col('FOLD_CHANGE').abs().alias('_ABS_FC'))
        .sort(['_ABS_FC', '_ROW'], descending=[True, False], nulls_last=True)
        .unique(subset=['PERTURBED_NODE', 'TARGET_GENE'], keep='first', maintain_order=True)
        .sort('_ROW')
        .drop(['_ROW', '_ABS_FC'])
    )


def resolve_perturbation_table(
    knockdowns: Frame,
    backbone: Iterable[str],
    p_value_threshold: float = 0.01,
    fold_change_threshold: float = 0.5,
    restrict_perturbed_to_backbone: bool = False,
) -> pl.DataFrame:
    """
    Clean knockdown profiles into discretized downstream-target rows.

    Steps, in this order:
      1. deduplicate (PERTURBED_NODE, TARGET_GENE) by largest |FOLD_CHANGE|
      2. keep P_VALUE < p_value_threshold and |FOLD_CHANGE| > fold_change_threshold
      3. drop rows whose TARGET_GENE is a backbone node
      4. DIRECTION = -1 if FOLD_CHANGE > 0 else +1

    PERTURBED_NODE is not checked against the backbone unless
    ``restrict_perturbed_to_backbone`` is set.

    Args:
        knockdowns: Knockdown frame (PERTURBED_NODE, TARGET_GENE, FOLD_CHANGE, P_VALUE).
        backbone: Backbone node ids.
        p_value_threshold: Exclusive upper bound on P_VALUE.
        fold_change_threshold: Exclusive lower bound on |FOLD_CHANGE|.
        restrict_perturbed_to_backbone: Also drop rows perturbing a non-backbone node.

    Returns:
        DataFrame with PERTURBED_NODE, TARGET_GENE, FOLD_CHANGE, P_VALUE, DIRECTION
        (plus TARGET_CATEGORY when present).
    """
    backbone_list = sorted(set(backbone))
    deduped = deduplicate_knockdowns(knockdowns)

    significant = deduped.filter(
        pl.col('PERTURBED_NODE').is_not_null()
        & pl.col('TARGET_GENE').is_not_null()
        & (pl.col('P_VALUE') < p_value_threshold)
        & (pl.col('FOLD_CHANGE').abs() > fold_change_threshold)
    )

    terminal = significant
    if backbone_list:
        terminal = terminal.filter(~pl.col('TARGET_GENE').is_in(backbone_list))
    if restrict_perturbed_to_backbone:
        terminal = terminal.filter(
            pl.col('PERTURBED_NODE').is_in(backbone_list) if backbone_list else pl.lit(False)
        )

    keep_cols = ['PERTURBED_NODE', 'TARGET_GENE', 'FOLD_CHANGE', 'P_VALUE']
    if 'TARGET_CATEGORY' in terminal.columns:
        keep_cols.append('TARGET_CATEGORY')
        # Free text in the source tables; anything outside the known labels becomes null.
        terminal = terminal.with_columns(
            pl.when(pl.col('TARGET_CATEGORY').cast(pl.String).is_in(TARGET_CATEGORIES))
                .then(pl.col('TARGET_CATEGORY').cast(pl.String))
                .otherwise(None)
                .alias('TARGET_CATEGORY')
        )

    return (
        terminal
        .select(keep_cols)
        .with_columns(
            pl.when(pl.col('FOLD_CHANGE') > 0)
                .then(pl.lit(-1))
                .otherwise(pl.lit(1))
                .cast(pl.Int8)
                .alias('DIRECTION')
        )
    )


def partition_downstream_targets(resolved: pl.DataFrame) -> Dict[str, Tuple[DownstreamTarget, ...]]:
    """Group resolved rows by PERTURBED_NODE; nodes without rows are absent."""
    out: Dict[str, List[DownstreamTarget]] = {}
    for node, target, direction in resolved.select(
        ['PERTURBED_NODE', 'TARGET_GENE', 'DIRECTION']
    ).iter_rows():
        out.setdefault(node, []).append(DownstreamTarget(target=target, direction=int(direction)))
    return {node: tuple(items) for node, items in out.items()}


def resolve_perturbations(
    knockdowns: Frame,
    backbone: Iterable[str],
    p_value_threshold: float = 0.01,
    fold_change_threshold: float = 0.5,
    restrict_perturbed_to_backbone: bool = False,
) -> Dict[str, Tuple[DownstreamTarget, ...]]:
    """
    Map each perturbed backbone node to its ordered downstream targets.

    See resolve_perturbation_table for the filtering steps.
    """
    resolved = resolve_perturbation_table(
        knockdowns,
        backbone,
        p_value_threshold=p_value_threshold,
        fold_change_threshold=fold_change_threshold,
        restrict_perturbed_to_backbone=restrict_perturbed_to_backbone,
    )
    mapping = partition_downstream_targets(resolved)
    _warn_if_empty(mapping, 'Perturbation resolution')
    return mapping


def unmatched_perturbed_nodes(knockdowns: Frame, backbone: Iterable[str]) -> List[str]:
    """Perturbed nodes in a knockdown table that are not backbone nodes, sorted."""
    df = _collect(knockdowns, ['PERTURBED_NODE'], 'Knockdown')
    backbone_set = set(backbone)
    return sorted(
        node for node in df['PERTURBED_NODE'].drop_nulls().unique().to_list()
        if node not in backbone_set
    )


# ---------------------------------------------------------------------------
# Treatment profiles
# ---------------------------------------------------------------------------

def resolve_treatment_profiles(
    treatments: Frame,
    treatment_names: Optional[Iterable[str]] = None,
) -> TreatmentProfiles:
    """
    Build per-treatment target statistics for the scoring engine.

    Rows with a missing TARGET_NODE are dropped and, within a treatment,
    only the first row per TARGET_NODE is kept. Every treatment present in
    the table (and every name in ``treatment_names``) is returned, even when
    no rows survive.

    Args:
        treatments: Frame with TREATMENT, TARGET_NODE, T_STAT, LOG_FC.
        treatment_names: Extra treatment names that must appear in the output.

    Returns:
        Dict mapping treatment name -> tuple of TreatmentTarget, treatments in
        first-appearance order.
    """
    df = _collect(treatments, TREATMENT_REQUIRED, 'Treatment')
    df = (
        df.with_columns([pl.col('TREATMENT').cast(pl.String), pl.col('TARGET_NODE').cast(pl.String)])
        .filter(pl.col('TREATMENT').is_not_null())
    )

    order: List[str] = df['TREATMENT'].unique(maintain_order=True).to_list()
    if treatment_names is not None:
        for name in treatment_names:
            if name not in order:
                order.append(name)

    kept = (
        df.filter(pl.col('TARGET_NODE').is_not_null())
        .unique(subset=['TREATMENT', 'TARGET_NODE'], keep='first', maintain_order=True)
    )

    grouped: Dict[str, List[TreatmentTarget]] = {name: [] for name in order}
    for treatment, target, t_stat, log_fc in kept.select(
        ['TREATMENT', 'TARGET_NODE', 'T_STAT', 'LOG_FC']
    ).iter_rows():
        grouped[treatment].append(
            TreatmentTarget(target=target, t_stat=t_stat, fold_change=log_fc)
        )

    profiles = {name: tuple(items) for name, items in grouped.items()}
    _warn_if_empty(kept, 'Treatment resolution')
    return profiles


def treatment_profiles_frame(profiles: TreatmentProfiles) -> pl.DataFrame:
    """Flatten treatment profiles into (TREATMENT, TARGET_NODE, T_STAT, LOG_FC) rows."""
    names, targets, t_stats, fold_changes = [], [], [], []
    for name, items in profiles.items():
        for item in items:
            names.append(name)
            targets.append(item.target)
            t_stats.append(item.t_stat)
            fold_changes.append(item.fold_change)
    return pl.DataFrame(
        {'TREATMENT': names, 'TARGET_NODE': targets, 'T_STAT': t_stats, 'LOG_FC': fold_changes},
        schema={
            'TREATMENT': pl.String,
            'TARGET_NODE': pl.String,
            'T_STAT': pl.Float64,
            'LOG_FC': pl.Float64,
        },
    )
