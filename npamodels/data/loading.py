"""
Table loading for the three raw network-model inputs.

This module reads, without transforming:
- Causal interactions (Source.Node, Target.Node, Direction, Interaction)
- Knockdown profiles (KD, ID, FC, PVAL, Type)
- Treatment differential expression (treatment, ID, t, logFC, P.Value)

Raw headers are renamed to canonical UPPER_SNAKE column names. Extra
columns (e.g. BEL-encoded statements) are ignored.
"""

import polars as pl
from pathlib import Path
from typing import Dict, Optional

from ..errors import SchemaError


NULL_VALUES = ['NA', 'NaN', 'nan', 'NAN', '']

INTERACTION_COLUMNS = {
    'Source.Node': 'SOURCE_NODE',
    'Target.Node': 'TARGET_NODE',
    'Direction': 'DIRECTION',
    'Interaction': 'INTERACTION',
}

KNOCKDOWN_COLUMNS = {
    'KD': 'PERTURBED_NODE',
    'ID': 'TARGET_GENE',
    'FC': 'FOLD_CHANGE',
    'PVAL': 'P_VALUE',
    'Type': 'TARGET_CATEGORY',
}

TREATMENT_COLUMNS = {
    'treatment': 'TREATMENT',
    'ID': 'TARGET_NODE',
    't': 'T_STAT',
    'logFC': 'LOG_FC',
    'P.Value': 'P_VALUE',
}

DEFAULT_FILES = {
    'interactions': 'interactions.tsv',
    'knockdowns': 'knockdowns.tsv',
    'treatments': 'treatments.tsv',
}


def _separator_for(path: Path) -> str:
    return '\t' if path.suffix.lower() in ('.tsv', '.txt', '.tab') else ','


def _scan_table(
    path: Path,
    columns: Dict[str, str],
    schema_overrides: Dict[str, pl.DataType],
    table: str,
    separator: Optional[str] = None,
) -> pl.LazyFrame:
    """Scan a delimited file, check the raw header and rename to canonical names."""
    if not path.exists():
        raise FileNotFoundError(f'{table} table not found: {path}')

    separator = separator or _separator_for(path)
    header = pl.read_csv(path, separator=separator, n_rows=0).columns
    missing = [c for c in columns if c not in header]
    if missing:
        raise SchemaError(f'{table} table {path}', missing)

    lf = pl.scan_csv(
        path,
        separator=separator,
        null_values=NULL_VALUES,
        schema_overrides=pl.Schema(
            {name: dtype for name, dtype in schema_overrides.items() if name in header}
        ),
    )
    return lf.select(list(columns)).rename(columns)


def load_interactions(path: str | Path, separator: Optional[str] = None) -> pl.LazyFrame:
    """
    Load the causal interactions table.

    Direction is read as text so that ``+1`` parses, then as a float so that
    ``1.0`` parses. Unparseable values become null. Values other than
    exactly +1/-1 are dropped by interaction filtering.

    Args:
        path: Path to the interactions file.
        separator: Field separator; inferred from the suffix when omitted.

    Returns:
        Lazy frame with SOURCE_NODE, TARGET_NODE, DIRECTION, INTERACTION.
    """
    lf = _scan_table(
        Path(path),
        INTERACTION_COLUMNS,
        {
            'Source.Node': pl.String,
            'Target.Node': pl.String,
            'Direction': pl.String,
            'Interaction': pl.String,
        },
        table='Interactions',
        separator=separator,
    )
    return lf.with_columns(
        pl.col('DIRECTION')
            .str.strip_chars()
            .str.replace(r'^\+', '')
            .cast(pl.Float64, strict=False)
            .alias('DIRECTION')
    )


def load_knockdowns(path: str | Path, separator: Optional[str] = None) -> pl.LazyFrame:
    """Load the knockdown-profile table (PERTURBED_NODE, TARGET_GENE, FOLD_CHANGE, P_VALUE, TARGET_CATEGORY)."""
    return _scan_table(
        Path(path),
        KNOCKDOWN_COLUMNS,
        {
            'KD': pl.String,
            'ID': pl.String,
            'FC': pl.Float64,
            'PVAL': pl.Float64,
            'Type': pl.String,
        },
        table='Knockdown',
        separator=separator,
    )


def load_treatments(path: str | Path, separator: Optional[str] = None) -> pl.LazyFrame:
    """Load the treatment differential-expression table (TREATMENT, TARGET_NODE, T_STAT, LOG_FC, P_VALUE)."""
    return _scan_table(
        Path(path),
        TREATMENT_COLUMNS,
        {
            'treatment': pl.String,
            'ID': pl.String,
            't': pl.Float64,
            'logFC': pl.Float64,
            'P.Value': pl.Float64,
        },
        table='Treatment',
        separator=separator,
    )


def load_raw_data(
    data_dir: str = './data/raw',
    interactions_file: str = DEFAULT_FILES['interactions'],
    knockdowns_file: str = DEFAULT_FILES['knockdowns'],
    treatments_file: Optional[str] = DEFAULT_FILES['treatments'],
) -> Dict[str, pl.LazyFrame]:
    """
    Load all raw tables as lazy frames.

    Args:
        data_dir: Directory containing the raw files.
        interactions_file: Interactions file name.
        knockdowns_file: Knockdown file name.
        treatments_file: Treatment file name, or None to skip it.

    Returns:
        Dictionary with 'interactions', 'knockdowns' and, when requested, 'treatments'.
    """
    data_path = Path(data_dir)

    raw = {
        'interactions': load_interactions(data_path / interactions_file),
        'knockdowns': load_knockdowns(data_path / knockdowns_file),
    }
    if treatments_file is not None:
        raw['treatments'] = load_treatments(data_path / treatments_file)
    return raw
