"""Exceptions and warnings raised by the model construction pipeline."""

from __future__ import annotations

from typing import Iterable, Sequence


class NpaModelsError(Exception):
    """Base class for pipeline errors."""


class SchemaError(NpaModelsError, ValueError):
    """A required input column is missing."""

    def __init__(self, table: str, missing: Sequence[str]):
        self.table = table
        self.missing = tuple(missing)
        super().__init__(f'{table} is missing required columns: {list(self.missing)}')


class ModelIntegrityError(NpaModelsError, ValueError):
    """Downstream-target keys that are not endpoints of any backbone edge."""

    def __init__(self, nodes: Iterable[str]):
        self.nodes = tuple(sorted(nodes))
        preview = list(self.nodes[:10])
        more = '...' if len(self.nodes) > 10 else ''
        super().__init__(
            f'{len(self.nodes)} downstream-target node(s) are not in the backbone: {preview}{more}'
        )


class ModelNotFoundError(NpaModelsError, KeyError):
    """No model is stored under the requested identifier."""

    def __str__(self) -> str:
        return f'No network model stored under {self.args[0]!s}'


class EmptyResultWarning(UserWarning):
    """A filtering step produced no rows."""
