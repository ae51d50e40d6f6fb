"""
Client-side join helpers: count a secondary collection by foreign key and
attach the counts to the primary rows.

Rows may be mappings, pydantic models or dataclass instances. Inputs are never
mutated; every helper returns new rows.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Dict, Hashable, Iterable, List, Mapping, Sequence, TypeVar

import pandas as pd
from pydantic import BaseModel

T = TypeVar("T")


def read_field(row: Any, key: str, default: Any = None) -> Any:
    if isinstance(row, Mapping):
        return row.get(key, default)
    return getattr(row, key, default)


def with_field(row: T, key: str, value: Any) -> T:
    """Return a copy of ``row`` with ``key`` set to ``value``."""
    if isinstance(row, BaseModel):
        return row.model_copy(update={key: value})
    if dataclasses.is_dataclass(row) and not isinstance(row, type):
        return dataclasses.replace(row, **{key: value})
    if isinstance(row, Mapping):
        return {**row, key: value}  # type: ignore[return-value]
    raise TypeError(f"Cannot derive a field on {type(row).__name__}")


def count_by_key(rows: Iterable[Any], key: str) -> Dict[Hashable, int]:
    keys = pd.Series([read_field(row, key) for row in rows], dtype=object)
    counts = keys.dropna().value_counts(sort=False)
    return {k: int(v) for k, v in counts.items()}


def attach_counts(
    primary: Sequence[T],
    secondary: Iterable[Any],
    foreign_key: str,
    target: str,
    id_field: str = "id",
) -> List[T]:
    """Attach to each primary row the number of secondary rows pointing at it.

    Primary rows without matches get 0; secondary keys with no primary row are
    dropped.
    """
    counts = count_by_key(secondary, foreign_key)
    return [with_field(row, target, counts.get(read_field(row, id_field), 0)) for row in primary]
