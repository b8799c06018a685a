from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

import pandas as pd

APA_TABLE_KIND = "apa_results_table"
MODEL_FIT_KEY = "modelfit"


def freeze_mapping(values: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(
        {
            key: freeze_mapping(value) if isinstance(value, Mapping) else value
            for key, value in values.items()
        }
    )


def thaw_mapping(values: Mapping[str, Any]) -> dict[str, Any]:
    return {
        key: thaw_mapping(value) if isinstance(value, Mapping) else value
        for key, value in values.items()
    }


def _ensure_typeset(name: str, values: Mapping[str, Any]) -> None:
    for key, value in values.items():
        if isinstance(value, Mapping):
            _ensure_typeset(f"{name}.{key}", value)
            continue
        if not isinstance(value, str) or not value:
            raise ValueError(f"{name}[{key!r}] must be a non-empty string, got {value!r}.")


def _flat_keys(values: Mapping[str, Any]) -> set[str]:
    keys: set[str] = set()
    for key, value in values.items():
        if isinstance(value, Mapping):
            keys.update(f"{key}.{inner}" for inner in _flat_keys(value))
        else:
            keys.add(key)
    return keys


@dataclass(frozen=True, slots=True, eq=False)
class ApaTable:
    """Typeset results table, indexed by term identifier."""

    frame: pd.DataFrame
    labels: Mapping[str, str]
    term_labels: Mapping[str, str]
    kind: str = APA_TABLE_KIND

    def __post_init__(self) -> None:
        if self.kind != APA_TABLE_KIND:
            raise ValueError(f"Unsupported table kind: {self.kind!r}.")
        unlabeled = [column for column in self.frame.columns if column not in self.labels]
        if unlabeled:
            raise ValueError(f"Table columns without labels: {', '.join(unlabeled)}.")
        unknown_terms = [name for name in self.frame.index if name not in self.term_labels]
        if unknown_terms:
            raise ValueError(f"Table terms without labels: {', '.join(unknown_terms)}.")

        object.__setattr__(self, "frame", self.frame.copy())
        object.__setattr__(self, "labels", MappingProxyType(dict(self.labels)))
        object.__setattr__(self, "term_labels", MappingProxyType(dict(self.term_labels)))

    @property
    def terms(self) -> list[str]:
        return [str(name) for name in self.frame.index]

    def to_frame(self) -> pd.DataFrame:
        return self.frame.copy()

    def to_dict(self) -> dict[str, Any]:
        rows = [
            {"name": str(name), **{key: value for key, value in row.items() if pd.notna(value)}}
            for name, row in self.frame.to_dict(orient="index").items()
        ]
        return {
            "kind": self.kind,
            "labels": dict(self.labels),
            "term_labels": dict(self.term_labels),
            "rows": rows,
        }


@dataclass(frozen=True, slots=True, eq=False)
class ApaResult:
    estimate: Mapping[str, Any]
    statistic: Mapping[str, Any]
    full_result: Mapping[str, Any]
    table: ApaTable | Mapping[str, ApaTable]

    def __post_init__(self) -> None:
        _ensure_typeset("estimate", self.estimate)
        _ensure_typeset("statistic", self.statistic)
        _ensure_typeset("full_result", self.full_result)
        expected = _flat_keys(self.estimate) | _flat_keys(self.statistic)
        if _flat_keys(self.full_result) != expected:
            raise ValueError(
                "full_result keys must equal the union of estimate and statistic keys."
            )
        if not isinstance(self.table, ApaTable):
            if not all(isinstance(part, ApaTable) for part in self.table.values()):
                raise ValueError("table must be an ApaTable or a mapping of ApaTable objects.")
            object.__setattr__(self, "table", MappingProxyType(dict(self.table)))

        object.__setattr__(self, "estimate", freeze_mapping(self.estimate))
        object.__setattr__(self, "statistic", freeze_mapping(self.statistic))
        object.__setattr__(self, "full_result", freeze_mapping(self.full_result))

    def to_dict(self) -> dict[str, Any]:
        if isinstance(self.table, ApaTable):
            table: dict[str, Any] = self.table.to_dict()
        else:
            table = {name: part.to_dict() for name, part in self.table.items()}
        return {
            "estimate": thaw_mapping(self.estimate),
            "statistic": thaw_mapping(self.statistic),
            "full_result": thaw_mapping(self.full_result),
            "table": table,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ApaResult):
            return NotImplemented
        return self.to_dict() == other.to_dict()
