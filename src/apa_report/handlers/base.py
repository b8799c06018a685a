from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any

import numpy as np
import pandas as pd

from apa_report.config import ApaConfig

TERM_COLUMNS = (
    "term",
    "estimate",
    "conf_low",
    "conf_high",
    "statistic",
    "df",
    "df_residual",
    "p_value",
)
NUMERIC_COLUMNS = TERM_COLUMNS[1:]


def variant_tag(result: object) -> str:
    cls = type(result)
    return f"{cls.__module__}.{cls.__qualname__}"


def canonical_frame(rows: list[dict[str, Any]]) -> pd.DataFrame:
    """Build a frame with every vocabulary column, in vocabulary order."""
    frame = pd.DataFrame(rows, columns=list(TERM_COLUMNS))
    frame["term"] = frame["term"].astype(str)
    for column in NUMERIC_COLUMNS:
        frame[column] = pd.to_numeric(frame[column], errors="coerce").astype(float)
    return frame.reset_index(drop=True)


def flat_floats(values: object) -> np.ndarray:
    return np.asarray(values, dtype=float).reshape(-1)


def as_float(value: object) -> float:
    if value is None:
        return float("nan")
    return float(np.squeeze(np.asarray(value, dtype=float)))


@dataclass(frozen=True, slots=True)
class CanonicalTable:
    terms: pd.DataFrame
    estimate_symbol: str | None = None
    statistic_symbol: str | None = None
    bounded_estimate: bool = False
    conf_level: float | None = None
    model_fit: pd.DataFrame | None = None
    fit_statistic_symbol: str | None = None
    variant: str = ""

    def __post_init__(self) -> None:
        missing = [column for column in TERM_COLUMNS if column not in self.terms.columns]
        if missing:
            raise ValueError(f"Canonical table is missing columns: {', '.join(missing)}.")
        if self.model_fit is not None:
            missing_fit = [c for c in TERM_COLUMNS if c not in self.model_fit.columns]
            if missing_fit:
                raise ValueError(f"Model fit table is missing columns: {', '.join(missing_fit)}.")
        if self.conf_level is not None and not 0.0 < self.conf_level < 1.0:
            raise ValueError(f"conf_level must lie in (0, 1), got {self.conf_level!r}.")

    @property
    def has_model_fit(self) -> bool:
        return self.model_fit is not None and not self.model_fit.empty

    def with_model_fit(
        self,
        model_fit: pd.DataFrame | None,
        fit_statistic_symbol: str | None = None,
    ) -> CanonicalTable:
        return replace(self, model_fit=model_fit, fit_statistic_symbol=fit_statistic_symbol)


TidyFunction = Callable[[Any, ApaConfig], CanonicalTable]
GlanceFunction = Callable[[Any, ApaConfig], tuple[pd.DataFrame, str | None]]
SummarizeFunction = Callable[[Any, ApaConfig], Any]


@dataclass(frozen=True, slots=True)
class TidyHandler:
    """Terminal handler: turns a result into a canonical table."""

    tidy: TidyFunction
    glance: GlanceFunction | None = None
    description: str = ""

    def __call__(self, result: Any, config: ApaConfig) -> CanonicalTable:
        table = self.tidy(result, config)
        if not isinstance(table, CanonicalTable):
            raise TypeError(
                f"Tidy function for {variant_tag(result)!r} returned "
                f"{type(table).__name__}, expected CanonicalTable."
            )
        if self.glance is None:
            return table
        model_fit, fit_symbol = self.glance(result, config)
        return table.with_model_fit(model_fit, fit_symbol)


@dataclass(frozen=True, slots=True)
class RefineHandler:
    """Chained handler: summarizes a result into a more specific variant."""

    summarize: SummarizeFunction
    description: str = ""

    def __call__(self, result: Any, config: ApaConfig) -> Any:
        return self.summarize(result, config)


Handler = TidyHandler | RefineHandler
