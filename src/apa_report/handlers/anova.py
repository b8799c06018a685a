from __future__ import annotations

from typing import Any

import numpy as np

from apa_report.config import ApaConfig
from apa_report.handlers.base import CanonicalTable, canonical_frame, variant_tag

ANOVA_TABLE_COLUMNS = {
    "F Value": "statistic",
    "Num DF": "df",
    "Den DF": "df_residual",
    "Pr > F": "p_value",
}


def partial_eta_squared(
    statistic: np.ndarray,
    df: np.ndarray,
    df_residual: np.ndarray,
) -> np.ndarray:
    """Partial eta squared recovered from F and its degrees of freedom."""
    numerator = statistic * df
    denominator = numerator + df_residual
    return np.divide(
        numerator,
        denominator,
        out=np.full(numerator.shape, np.nan, dtype=float),
        where=denominator > 0,
    )


def tidy_anova_rm(result: Any, config: ApaConfig) -> CanonicalTable:
    table = result.anova_table
    missing = [column for column in ANOVA_TABLE_COLUMNS if column not in table.columns]
    if missing:
        raise ValueError(f"ANOVA table is missing columns: {', '.join(missing)}.")

    frame = table.rename(columns=ANOVA_TABLE_COLUMNS)
    statistic = frame["statistic"].to_numpy(dtype=float)
    df = frame["df"].to_numpy(dtype=float)
    df_residual = frame["df_residual"].to_numpy(dtype=float)
    frame = frame.assign(estimate=partial_eta_squared(statistic, df, df_residual))

    rows = [
        {"term": str(term), **row.to_dict()}
        for term, row in frame[["estimate", *ANOVA_TABLE_COLUMNS.values()]].iterrows()
    ]
    return CanonicalTable(
        terms=canonical_frame(rows),
        estimate_symbol="η²p",
        statistic_symbol="F",
        bounded_estimate=True,
        variant=variant_tag(result),
    )


def fit_anova_rm(model: Any, config: ApaConfig) -> Any:
    return model.fit()
