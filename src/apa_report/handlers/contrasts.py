from __future__ import annotations

from typing import Any

import numpy as np

from apa_report.config import ApaConfig
from apa_report.handlers.base import (
    CanonicalTable,
    as_float,
    canonical_frame,
    flat_floats,
    variant_tag,
)

JOINT_TEST_TERM = "contrast"


def _joint_test(result: Any, symbol: str, df: float, df_residual: float) -> CanonicalTable:
    terms = canonical_frame(
        [
            {
                "term": JOINT_TEST_TERM,
                "statistic": as_float(result.statistic),
                "df": df,
                "df_residual": df_residual,
                "p_value": flat_floats(result.pvalue)[0],
            }
        ]
    )
    return CanonicalTable(terms=terms, statistic_symbol=symbol, variant=variant_tag(result))


def tidy_contrast(result: Any, config: ApaConfig) -> CanonicalTable:
    """Rows for ``t_test``/``f_test``/``wald_test`` contrast results."""
    distribution = getattr(result, "distribution", None)
    if distribution == "F":
        return _joint_test(result, "F", as_float(result.df_num), as_float(result.df_denom))
    if distribution == "chi2":
        df_constraints = as_float(getattr(result, "df_constraints", None))
        return _joint_test(result, "χ²", df_constraints, np.nan)

    effects = flat_floats(result.effect)
    conf_int = np.asarray(result.conf_int(alpha=1.0 - config.conf_level), dtype=float)
    conf_int = conf_int.reshape(-1, 2)
    statistics = flat_floats(result.statistic)
    p_values = flat_floats(result.pvalue)
    use_t = distribution == "t"
    df = as_float(result.df_denom) if use_t else np.nan

    names = list(getattr(result, "c_names", None) or [])
    if len(names) != effects.size:
        names = [f"c{idx}" for idx in range(effects.size)]

    terms = canonical_frame(
        [
            {
                "term": names[idx],
                "estimate": effects[idx],
                "conf_low": conf_int[idx, 0],
                "conf_high": conf_int[idx, 1],
                "statistic": statistics[idx],
                "df": df,
                "p_value": p_values[idx],
            }
            for idx in range(effects.size)
        ]
    )
    return CanonicalTable(
        terms=terms,
        estimate_symbol="b",
        statistic_symbol="t" if use_t else "z",
        conf_level=config.conf_level,
        variant=variant_tag(result),
    )
