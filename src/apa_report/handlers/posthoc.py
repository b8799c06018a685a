from __future__ import annotations

import math
from itertools import combinations
from typing import Any

import numpy as np
from scipy.stats import studentized_range

from apa_report.config import ApaConfig
from apa_report.errors import DomainError
from apa_report.handlers.base import (
    CanonicalTable,
    as_float,
    canonical_frame,
    flat_floats,
    variant_tag,
)

# Levels closer than this are treated as the level the result was run at.
LEVEL_TOLERANCE = 1e-4


def tukey_intervals(
    meandiffs: np.ndarray,
    std_pairs: np.ndarray,
    n_groups: int,
    df_total: float,
    conf_level: float,
) -> tuple[np.ndarray, np.ndarray]:
    """Simultaneous Tukey intervals at ``conf_level``."""
    if not 0.0 < conf_level < 1.0:
        raise DomainError(f"Tukey intervals need 0 < conf_level < 1, got {conf_level!r}.")
    q_crit = float(studentized_range.ppf(conf_level, n_groups, df_total))
    half_width = q_crit * std_pairs
    return meandiffs - half_width, meandiffs + half_width


def result_conf_level(result: Any, n_groups: int, df_total: float) -> float | None:
    """Coverage implied by the critical value statsmodels used, if it kept one."""
    q_crit = getattr(result, "q_crit", None)
    if q_crit is None:
        return None
    return float(studentized_range.cdf(as_float(q_crit), n_groups, df_total))


def tidy_tukey_hsd(result: Any, config: ApaConfig) -> CanonicalTable:
    groups = [str(group) for group in result.groupsunique]
    meandiffs = flat_floats(result.meandiffs)
    std_pairs = flat_floats(result.std_pairs)
    p_values = flat_floats(result.pvalues)
    df_total = as_float(result.df_total)

    run_level = result_conf_level(result, len(groups), df_total)
    if run_level is not None and math.isclose(
        run_level, config.conf_level, abs_tol=LEVEL_TOLERANCE
    ):
        confint = np.asarray(result.confint, dtype=float)
        conf_low, conf_high = confint[:, 0], confint[:, 1]
    else:
        conf_low, conf_high = tukey_intervals(
            meandiffs,
            std_pairs,
            n_groups=len(groups),
            df_total=df_total,
            conf_level=config.conf_level,
        )

    rows = [
        {
            "term": f"{second} - {first}",
            "estimate": meandiffs[idx],
            "conf_low": conf_low[idx],
            "conf_high": conf_high[idx],
            "p_value": p_values[idx],
        }
        for idx, (first, second) in enumerate(combinations(groups, 2))
    ]
    return CanonicalTable(
        terms=canonical_frame(rows),
        estimate_symbol="ΔM",
        conf_level=config.conf_level,
        variant=variant_tag(result),
    )


def run_tukey_hsd(multicomparison: Any, config: ApaConfig) -> Any:
    return multicomparison.tukeyhsd(alpha=1.0 - config.conf_level)
