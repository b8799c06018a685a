from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd
from scipy.stats import chi2

from apa_report.config import ApaConfig
from apa_report.handlers.base import (
    CanonicalTable,
    as_float,
    canonical_frame,
    flat_floats,
    variant_tag,
)

UNSTANDARDIZED_SYMBOL = "b"
STANDARDIZED_SYMBOL = "β"


def _attribute(result: Any, name: str) -> float:
    return as_float(getattr(result, name, None))


def _fit_row(term: str, estimate: float, **inference: float) -> dict[str, Any]:
    return {"term": term, "estimate": estimate, **inference}


def tidy_coefficients(result: Any, config: ApaConfig) -> CanonicalTable:
    """Per-coefficient rows for statsmodels likelihood/regression results."""
    params = flat_floats(result.params)
    statistics = flat_floats(result.tvalues)
    p_values = flat_floats(result.pvalues)
    conf_int = np.asarray(result.conf_int(alpha=1.0 - config.conf_level), dtype=float)
    use_t = bool(getattr(result, "use_t", False))
    df_resid = as_float(result.df_resid) if use_t else np.nan

    terms = canonical_frame(
        [
            {
                "term": name,
                "estimate": params[idx],
                "conf_low": conf_int[idx, 0],
                "conf_high": conf_int[idx, 1],
                "statistic": statistics[idx],
                "df": df_resid,
                "p_value": p_values[idx],
            }
            for idx, name in enumerate(result.model.exog_names)
        ]
    )
    return CanonicalTable(
        terms=terms,
        estimate_symbol=STANDARDIZED_SYMBOL if config.standardized else UNSTANDARDIZED_SYMBOL,
        statistic_symbol="t" if use_t else "z",
        bounded_estimate=config.standardized,
        conf_level=config.conf_level,
        variant=variant_tag(result),
    )


def glance_linear(result: Any, config: ApaConfig) -> tuple[pd.DataFrame, str | None]:
    rows = [
        _fit_row(
            "r2",
            _attribute(result, "rsquared"),
            statistic=_attribute(result, "fvalue"),
            df=_attribute(result, "df_model"),
            df_residual=_attribute(result, "df_resid"),
            p_value=_attribute(result, "f_pvalue"),
        ),
        _fit_row("adj_r2", _attribute(result, "rsquared_adj")),
        _fit_row("aic", _attribute(result, "aic")),
        _fit_row("bic", _attribute(result, "bic")),
    ]
    return canonical_frame(rows), "F"


def glance_glm(result: Any, config: ApaConfig) -> tuple[pd.DataFrame, str | None]:
    deviance = _attribute(result, "deviance")
    df_model = _attribute(result, "df_model")
    lr_statistic = _attribute(result, "null_deviance") - deviance
    lr_p_value = (
        float(chi2.sf(lr_statistic, df_model))
        if np.isfinite(lr_statistic) and df_model > 0
        else np.nan
    )
    rows = [
        _fit_row(
            "deviance",
            deviance,
            statistic=lr_statistic,
            df=df_model,
            p_value=lr_p_value,
        ),
        _fit_row("aic", _attribute(result, "aic")),
        _fit_row("bic", _attribute(result, "bic_llf")),
    ]
    return canonical_frame(rows), "χ²"


def glance_discrete(result: Any, config: ApaConfig) -> tuple[pd.DataFrame, str | None]:
    rows = [
        _fit_row(
            "pseudo_r2",
            _attribute(result, "prsquared"),
            statistic=_attribute(result, "llr"),
            df=_attribute(result, "df_model"),
            p_value=_attribute(result, "llr_pvalue"),
        ),
        _fit_row("aic", _attribute(result, "aic")),
        _fit_row("bic", _attribute(result, "bic")),
    ]
    return canonical_frame(rows), "χ²"
