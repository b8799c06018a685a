from __future__ import annotations

import re

import numpy as np
import pandas as pd
import pytest
import statsmodels.api as sm
import statsmodels.formula.api as smf
from scipy import stats
from statsmodels.stats.anova import AnovaRM
from statsmodels.stats.multicomp import MultiComparison

from apa_report import apa_print
from apa_report.config import ApaConfig
from apa_report.errors import UnsupportedVariantError
from apa_report.report.contracts import ApaTable

NUMBER = r"-?\d+\.\d{2}"
BOUNDED = r"-?(?:\.\d{2}|1\.00)"
P_PART = r"p (?:= \.\d{3}|< \.001|> \.999)"


def _assert_table_order(result) -> None:
    assert isinstance(result.table, ApaTable)
    keys = [key for key in result.estimate if key != "modelfit"]
    assert [term for term in result.table.terms if term in result.estimate] == keys
    stat_keys = [key for key in result.statistic if key != "modelfit"]
    assert [term for term in result.table.terms if term in result.statistic] == stat_keys
    assert set(result.full_result) == set(result.estimate) | set(result.statistic)


@pytest.fixture
def regression_data() -> pd.DataFrame:
    rng = np.random.default_rng(7)
    n = 60
    data = pd.DataFrame(
        {
            "x": rng.normal(size=n),
            "group": np.tile(["a", "b"], n // 2),
        }
    )
    data["y"] = (
        1.0 + 0.6 * data["x"] + 0.8 * (data["group"] == "b") + rng.normal(scale=0.8, size=n)
    )
    return data


@pytest.fixture
def repeated_measures_data() -> pd.DataFrame:
    rng = np.random.default_rng(11)
    subjects = np.repeat(np.arange(12), 3)
    condition = np.tile(["a", "b", "c"], 12)
    offsets = {"a": 0.0, "b": 0.4, "c": 0.9}
    rt = (
        np.array([offsets[level] for level in condition])
        + np.repeat(rng.normal(scale=0.5, size=12), 3)
        + rng.normal(scale=0.6, size=36)
    )
    return pd.DataFrame({"subject": subjects, "condition": condition, "rt": rt})


def test_ols_with_interaction(regression_data: pd.DataFrame) -> None:
    fit = smf.ols("y ~ x * group", data=regression_data).fit()

    result = apa_print(fit)

    assert list(result.table.terms) == ["intercept", "group_b", "x", "x_x_group_b"]
    assert re.fullmatch(
        rf"b = {NUMBER} \[CI 95%: {NUMBER}, {NUMBER}\]", result.estimate["x"]
    )
    assert re.fullmatch(rf"t\(56\) = {NUMBER}, {P_PART}", result.statistic["x"])
    assert result.full_result["x"] == f"{result.estimate['x']}, {result.statistic['x']}"
    assert result.table.term_labels["x_x_group_b"] == "x × group: b"

    modelfit = result.estimate["modelfit"]
    assert re.fullmatch(rf"R² = {BOUNDED}", modelfit["r2"])
    assert re.fullmatch(rf"R²adj = {BOUNDED}", modelfit["adj_r2"])
    assert re.fullmatch(rf"AIC = {NUMBER}", modelfit["aic"])
    assert re.fullmatch(rf"F\(3, 56\) = {NUMBER}, {P_PART}", result.statistic["modelfit"]["r2"])
    assert set(result.statistic["modelfit"]) == {"r2"}
    _assert_table_order(result)


def test_ols_standardized_uses_beta(regression_data: pd.DataFrame) -> None:
    fit = smf.ols("scale(y) ~ scale(x)", data=regression_data).fit()

    result = apa_print(fit, standardized=True)

    assert list(result.estimate)[:2] == ["intercept", "x"]
    assert re.fullmatch(
        rf"β = {BOUNDED} \[CI 95%: {BOUNDED}, {BOUNDED}\]", result.estimate["x"]
    )
    assert not result.estimate["x"].startswith("β = 0.")
    assert result.table.term_labels["x"] == "x (standardized)"


def test_ols_respects_conf_level_and_digits(regression_data: pd.DataFrame) -> None:
    fit = smf.ols("y ~ x", data=regression_data).fit()

    result = apa_print(fit, ApaConfig(conf_level=0.9), digits=3)

    assert re.fullmatch(
        r"b = -?\d+\.\d{3} \[CI 90%: -?\d+\.\d{3}, -?\d+\.\d{3}\]", result.estimate["x"]
    )
    assert result.table.labels["conf_int"] == "90% CI"


def test_array_ols_uses_const_and_exog_names() -> None:
    rng = np.random.default_rng(3)
    exog = sm.add_constant(rng.normal(size=(40, 2)))
    endog = exog @ np.array([1.0, 0.5, -0.3]) + rng.normal(size=40)

    result = apa_print(sm.OLS(endog, exog).fit())

    assert list(result.table.terms) == ["intercept", "x1", "x2"]


def test_glm_poisson_reports_deviance_test(regression_data: pd.DataFrame) -> None:
    rng = np.random.default_rng(5)
    data = regression_data.assign(
        count=rng.poisson(np.exp(0.3 + 0.4 * regression_data["x"]))
    )
    fit = smf.glm("count ~ x", data=data, family=sm.families.Poisson()).fit()

    result = apa_print(fit)

    assert re.fullmatch(rf"z = {NUMBER}, {P_PART}", result.statistic["x"])
    assert re.fullmatch(rf"D = {NUMBER}", result.estimate["modelfit"]["deviance"])
    assert re.fullmatch(
        rf"χ²\(1\) = {NUMBER}, {P_PART}", result.statistic["modelfit"]["deviance"]
    )
    assert "bic" in result.estimate["modelfit"]
    _assert_table_order(result)


def test_logit_reports_pseudo_r2() -> None:
    rng = np.random.default_rng(17)
    x = rng.normal(size=200)
    y = rng.binomial(1, 1.0 / (1.0 + np.exp(-(0.2 + 1.0 * x))))
    fit = smf.logit("y ~ x", data=pd.DataFrame({"x": x, "y": y})).fit(disp=0)

    result = apa_print(fit)

    assert re.fullmatch(rf"z = {NUMBER}, {P_PART}", result.statistic["x"])
    assert re.fullmatch(rf"pseudo-R² = {BOUNDED}", result.estimate["modelfit"]["pseudo_r2"])
    assert re.fullmatch(
        rf"χ²\(1\) = {NUMBER}, {P_PART}", result.statistic["modelfit"]["pseudo_r2"]
    )


def test_poisson_count_model() -> None:
    rng = np.random.default_rng(23)
    x = rng.normal(size=150)
    y = rng.poisson(np.exp(0.5 + 0.3 * x))
    fit = smf.poisson("y ~ x", data=pd.DataFrame({"x": x, "y": y})).fit(disp=0)

    result = apa_print(fit)

    assert list(result.estimate)[:2] == ["intercept", "x"]
    assert "pseudo_r2" in result.estimate["modelfit"]


def test_negative_binomial_count_model() -> None:
    rng = np.random.default_rng(41)
    x = rng.normal(size=200)
    y = rng.negative_binomial(5, 5 / (5 + np.exp(0.8 + 0.4 * x)))
    fit = smf.negativebinomial("y ~ x", data=pd.DataFrame({"x": x, "y": y})).fit(disp=0)

    result = apa_print(fit)

    assert list(result.estimate)[:3] == ["intercept", "x", "alpha"]
    assert re.fullmatch(rf"z = {NUMBER}, {P_PART}", result.statistic["x"])
    assert re.fullmatch(rf"pseudo-R² = {BOUNDED}", result.estimate["modelfit"]["pseudo_r2"])
    _assert_table_order(result)


def test_ols_term_named_like_model_fit_key(regression_data: pd.DataFrame) -> None:
    data = regression_data.rename(columns={"x": "modelfit"})
    fit = smf.ols("y ~ modelfit", data=data).fit()

    result = apa_print(fit)

    assert list(result.table.terms) == ["intercept", "modelfit_2"]
    assert result.table.term_labels["modelfit_2"] == "modelfit"
    assert re.fullmatch(
        rf"b = {NUMBER} \[CI 95%: {NUMBER}, {NUMBER}\]", result.estimate["modelfit_2"]
    )
    assert set(result.estimate["modelfit"]) == {"r2", "adj_r2", "aic", "bic"}
    _assert_table_order(result)


def test_f_test_contrast_has_statistic_only(regression_data: pd.DataFrame) -> None:
    fit = smf.ols("y ~ x + group", data=regression_data).fit()

    result = apa_print(fit.f_test("x = 0"))

    assert dict(result.estimate) == {}
    assert re.fullmatch(rf"F\(1, 57\) = {NUMBER}, {P_PART}", result.statistic["contrast"])
    assert result.full_result["contrast"] == result.statistic["contrast"]


def test_t_test_contrast(regression_data: pd.DataFrame) -> None:
    fit = smf.ols("y ~ x + group", data=regression_data).fit()

    result = apa_print(fit.t_test("x = 0"))

    [estimate] = result.estimate.values()
    [statistic] = result.statistic.values()
    assert re.fullmatch(rf"b = {NUMBER} \[CI 95%: {NUMBER}, {NUMBER}\]", estimate)
    assert re.fullmatch(rf"t\(57\) = {NUMBER}, {P_PART}", statistic)


def test_independent_t_test() -> None:
    rng = np.random.default_rng(29)
    first = rng.normal(loc=0.0, size=20)
    second = rng.normal(loc=1.0, size=20)

    result = apa_print(stats.ttest_ind(second, first))

    assert re.fullmatch(
        rf"ΔM = {NUMBER} \[CI 95%: {NUMBER}, {NUMBER}\]", result.estimate["difference"]
    )
    assert re.fullmatch(rf"t\(38\) = {NUMBER}, {P_PART}", result.statistic["difference"])
    _assert_table_order(result)


def test_welch_t_test_keeps_fractional_df() -> None:
    rng = np.random.default_rng(31)
    first = rng.normal(scale=1.0, size=15)
    second = rng.normal(scale=3.0, size=25)

    result = apa_print(stats.ttest_ind(second, first, equal_var=False))

    welch_pattern = rf"t\(\d+\.\d{{2}}\) = {NUMBER}, {P_PART}"
    assert re.fullmatch(welch_pattern, result.statistic["difference"])


def test_pearson_correlation_is_bounded() -> None:
    rng = np.random.default_rng(37)
    x = rng.normal(size=50)
    y = 0.5 * x + rng.normal(size=50)

    result = apa_print(stats.pearsonr(x, y))

    assert re.fullmatch(
        rf"r = {BOUNDED} \[CI 95%: {BOUNDED}, {BOUNDED}\]", result.estimate["correlation"]
    )
    assert re.fullmatch(P_PART, result.statistic["correlation"])


def test_anova_rm_is_fit_before_tidying(repeated_measures_data: pd.DataFrame) -> None:
    model = AnovaRM(repeated_measures_data, depvar="rt", subject="subject", within=["condition"])

    chained = apa_print(model)
    direct = apa_print(model.fit())

    assert chained == direct
    assert re.fullmatch(rf"η²p = {BOUNDED}", chained.estimate["condition"])
    assert re.fullmatch(rf"F\(2, 22\) = {NUMBER}, {P_PART}", chained.statistic["condition"])
    _assert_table_order(chained)


def test_multicomparison_runs_tukey_hsd(repeated_measures_data: pd.DataFrame) -> None:
    comparison = MultiComparison(
        repeated_measures_data["rt"].to_numpy(), repeated_measures_data["condition"].to_numpy()
    )

    result = apa_print(comparison)

    assert list(result.estimate) == ["b_a", "c_a", "c_b"]
    assert result.table.term_labels["c_a"] == "c - a"
    assert re.fullmatch(rf"ΔM = {NUMBER} \[CI 95%: {NUMBER}, {NUMBER}\]", result.estimate["c_a"])
    assert re.fullmatch(P_PART, result.statistic["c_a"])
    _assert_table_order(result)


def test_tukey_reports_very_high_conf_level(repeated_measures_data: pd.DataFrame) -> None:
    comparison = MultiComparison(
        repeated_measures_data["rt"].to_numpy(), repeated_measures_data["condition"].to_numpy()
    )

    result = apa_print(comparison.tukeyhsd(), conf_level=0.9999)

    assert re.fullmatch(
        rf"ΔM = {NUMBER} \[CI 99\.99%: {NUMBER}, {NUMBER}\]", result.estimate["c_a"]
    )


def test_unsupported_input_is_rejected() -> None:
    with pytest.raises(UnsupportedVariantError, match="generic container"):
        apa_print(pd.DataFrame({"estimate": [1.0]}))
    with pytest.raises(UnsupportedVariantError, match="No handler"):
        apa_print(complex(1.0, 2.0))


def test_invalid_override_is_rejected(regression_data: pd.DataFrame) -> None:
    fit = smf.ols("y ~ x", data=regression_data).fit()

    with pytest.raises(ValueError):
        apa_print(fit, conf_level=1.5)
    with pytest.raises(ValueError):
        apa_print(fit, colour="red")
