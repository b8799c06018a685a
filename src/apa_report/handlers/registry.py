from __future__ import annotations

import logging
from typing import Any

import numpy as np
import pandas as pd
from scipy.stats._result_classes import PearsonRResult, TtestResult
from statsmodels.discrete import discrete_model
from statsmodels.discrete.discrete_model import BinaryResultsWrapper
from statsmodels.genmod.generalized_linear_model import GLMResultsWrapper
from statsmodels.regression.linear_model import RegressionResultsWrapper
from statsmodels.sandbox.stats.multicomp import MultiComparison, TukeyHSDResults
from statsmodels.stats.anova import AnovaResults, AnovaRM
from statsmodels.stats.contrast import ContrastResults

from apa_report.config import ApaConfig
from apa_report.errors import UnsupportedVariantError
from apa_report.handlers.anova import fit_anova_rm, tidy_anova_rm
from apa_report.handlers.base import (
    CanonicalTable,
    Handler,
    RefineHandler,
    TidyHandler,
    variant_tag,
)
from apa_report.handlers.contrasts import tidy_contrast
from apa_report.handlers.posthoc import run_tukey_hsd, tidy_tukey_hsd
from apa_report.handlers.regression import (
    glance_discrete,
    glance_glm,
    glance_linear,
    tidy_coefficients,
)
from apa_report.handlers.scipy_tests import tidy_pearsonr, tidy_ttest

LOGGER = logging.getLogger(__name__)

# Containers whose contents cannot be assumed; never dispatched.
UNTYPED_CONTAINERS: frozenset[type] = frozenset(
    {object, dict, list, tuple, set, frozenset, str, pd.DataFrame, pd.Series, np.ndarray}
)

# Count-model wrappers; Poisson has its own wrapper only from statsmodels 0.15.
COUNT_WRAPPER_NAMES = (
    "CountResultsWrapper",
    "PoissonResultsWrapper",
    "NegativeBinomialResultsWrapper",
    "NegativeBinomialPResultsWrapper",
    "GeneralizedPoissonResultsWrapper",
)


def _type_tag(variant: type) -> str:
    return f"{variant.__module__}.{variant.__qualname__}"


class HandlerRegistry:
    """Maps result types to the handler that normalizes them.

    Lookup is by exact type: a subclass of a registered result is a different
    variant and needs its own registration.
    """

    def __init__(self) -> None:
        self._handlers: dict[type, Handler] = {}

    def register(self, variant: type, handler: Handler) -> None:
        if not isinstance(variant, type):
            raise TypeError(f"variant must be a type, got {variant!r}.")
        if variant in UNTYPED_CONTAINERS:
            raise TypeError(
                f"{_type_tag(variant)} is a generic container and cannot be registered."
            )
        if not isinstance(handler, (TidyHandler, RefineHandler)):
            raise TypeError(f"Unsupported handler type: {type(handler).__name__}.")
        self._handlers[variant] = handler

    def __contains__(self, variant: object) -> bool:
        return variant in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    def variants(self) -> list[str]:
        return [_type_tag(variant) for variant in self._handlers]

    def describe(self) -> dict[str, str]:
        return {
            _type_tag(variant): handler.description
            for variant, handler in self._handlers.items()
        }

    def resolve(self, result: Any, chain: tuple[str, ...] = ()) -> Handler:
        variant = type(result)
        handler = self._handlers.get(variant)
        if handler is not None:
            return handler
        if variant in UNTYPED_CONTAINERS:
            raise UnsupportedVariantError(
                variant_tag(result),
                chain,
                reason=(
                    f"{variant_tag(result)!r} is a generic container whose structure cannot be "
                    "guaranteed; pass the fitted result object instead."
                ),
            )
        raise UnsupportedVariantError(variant_tag(result), chain)

    def normalize(self, result: Any, config: ApaConfig) -> CanonicalTable:
        current = result
        chain: list[str] = []
        while True:
            tag = variant_tag(current)
            if tag in chain:
                raise UnsupportedVariantError(
                    tag,
                    tuple(chain),
                    reason=f"Refinement of {chain[0]!r} cycles back to {tag!r}.",
                )
            handler = self.resolve(current, tuple(chain))
            chain.append(tag)
            if isinstance(handler, RefineHandler):
                LOGGER.debug("Refining %s before dispatch", tag)
                current = handler(current, config)
                continue
            LOGGER.debug("Tidying %s", tag)
            return handler(current, config)


def default_registry() -> HandlerRegistry:
    registry = HandlerRegistry()
    registry.register(
        RegressionResultsWrapper,
        TidyHandler(tidy_coefficients, glance_linear, "OLS/WLS/GLS coefficients"),
    )
    registry.register(
        GLMResultsWrapper,
        TidyHandler(tidy_coefficients, glance_glm, "GLM coefficients"),
    )
    registry.register(
        BinaryResultsWrapper,
        TidyHandler(tidy_coefficients, glance_discrete, "Logit/Probit coefficients"),
    )
    for name in COUNT_WRAPPER_NAMES:
        wrapper = getattr(discrete_model, name, None)
        if wrapper is None:
            LOGGER.debug("statsmodels has no %s; not registered", name)
            continue
        registry.register(
            wrapper,
            TidyHandler(tidy_coefficients, glance_discrete, "Count model coefficients"),
        )
    registry.register(ContrastResults, TidyHandler(tidy_contrast, description="Wald contrasts"))
    registry.register(
        AnovaResults,
        TidyHandler(tidy_anova_rm, description="Repeated-measures ANOVA table"),
    )
    registry.register(AnovaRM, RefineHandler(fit_anova_rm, "Fit repeated-measures ANOVA"))
    registry.register(
        TukeyHSDResults,
        TidyHandler(tidy_tukey_hsd, description="Tukey HSD pairwise comparisons"),
    )
    registry.register(MultiComparison, RefineHandler(run_tukey_hsd, "Run Tukey HSD"))
    registry.register(TtestResult, TidyHandler(tidy_ttest, description="t test"))
    registry.register(PearsonRResult, TidyHandler(tidy_pearsonr, description="Pearson correlation"))
    return registry
