from __future__ import annotations

import logging
from typing import Any

from apa_report.config import ApaConfig, resolve_config
from apa_report.handlers.registry import HandlerRegistry, default_registry
from apa_report.preprocess.terms import canonicalize
from apa_report.report.assemble import assemble
from apa_report.report.contracts import ApaResult
from apa_report.report.labels import column_labels

LOGGER = logging.getLogger(__name__)


def apa_print(
    result: Any,
    config: ApaConfig | None = None,
    *,
    registry: HandlerRegistry | None = None,
    **overrides: Any,
) -> ApaResult:
    """Typeset a fitted statsmodels or scipy result for an APA-style report.

    ``overrides`` are validated against :class:`ApaConfig` and take precedence
    over ``config``. A fresh :func:`default_registry` is used unless
    ``registry`` is given.
    """
    cfg = resolve_config(config, **overrides)
    registry = registry if registry is not None else default_registry()
    table = registry.normalize(result, cfg)
    LOGGER.debug("Normalized %s into %d term rows", table.variant, len(table.terms))

    identifier_names, display_labels = canonicalize(
        table.terms["term"].tolist(),
        standardized=cfg.standardized,
    )
    return assemble(
        table,
        column_labels(table, cfg),
        identifier_names,
        display_labels,
        cfg,
    )
