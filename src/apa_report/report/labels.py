from __future__ import annotations

from apa_report.config import ApaConfig
from apa_report.handlers.base import CanonicalTable
from apa_report.typeset.numbers import format_conf_level


def column_labels(table: CanonicalTable, config: ApaConfig) -> dict[str, str]:
    """Display labels for every typeset table column, keyed by column identifier."""
    conf_level = table.conf_level if table.conf_level is not None else config.conf_level
    level_text = format_conf_level(conf_level, config.decimal_mark)
    return {
        "term": "Term",
        "estimate": table.estimate_symbol or "Estimate",
        "conf_int": f"{level_text}% {config.interval_type}",
        "statistic": table.statistic_symbol or "Statistic",
        "df": "df",
        "df_residual": "df (residual)",
        "p_value": "p",
    }
