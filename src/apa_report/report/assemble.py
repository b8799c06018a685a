from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any

import pandas as pd

from apa_report.config import ApaConfig
from apa_report.errors import InvalidTermError, MissingFieldError
from apa_report.handlers.base import CanonicalTable
from apa_report.report.contracts import MODEL_FIT_KEY, ApaResult, ApaTable
from apa_report.typeset.numbers import (
    is_missing,
    print_df,
    print_interval,
    printnum,
    printp,
    value_separator,
)

LOGGER = logging.getLogger(__name__)

TABLE_COLUMNS = ("term", "estimate", "conf_int", "statistic", "df", "df_residual", "p_value")

# measure -> (symbol, bounded to [-1, 1])
FIT_MEASURES: dict[str, tuple[str, bool]] = {
    "r2": ("R²", True),
    "adj_r2": ("R²adj", True),
    "pseudo_r2": ("pseudo-R²", True),
    "deviance": ("D", False),
    "aic": ("AIC", False),
    "bic": ("BIC", False),
}


class AssemblyStage(Enum):
    EMPTY = "empty"
    TABLE_ASSIGNED = "table_assigned"
    LABELS_ATTACHED = "labels_attached"
    STATS_EXTRACTED = "stats_extracted"
    FINALIZED = "finalized"


def _value(row: Mapping[str, Any], term: str, field: str) -> float:
    value = row.get(field)
    if is_missing(value):
        raise MissingFieldError(term, field)
    return float(value)


def _optional(row: Mapping[str, Any], field: str) -> float | None:
    value = row.get(field)
    return None if is_missing(value) else float(value)


class _Typesetter:
    def __init__(self, config: ApaConfig, conf_level: float | None) -> None:
        self.config = config
        self.conf_level = conf_level if conf_level is not None else config.conf_level
        self.separator = value_separator(config.decimal_mark)

    def number(self, value: float | None, bounded: bool = False) -> str:
        return printnum(
            value,
            digits=self.config.digits,
            big_mark=self.config.big_mark,
            decimal_mark=self.config.decimal_mark,
            leading_zero=self.config.leading_zero and not bounded,
        )

    def df(self, value: float | None) -> str:
        return print_df(
            value,
            digits=self.config.digits,
            big_mark=self.config.big_mark,
            decimal_mark=self.config.decimal_mark,
        )

    def p_value(self, value: float) -> str:
        text = printp(value, self.config.p_digits, decimal_mark=self.config.decimal_mark)
        if text[0] in "<>":
            return f"p {text}"
        return f"p = {text}"

    def interval(self, lower: float, upper: float, bounded: bool = False) -> str:
        return print_interval(
            lower,
            upper,
            self.conf_level,
            self.config.interval_type,
            digits=self.config.digits,
            big_mark=self.config.big_mark,
            decimal_mark=self.config.decimal_mark,
            leading_zero=self.config.leading_zero and not bounded,
        )

    def bare_interval(self, lower: float, upper: float, bounded: bool = False) -> str:
        bounds = [self.number(lower, bounded), self.number(upper, bounded)]
        return f"[{self.separator.join(bounds)}]"

    def estimate_entry(
        self,
        row: Mapping[str, Any],
        term: str,
        symbol: str | None,
        bounded: bool,
    ) -> str:
        estimate = _value(row, term, "estimate")
        if not symbol:
            raise MissingFieldError(term, "estimate_symbol")
        text = f"{symbol} = {self.number(estimate, bounded)}"
        lower = _optional(row, "conf_low")
        upper = _optional(row, "conf_high")
        if lower is None or upper is None:
            return text
        return f"{text} {self.interval(lower, upper, bounded)}"

    def statistic_entry(self, row: Mapping[str, Any], term: str, symbol: str | None) -> str:
        parts: list[str] = []
        statistic = _optional(row, "statistic")
        if statistic is not None and symbol:
            df = _optional(row, "df")
            df_residual = _optional(row, "df_residual")
            if df is None:
                parts.append(f"{symbol} = {self.number(statistic)}")
            else:
                dfs = [self.df(df)]
                if df_residual is not None:
                    dfs.append(self.df(df_residual))
                parts.append(f"{symbol}({self.separator.join(dfs)}) = {self.number(statistic)}")
        p_value = _optional(row, "p_value")
        if p_value is not None:
            parts.append(self.p_value(p_value))
        if not parts:
            raise MissingFieldError(term, "statistic")
        return self.separator.join(parts)


def merge_full_result(
    estimate: Mapping[str, Any],
    statistic: Mapping[str, Any],
    separator: str = ", ",
) -> dict[str, Any]:
    """Key-union merge: ``"<estimate>, <statistic>"`` where both exist."""
    merged: dict[str, Any] = {}
    for key in dict.fromkeys([*estimate, *statistic]):
        left = estimate.get(key)
        right = statistic.get(key)
        if isinstance(left, Mapping) or isinstance(right, Mapping):
            merged[key] = merge_full_result(left or {}, right or {}, separator)
        elif left is not None and right is not None:
            merged[key] = f"{left}{separator}{right}"
        else:
            merged[key] = left if left is not None else right
    return merged


class _ResultBuilder:
    """Single-use builder; each step must run once, in order."""

    def __init__(self, config: ApaConfig) -> None:
        self._config = config
        self._stage = AssemblyStage.EMPTY
        self._table: CanonicalTable | None = None
        self._names: list[str] = []
        self._display: list[str] = []
        self._labels: dict[str, str] = {}
        self._estimate: dict[str, Any] = {}
        self._statistic: dict[str, Any] = {}
        self._rows: list[dict[str, str | None]] = []

    @property
    def stage(self) -> AssemblyStage:
        return self._stage

    def _require(self, expected: AssemblyStage, target: AssemblyStage) -> None:
        if self._stage is not expected:
            raise RuntimeError(
                f"Cannot move to {target.value!r} from {self._stage.value!r}; "
                f"expected stage {expected.value!r}."
            )

    def assign_table(self, table: CanonicalTable, identifier_names: Sequence[str]) -> None:
        self._require(AssemblyStage.EMPTY, AssemblyStage.TABLE_ASSIGNED)
        names = [str(name) for name in identifier_names]
        if len(names) != len(table.terms):
            raise InvalidTermError(
                f"Got {len(names)} identifier names for {len(table.terms)} table rows."
            )
        if len(set(names)) != len(names):
            raise InvalidTermError(f"Identifier names must be unique: {names!r}.")
        if MODEL_FIT_KEY in names:
            raise InvalidTermError(
                f"Term identifier {MODEL_FIT_KEY!r} is reserved for model fit measures."
            )
        self._table = table
        self._names = names
        self._stage = AssemblyStage.TABLE_ASSIGNED

    def attach_labels(self, labels: Mapping[str, str], display_labels: Sequence[str]) -> None:
        self._require(AssemblyStage.TABLE_ASSIGNED, AssemblyStage.LABELS_ATTACHED)
        display = [str(label) for label in display_labels]
        if len(display) != len(self._names):
            raise InvalidTermError(
                f"Got {len(display)} display labels for {len(self._names)} table rows."
            )
        self._labels = dict(labels)
        self._display = display
        self._stage = AssemblyStage.LABELS_ATTACHED

    def extract_stats(self) -> None:
        self._require(AssemblyStage.LABELS_ATTACHED, AssemblyStage.STATS_EXTRACTED)
        assert self._table is not None
        table = self._table
        typesetter = _Typesetter(self._config, table.conf_level)

        records = table.terms.to_dict(orient="records")
        for name, display, row in zip(self._names, self._display, records, strict=True):
            self._add_entries(
                self._estimate,
                self._statistic,
                typesetter,
                row,
                name,
                estimate_symbol=table.estimate_symbol,
                statistic_symbol=table.statistic_symbol,
                bounded=table.bounded_estimate,
            )
            self._rows.append(self._table_row(typesetter, row, display, table.bounded_estimate))

        if table.has_model_fit:
            assert table.model_fit is not None
            fit_estimate: dict[str, str] = {}
            fit_statistic: dict[str, str] = {}
            for row in table.model_fit.to_dict(orient="records"):
                measure = str(row["term"])
                symbol, bounded = FIT_MEASURES.get(measure, (measure, False))
                self._add_entries(
                    fit_estimate,
                    fit_statistic,
                    typesetter,
                    row,
                    measure,
                    estimate_symbol=symbol,
                    statistic_symbol=table.fit_statistic_symbol,
                    bounded=bounded,
                )
            if fit_estimate:
                self._estimate[MODEL_FIT_KEY] = fit_estimate
            if fit_statistic:
                self._statistic[MODEL_FIT_KEY] = fit_statistic
        self._stage = AssemblyStage.STATS_EXTRACTED

    @staticmethod
    def _add_entries(
        estimate: dict[str, Any],
        statistic: dict[str, Any],
        typesetter: _Typesetter,
        row: Mapping[str, Any],
        name: str,
        *,
        estimate_symbol: str | None,
        statistic_symbol: str | None,
        bounded: bool,
    ) -> None:
        try:
            estimate[name] = typesetter.estimate_entry(row, name, estimate_symbol, bounded)
        except MissingFieldError as exc:
            LOGGER.debug("Omitting estimate entry: %s", exc)
        try:
            statistic[name] = typesetter.statistic_entry(row, name, statistic_symbol)
        except MissingFieldError as exc:
            LOGGER.debug("Omitting statistic entry: %s", exc)

    @staticmethod
    def _table_row(
        typesetter: _Typesetter,
        row: Mapping[str, Any],
        display: str,
        bounded: bool,
    ) -> dict[str, str | None]:
        estimate = _optional(row, "estimate")
        lower = _optional(row, "conf_low")
        upper = _optional(row, "conf_high")
        statistic = _optional(row, "statistic")
        df = _optional(row, "df")
        df_residual = _optional(row, "df_residual")
        p_value = _optional(row, "p_value")
        return {
            "term": display,
            "estimate": None if estimate is None else typesetter.number(estimate, bounded),
            "conf_int": (
                None
                if lower is None or upper is None
                else typesetter.bare_interval(lower, upper, bounded)
            ),
            "statistic": None if statistic is None else typesetter.number(statistic),
            "df": None if df is None else typesetter.df(df),
            "df_residual": None if df_residual is None else typesetter.df(df_residual),
            "p_value": (
                None
                if p_value is None
                else printp(
                    p_value,
                    typesetter.config.p_digits,
                    decimal_mark=typesetter.config.decimal_mark,
                )
            ),
        }

    def finalize(self) -> ApaResult:
        self._require(AssemblyStage.STATS_EXTRACTED, AssemblyStage.FINALIZED)
        frame = pd.DataFrame(self._rows, columns=list(TABLE_COLUMNS), index=self._names)
        frame = frame.astype(object).where(frame.notna(), None)
        keep = [
            column
            for column in TABLE_COLUMNS
            if column == "term" or frame[column].notna().any()
        ]
        frame = frame[keep]
        missing_labels = [column for column in keep if column not in self._labels]
        if missing_labels:
            raise ValueError(f"No label for table columns: {', '.join(missing_labels)}.")

        table = ApaTable(
            frame=frame,
            labels={column: self._labels[column] for column in keep},
            term_labels=dict(zip(self._names, self._display, strict=True)),
        )
        separator = value_separator(self._config.decimal_mark)
        result = ApaResult(
            estimate=self._estimate,
            statistic=self._statistic,
            full_result=merge_full_result(self._estimate, self._statistic, separator),
            table=table,
        )
        self._stage = AssemblyStage.FINALIZED
        return result


def assemble(
    table: CanonicalTable,
    labels: Mapping[str, str],
    identifier_names: Sequence[str],
    display_labels: Sequence[str],
    config: ApaConfig,
) -> ApaResult:
    builder = _ResultBuilder(config)
    builder.assign_table(table, identifier_names)
    builder.attach_labels(labels, display_labels)
    builder.extract_stats()
    return builder.finalize()
