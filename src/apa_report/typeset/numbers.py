from __future__ import annotations

import math
from decimal import ROUND_HALF_EVEN, Context, Decimal
from typing import Any, Literal

import pandas as pd

from apa_report.errors import DomainError

NA_STRING = "NA"
POSITIVE_INFINITY = "Inf"
NEGATIVE_INFINITY = "-Inf"

IntervalKind = Literal["CI", "HDI"]
INTERVAL_KINDS = frozenset({"CI", "HDI"})

# Wide enough for any finite float quantized to a handful of digits.
_DECIMAL_CONTEXT = Context(prec=400, rounding=ROUND_HALF_EVEN)


def is_missing(value: object) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def printnum(
    value: float | None,
    digits: int = 2,
    big_mark: str = ",",
    decimal_mark: str = ".",
    leading_zero: bool = True,
) -> str:
    """Round ``value`` half to even and typeset it.

    Rounding works on the shortest decimal representation of the float, so
    ``2.675`` rounds to ``2.68`` rather than following its binary expansion.
    ``leading_zero=False`` is meant for quantities bounded by [-1, 1]; the
    caller is responsible for that precondition.
    """
    if digits < 0:
        raise DomainError(f"digits must be >= 0, got {digits!r}.")
    if is_missing(value):
        return NA_STRING

    number = float(value)
    if math.isinf(number):
        return POSITIVE_INFINITY if number > 0 else NEGATIVE_INFINITY

    quantum = Decimal(1).scaleb(-digits)
    rounded = Decimal(repr(number)).quantize(quantum, context=_DECIMAL_CONTEXT)
    if rounded.is_zero():
        rounded = rounded.copy_abs()

    integer_part, _, fraction_part = f"{rounded:,f}".partition(".")
    integer_part = integer_part.replace(",", big_mark)
    if not fraction_part:
        return integer_part
    if not leading_zero and integer_part in {"0", "-0"}:
        integer_part = integer_part[:-1]
    return f"{integer_part}{decimal_mark}{fraction_part}"


def _print_probability(value: float, digits: int, decimal_mark: str) -> str:
    return printnum(
        value,
        digits=digits,
        big_mark="",
        decimal_mark=decimal_mark,
        leading_zero=False,
    )


def printp(p: float | None, digits: int = 3, *, decimal_mark: str = ".") -> str:
    """Typeset a p value without leading zero, capping the extremes.

    >>> printp(0.00005)
    '< .001'
    >>> printp(0.0421)
    '.042'
    """
    if is_missing(p):
        return NA_STRING
    if digits < 1:
        raise DomainError(f"digits must be >= 1 for p values, got {digits!r}.")

    value = float(p)
    if not 0.0 <= value <= 1.0:
        raise DomainError(f"p must lie in [0, 1], got {p!r}.")

    threshold = 10.0**-digits
    if value < threshold:
        return f"< {_print_probability(threshold, digits, decimal_mark)}"
    if value > 1.0 - threshold:
        return f"> {_print_probability(1.0 - threshold, digits, decimal_mark)}"
    return _print_probability(value, digits, decimal_mark)


def print_df(
    df: float | None,
    digits: int = 2,
    big_mark: str = ",",
    decimal_mark: str = ".",
) -> str:
    """Whole degrees of freedom print without decimals; Welch-type ones keep ``digits``."""
    if is_missing(df):
        return NA_STRING
    number = float(df)
    if number.is_integer():
        digits = 0
    return printnum(number, digits=digits, big_mark=big_mark, decimal_mark=decimal_mark)


def value_separator(decimal_mark: str) -> str:
    return "; " if decimal_mark == "," else ", "


def format_conf_level(conf_level: float, decimal_mark: str) -> str:
    return f"{conf_level * 100:g}".replace(".", decimal_mark)


def print_interval(
    lower: float | None,
    upper: float | None,
    conf_level: float = 0.95,
    kind: IntervalKind = "CI",
    digits: int = 2,
    big_mark: str = ",",
    decimal_mark: str = ".",
    leading_zero: bool = True,
) -> str:
    """Typeset an interval as ``[CI 95%: -1.20, 3.40]``."""
    if kind not in INTERVAL_KINDS:
        raise ValueError(f"Unsupported interval kind: {kind!r}. Use 'CI' or 'HDI'.")
    level = float(conf_level)
    if not 0.0 < level < 1.0:
        raise DomainError(f"conf_level must lie in (0, 1), got {conf_level!r}.")

    bounds = [
        printnum(
            bound,
            digits=digits,
            big_mark=big_mark,
            decimal_mark=decimal_mark,
            leading_zero=leading_zero,
        )
        for bound in (lower, upper)
    ]
    level_text = format_conf_level(level, decimal_mark)
    return f"[{kind} {level_text}%: {value_separator(decimal_mark).join(bounds)}]"


def print_confint(
    lower: float | None,
    upper: float | None,
    conf_level: float = 0.95,
    **options: Any,
) -> str:
    return print_interval(lower, upper, conf_level, "CI", **options)


def print_hdint(
    lower: float | None,
    upper: float | None,
    conf_level: float = 0.95,
    **options: Any,
) -> str:
    return print_interval(lower, upper, conf_level, "HDI", **options)
