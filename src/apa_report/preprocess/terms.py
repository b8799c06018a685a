from __future__ import annotations

import re
from collections.abc import Sequence

from apa_report.errors import InvalidTermError
from apa_report.report.contracts import MODEL_FIT_KEY

INTERCEPT_SENTINELS = frozenset({"(Intercept)", "Intercept", "const"})
INTERCEPT_NAME = "intercept"
INTERCEPT_LABEL = "Intercept"

INTERACTION_SEPARATOR = ":"
IDENTIFIER_JOIN = "_x_"
DISPLAY_JOIN = " × "
STANDARDIZED_MARKER = " (standardized)"

QUOTED_RE = re.compile(r"""^Q\((?P<quote>["'])(?P<inner>.*)(?P=quote)\)$""")
CONTRAST_RE = re.compile(r"^(?P<base>.+?)\[(?:T\.)?(?P<level>[^\]]*)\]$")
CODING_RE = re.compile(r"^C\((?P<inner>.+?)(?:,.*)?\)$")
STANDARDIZE_RE = re.compile(r"^(?:scale|standardize|zscore)\((?P<inner>.+)\)$")
NON_WORD_RE = re.compile(r"\W+")


def _unwrap(pattern: re.Pattern[str], text: str) -> tuple[str, bool]:
    match = pattern.match(text)
    if match is None:
        return text, False
    return match.group("inner").strip(), True


def _split_component(component: str, standardized: bool) -> tuple[str, str | None, bool]:
    """Return ``(variable, level, was_standardized)`` for one interaction component."""
    text, _ = _unwrap(QUOTED_RE, component.strip())
    level: str | None = None
    contrast = CONTRAST_RE.match(text)
    if contrast is not None:
        text = contrast.group("base").strip()
        level = contrast.group("level").strip()

    text, _ = _unwrap(CODING_RE, text)
    stripped = False
    if standardized:
        text, stripped = _unwrap(STANDARDIZE_RE, text)
    text, _ = _unwrap(QUOTED_RE, text)
    return text, level, stripped


def _slug(text: str) -> str:
    return NON_WORD_RE.sub("_", text).strip("_").lower()


def _identifier(parts: list[tuple[str, str | None, bool]]) -> str:
    tokens: list[str] = []
    for variable, level, _ in parts:
        token = _slug(variable)
        if level:
            token = f"{token}_{_slug(level)}".strip("_")
        tokens.append(token)
    if not all(tokens):
        return ""
    name = IDENTIFIER_JOIN.join(tokens)
    if not name.isidentifier():
        name = f"term_{name}"
    return name


def _display_label(parts: list[tuple[str, str | None, bool]]) -> str:
    pieces = [f"{variable}: {level}" if level else variable for variable, level, _ in parts]
    label = DISPLAY_JOIN.join(pieces)
    if any(stripped for _, _, stripped in parts):
        label = f"{label}{STANDARDIZED_MARKER}"
    return label


def _disambiguate(names: list[str]) -> list[str]:
    # Model fit measures are nested under this key in the assembled result.
    used: set[str] = {MODEL_FIT_KEY}
    unique: list[str] = []
    for position, name in enumerate(names, start=1):
        candidate = name
        while candidate in used:
            candidate = f"{candidate}_{position}"
        used.add(candidate)
        unique.append(candidate)
    return unique


def _validate(raw_terms: Sequence[object]) -> list[str]:
    if isinstance(raw_terms, str):
        raise InvalidTermError("raw_terms must be a sequence of strings, not a single string.")
    terms = list(raw_terms)
    if not terms:
        raise InvalidTermError("raw_terms must contain at least one term.")
    for position, term in enumerate(terms):
        if not isinstance(term, str):
            raise InvalidTermError(
                f"Term at position {position} must be a string, got {type(term).__name__}: "
                f"{term!r}."
            )
        if not term.strip():
            raise InvalidTermError(f"Term at position {position} is blank: {term!r}.")
    return terms  # type: ignore[return-value]


def canonicalize(
    raw_terms: Sequence[str],
    standardized: bool = False,
) -> tuple[list[str], list[str]]:
    """Map raw model terms to identifier names and display labels.

    ``(Intercept)``/``const`` become ``intercept``; ``a:b`` becomes ``a_x_b`` and
    ``a × b``. Patsy coding (``C(...)``, ``[T.level]``, ``Q("...")``) is unwrapped.
    With ``standardized`` the ``scale(...)`` family of wrappers is removed and the
    label is marked instead. Repeated names, and a term named ``modelfit``, get
    their 1-based position appended.
    """
    terms = _validate(raw_terms)

    names: list[str] = []
    labels: list[str] = []
    for position, term in enumerate(terms):
        text = term.strip()
        if text in INTERCEPT_SENTINELS:
            names.append(INTERCEPT_NAME)
            labels.append(INTERCEPT_LABEL)
            continue

        parts = [
            _split_component(component, standardized)
            for component in text.split(INTERACTION_SEPARATOR)
        ]
        name = _identifier(parts)
        if not name:
            raise InvalidTermError(
                f"Term at position {position} has no usable name characters: {term!r}."
            )
        names.append(name)
        labels.append(_display_label(parts))

    return _disambiguate(names), labels
