from __future__ import annotations


class ApaError(Exception):
    """Base class for errors raised while preparing report strings."""


class UnsupportedVariantError(ApaError, TypeError):
    def __init__(self, tag: str, chain: tuple[str, ...] = (), reason: str | None = None) -> None:
        self.tag = tag
        self.chain = tuple(chain)
        message = reason or f"No handler is registered for result variant {tag!r}."
        if self.chain:
            message = f"{message} Reached via: {' -> '.join(self.chain)}."
        super().__init__(message)


class MissingFieldError(ApaError, KeyError):
    def __init__(self, term: str, field: str) -> None:
        self.term = term
        self.field = field
        super().__init__(f"Term {term!r} has no value for {field!r}.")

    def __str__(self) -> str:
        return str(self.args[0])


class DomainError(ApaError, ValueError):
    """A numeric input lies outside the domain of the formatting function."""


class InvalidTermError(ApaError, ValueError):
    """Term names are empty or malformed."""
