from __future__ import annotations

from pathlib import Path

import typer

from apa_report.config import ApaConfig, load_config, resolve_config
from apa_report.errors import ApaError
from apa_report.handlers.registry import default_registry
from apa_report.logging import configure_logging
from apa_report.preprocess.terms import canonicalize
from apa_report.typeset.numbers import print_df, print_interval, printnum, printp

app = typer.Typer(no_args_is_help=True, add_completion=False)

CONFIG_OPTION = typer.Option(
    None,
    "--config",
    envvar="APA_REPORT_CONFIG",
    exists=True,
    readable=True,
    resolve_path=True,
    help="YAML file with formatting options.",
)


def _load_apa_config(config_path: Path | None, **overrides: object) -> ApaConfig:
    try:
        base = load_config(config_path) if config_path is not None else None
        present = {key: value for key, value in overrides.items() if value is not None}
        return resolve_config(base, **present)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.command()
def number(
    value: float,
    digits: int | None = typer.Option(None, help="Decimal digits; defaults to config."),
    leading_zero: bool | None = typer.Option(None, "--leading-zero/--no-leading-zero"),
    df: bool = typer.Option(False, "--df", help="Format as degrees of freedom."),
    config: Path | None = CONFIG_OPTION,
) -> None:
    """Typeset a single number."""
    configure_logging()
    cfg = _load_apa_config(config, digits=digits, leading_zero=leading_zero)
    try:
        if df:
            text = print_df(value, **cfg.number_options())
        else:
            text = printnum(value, leading_zero=cfg.leading_zero, **cfg.number_options())
    except ApaError as exc:
        raise typer.BadParameter(str(exc)) from exc
    typer.echo(text)


@app.command()
def p(
    value: float,
    digits: int | None = typer.Option(None, help="p value digits; defaults to config."),
    config: Path | None = CONFIG_OPTION,
) -> None:
    """Typeset a p value."""
    configure_logging()
    cfg = _load_apa_config(config, p_digits=digits)
    try:
        text = printp(value, cfg.p_digits, decimal_mark=cfg.decimal_mark)
    except ApaError as exc:
        raise typer.BadParameter(str(exc)) from exc
    typer.echo(text)


@app.command()
def interval(
    lower: float,
    upper: float,
    conf_level: float | None = typer.Option(None, help="Confidence level in (0, 1)."),
    kind: str | None = typer.Option(None, help="CI or HDI; defaults to config."),
    config: Path | None = CONFIG_OPTION,
) -> None:
    """Typeset an interval such as [CI 95%: 1.20, 3.40]."""
    configure_logging()
    cfg = _load_apa_config(config)
    level = cfg.conf_level if conf_level is None else conf_level
    try:
        text = print_interval(
            lower,
            upper,
            level,
            kind or cfg.interval_type,
            leading_zero=cfg.leading_zero,
            **cfg.number_options(),
        )
    except (ApaError, ValueError) as exc:
        raise typer.BadParameter(str(exc)) from exc
    typer.echo(text)


@app.command()
def terms(
    raw_terms: list[str] = typer.Argument(..., help="Raw model term names."),
    standardized: bool | None = typer.Option(None, "--standardized/--raw"),
    config: Path | None = CONFIG_OPTION,
) -> None:
    """Show identifier names and display labels for model terms."""
    configure_logging()
    cfg = _load_apa_config(config, standardized=standardized)
    try:
        names, labels = canonicalize(raw_terms, standardized=cfg.standardized)
    except ApaError as exc:
        raise typer.BadParameter(str(exc)) from exc
    for name, label in zip(names, labels, strict=True):
        typer.echo(f"{name}\t{label}")


@app.command()
def variants() -> None:
    """List the result types apa_print can handle."""
    configure_logging()
    for tag, description in default_registry().describe().items():
        typer.echo(f"{tag}\t{description}")


if __name__ == "__main__":
    app()
