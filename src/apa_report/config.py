from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field

IntervalType = Literal["CI", "HDI"]


class ApaConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    digits: int = Field(default=2, ge=0)
    p_digits: int = Field(default=3, ge=1)
    big_mark: str = ","
    decimal_mark: str = Field(default=".", min_length=1)
    leading_zero: bool = True
    conf_level: float = Field(default=0.95, gt=0.0, lt=1.0)
    interval_type: IntervalType = "CI"
    standardized: bool = False

    def number_options(self) -> dict[str, Any]:
        return {
            "digits": self.digits,
            "big_mark": self.big_mark,
            "decimal_mark": self.decimal_mark,
        }


def resolve_config(config: ApaConfig | None = None, **overrides: Any) -> ApaConfig:
    """Merge keyword overrides into ``config`` and validate the result."""
    if config is None:
        return ApaConfig.model_validate(overrides)
    if not overrides:
        return config
    return ApaConfig.model_validate({**config.model_dump(), **overrides})


def load_config(path: Path) -> ApaConfig:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    return ApaConfig.model_validate(data)
