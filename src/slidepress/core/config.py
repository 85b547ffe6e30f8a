from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping

from slidepress.core.errors import ConfigError
from slidepress.core.utils.schema_validate import validate_against_schema

SCHEMA_DIR = Path(__file__).resolve().parent / "schemas"
CONFIG_SCHEMA = SCHEMA_DIR / "config.schema.json"


@dataclass(frozen=True)
class ResolverConfig:
    """Tunable constants of the resolution engine.

    font_scale and background_coverage were tuned against sample decks rather
    than taken from the file format, so they are kept overridable.
    """

    font_scale: float = 1.33            # px per point of run size (sz / 100)
    default_font_px: float = 18.0
    background_coverage: float = 0.9    # fraction of slide w/h a shape must cover
    default_width_px: float = 960.0
    default_height_px: float = 540.0
    gradient_fallback: str = "888888"   # stop color when a stop cannot be resolved
    workers: int = 1                    # threads resolving slides


@dataclass(frozen=True)
class RenderConfig:
    scale: float = 2.0                  # raster pixels per slide pixel
    image_format: str = "jpeg"          # jpeg | png
    jpeg_quality: int = 92
    font_family: str = "Calibri, Arial, sans-serif"


@dataclass(frozen=True)
class Config:
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    render: RenderConfig = field(default_factory=RenderConfig)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def validate_config(data: Any) -> list[str]:
    """Human-readable schema errors for a config object (empty if valid)."""
    return validate_against_schema(CONFIG_SCHEMA, data)


def config_from_mapping(data: Mapping[str, Any]) -> Config:
    errs = validate_config(data)
    if errs:
        raise ConfigError("config does not conform to schema", errs)
    return Config(
        resolver=replace(ResolverConfig(), **dict(data.get("resolver", {}))),
        render=replace(RenderConfig(), **dict(data.get("render", {}))),
    )


def load_config(path: str | Path | None) -> Config:
    if path is None:
        return Config()
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"cannot read config {p}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"config {p} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"expected object at {p} to be a JSON object")
    return config_from_mapping(data)
