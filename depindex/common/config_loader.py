"""Configuration loading and validation."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from depindex.common.constants import HIGH_DEPRIVATION_DECILES
from depindex.common.errors import ConfigError
from depindex.common.fs import read_yaml
from depindex.common.schema import validate_pipeline_config

PIPELINE_CONFIG_FILENAME = "pipeline.yml"


@dataclass(frozen=True)
class OverlayOptions:
    workers: int = 1
    drop_zero_area_pairs: bool = True
    high_deprivation_deciles: frozenset[int] = field(default_factory=lambda: frozenset(HIGH_DEPRIVATION_DECILES))
    area_tolerance: float = 1e-6

    @classmethod
    def from_config(cls, overlay: dict) -> "OverlayOptions":
        return cls(
            workers=int(overlay.get("workers", 1)),
            drop_zero_area_pairs=bool(overlay.get("drop_zero_area_pairs", True)),
            high_deprivation_deciles=frozenset(overlay.get("high_deprivation_deciles", HIGH_DEPRIVATION_DECILES)),
            area_tolerance=float(overlay.get("area_tolerance", 1e-6)),
        )


@dataclass(frozen=True)
class ConfigBundle:
    pipeline: dict
    overlay: OverlayOptions


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> dict:
    if not path.exists():
        raise ConfigError(f"Missing config file: {path}")
    base = read_yaml(path)
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path)
    if overlay is None:
        return base
    if not isinstance(overlay, dict):
        raise ConfigError(f"Overlay config must be a mapping: {overlay_path}")
    return _deep_merge(base, overlay)


def load_all_configs(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
) -> ConfigBundle:
    overlay_path = None
    if overlay_config_dir is not None:
        overlay_path = overlay_config_dir / PIPELINE_CONFIG_FILENAME
    cfg = _load_yaml_with_overlay(config_dir / PIPELINE_CONFIG_FILENAME, overlay_path)
    pipeline = validate_pipeline_config(cfg, allow_unknown=allow_unknown)
    return ConfigBundle(pipeline=pipeline, overlay=OverlayOptions.from_config(pipeline["overlay"]))
