from __future__ import annotations

import logging
from pathlib import Path

import yaml

from fit_to_yaml_summary import build_summary_from_fit

log = logging.getLogger(__name__)


def read_fit_summary(fit_path: Path) -> dict:
    """Parse a FIT file and return the summary dict."""
    return build_summary_from_fit(fit_path)


def write_summary(fit_path: Path, yaml_path: Path | None = None) -> Path:
    """Parse a FIT file, write its YAML summary (alongside it by default), return the YAML path."""
    summary = read_fit_summary(fit_path)
    if yaml_path is None:
        yaml_path = fit_path.with_suffix(".yaml")
    with open(yaml_path, "w", encoding="utf-8") as f:
        yaml.safe_dump(summary, f, sort_keys=False, allow_unicode=True)
    log.info("Wrote %s", yaml_path)
    return yaml_path
