"""Configuration loading for stage-wise adjustment runs.

A config file is a JSON object of run parameters, either at the top level or
under a ``"stagewise"`` key so one file can carry settings for several tools::

    {"stagewise": {"alpha": 0.05, "method": "dtu", "n_jobs": 4}}
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from stagewise.core.types import StageWiseConfig

SECTION = "stagewise"
_CONFIG_KEYS = frozenset({"alpha", "method", "adjustment", "n_jobs", "backend"})


def load_json_config(path: str | Path) -> dict[str, Any]:
    """Return the run-parameter object of a JSON config file."""
    config_path = Path(path)
    if config_path.suffix.lower() != ".json":
        raise ValueError(f"{config_path.name}: stage-wise configs must be .json files.")
    try:
        text = config_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise FileNotFoundError(f"No stage-wise config at {config_path}") from None

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(
            f"{config_path.name}: malformed JSON at line {exc.lineno}, column {exc.colno} ({exc.msg})."
        ) from exc

    if isinstance(data, dict) and SECTION in data:
        data = data[SECTION]
    if not isinstance(data, dict):
        raise ValueError(
            f"{config_path.name}: run parameters must be a JSON object, got {type(data).__name__}."
        )
    return data


def config_from_dict(data: dict[str, Any]) -> StageWiseConfig:
    unknown = sorted(set(data) - _CONFIG_KEYS)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}.")
    adjustment = data.get("adjustment")
    return StageWiseConfig(
        alpha=float(data.get("alpha", 0.05)),
        method=data.get("method", "holm"),
        adjustment=tuple(adjustment) if adjustment is not None else None,
        n_jobs=int(data.get("n_jobs", 1)),
        backend=str(data.get("backend", "threading")),
    )


def load_stagewise_config(path: str | Path) -> StageWiseConfig:
    return config_from_dict(load_json_config(path))
