from __future__ import annotations

import math
from pathlib import Path
from typing import Any

import yaml

from cvmatch.schemas.keywords import CATEGORIES

_SCORING_CONFIG_CACHE: dict[str, Any] | None = None
_SCORING_CONFIG_PATH = Path(__file__).resolve().parents[3] / "config" / "scoring.yaml"

DEFAULT_CATEGORY_WEIGHTS: dict[str, float] = {
    "hardSkills": 0.35,
    "softSkills": 0.25,
    "experience": 0.25,
    "education": 0.15,
}


def get_scoring_config() -> dict[str, Any]:
    """Load scoring config from repo-level config/scoring.yaml and cache it."""
    global _SCORING_CONFIG_CACHE

    if _SCORING_CONFIG_CACHE is not None:
        return _SCORING_CONFIG_CACHE

    if not _SCORING_CONFIG_PATH.exists():
        raise RuntimeError(
            f"Scoring config not found at '{_SCORING_CONFIG_PATH}'. "
            "Expected file: config/scoring.yaml"
        )

    try:
        raw = _SCORING_CONFIG_PATH.read_text(encoding="utf-8")
    except OSError as exc:
        raise RuntimeError(
            f"Failed to read scoring config '{_SCORING_CONFIG_PATH}': {exc}"
        ) from exc

    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise RuntimeError(
            f"Invalid YAML in scoring config '{_SCORING_CONFIG_PATH}': {exc}"
        ) from exc

    if not isinstance(parsed, dict):
        raise RuntimeError(
            f"Invalid scoring config '{_SCORING_CONFIG_PATH}': expected a top-level mapping."
        )

    _SCORING_CONFIG_CACHE = parsed
    return _SCORING_CONFIG_CACHE


def get_scoring_value(path: str, default: Any = None) -> Any:
    """Get nested config value using dot path notation, e.g. 'ablation.score_threshold'."""
    if not path:
        return default

    current: Any = get_scoring_config()
    for key in path.split("."):
        if not isinstance(current, dict):
            return default
        if key not in current:
            return default
        current = current[key]
    return current


def get_category_weights() -> dict[str, float]:
    """Category weights for the overall score. They must cover every category and sum to 1.0."""
    raw = get_scoring_value("alignment.weights", None) or DEFAULT_CATEGORY_WEIGHTS
    if not isinstance(raw, dict):
        raise RuntimeError("alignment.weights must be a mapping of category -> weight.")

    weights = {category: float(raw.get(category, 0.0)) for category in CATEGORIES}
    unknown = sorted(set(raw) - set(CATEGORIES))
    if unknown:
        raise RuntimeError(f"alignment.weights has unknown categories: {', '.join(unknown)}")
    if not math.isclose(sum(weights.values()), 1.0, abs_tol=1e-9):
        raise RuntimeError(f"alignment.weights must sum to 1.0, got {sum(weights.values()):.4f}")
    return weights
