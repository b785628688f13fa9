"""Load placement settings from YAML and the environment."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from placement.log import get_logger
from placement.models import RankingWeights

log = get_logger(__name__)

load_dotenv()

ROOT_DIR: Path = Path(__file__).resolve().parent.parent
CONFIG_DIR: Path = ROOT_DIR / "config"
CONFIG_PATH: Path = CONFIG_DIR / "placement.yaml"
DATA_DIR: Path = ROOT_DIR / "data"


@dataclass(frozen=True)
class Limits:
    max_active_applications: int = 3
    max_postings_per_rep: int = 5
    max_capacity: int = 10
    junior_year_cutoff: int = 2


@dataclass(frozen=True)
class Settings:
    limits: Limits = field(default_factory=Limits)
    default_weights: RankingWeights = field(default_factory=RankingWeights)
    closing_window_days: int = 30
    data_dir: Path = DATA_DIR
    postings_csv: str = "postings.csv"
    applications_csv: str = "applications.csv"

    @property
    def postings_path(self) -> Path:
        return self.data_dir / self.postings_csv

    @property
    def applications_path(self) -> Path:
        return self.data_dir / self.applications_csv


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def _non_negative(raw: dict[str, Any], key: str, default: int) -> int:
    value = int(raw.get(key, default))
    if value < 0:
        log.warning("Negative ranking weight %s=%d clamped to 0", key, value)
        return 0
    return value


def load_settings(path: Path | str | None = None) -> Settings:
    """Read the YAML settings file; missing file or keys fall back to defaults."""
    config_path = Path(path or get_env("PLACEMENT_CONFIG") or CONFIG_PATH)
    raw: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        log.debug("Loaded settings from %s", config_path)
    else:
        log.info("No settings file at %s, using defaults", config_path)

    lim = raw.get("limits", {}) or {}
    defaults = Limits()
    limits = Limits(
        max_active_applications=int(lim.get("max_active_applications", defaults.max_active_applications)),
        max_postings_per_rep=int(lim.get("max_postings_per_rep", defaults.max_postings_per_rep)),
        max_capacity=int(lim.get("max_capacity", defaults.max_capacity)),
        junior_year_cutoff=int(lim.get("junior_year_cutoff", defaults.junior_year_cutoff)),
    )

    ranking = raw.get("ranking", {}) or {}
    w = ranking.get("weights", {}) or {}
    base = RankingWeights()
    weights = RankingWeights(
        major=_non_negative(w, "major", base.major),
        closing_soon=_non_negative(w, "closing_soon", base.closing_soon),
        level_fit=_non_negative(w, "level_fit", base.level_fit),
        keyword=_non_negative(w, "keyword", base.keyword),
    )

    storage = raw.get("storage", {}) or {}
    data_dir = Path(get_env("PLACEMENT_DATA_DIR") or storage.get("data_dir") or DATA_DIR)

    return Settings(
        limits=limits,
        default_weights=weights,
        closing_window_days=int(ranking.get("closing_window_days", 30)),
        data_dir=data_dir,
        postings_csv=storage.get("postings_csv", "postings.csv"),
        applications_csv=storage.get("applications_csv", "applications.csv"),
    )


def ensure_dirs(settings: Settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
