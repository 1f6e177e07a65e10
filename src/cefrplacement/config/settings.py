"""Configuration model for cefrplacement."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from cefrplacement.engine.levels import BASELINE, ProficiencyLevel


class AssessmentConfig(BaseModel):
    max_questions: int = Field(default=15, ge=1)
    start_level: ProficiencyLevel = BASELINE
    seed: Optional[int] = None
    # Finish early once the streak gap is decisive (off by default)
    early_stop: bool = False
    early_stop_min_questions: int = 10
    early_stop_margin: int = 4

    def get_seed(self) -> Optional[int]:
        env_seed = os.environ.get("CEFRPLACEMENT_SEED")
        if env_seed:
            try:
                return int(env_seed)
            except ValueError:
                raise ValueError(
                    f"CEFRPLACEMENT_SEED must be an integer, got {env_seed!r}"
                ) from None
        return self.seed


class Settings(BaseModel):
    assessment: AssessmentConfig = Field(default_factory=AssessmentConfig)
    data_dir: Path = Path.home() / ".cefrplacement"
    bank_dirs: list[Path] = Field(default_factory=list)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        config_path = config_path or Path.home() / ".cefrplacement" / "config.yaml"
        if config_path.exists():
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
            return cls(**data)
        return cls()

    def save(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        config_path = self.data_dir / "config.yaml"
        with open(config_path, "w") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False)
