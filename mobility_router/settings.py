from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_out_dir() -> str:
    # Keep logs and derived artifacts next to the checkout by default.
    return str(Path(__file__).resolve().parents[1] / "out")


class Settings(BaseSettings):
    """Validated settings (env-driven), keeping routing constants out of code."""

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    out_dir: str = Field(default_factory=_default_out_dir, alias="OUT_DIR")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    graph_asset_path: str = Field(default="", alias="GRAPH_ASSET_PATH")

    # Representative urban driving speed used by the time-based search.
    average_speed_mps: float = Field(default=13.9, gt=0.0, le=100.0, alias="AVERAGE_SPEED_MPS")
    traffic_delay_keying: Literal["edge", "node"] = Field(default="edge", alias="TRAFFIC_DELAY_KEYING")

    max_snap_distance_m: float = Field(default=20.0, gt=0.0, alias="MAX_SNAP_DISTANCE_M")
    grid_bucket_deg: float = Field(default=0.01, gt=0.0, le=5.0, alias="GRID_BUCKET_DEG")
    nearest_max_ring_radius: int = Field(default=64, ge=1, le=4096, alias="NEAREST_MAX_RING_RADIUS")

    baseline_trials: int = Field(default=2000, ge=1, alias="BASELINE_TRIALS")
    baseline_max_steps: int = Field(default=1000, ge=1, alias="BASELINE_MAX_STEPS")

    k_alternatives: int = Field(default=3, ge=1, le=32, alias="K_ALTERNATIVES")

    @model_validator(mode="after")
    def _normalise(self) -> "Settings":
        self.log_level = str(self.log_level or "INFO").strip().upper() or "INFO"
        self.graph_asset_path = str(self.graph_asset_path or "").strip()
        return self


settings = Settings()
