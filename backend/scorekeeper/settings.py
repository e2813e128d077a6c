"""Scorekeeper runtime configuration via environment variables."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

from scorekeeper.logic.settings import GameSettings

SNAPSHOT_FILE_NAME = "scorekeeper.json"


class ScorekeeperSettings(BaseSettings):
    model_config = {"env_prefix": "SKYJO_"}

    log_dir: str | None = None
    data_dir: str = Field(default="backend/data", min_length=1)
    profile_name: str | None = None  # whose XP and achievements are tracked; defaults to the first player
    default_threshold: int = Field(default=100, ge=1)
    history_cap: int = Field(default=50, ge=1)

    @property
    def snapshot_path(self) -> Path:
        return Path(self.data_dir) / SNAPSHOT_FILE_NAME

    def game_settings(self) -> GameSettings:
        return GameSettings(default_threshold=self.default_threshold, history_cap=self.history_cap)
