from pydantic import BaseModel, Field, ValidationError
from typing import List

from src.watchdog.errors import ConfigurationError


class Symlink(BaseModel):
    path: str = Field(..., description="Symlink target")
    link: str = Field(..., description="Symlink location, replaced if it already exists")


class WatchdogConfig(BaseModel):
    metrics_file_path: str
    metrics_dump_interval_ms: int = Field(..., ge=0)
    tmpfs_volume_path: str
    tmpfs_min_space_left_mb: int = Field(..., ge=0)
    grace_period_seconds: int = Field(..., ge=0)
    runner_binary_path: str = Field(..., description="Absolute path of the worker binary to stop on exit")
    symlinks: List[Symlink] = []

    @classmethod
    def load(cls, path: str) -> "WatchdogConfig":
        try:
            with open(path, "r", encoding="utf-8") as f:
                content = f.read()
        except OSError as e:
            raise ConfigurationError(f"Failed to read config file. Reason - {e}") from e

        try:
            return cls.model_validate_json(content)
        except ValidationError as e:
            raise ConfigurationError(f"Failed to parse config file. Reason - {e}") from e


class MetricsSnapshot(BaseModel):
    memory: int  # working set, MB
    tmpfs: int   # used volume space, MB
